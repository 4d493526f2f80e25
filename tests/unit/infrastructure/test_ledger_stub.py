"""Unit tests for the in-memory ledger and mirror stubs."""

import pytest

from esg_registry.domain.errors import (
    LedgerRevertError,
    LedgerUnavailableError,
    ParticipantNotFoundError,
    ValidationError,
)
from esg_registry.domain.models.participant import Participant
from esg_registry.infrastructure.stubs import (
    LedgerClientStub,
    ParticipantRepositoryStub,
    SubmissionRepositoryStub,
)
from tests.helpers import address, make_record


class TestLedgerClientStub:
    async def test_register_then_submit(self, ledger: LedgerClientStub) -> None:
        sender = address(1)
        tx = await ledger.send("register", ("Acme", "REG-1"), sender, 100_000, 1)
        await ledger.wait_for_receipt(tx, timeout=1.0)

        receipt = await ledger.submit(
            "submitRecord",
            ("carbon_emissions", "5", "kg CO2", b"\x02" * 32, "note"),
            sender,
            300_000,
            1,
            timeout=1.0,
        )

        assert receipt.events[0].args["recordId"] == 1
        record = await ledger.get_record(1)
        assert record.owner_name == "Acme"
        assert record.content_hash == "0x" + "02" * 32
        assert await ledger.get_records_by_owner(sender) == [1]
        assert await ledger.total_participants() == 1

    async def test_contract_rules_revert_at_inclusion(self, ledger: LedgerClientStub) -> None:
        tx = await ledger.send("submitRecord", ("water_usage", "1", "", b"", ""), address(1), 1, 1)
        with pytest.raises(LedgerRevertError) as exc_info:
            await ledger.wait_for_receipt(tx, timeout=1.0)
        assert exc_info.value.reason == "Company not registered"

    async def test_unknown_record_reverts(self, ledger: LedgerClientStub) -> None:
        with pytest.raises(LedgerRevertError):
            await ledger.get_record(99)

    async def test_unavailable(self, ledger: LedgerClientStub) -> None:
        ledger.set_unavailable()
        with pytest.raises(LedgerUnavailableError):
            await ledger.is_registered(address(1))

    async def test_send_error_is_one_shot(self, ledger: LedgerClientStub) -> None:
        ledger.set_send_error(LedgerUnavailableError("send"))
        with pytest.raises(LedgerUnavailableError):
            await ledger.send("register", ("Acme", ""), address(1), 1, 1)
        await ledger.send("register", ("Acme", ""), address(1), 1, 1)
        assert ledger.sent_methods() == ["register"]

    async def test_clear_resets_state(self, ledger: LedgerClientStub) -> None:
        ledger.seed_registration(address(1))
        ledger.set_unavailable()
        ledger.clear()
        assert await ledger.is_registered(address(1)) is False


class TestMirrorStubs:
    async def test_address_unique(self, participants: ParticipantRepositoryStub) -> None:
        await participants.create(Participant(address=address(1), name="A"))
        with pytest.raises(ValidationError):
            await participants.create(Participant(address=address(1), name="B"))

    async def test_save_unknown(self, participants: ParticipantRepositoryStub) -> None:
        with pytest.raises(ParticipantNotFoundError):
            await participants.save(Participant(address=address(1), name="A"))

    async def test_rows_stored_without_owner_and_populated_on_read(
        self,
        participants: ParticipantRepositoryStub,
        submissions: SubmissionRepositoryStub,
    ) -> None:
        owner = await participants.create(Participant(address=address(1), name="A"))
        record = make_record(1, owner_id=owner.participant_id).with_owner(owner)

        stored = await submissions.upsert(record)
        fetched = await submissions.get_by_ledger_id(1)

        assert stored.owner is None
        assert fetched is not None and fetched.owner == owner

    async def test_injected_write_error(self, submissions: SubmissionRepositoryStub) -> None:
        submissions.set_error_on_next_write(RuntimeError("boom"))
        with pytest.raises(RuntimeError):
            await submissions.upsert(make_record(1))
        await submissions.upsert(make_record(1))
        assert submissions.write_count == 1
