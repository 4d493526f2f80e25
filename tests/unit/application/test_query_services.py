"""Unit tests for RegistryQueryService and ParticipantService."""

from uuid import uuid4

import pytest

from esg_registry.application.services import verification_rate
from esg_registry.bootstrap.container import Container
from esg_registry.domain.errors import (
    LedgerUnavailableError,
    ParticipantNotFoundError,
    RecordNotFoundError,
    UnauthorizedRoleError,
    ValidationError,
)
from esg_registry.domain.models.participant import ParticipantRole
from esg_registry.infrastructure.stubs import LedgerClientStub
from tests.helpers import (
    address,
    create_participant,
    create_registered_company,
    submit_metric,
)


@pytest.mark.parametrize(
    ("verified", "total", "expected"),
    [(2, 3, "66.7"), (0, 0, "0.0"), (0, 5, "0.0"), (1, 8, "12.5"), (3, 3, "100.0")],
)
def test_verification_rate(verified: int, total: int, expected: str) -> None:
    assert verification_rate(verified, total) == expected


class TestStats:
    async def test_combines_ledger_totals_and_mirror_counts(
        self, container: Container
    ) -> None:
        owner = await create_registered_company(container, 1)
        await create_participant(container, 2, name="Unregistered Co")
        verifier = await create_participant(
            container, 9, name="Auditor", role=ParticipantRole.VERIFIER
        )
        ids = []
        for value in ("1", "2", "3"):
            outcome = await submit_metric(container, owner, value=value)
            ids.append(outcome.record.ledger_record_id)
        await container.verification.verify(verifier.participant_id, ids[0], approved=True)
        await container.verification.verify(verifier.participant_id, ids[1], approved=True)

        stats = await container.queries.stats()

        assert stats.ledger_participants == 1
        assert stats.ledger_records == 3
        assert stats.total_records == 3
        assert stats.verified_records == 2
        assert stats.pending_records == 1
        assert stats.rejected_records == 0
        assert stats.verification_rate == "66.7"
        assert stats.total_companies == 1
        assert stats.total_verifiers == 1

    async def test_ledger_totals_unknown_when_ledger_down(
        self, container: Container, ledger: LedgerClientStub
    ) -> None:
        ledger.set_unavailable()

        stats = await container.queries.stats()

        assert stats.ledger_participants is None
        assert stats.ledger_records is None
        assert stats.total_records == 0
        assert stats.verification_rate == "0.0"


class TestLedgerStatus:
    async def test_read_through_flips_cache(
        self, container: Container, ledger: LedgerClientStub
    ) -> None:
        participant = await create_participant(container, 1)
        ledger.seed_registration(address(1))

        status = await container.queries.ledger_status(participant.participant_id)

        assert status.ledger_registered is True
        assert status.cache_updated is True
        stored = await container.participant_service.get(participant.participant_id)
        assert stored.ledger_registered is True

    async def test_unregistered(self, container: Container) -> None:
        participant = await create_participant(container, 1)
        status = await container.queries.ledger_status(participant.participant_id)
        assert status.ledger_registered is False
        assert status.cache_updated is False

    async def test_cached_true_needs_no_ledger(
        self, container: Container, ledger: LedgerClientStub
    ) -> None:
        participant = await create_registered_company(container, 1)
        ledger.set_unavailable()

        status = await container.queries.ledger_status(participant.participant_id)

        assert status.ledger_registered is True


class TestRecordQueries:
    async def test_get_record_merges_projection(self, container: Container) -> None:
        owner = await create_registered_company(container, 1)
        await submit_metric(container, owner)

        view = await container.queries.get_record(1)

        assert view.is_consistent
        assert view.record.owner is not None

    async def test_get_unknown_record(self, container: Container) -> None:
        with pytest.raises(RecordNotFoundError):
            await container.queries.get_record(77)

    async def test_owner_listing_survives_ledger_outage(
        self, container: Container, ledger: LedgerClientStub
    ) -> None:
        owner = await create_registered_company(container, 1)
        await submit_metric(container, owner, value="1")
        await submit_metric(container, owner, value="2")
        ledger.set_unavailable()

        views = await container.queries.list_owner_records(owner.participant_id)

        assert len(views) == 2
        assert all(v.ledger_projection is None for v in views)
        assert all(v.record.owner is not None for v in views)

    async def test_owner_listing_unknown_owner(self, container: Container) -> None:
        with pytest.raises(ParticipantNotFoundError):
            await container.queries.list_owner_records(uuid4())


class TestReconcileOwner:
    async def test_admin_sees_unmirrored_records(
        self, container: Container, ledger: LedgerClientStub
    ) -> None:
        admin = await create_participant(container, 7, name="Ops", role=ParticipantRole.ADMIN)
        ledger.seed_record(address(1), "water_usage", "5", "liters")

        report = await container.queries.reconcile_owner(admin, address(1))

        assert report.unmirrored_ids == (1,)

    @pytest.mark.parametrize("role", [ParticipantRole.COMPANY, ParticipantRole.VERIFIER])
    async def test_non_admin_refused(
        self, container: Container, role: ParticipantRole
    ) -> None:
        caller = await create_participant(container, 7, name="Someone", role=role)
        with pytest.raises(UnauthorizedRoleError):
            await container.queries.reconcile_owner(caller, address(1))

    async def test_ledger_outage_propagates(
        self, container: Container, ledger: LedgerClientStub
    ) -> None:
        admin = await create_participant(container, 7, name="Ops", role=ParticipantRole.ADMIN)
        ledger.set_unavailable()
        with pytest.raises(LedgerUnavailableError):
            await container.queries.reconcile_owner(admin, address(1))


class TestParticipantService:
    async def test_create_normalizes_address(self, container: Container) -> None:
        participant = await container.participant_service.create(
            address="0x" + "AB" * 20, name="  Acme  "
        )
        assert participant.address == "0x" + "ab" * 20
        assert participant.name == "Acme"
        assert participant.role is ParticipantRole.COMPANY
        assert participant.ledger_registered is False

    async def test_duplicate_address_rejected(self, container: Container) -> None:
        await container.participant_service.create(address=address(1), name="Acme")
        with pytest.raises(ValidationError) as exc_info:
            await container.participant_service.create(
                address=address(1).upper().replace("0X", "0x"), name="Copy"
            )
        assert exc_info.value.field == "address"

    async def test_blank_name_rejected(self, container: Container) -> None:
        with pytest.raises(ValidationError) as exc_info:
            await container.participant_service.create(address=address(1), name=" ")
        assert exc_info.value.field == "name"

    async def test_update_profile(self, container: Container) -> None:
        participant = await create_participant(container, 1)

        updated = await container.participant_service.update_profile(
            participant.participant_id, name="Acme Holdings"
        )

        assert updated.name == "Acme Holdings"
        assert updated.external_id == "REG-1"
        fetched = await container.participant_service.get_by_address(address(1))
        assert fetched.name == "Acme Holdings"

    async def test_lookup_unknown(self, container: Container) -> None:
        with pytest.raises(ParticipantNotFoundError):
            await container.participant_service.get(uuid4())
        with pytest.raises(ParticipantNotFoundError):
            await container.participant_service.get_by_address(address(5))
