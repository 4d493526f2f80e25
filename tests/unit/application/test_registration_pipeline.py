"""Unit tests for the company registration pipeline."""

from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from structlog.testing import capture_logs

from esg_registry.application.services import RegistrationState
from esg_registry.bootstrap.container import Container
from esg_registry.domain.errors import (
    AlreadyRegisteredError,
    LedgerRevertError,
    LedgerUnavailableError,
    MirrorWriteFailureError,
    ParticipantNotFoundError,
)
from esg_registry.infrastructure.stubs import (
    LedgerClientStub,
    ParticipantRepositoryStub,
)
from tests.helpers import address, create_participant


class TestRegister:
    async def test_success_flips_cache_flag(
        self, container: Container, ledger: LedgerClientStub
    ) -> None:
        participant = await create_participant(container, 1)

        outcome = await container.registration.register(participant.participant_id)

        assert outcome.state is RegistrationState.REGISTERED
        assert outcome.participant.ledger_registered is True
        assert outcome.tx_result.transaction_id == ledger.sent[0].transaction_id
        assert ledger.sent[0].args == ("Acme Corp", "REG-1")
        assert await ledger.is_registered(address(1))
        stored = await container.participant_service.get(participant.participant_id)
        assert stored.ledger_registered is True

    async def test_second_registration_refused_without_send(
        self, container: Container, ledger: LedgerClientStub
    ) -> None:
        participant = await create_participant(container, 1)
        await container.registration.register(participant.participant_id)

        with pytest.raises(AlreadyRegisteredError) as exc_info:
            await container.registration.register(participant.participant_id)

        assert exc_info.value.detected_on_ledger is False
        assert ledger.sent_methods() == ["register"]

    async def test_registration_found_on_ledger_updates_cache(
        self, container: Container, ledger: LedgerClientStub
    ) -> None:
        participant = await create_participant(container, 1)
        ledger.seed_registration(address(1), "Acme Corp")

        with pytest.raises(AlreadyRegisteredError) as exc_info:
            await container.registration.register(participant.participant_id)

        assert exc_info.value.detected_on_ledger is True
        assert ledger.sent == []
        stored = await container.participant_service.get(participant.participant_id)
        assert stored.ledger_registered is True

    async def test_ledger_revert_race_reported_as_already_registered(
        self,
        container: Container,
        ledger: LedgerClientStub,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        participant = await create_participant(container, 1)
        ledger.force_revert("register", "Company already registered")
        monkeypatch.setattr(ledger, "is_registered", AsyncMock(side_effect=[False, True]))

        with pytest.raises(AlreadyRegisteredError) as exc_info:
            await container.registration.register(participant.participant_id)

        assert exc_info.value.detected_on_ledger is True
        assert isinstance(exc_info.value.__cause__, LedgerRevertError)
        stored = await container.participant_service.get(participant.participant_id)
        assert stored.ledger_registered is True

    async def test_unconfirmed_revert_leaves_cache_unset(
        self, container: Container, ledger: LedgerClientStub
    ) -> None:
        participant = await create_participant(container, 1)
        ledger.force_revert("register", "Company already registered")

        with pytest.raises(AlreadyRegisteredError):
            await container.registration.register(participant.participant_id)

        stored = await container.participant_service.get(participant.participant_id)
        assert stored.ledger_registered is False

    async def test_other_reverts_propagate_unchanged(
        self, container: Container, ledger: LedgerClientStub
    ) -> None:
        participant = await create_participant(container, 1)
        ledger.force_revert("register", "Registry paused")

        with pytest.raises(LedgerRevertError):
            await container.registration.register(participant.participant_id)

        stored = await container.participant_service.get(participant.participant_id)
        assert stored.ledger_registered is False

    async def test_cache_save_failure_carries_transaction_id(
        self,
        container: Container,
        ledger: LedgerClientStub,
        participants: ParticipantRepositoryStub,
    ) -> None:
        participant = await create_participant(container, 1)
        participants.set_error_on_next_write(ConnectionError("db gone"))

        with capture_logs() as logs, pytest.raises(MirrorWriteFailureError) as exc_info:
            await container.registration.register(participant.participant_id)

        assert exc_info.value.transaction_id == ledger.sent[0].transaction_id
        assert "db gone" in exc_info.value.reason
        assert any(
            e["event"] == "mirror_write_failure" and e["log_level"] == "error" for e in logs
        )

    async def test_ledger_down_leaves_participant_unchanged(
        self, container: Container, ledger: LedgerClientStub
    ) -> None:
        participant = await create_participant(container, 1)
        ledger.set_unavailable()

        with pytest.raises(LedgerUnavailableError):
            await container.registration.register(participant.participant_id)

        stored = await container.participant_service.get(participant.participant_id)
        assert stored.ledger_registered is False

    async def test_unknown_participant(self, container: Container) -> None:
        with pytest.raises(ParticipantNotFoundError):
            await container.registration.register(uuid4())
