"""Unit tests for the record verification pipeline."""

from uuid import uuid4

import pytest

from esg_registry.application.services import VerificationState
from esg_registry.bootstrap.container import Container
from esg_registry.domain.errors import (
    AlreadyVerifiedError,
    MirrorWriteFailureError,
    ParticipantNotFoundError,
    RecordNotFoundError,
    UnauthorizedRoleError,
)
from esg_registry.domain.models.participant import Participant, ParticipantRole
from esg_registry.domain.models.submission_record import VerificationStatus
from esg_registry.infrastructure.stubs import LedgerClientStub, SubmissionRepositoryStub
from tests.helpers import (
    address,
    create_participant,
    create_registered_company,
    submit_metric,
)


@pytest.fixture
async def verifier(container: Container) -> Participant:
    return await create_participant(
        container, 9, name="Green Audit LLP", role=ParticipantRole.VERIFIER
    )


@pytest.fixture
async def record_id(container: Container) -> int:
    owner = await create_registered_company(container, 1)
    outcome = await submit_metric(container, owner)
    return outcome.record.ledger_record_id


class TestVerify:
    async def test_approval(
        self,
        container: Container,
        ledger: LedgerClientStub,
        verifier: Participant,
        record_id: int,
    ) -> None:
        outcome = await container.verification.verify(
            verifier.participant_id, record_id, approved=True, comments="matches invoices"
        )

        assert outcome.state is VerificationState.UPDATED
        assert outcome.record.verified is True
        assert outcome.record.verification_status is VerificationStatus.APPROVED
        assert outcome.record.verifier_id == verifier.participant_id
        assert outcome.record.owner is not None

        projection = await ledger.get_record(record_id)
        assert projection.is_verified is True
        assert projection.verifier_address == address(9)
        assert projection.comments == "matches invoices"

    async def test_rejection_records_reviewer(
        self, container: Container, verifier: Participant, record_id: int
    ) -> None:
        outcome = await container.verification.verify(
            verifier.participant_id, record_id, approved=False
        )

        record = outcome.record
        assert record.verified is False
        assert record.verification_status is VerificationStatus.REJECTED
        assert record.verifier_id == verifier.participant_id
        assert record.verified_at is not None
        assert await container.store.list_pending_verification() == []

    async def test_already_reviewed_refused_without_ledger_call(
        self,
        container: Container,
        ledger: LedgerClientStub,
        verifier: Participant,
        record_id: int,
    ) -> None:
        await container.verification.verify(verifier.participant_id, record_id, approved=True)

        with pytest.raises(AlreadyVerifiedError) as exc_info:
            await container.verification.verify(
                verifier.participant_id, record_id, approved=False
            )

        assert exc_info.value.verification_status == "approved"
        assert ledger.sent_methods().count("verifyRecord") == 1

    async def test_admin_may_verify(self, container: Container, record_id: int) -> None:
        admin = await create_participant(container, 8, name="Ops", role=ParticipantRole.ADMIN)
        outcome = await container.verification.verify(
            admin.participant_id, record_id, approved=True
        )
        assert outcome.record.verified is True

    async def test_company_role_refused(
        self, container: Container, ledger: LedgerClientStub, record_id: int
    ) -> None:
        company = await create_participant(container, 2, name="Other Co")

        with pytest.raises(UnauthorizedRoleError) as exc_info:
            await container.verification.verify(company.participant_id, record_id, approved=True)

        assert exc_info.value.role == "company"
        assert "verifyRecord" not in ledger.sent_methods()

    async def test_unknown_record(
        self, container: Container, ledger: LedgerClientStub, verifier: Participant
    ) -> None:
        with pytest.raises(RecordNotFoundError):
            await container.verification.verify(verifier.participant_id, 404, approved=True)
        assert ledger.sent == []

    async def test_unknown_verifier(self, container: Container, record_id: int) -> None:
        with pytest.raises(ParticipantNotFoundError):
            await container.verification.verify(uuid4(), record_id, approved=True)

    async def test_stale_mirror_ledger_revert_maps_to_already_verified(
        self,
        container: Container,
        ledger: LedgerClientStub,
        verifier: Participant,
        record_id: int,
    ) -> None:
        ledger.force_revert("verifyRecord", "Record already verified")

        with pytest.raises(AlreadyVerifiedError):
            await container.verification.verify(verifier.participant_id, record_id, approved=True)

        stored = await container.store.get_by_ledger_id(record_id)
        assert stored is not None
        assert stored.verification_status is VerificationStatus.PENDING

    async def test_mirror_failure_carries_transaction_id(
        self,
        container: Container,
        ledger: LedgerClientStub,
        submissions: SubmissionRepositoryStub,
        verifier: Participant,
        record_id: int,
    ) -> None:
        submissions.set_error_on_next_write(ConnectionError("db gone"))

        with pytest.raises(MirrorWriteFailureError) as exc_info:
            await container.verification.verify(verifier.participant_id, record_id, approved=True)

        assert exc_info.value.transaction_id == ledger.sent[-1].transaction_id
        assert exc_info.value.ledger_record_id == record_id
        assert (await ledger.get_record(record_id)).is_verified is True
