"""Integration tests for the PostgreSQL mirror repositories and pipelines."""

from datetime import date, datetime, timezone
from uuid import uuid4

import pytest

from esg_registry.application.services import SubmissionRequest
from esg_registry.bootstrap.container import Container
from esg_registry.domain.errors import (
    MirrorWriteFailureError,
    ParticipantNotFoundError,
    ValidationError,
)
from esg_registry.domain.models.participant import Participant, ParticipantRole
from esg_registry.domain.models.submission_record import VerificationStatus
from esg_registry.infrastructure.adapters.sqlalchemy_mirror import (
    SqlParticipantRepository,
    SqlSubmissionRepository,
)
from esg_registry.infrastructure.stubs import LedgerClientStub
from tests.helpers import address, create_participant, create_registered_company, make_record

pytestmark = pytest.mark.integration


class TestSqlParticipantRepository:
    async def test_create_and_lookup(self, sql_participants: SqlParticipantRepository) -> None:
        participant = await sql_participants.create(
            Participant(address=address(1), name="Acme", role=ParticipantRole.VERIFIER)
        )

        by_id = await sql_participants.get_by_id(participant.participant_id)
        by_address = await sql_participants.get_by_address(address(1))

        assert by_id == participant
        assert by_address == participant

    async def test_unique_address(self, sql_participants: SqlParticipantRepository) -> None:
        await sql_participants.create(Participant(address=address(1), name="A"))
        with pytest.raises(ValidationError):
            await sql_participants.create(Participant(address=address(1), name="B"))

    async def test_save_flag_and_count(self, sql_participants: SqlParticipantRepository) -> None:
        participant = await sql_participants.create(Participant(address=address(1), name="A"))
        await sql_participants.save(participant.mark_ledger_registered())

        assert await sql_participants.count(
            role=ParticipantRole.COMPANY, ledger_registered=True
        ) == 1
        assert await sql_participants.count(role=ParticipantRole.VERIFIER) == 0

    async def test_save_unknown(self, sql_participants: SqlParticipantRepository) -> None:
        with pytest.raises(ParticipantNotFoundError):
            await sql_participants.save(Participant(address=address(1), name="A"))


class TestSqlSubmissionRepository:
    async def test_large_ledger_ids_round_trip(
        self,
        sql_participants: SqlParticipantRepository,
        sql_submissions: SqlSubmissionRepository,
    ) -> None:
        owner = await sql_participants.create(Participant(address=address(1), name="A"))
        huge_id = 2**200 + 1
        await sql_submissions.upsert(
            make_record(huge_id, owner_id=owner.participant_id, metadata={"site": "plant-7"})
        )

        fetched = await sql_submissions.get_by_ledger_id(huge_id)

        assert fetched is not None
        assert fetched.ledger_record_id == huge_id
        assert fetched.owner == owner
        assert fetched.metadata == {"site": "plant-7"}

    async def test_verification_update_and_listings(
        self,
        sql_participants: SqlParticipantRepository,
        sql_submissions: SqlSubmissionRepository,
    ) -> None:
        owner = await sql_participants.create(Participant(address=address(1), name="A"))
        for record_id in (1, 2, 3):
            await sql_submissions.upsert(make_record(record_id, owner_id=owner.participant_id))
        reviewed = make_record(2, owner_id=owner.participant_id).with_verification(
            False, uuid4(), datetime(2026, 2, 1, tzinfo=timezone.utc), "figures missing"
        )
        await sql_submissions.upsert(reviewed)

        pending = await sql_submissions.list_by_status(VerificationStatus.PENDING)
        counts = await sql_submissions.count_by_status()
        recent = await sql_submissions.list_recent(limit=2)

        assert [r.ledger_record_id for r in pending] == [3, 1]
        assert counts[VerificationStatus.REJECTED] == 1
        assert [r.ledger_record_id for r in recent] == [3, 2]
        rejected = await sql_submissions.get_by_ledger_id(2)
        assert rejected is not None
        assert rejected.verification_comments == "figures missing"

    async def test_same_timestamp_orders_ids_numerically(
        self,
        sql_participants: SqlParticipantRepository,
        sql_submissions: SqlSubmissionRepository,
    ) -> None:
        owner = await sql_participants.create(Participant(address=address(1), name="A"))
        same_time = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)
        for record_id in (9, 10, 100):
            await sql_submissions.upsert(
                make_record(record_id, owner_id=owner.participant_id, submitted_at=same_time)
            )

        recent = await sql_submissions.list_recent(limit=3)

        assert [r.ledger_record_id for r in recent] == [100, 10, 9]

    async def test_unknown_owner_is_mirror_failure(
        self, sql_submissions: SqlSubmissionRepository
    ) -> None:
        with pytest.raises(MirrorWriteFailureError):
            await sql_submissions.upsert(make_record(1))


class TestPipelinesOverSql:
    async def test_submit_and_verify(
        self, sql_container: Container, ledger: LedgerClientStub
    ) -> None:
        owner = await create_registered_company(sql_container, 1)
        verifier = await create_participant(
            sql_container, 9, name="Auditor", role=ParticipantRole.VERIFIER
        )

        submitted = await sql_container.submission.submit(
            owner.participant_id,
            SubmissionRequest(
                data_type="energy_consumption",
                value="1250.5",
                unit="MWh",
                reporting_period_start=date(2025, 1, 1),
                reporting_period_end=date(2025, 12, 31),
            ),
        )
        await sql_container.verification.verify(
            verifier.participant_id, submitted.record.ledger_record_id, approved=True
        )

        view = await sql_container.queries.get_record(submitted.record.ledger_record_id)
        stats = await sql_container.queries.stats()

        assert view.is_consistent
        assert view.record.verified is True
        assert view.record.reporting_period.end == date(2025, 12, 31)
        assert stats.verification_rate == "100.0"
        assert stats.total_companies == 1

    async def test_reconciliation_finds_unmirrored(
        self, sql_container: Container, ledger: LedgerClientStub
    ) -> None:
        owner = await create_registered_company(sql_container, 1)
        admin = await create_participant(sql_container, 7, name="Ops", role=ParticipantRole.ADMIN)
        await sql_container.submission.submit(
            owner.participant_id, SubmissionRequest(data_type="water_usage", value="9")
        )
        ledger.seed_record(address(1), "water_usage", "4", "liters")

        report = await sql_container.queries.reconcile_owner(admin, address(1))

        assert report.ledger_record_ids == (1, 2)
        assert report.unmirrored_ids == (2,)
