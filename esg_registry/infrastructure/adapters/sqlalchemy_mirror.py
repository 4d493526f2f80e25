"""SQLAlchemy implementation of the mirror repository ports.

Tables are defined with SQLAlchemy Core so the schema can be created by
``create_schema`` in development and in the integration tests. Every
repository method opens its own session from the injected factory and
commits before returning.

Ledger record ids are stored as decimal strings: ledger integers are
unbounded and must not be squeezed into a BIGINT.

Tables:
- participants: one row per participant, unique lower-cased address
- submission_records: one row per ledger record, keyed by ledger_record_id
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    MetaData,
    String,
    Table,
    Text,
    func,
    select,
)
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from esg_registry.domain.errors import (
    MirrorWriteFailureError,
    ParticipantNotFoundError,
    ValidationError,
)
from esg_registry.domain.models.data_types import DataType
from esg_registry.domain.models.participant import Participant, ParticipantRole
from esg_registry.domain.models.submission_record import (
    ReportingPeriod,
    SubmissionRecord,
    VerificationStatus,
)

logger = structlog.get_logger(__name__)

metadata = MetaData()

participants_table = Table(
    "participants",
    metadata,
    Column("participant_id", String(36), primary_key=True),
    Column("address", String(42), nullable=False, unique=True),
    Column("name", String(255), nullable=False),
    Column("external_id", String(255), nullable=False, default=""),
    Column("role", String(16), nullable=False),
    Column("ledger_registered", Boolean, nullable=False, default=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

submission_records_table = Table(
    "submission_records",
    metadata,
    Column("ledger_record_id", String(80), primary_key=True),
    Column("transaction_id", String(66), nullable=False, unique=True),
    Column(
        "owner_id",
        String(36),
        ForeignKey("participants.participant_id"),
        nullable=False,
    ),
    Column("owner_address", String(42), nullable=False),
    Column("data_type", String(64), nullable=False),
    Column("value", String(80), nullable=False),
    Column("unit", String(64), nullable=False, default=""),
    Column("document_hash", String(66), nullable=False),
    Column("reporting_period_start", Date, nullable=True),
    Column("reporting_period_end", Date, nullable=True),
    Column("comments", Text, nullable=False, default=""),
    Column("metadata", JSON, nullable=False, default=dict),
    Column("verification_status", String(16), nullable=False),
    Column("verifier_id", String(36), nullable=True),
    Column("verified_at", DateTime(timezone=True), nullable=True),
    Column("verification_comments", Text, nullable=False, default=""),
    Column("submitted_at", DateTime(timezone=True), nullable=False),
    Index("ix_submission_records_owner_submitted", "owner_id", "submitted_at"),
    Index("ix_submission_records_status_submitted", "verification_status", "submitted_at"),
)


async def create_schema(engine: AsyncEngine) -> None:
    """Create the mirror tables if they do not exist."""
    async with engine.begin() as connection:
        await connection.run_sync(metadata.create_all)


def _as_datetime(value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _as_date(value: Any) -> date | None:
    if value is None or isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def _participant_from_row(row: Any) -> Participant:
    return Participant(
        participant_id=UUID(str(row.participant_id)),
        address=row.address,
        name=row.name,
        external_id=row.external_id or "",
        role=ParticipantRole(row.role),
        ledger_registered=bool(row.ledger_registered),
        created_at=_as_datetime(row.created_at) or datetime.now(timezone.utc),
    )


def _record_from_row(row: Any) -> SubmissionRecord:
    return SubmissionRecord(
        ledger_record_id=int(row.ledger_record_id),
        transaction_id=row.transaction_id,
        owner_id=UUID(str(row.owner_id)),
        owner_address=row.owner_address,
        data_type=DataType(row.data_type),
        value=row.value,
        unit=row.unit or "",
        document_hash=row.document_hash,
        reporting_period=ReportingPeriod(
            start=_as_date(row.reporting_period_start),
            end=_as_date(row.reporting_period_end),
        ),
        comments=row.comments or "",
        metadata=dict(row._mapping["metadata"] or {}),
        verification_status=VerificationStatus(row.verification_status),
        verifier_id=UUID(str(row.verifier_id)) if row.verifier_id else None,
        verified_at=_as_datetime(row.verified_at),
        verification_comments=row.verification_comments or "",
        submitted_at=_as_datetime(row.submitted_at) or datetime.now(timezone.utc),
    )


def _participant_values(participant: Participant) -> dict[str, Any]:
    return {
        "participant_id": str(participant.participant_id),
        "address": participant.address,
        "name": participant.name,
        "external_id": participant.external_id,
        "role": participant.role.value,
        "ledger_registered": participant.ledger_registered,
        "created_at": participant.created_at,
    }


def _verification_values(record: SubmissionRecord) -> dict[str, Any]:
    return {
        "verification_status": record.verification_status.value,
        "verifier_id": str(record.verifier_id) if record.verifier_id else None,
        "verified_at": record.verified_at,
        "verification_comments": record.verification_comments,
    }


def _record_values(record: SubmissionRecord) -> dict[str, Any]:
    return {
        "ledger_record_id": str(record.ledger_record_id),
        "transaction_id": record.transaction_id,
        "owner_id": str(record.owner_id),
        "owner_address": record.owner_address,
        "data_type": record.data_type.value,
        "value": record.value,
        "unit": record.unit,
        "document_hash": record.document_hash,
        "reporting_period_start": record.reporting_period.start,
        "reporting_period_end": record.reporting_period.end,
        "comments": record.comments,
        "metadata": dict(record.metadata),
        "submitted_at": record.submitted_at,
        **_verification_values(record),
    }


class SqlParticipantRepository:
    """ParticipantRepositoryProtocol backed by the ``participants`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def create(self, participant: Participant) -> Participant:
        try:
            async with self._session_factory() as session, session.begin():
                await session.execute(
                    participants_table.insert().values(**_participant_values(participant))
                )
        except IntegrityError as exc:
            raise ValidationError(
                f"Address {participant.address} is already in use", field="address"
            ) from exc
        return participant

    async def _fetch_one(self, condition: Any) -> Participant | None:
        async with self._session_factory() as session:
            result = await session.execute(select(participants_table).where(condition))
            row = result.first()
        return None if row is None else _participant_from_row(row)

    async def get_by_id(self, participant_id: UUID) -> Participant | None:
        return await self._fetch_one(
            participants_table.c.participant_id == str(participant_id)
        )

    async def get_by_address(self, address: str) -> Participant | None:
        return await self._fetch_one(participants_table.c.address == address.lower())

    async def save(self, participant: Participant) -> Participant:
        values = _participant_values(participant)
        del values["participant_id"], values["created_at"]
        try:
            async with self._session_factory() as session, session.begin():
                result = await session.execute(
                    participants_table.update()
                    .where(
                        participants_table.c.participant_id
                        == str(participant.participant_id)
                    )
                    .values(**values)
                )
        except IntegrityError as exc:
            raise ValidationError(
                f"Address {participant.address} is already in use", field="address"
            ) from exc
        if result.rowcount == 0:
            raise ParticipantNotFoundError(participant.participant_id)
        return participant

    async def count(
        self,
        role: ParticipantRole | None = None,
        ledger_registered: bool | None = None,
    ) -> int:
        query = select(func.count()).select_from(participants_table)
        if role is not None:
            query = query.where(participants_table.c.role == role.value)
        if ledger_registered is not None:
            query = query.where(participants_table.c.ledger_registered == ledger_registered)
        async with self._session_factory() as session:
            result = await session.execute(query)
            return int(result.scalar_one())


class SqlSubmissionRepository:
    """SubmissionRepositoryProtocol backed by ``submission_records``.

    Listings join ``participants`` to populate each record's owner.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    def _joined_select(self) -> Any:
        return select(
            submission_records_table,
            participants_table.c.address.label("p_address"),
            participants_table.c.name.label("p_name"),
            participants_table.c.external_id.label("p_external_id"),
            participants_table.c.role.label("p_role"),
            participants_table.c.ledger_registered.label("p_ledger_registered"),
            participants_table.c.created_at.label("p_created_at"),
        ).select_from(
            submission_records_table.join(
                participants_table,
                submission_records_table.c.owner_id == participants_table.c.participant_id,
            )
        )

    @staticmethod
    def _with_owner(row: Any) -> SubmissionRecord:
        record = _record_from_row(row)
        owner = Participant(
            participant_id=record.owner_id,
            address=row.p_address,
            name=row.p_name,
            external_id=row.p_external_id or "",
            role=ParticipantRole(row.p_role),
            ledger_registered=bool(row.p_ledger_registered),
            created_at=_as_datetime(row.p_created_at) or datetime.now(timezone.utc),
        )
        return record.with_owner(owner)

    async def upsert(self, record: SubmissionRecord) -> SubmissionRecord:
        key = str(record.ledger_record_id)
        log = logger.bind(component="mirror", ledger_record_id=key)
        try:
            async with self._session_factory() as session, session.begin():
                existing = await session.execute(
                    select(submission_records_table.c.ledger_record_id)
                    .where(submission_records_table.c.ledger_record_id == key)
                    .with_for_update()
                )
                if existing.first() is None:
                    await session.execute(
                        submission_records_table.insert().values(**_record_values(record))
                    )
                else:
                    await session.execute(
                        submission_records_table.update()
                        .where(submission_records_table.c.ledger_record_id == key)
                        .values(**_verification_values(record))
                    )
        except IntegrityError as exc:
            log.error("mirror_integrity_error", error=str(exc.orig))
            raise MirrorWriteFailureError(
                reason=f"integrity violation: {exc.orig}",
                ledger_record_id=record.ledger_record_id,
            ) from exc
        except SQLAlchemyError as exc:
            log.error("mirror_database_error", error=str(exc))
            raise MirrorWriteFailureError(
                reason=str(exc), ledger_record_id=record.ledger_record_id
            ) from exc
        return record.with_owner(None)

    async def get_by_ledger_id(self, ledger_record_id: int) -> SubmissionRecord | None:
        query = self._joined_select().where(
            submission_records_table.c.ledger_record_id == str(ledger_record_id)
        )
        async with self._session_factory() as session:
            row = (await session.execute(query)).first()
        return None if row is None else self._with_owner(row)

    async def _list(self, query: Any) -> list[SubmissionRecord]:
        query = query.order_by(
            submission_records_table.c.submitted_at.desc(),
            # Decimal strings: shorter is smaller.
            func.length(submission_records_table.c.ledger_record_id).desc(),
            submission_records_table.c.ledger_record_id.desc(),
        )
        async with self._session_factory() as session:
            rows = (await session.execute(query)).all()
        return [self._with_owner(row) for row in rows]

    async def list_by_owner(self, owner_id: UUID) -> list[SubmissionRecord]:
        return await self._list(
            self._joined_select().where(
                submission_records_table.c.owner_id == str(owner_id)
            )
        )

    async def list_by_status(self, status: VerificationStatus) -> list[SubmissionRecord]:
        return await self._list(
            self._joined_select().where(
                submission_records_table.c.verification_status == status.value
            )
        )

    async def list_recent(self, limit: int = 100) -> list[SubmissionRecord]:
        return await self._list(self._joined_select().limit(limit))

    async def count_by_status(self) -> dict[VerificationStatus, int]:
        query = select(
            submission_records_table.c.verification_status, func.count()
        ).group_by(submission_records_table.c.verification_status)
        async with self._session_factory() as session:
            rows = (await session.execute(query)).all()
        counts = {status: 0 for status in VerificationStatus}
        for status, count in rows:
            counts[VerificationStatus(status)] = int(count)
        return counts
