"""In-memory stubs for the mirror repository ports.

ParticipantRepositoryStub enforces address uniqueness the way the SQL
table's unique index does. SubmissionRepositoryStub keys rows by ledger
record id and populates owners on listings when given a participant
repository to follow references into.

Failure injection: ``set_error_on_next_write()`` makes the next write raise.
"""

from __future__ import annotations

from uuid import UUID

from esg_registry.domain.errors import ParticipantNotFoundError, ValidationError
from esg_registry.domain.models.participant import Participant, ParticipantRole
from esg_registry.domain.models.submission_record import (
    SubmissionRecord,
    VerificationStatus,
)


class ParticipantRepositoryStub:
    """In-memory stub implementation of ParticipantRepositoryProtocol."""

    def __init__(self) -> None:
        self._by_id: dict[UUID, Participant] = {}
        self._next_error: Exception | None = None

    def clear(self) -> None:
        self._by_id.clear()
        self._next_error = None

    def set_error_on_next_write(self, error: Exception) -> None:
        self._next_error = error

    def _raise_injected(self) -> None:
        if self._next_error is not None:
            error, self._next_error = self._next_error, None
            raise error

    async def create(self, participant: Participant) -> Participant:
        self._raise_injected()
        if participant.participant_id in self._by_id:
            raise ValidationError(f"Participant {participant.participant_id} already exists")
        if any(p.address == participant.address for p in self._by_id.values()):
            raise ValidationError(
                f"Address {participant.address} is already in use", field="address"
            )
        self._by_id[participant.participant_id] = participant
        return participant

    async def get_by_id(self, participant_id: UUID) -> Participant | None:
        return self._by_id.get(participant_id)

    async def get_by_address(self, address: str) -> Participant | None:
        address = address.lower()
        for participant in self._by_id.values():
            if participant.address == address:
                return participant
        return None

    async def save(self, participant: Participant) -> Participant:
        self._raise_injected()
        if participant.participant_id not in self._by_id:
            raise ParticipantNotFoundError(participant.participant_id)
        self._by_id[participant.participant_id] = participant
        return participant

    async def count(
        self,
        role: ParticipantRole | None = None,
        ledger_registered: bool | None = None,
    ) -> int:
        return sum(
            1
            for p in self._by_id.values()
            if (role is None or p.role is role)
            and (ledger_registered is None or p.ledger_registered is ledger_registered)
        )


class SubmissionRepositoryStub:
    """In-memory stub implementation of SubmissionRepositoryProtocol."""

    def __init__(self, participants: ParticipantRepositoryStub | None = None) -> None:
        self._participants = participants
        self._rows: dict[int, SubmissionRecord] = {}
        self._next_error: Exception | None = None
        self.write_count = 0

    def clear(self) -> None:
        self._rows.clear()
        self._next_error = None
        self.write_count = 0

    def set_error_on_next_write(self, error: Exception) -> None:
        self._next_error = error

    async def _populate(self, record: SubmissionRecord) -> SubmissionRecord:
        if self._participants is None:
            return record
        return record.with_owner(await self._participants.get_by_id(record.owner_id))

    async def _populate_all(self, rows: list[SubmissionRecord]) -> list[SubmissionRecord]:
        return [await self._populate(row) for row in rows]

    @staticmethod
    def _newest_first(rows: list[SubmissionRecord]) -> list[SubmissionRecord]:
        return sorted(
            rows,
            key=lambda r: (r.submitted_at, r.ledger_record_id),
            reverse=True,
        )

    async def upsert(self, record: SubmissionRecord) -> SubmissionRecord:
        if self._next_error is not None:
            error, self._next_error = self._next_error, None
            raise error
        self.write_count += 1
        stored = record.with_owner(None)
        self._rows[record.ledger_record_id] = stored
        return stored

    async def get_by_ledger_id(self, ledger_record_id: int) -> SubmissionRecord | None:
        row = self._rows.get(ledger_record_id)
        return None if row is None else await self._populate(row)

    async def list_by_owner(self, owner_id: UUID) -> list[SubmissionRecord]:
        rows = [r for r in self._rows.values() if r.owner_id == owner_id]
        return await self._populate_all(self._newest_first(rows))

    async def list_by_status(self, status: VerificationStatus) -> list[SubmissionRecord]:
        rows = [r for r in self._rows.values() if r.verification_status is status]
        return await self._populate_all(self._newest_first(rows))

    async def list_recent(self, limit: int = 100) -> list[SubmissionRecord]:
        rows = self._newest_first(list(self._rows.values()))[:limit]
        return await self._populate_all(rows)

    async def count_by_status(self) -> dict[VerificationStatus, int]:
        counts = {status: 0 for status in VerificationStatus}
        for row in self._rows.values():
            counts[row.verification_status] += 1
        return counts
