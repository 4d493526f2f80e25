"""Mirror store ports.

Repository protocols for the off-chain mirror. The mirror is a cache of
ledger facts plus off-chain-only attributes (participant profile, record
metadata). Implementations must provide:

- filtered scans ordered by submission time, newest first
- reference-following: listed records carry their owning Participant
- atomic single-row upsert
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Protocol
from uuid import UUID

from esg_registry.domain.models.participant import Participant, ParticipantRole
from esg_registry.domain.models.submission_record import (
    SubmissionRecord,
    VerificationStatus,
)


class ParticipantRepositoryProtocol(Protocol):
    """Persistence of participants."""

    @abstractmethod
    async def create(self, participant: Participant) -> Participant:
        """Insert a new participant.

        Raises:
            ValidationError: The address is already taken.
        """
        ...

    @abstractmethod
    async def get_by_id(self, participant_id: UUID) -> Participant | None:
        ...

    @abstractmethod
    async def get_by_address(self, address: str) -> Participant | None:
        ...

    @abstractmethod
    async def save(self, participant: Participant) -> Participant:
        """Update an existing participant's mutable fields.

        Raises:
            ParticipantNotFoundError: No participant with that id exists.
        """
        ...

    @abstractmethod
    async def count(
        self,
        role: ParticipantRole | None = None,
        ledger_registered: bool | None = None,
    ) -> int:
        """Count participants matching the optional filters."""
        ...


class SubmissionRepositoryProtocol(Protocol):
    """Persistence of submission mirror rows."""

    @abstractmethod
    async def upsert(self, record: SubmissionRecord) -> SubmissionRecord:
        """Atomically insert or update the row keyed by ``ledger_record_id``.

        On update only verification fields change; identity and submitted
        content are immutable.
        """
        ...

    @abstractmethod
    async def get_by_ledger_id(self, ledger_record_id: int) -> SubmissionRecord | None:
        """Fetch one row with its owner populated."""
        ...

    @abstractmethod
    async def list_by_owner(self, owner_id: UUID) -> list[SubmissionRecord]:
        """Rows owned by ``owner_id``, newest submission first."""
        ...

    @abstractmethod
    async def list_by_status(self, status: VerificationStatus) -> list[SubmissionRecord]:
        """Rows in ``status``, newest submission first, owners populated."""
        ...

    @abstractmethod
    async def list_recent(self, limit: int = 100) -> list[SubmissionRecord]:
        """Most recent rows regardless of status, owners populated."""
        ...

    @abstractmethod
    async def count_by_status(self) -> dict[VerificationStatus, int]:
        """Row counts per verification status (every status present)."""
        ...
