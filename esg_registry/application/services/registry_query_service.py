"""Read paths over the mirror and the ledger.

Listings are mirror scans merged with per-row ledger reads; a ledger
outage degrades a listing to mirror-only rows instead of failing it.
Statistics combine ledger totals with mirror verification counts, and
the ledger totals are reported as unknown when the ledger is down.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from esg_registry.application.ports.ledger_client import LedgerReaderProtocol
from esg_registry.application.ports.mirror_repository import (
    ParticipantRepositoryProtocol,
)
from esg_registry.application.services.base import LoggingMixin
from esg_registry.application.services.reconciliation_store import (
    DEFAULT_RECENT_LIMIT,
    ReconciliationReport,
    ReconciliationStore,
)
from esg_registry.domain.errors import (
    LedgerUnavailableError,
    ParticipantNotFoundError,
    RecordNotFoundError,
    UnauthorizedRoleError,
)
from esg_registry.domain.models.data_types import DATA_TYPE_CATALOG, DataTypeDescriptor
from esg_registry.domain.models.merged_view import MergedRecordView
from esg_registry.domain.models.participant import (
    Participant,
    ParticipantRole,
    normalize_address,
)
from esg_registry.domain.models.submission_record import VerificationStatus


@dataclass(frozen=True)
class RegistryStats:
    """Combined ledger and mirror statistics.

    ``ledger_participants`` and ``ledger_records`` are None when the ledger
    could not be read.
    """

    ledger_participants: int | None
    ledger_records: int | None
    total_records: int
    verified_records: int
    pending_records: int
    rejected_records: int
    verification_rate: str
    total_companies: int
    total_verifiers: int


@dataclass(frozen=True)
class LedgerStatus:
    address: str
    ledger_registered: bool
    cache_updated: bool = False


def verification_rate(verified: int, total: int) -> str:
    """Percentage of verified records with one decimal place ("0.0" when empty)."""
    if total <= 0:
        return "0.0"
    rate = Decimal(verified) * 100 / Decimal(total)
    return str(rate.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


class RegistryQueryService(LoggingMixin):
    """Query handlers for records, statistics and participant status."""

    def __init__(
        self,
        ledger: LedgerReaderProtocol,
        participants: ParticipantRepositoryProtocol,
        store: ReconciliationStore,
    ) -> None:
        self._ledger = ledger
        self._participants = participants
        self._store = store
        self._init_logger(component="queries")

    async def get_record(self, ledger_record_id: int) -> MergedRecordView:
        """Mirror row (owner populated) with its ledger projection.

        Raises:
            RecordNotFoundError: No mirror row for the id.
        """
        record = await self._store.get_by_ledger_id(ledger_record_id)
        if record is None:
            raise RecordNotFoundError(ledger_record_id)
        views = await self._store.merge([record], self._ledger)
        return views[0]

    async def list_owner_records(self, owner_id: UUID) -> list[MergedRecordView]:
        owner = await self._participants.get_by_id(owner_id)
        if owner is None:
            raise ParticipantNotFoundError(owner_id)
        rows = await self._store.list_by_owner(owner_id)
        return await self._store.merge([row.with_owner(owner) for row in rows], self._ledger)

    async def list_pending(self) -> list[MergedRecordView]:
        rows = await self._store.list_pending_verification()
        return await self._store.merge(rows, self._ledger)

    async def list_recent(self, limit: int = DEFAULT_RECENT_LIMIT) -> list[MergedRecordView]:
        rows = await self._store.list_recent(limit=limit)
        return await self._store.merge(rows, self._ledger)

    async def _ledger_totals(self) -> tuple[int | None, int | None]:
        try:
            participants, records = await asyncio.gather(
                self._ledger.total_participants(),
                self._ledger.total_records(),
            )
        except LedgerUnavailableError as exc:
            self._log_operation("stats").warning(
                "ledger_totals_unavailable", error=exc.detail
            )
            return None, None
        return participants, records

    async def stats(self) -> RegistryStats:
        ledger_participants, ledger_records = await self._ledger_totals()
        counts = await self._store.verification_counts()
        verified = counts.get(VerificationStatus.APPROVED, 0)
        pending = counts.get(VerificationStatus.PENDING, 0)
        rejected = counts.get(VerificationStatus.REJECTED, 0)
        total = verified + pending + rejected
        return RegistryStats(
            ledger_participants=ledger_participants,
            ledger_records=ledger_records,
            total_records=total,
            verified_records=verified,
            pending_records=pending,
            rejected_records=rejected,
            verification_rate=verification_rate(verified, total),
            total_companies=await self._participants.count(
                role=ParticipantRole.COMPANY, ledger_registered=True
            ),
            total_verifiers=await self._participants.count(role=ParticipantRole.VERIFIER),
        )

    async def ledger_status(self, participant_id: UUID) -> LedgerStatus:
        """Read-through registration status.

        When the ledger shows a registration the cache does not, the cache
        is updated. A cached ``True`` is trusted without a ledger read.
        """
        participant = await self._participants.get_by_id(participant_id)
        if participant is None:
            raise ParticipantNotFoundError(participant_id)
        if participant.ledger_registered:
            return LedgerStatus(address=participant.address, ledger_registered=True)

        on_ledger = await self._ledger.is_registered(participant.address)
        if on_ledger:
            await self._participants.save(participant.mark_ledger_registered())
            self._log_operation(
                "ledger_status", address=participant.address
            ).info("registration_cache_updated")
        return LedgerStatus(
            address=participant.address,
            ledger_registered=on_ledger,
            cache_updated=on_ledger,
        )

    async def reconcile_owner(
        self, caller: Participant, owner_address: str
    ) -> ReconciliationReport:
        """Run the reconciliation scan for one owner (admin only)."""
        if caller.role is not ParticipantRole.ADMIN:
            raise UnauthorizedRoleError(caller.role.value, (ParticipantRole.ADMIN.value,))
        return await self._store.find_unmirrored(
            normalize_address(owner_address), self._ledger
        )

    def data_types(self) -> tuple[DataTypeDescriptor, ...]:
        return DATA_TYPE_CATALOG
