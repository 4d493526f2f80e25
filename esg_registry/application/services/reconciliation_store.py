"""Reconciliation store: the off-chain mirror of ledger facts.

Mirror rows are keyed by the ledger-assigned record id. The mirror is
never the source of truth for anything the ledger holds; it adds
off-chain attributes (owner reference, metadata, reporting period) and
fast filtered scans.

merge():
    Joins mirror rows with their ledger projections for presentation. Each
    row's ledger read runs concurrently with its own timeout. A failed or
    slow read yields ``ledger_projection=None`` for that row only; the
    listing never fails as a whole because one ledger read failed.

find_unmirrored():
    Reconciliation scan for one owner. Reports ledger records without a
    mirror row (the gap left by a MirrorWriteFailureError) and mirror rows
    whose submitted content diverges from the ledger.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass
from uuid import UUID

from esg_registry.application.ports.ledger_client import LedgerReaderProtocol
from esg_registry.application.ports.mirror_repository import (
    SubmissionRepositoryProtocol,
)
from esg_registry.application.services.base import LoggingMixin
from esg_registry.domain.errors import MirrorWriteFailureError, RegistryError
from esg_registry.domain.models.ledger import LedgerRecord
from esg_registry.domain.models.merged_view import MergedRecordView
from esg_registry.domain.models.submission_record import (
    SubmissionRecord,
    VerificationStatus,
)

DEFAULT_RECENT_LIMIT = 100

# Fields an update of an existing mirror row must not change.
_IMMUTABLE_FIELDS: tuple[str, ...] = (
    "transaction_id",
    "owner_id",
    "owner_address",
    "data_type",
    "value",
    "unit",
    "document_hash",
)


@dataclass(frozen=True)
class ReconciliationReport:
    """Result of comparing one owner's ledger records with the mirror.

    Attributes:
        owner_address: Owner whose records were scanned.
        ledger_record_ids: Ids the ledger reports for the owner.
        unmirrored_ids: Ledger ids with no mirror row.
        divergent: Merged views whose content differs from the ledger.
        unreadable_ids: Mirrored ids whose ledger read failed this scan.
    """

    owner_address: str
    ledger_record_ids: tuple[int, ...]
    unmirrored_ids: tuple[int, ...]
    divergent: tuple[MergedRecordView, ...]
    unreadable_ids: tuple[int, ...] = ()

    @property
    def is_consistent(self) -> bool:
        return not self.unmirrored_ids and not self.divergent


class ReconciliationStore(LoggingMixin):
    """Mirror persistence plus ledger/mirror merge and reconciliation."""

    def __init__(
        self,
        submissions: SubmissionRepositoryProtocol,
        merge_read_timeout_seconds: float = 5.0,
    ) -> None:
        self._submissions = submissions
        self._merge_timeout = merge_read_timeout_seconds
        self._init_logger(component="mirror")

    async def upsert_mirror(self, record: SubmissionRecord) -> SubmissionRecord:
        """Insert a row, or apply a verification update to an existing one.

        Raises:
            MirrorWriteFailureError: The store failed, or the update would
                change an immutable field of the existing row.
        """
        log = self._log_operation(
            "upsert_mirror",
            ledger_record_id=record.ledger_record_id,
            transaction_id=record.transaction_id,
        )
        try:
            existing = await self._submissions.get_by_ledger_id(record.ledger_record_id)
            if existing is not None:
                changed = [
                    name
                    for name in _IMMUTABLE_FIELDS
                    if getattr(existing, name) != getattr(record, name)
                ]
                if changed:
                    raise MirrorWriteFailureError(
                        reason=(
                            f"refusing to change immutable fields {', '.join(changed)} "
                            f"of record {record.ledger_record_id}"
                        ),
                        ledger_record_id=record.ledger_record_id,
                    )
            saved = await self._submissions.upsert(record)
        except MirrorWriteFailureError:
            raise
        except RegistryError as exc:
            raise MirrorWriteFailureError(
                reason=exc.detail,
                ledger_record_id=record.ledger_record_id,
            ) from exc
        except Exception as exc:
            log.exception("mirror_store_error", error=str(exc))
            raise MirrorWriteFailureError(
                reason=f"{type(exc).__name__}: {exc}",
                ledger_record_id=record.ledger_record_id,
            ) from exc

        log.info(
            "mirror_row_upserted",
            verification_status=saved.verification_status.value,
            updated=existing is not None,
        )
        return saved

    async def get_by_ledger_id(self, ledger_record_id: int) -> SubmissionRecord | None:
        return await self._submissions.get_by_ledger_id(ledger_record_id)

    async def list_by_owner(self, owner_id: UUID) -> list[SubmissionRecord]:
        """Rows owned by ``owner_id``, newest submission first."""
        return await self._submissions.list_by_owner(owner_id)

    async def list_pending_verification(self) -> list[SubmissionRecord]:
        """Unreviewed rows with owners populated, newest first.

        Rejected rows are reviewed and therefore not pending.
        """
        return await self._submissions.list_by_status(VerificationStatus.PENDING)

    async def list_recent(self, limit: int = DEFAULT_RECENT_LIMIT) -> list[SubmissionRecord]:
        """Most recent rows regardless of status."""
        return await self._submissions.list_recent(limit=limit)

    async def verification_counts(self) -> dict[VerificationStatus, int]:
        return await self._submissions.count_by_status()

    async def _read_projection(
        self, ledger: LedgerReaderProtocol, record: SubmissionRecord
    ) -> LedgerRecord | None:
        try:
            return await asyncio.wait_for(
                ledger.get_record(record.ledger_record_id),
                timeout=self._merge_timeout,
            )
        except asyncio.TimeoutError:
            self._log_operation(
                "merge", ledger_record_id=record.ledger_record_id
            ).warning("ledger_read_timeout", timeout_seconds=self._merge_timeout)
        except Exception as exc:
            self._log_operation(
                "merge", ledger_record_id=record.ledger_record_id
            ).warning(
                "ledger_read_failed",
                error_kind=getattr(exc, "kind", type(exc).__name__),
                error=str(exc),
            )
        return None

    async def merge(
        self,
        mirror_rows: Sequence[SubmissionRecord],
        ledger: LedgerReaderProtocol,
    ) -> list[MergedRecordView]:
        """Attach a ledger projection to each mirror row.

        Output order equals input order. A row whose ledger read failed
        gets ``ledger_projection=None``.
        """
        if not mirror_rows:
            return []
        projections = await asyncio.gather(
            *(self._read_projection(ledger, row) for row in mirror_rows)
        )
        views = [
            MergedRecordView.build(row, projection)
            for row, projection in zip(mirror_rows, projections)
        ]

        failed = sum(1 for view in views if view.ledger_projection is None)
        divergent = [v.record.ledger_record_id for v in views if v.divergent_fields]
        log = self._log_operation("merge", row_count=len(views))
        if divergent:
            log.warning("mirror_ledger_divergence", ledger_record_ids=divergent)
        log.debug("merge_completed", failed_reads=failed)
        return views

    async def find_unmirrored(
        self, owner_address: str, ledger: LedgerReaderProtocol
    ) -> ReconciliationReport:
        """Compare the ledger's records for ``owner_address`` with the mirror.

        Raises:
            LedgerUnavailableError: The owner's record list could not be read.
        """
        owner = owner_address.lower()
        log = self._log_operation("find_unmirrored", owner_address=owner)
        ledger_ids = await ledger.get_records_by_owner(owner)

        mirrored: list[SubmissionRecord] = []
        missing: list[int] = []
        for ledger_record_id in ledger_ids:
            row = await self._submissions.get_by_ledger_id(ledger_record_id)
            if row is None:
                missing.append(ledger_record_id)
            else:
                mirrored.append(row)

        views = await self.merge(mirrored, ledger)
        report = ReconciliationReport(
            owner_address=owner,
            ledger_record_ids=tuple(ledger_ids),
            unmirrored_ids=tuple(missing),
            divergent=tuple(v for v in views if v.divergent_fields),
            unreadable_ids=tuple(
                v.record.ledger_record_id for v in views if v.ledger_projection is None
            ),
        )
        if missing:
            log.error(
                "unmirrored_ledger_records",
                ledger_record_ids=missing,
                action="manual_reconciliation_required",
            )
        else:
            log.info("reconciliation_scan_completed", record_count=len(ledger_ids))
        return report
