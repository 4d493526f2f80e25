"""Merged mirror/ledger view of a record.

Presentation-level join of a mirror row with its ledger projection. A
missing projection (``None``) means the ledger read for that row failed or
timed out; it says nothing about whether the ledger holds the record.
"""

from __future__ import annotations

from dataclasses import dataclass

from esg_registry.domain.models.ledger import LedgerRecord
from esg_registry.domain.models.submission_record import SubmissionRecord


def compare_with_ledger(
    record: SubmissionRecord, projection: LedgerRecord
) -> tuple[str, ...]:
    """Return the names of fields on which mirror and ledger disagree.

    Only the fields the mirror copies from the submission are compared:
    data type, value, unit and content commitment. Identity is assumed
    (matching is by exact identifier beforehand).
    """
    divergent: list[str] = []
    if record.data_type.value != projection.data_type:
        divergent.append("data_type")
    if record.value != projection.value:
        divergent.append("value")
    if record.unit != projection.unit:
        divergent.append("unit")
    if record.document_hash.lower() != projection.content_hash.lower():
        divergent.append("document_hash")
    return tuple(divergent)


@dataclass(frozen=True)
class MergedRecordView:
    """A mirror row together with its ledger projection, if one was read."""

    record: SubmissionRecord
    ledger_projection: LedgerRecord | None
    divergent_fields: tuple[str, ...] = ()

    @classmethod
    def build(
        cls, record: SubmissionRecord, projection: LedgerRecord | None
    ) -> MergedRecordView:
        if projection is None:
            return cls(record=record, ledger_projection=None)
        if projection.record_id != record.ledger_record_id:
            # Not the same fact; never attach a foreign projection.
            return cls(record=record, ledger_projection=None)
        return cls(
            record=record,
            ledger_projection=projection,
            divergent_fields=compare_with_ledger(record, projection),
        )

    @property
    def is_consistent(self) -> bool:
        """True when a projection was read and matches the mirror row."""
        return self.ledger_projection is not None and not self.divergent_fields
