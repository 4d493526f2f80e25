"""Content commitment for metric submissions.

The commitment binds a submission's payload to the ledger record. It is
computed before the ledger call from the canonical payload and stored both
on the ledger (``contentHash``) and in the mirror (``document_hash``), so
anyone holding the mirror row can recompute it and compare.

The canonical payload contains only facts that are persisted:
data type, value, unit, owner address and reporting period. Nothing
time-dependent or random is included.

The digest is a 32-byte BLAKE3 hash, the size of the contract's ``bytes32``
commitment slot.
"""

from __future__ import annotations

import json
import unicodedata
from dataclasses import dataclass
from datetime import date
from typing import Any

import blake3

from esg_registry.domain.models.submission_record import (
    ReportingPeriod,
    SubmissionRecord,
)

COMMITMENT_SIZE = 32


def _normalize(data: Any) -> Any:
    if isinstance(data, str):
        return unicodedata.normalize("NFKC", data)
    if isinstance(data, dict):
        return {_normalize(k): _normalize(v) for k, v in data.items()}
    if isinstance(data, list):
        return [_normalize(item) for item in data]
    if isinstance(data, float):
        raise ValueError("Floats are not allowed in a commitment payload")
    return data


def canonical_json(data: Any) -> str:
    """Produce deterministic JSON for hashing.

    Keys are sorted recursively, separators are compact, strings are NFKC
    normalized and non-ASCII characters are kept as-is.

    Example:
        >>> canonical_json({"b": "1", "a": "2"})
        '{"a":"2","b":"1"}'
    """
    return json.dumps(
        _normalize(data),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )


def _date_or_none(value: date | None) -> str | None:
    return value.isoformat() if value is not None else None


def canonical_payload(
    data_type: str,
    value: str,
    unit: str,
    owner_address: str,
    reporting_period: ReportingPeriod | None = None,
) -> dict[str, Any]:
    """Build the canonical commitment payload for a submission."""
    period = reporting_period or ReportingPeriod()
    return {
        "data_type": data_type,
        "value": value,
        "unit": unit,
        "owner": owner_address.lower(),
        "reporting_period": {
            "start": _date_or_none(period.start),
            "end": _date_or_none(period.end),
        },
    }


@dataclass(frozen=True)
class ContentCommitment:
    """A 32-byte commitment digest."""

    digest: bytes

    @property
    def hex(self) -> str:
        return "0x" + self.digest.hex()

    def matches(self, document_hash: str) -> bool:
        return self.hex == document_hash.lower()


def compute_commitment(payload: dict[str, Any]) -> ContentCommitment:
    """Hash a canonical payload into a ContentCommitment."""
    encoded = canonical_json(payload).encode("utf-8")
    return ContentCommitment(digest=blake3.blake3(encoded).digest())


def commitment_for_record(record: SubmissionRecord) -> ContentCommitment:
    """Recompute the commitment of a persisted mirror row."""
    return compute_commitment(
        canonical_payload(
            data_type=record.data_type.value,
            value=record.value,
            unit=record.unit,
            owner_address=record.owner_address,
            reporting_period=record.reporting_period,
        )
    )
