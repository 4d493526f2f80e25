"""Typed projections of ledger data.

Everything read from or returned by the ledger is decoded into these
structures at the LedgerClient boundary. No raw tuples, byte strings or
width-limited integers travel further into the application.

Normalization rules (``normalize_ledger_value``):
- integers stay Python ``int`` (arbitrary precision, never float)
- ``bool`` stays ``bool``
- byte strings become ``0x``-prefixed lower-case hex
- 20-byte hex addresses become lower-case
- sequences and mappings are normalized recursively
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

ZERO_ADDRESS = "0x" + "0" * 40
_HEX_ADDRESS = re.compile(r"^0x[0-9a-fA-F]{40}$")

# Field order of the getRecord struct as returned by the contract.
LEDGER_RECORD_FIELDS: tuple[str, ...] = (
    "owner",
    "ownerName",
    "timestamp",
    "dataType",
    "value",
    "unit",
    "contentHash",
    "verifier",
    "isVerified",
    "comments",
)


def normalize_ledger_value(value: Any) -> Any:
    """Normalize a value returned by the ledger into plain Python types.

    Args:
        value: Raw value from a contract call, receipt or event.

    Returns:
        The normalized value.

    Raises:
        TypeError: If the value is a float. Ledger numbers are integers;
            a float indicates a lossy conversion upstream.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return int(value)
    if isinstance(value, float):
        raise TypeError("Ledger values must not be floating point")
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, str):
        if _HEX_ADDRESS.match(value):
            return value.lower()
        return value
    if isinstance(value, Mapping):
        return {str(k): normalize_ledger_value(v) for k, v in value.items()}
    if isinstance(value, Sequence):
        return [normalize_ledger_value(v) for v in value]
    return value


def to_int(value: Any) -> int:
    """Coerce a normalized ledger integer (int or decimal/hex string) to int."""
    if isinstance(value, bool):
        raise TypeError("Expected an integer, got bool")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return int(value, 16) if value.startswith("0x") else int(value)
    raise TypeError(f"Expected an integer ledger value, got {type(value).__name__}")


def _timestamp_to_datetime(value: Any) -> datetime | None:
    seconds = to_int(value)
    if seconds <= 0:
        return None
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


@dataclass(frozen=True)
class LedgerRecord:
    """Read-only projection of a record held by the ledger contract.

    Attributes:
        record_id: Ledger-assigned identifier.
        owner_address: Address that submitted the record.
        owner_name: Display name registered for the owner.
        timestamp: Block time of the submission (UTC).
        data_type: Data type string as stored on the ledger.
        value: Value string as stored on the ledger.
        unit: Unit string.
        content_hash: Hex content commitment.
        verifier_address: Reviewer address, None until reviewed.
        is_verified: Ledger verification flag.
        comments: Latest comments stored with the record.
    """

    record_id: int
    owner_address: str
    owner_name: str
    timestamp: datetime | None
    data_type: str
    value: str
    unit: str
    content_hash: str
    verifier_address: str | None
    is_verified: bool
    comments: str


def decode_ledger_record(record_id: int, raw: Any) -> LedgerRecord:
    """Decode a raw ``getRecord`` result into a LedgerRecord.

    Accepts either a positional struct (tuple/list in ``LEDGER_RECORD_FIELDS``
    order) or a mapping keyed by those field names.

    Raises:
        ValueError: If the raw value has the wrong shape.
    """
    data = normalize_ledger_value(raw)
    if isinstance(data, list):
        if len(data) != len(LEDGER_RECORD_FIELDS):
            raise ValueError(
                f"getRecord returned {len(data)} fields, "
                f"expected {len(LEDGER_RECORD_FIELDS)}"
            )
        data = dict(zip(LEDGER_RECORD_FIELDS, data))
    if not isinstance(data, dict):
        raise ValueError(f"Unexpected getRecord result type: {type(raw).__name__}")

    missing = [name for name in LEDGER_RECORD_FIELDS if name not in data]
    if missing:
        raise ValueError(f"getRecord result missing fields: {', '.join(missing)}")

    verifier = str(data["verifier"]).lower()
    return LedgerRecord(
        record_id=to_int(record_id),
        owner_address=str(data["owner"]).lower(),
        owner_name=str(data["ownerName"]),
        timestamp=_timestamp_to_datetime(data["timestamp"]),
        data_type=str(data["dataType"]),
        value=str(data["value"]),
        unit=str(data["unit"]),
        content_hash=str(data["contentHash"]),
        verifier_address=None if verifier in ("", ZERO_ADDRESS) else verifier,
        is_verified=bool(data["isVerified"]),
        comments=str(data["comments"]),
    )


@dataclass(frozen=True)
class LedgerEvent:
    """A decoded event emitted by an included transaction."""

    name: str
    args: Mapping[str, Any] = field(default_factory=dict)
    log_index: int = 0


@dataclass(frozen=True)
class TxReceipt:
    """Inclusion receipt of a transaction.

    Attributes:
        transaction_id: Hex transaction hash.
        included_block: Block number the transaction was included in.
        fee_consumed: Fee paid in wei: fee units used times the effective
            unit price.
        events: Decoded events in log order.
    """

    transaction_id: str
    included_block: int
    fee_consumed: int
    events: tuple[LedgerEvent, ...] = ()


@dataclass(frozen=True)
class TxResult:
    """Domain-level outcome of an orchestrated ledger call.

    ``extracted_id`` is set when the caller declared an expected event.
    ``fee_consumed`` is in wei. ``fee_budget`` is the fee-unit ceiling
    offered with the send and ``fee_price`` the offered wei per fee unit.
    """

    transaction_id: str
    included_block: int
    fee_consumed: int
    fee_budget: int
    fee_price: int
    events: tuple[LedgerEvent, ...] = ()
    extracted_id: int | None = None
