"""In-memory stub for LedgerClientProtocol.

Simulates the registry contract closely enough to drive every pipeline
without a node:
- participant registration with "already registered" reverts
- record submission assigning sequential ids and emitting RecordCreated
- single review per record with "already verified" reverts
- fee simulation with a fixed cost per method

Failure injection (for tests):
- set_unavailable(): every call raises LedgerUnavailableError
- fail_record_reads() / set_record_read_delay(): per-record read faults
- set_simulation_error() / set_price_unavailable(): fee fallbacks
- set_send_error() / set_insufficient_funds(): send-time failures
- force_revert(): the next call to a method fails at inclusion
- suppress_event(): included transactions omit an event
- withhold_receipts(): inclusion is never observed (the call still lands)

Thread-safety note: not thread-safe; use one instance per event loop.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from esg_registry.domain.errors import (
    InsufficientFundsError,
    LedgerRevertError,
    LedgerUnavailableError,
)
from esg_registry.domain.models.ledger import (
    ZERO_ADDRESS,
    LedgerEvent,
    LedgerRecord,
    TxReceipt,
    decode_ledger_record,
    normalize_ledger_value,
    to_int,
)

# Simulated execution cost per state-changing method.
SIMULATED_COSTS: dict[str, int] = {
    "register": 95_000,
    "submitRecord": 210_000,
    "verifyRecord": 72_000,
}
DEFAULT_STUB_PRICE = 3_000_000_000


@dataclass
class SentCall:
    """A call that reached ``send``."""

    method: str
    args: tuple[Any, ...]
    sender: str
    fee_budget: int
    fee_price: int
    transaction_id: str


@dataclass
class _StoredRecord:
    owner: str
    owner_name: str
    timestamp: int
    data_type: str
    value: str
    unit: str
    content_hash: str
    verifier: str = ZERO_ADDRESS
    is_verified: bool = False
    reviewed: bool = False
    comments: str = ""

    def as_struct(self) -> tuple[Any, ...]:
        return (
            self.owner,
            self.owner_name,
            self.timestamp,
            self.data_type,
            self.value,
            self.unit,
            self.content_hash,
            self.verifier,
            self.is_verified,
            self.comments,
        )


@dataclass
class _PendingTx:
    receipt: TxReceipt | None
    revert_reason: str | None = None
    method: str = ""


@dataclass
class _Failures:
    unavailable: bool = False
    record_reads: set[int] = field(default_factory=set)
    record_read_delays: dict[int, float] = field(default_factory=dict)
    simulation_error: Exception | None = None
    price_unavailable: bool = False
    send_error: Exception | None = None
    insufficient_funds: set[str] = field(default_factory=set)
    forced_reverts: dict[str, str] = field(default_factory=dict)
    suppressed_events: set[str] = field(default_factory=set)
    withhold_receipts: bool = False


class LedgerClientStub:
    """In-memory stub implementation of LedgerClientProtocol."""

    def __init__(self, price: int = DEFAULT_STUB_PRICE) -> None:
        self._price = price
        self.clear()

    # ------------------------------------------------------------------
    # Test helpers
    # ------------------------------------------------------------------

    def clear(self) -> None:
        """Reset ledger state and every injected failure."""
        self._participants: dict[str, tuple[str, str]] = {}
        self._records: dict[int, _StoredRecord] = {}
        self._records_by_owner: dict[str, list[int]] = {}
        self._next_record_id = 1
        self._block = 1
        self._transactions: dict[str, _PendingTx] = {}
        self._failures = _Failures()
        self.sent: list[SentCall] = []
        self.simulations: list[tuple[str, tuple[Any, ...], str]] = []
        self.reads: list[tuple[str, tuple[Any, ...]]] = []

    def seed_registration(self, address: str, name: str = "", external_id: str = "") -> None:
        """Register an address directly, as if done outside this system."""
        self._participants[address.lower()] = (name, external_id)

    def seed_record(
        self,
        owner: str,
        data_type: str,
        value: str,
        unit: str = "",
        content_hash: str = "0x" + "00" * 32,
    ) -> int:
        """Create a ledger record directly, bypassing any mirror."""
        return self._create_record(owner.lower(), data_type, value, unit, content_hash, "")

    def set_unavailable(self, unavailable: bool = True) -> None:
        self._failures.unavailable = unavailable

    def fail_record_reads(self, record_ids: set[int]) -> None:
        self._failures.record_reads = set(record_ids)

    def set_record_read_delay(self, record_id: int, seconds: float) -> None:
        self._failures.record_read_delays[record_id] = seconds

    def set_simulation_error(self, error: Exception | None) -> None:
        self._failures.simulation_error = error

    def set_price_unavailable(self, unavailable: bool = True) -> None:
        self._failures.price_unavailable = unavailable

    def set_send_error(self, error: Exception | None) -> None:
        self._failures.send_error = error

    def set_insufficient_funds(self, address: str) -> None:
        self._failures.insufficient_funds.add(address.lower())

    def force_revert(self, method: str, reason: str) -> None:
        """Make the next included call to ``method`` fail with ``reason``."""
        self._failures.forced_reverts[method] = reason

    def suppress_event(self, event_name: str) -> None:
        self._failures.suppressed_events.add(event_name)

    def withhold_receipts(self, withhold: bool = True) -> None:
        self._failures.withhold_receipts = withhold

    def sent_methods(self) -> list[str]:
        return [call.method for call in self.sent]

    # ------------------------------------------------------------------
    # Contract simulation
    # ------------------------------------------------------------------

    def _check_available(self, operation: str) -> None:
        if self._failures.unavailable:
            raise LedgerUnavailableError(operation, reason="stub ledger unavailable")

    def _create_record(
        self,
        owner: str,
        data_type: str,
        value: str,
        unit: str,
        content_hash: str,
        comments: str,
    ) -> int:
        record_id = self._next_record_id
        self._next_record_id += 1
        owner_name = self._participants.get(owner, ("", ""))[0]
        self._records[record_id] = _StoredRecord(
            owner=owner,
            owner_name=owner_name,
            timestamp=int(datetime.now(timezone.utc).timestamp()),
            data_type=data_type,
            value=value,
            unit=unit,
            content_hash=content_hash,
            comments=comments,
        )
        self._records_by_owner.setdefault(owner, []).append(record_id)
        return record_id

    def _revert_reason(self, method: str, args: tuple[Any, ...], sender: str) -> str | None:
        """Return why the contract would reject the call, or None."""
        if method == "register":
            if sender in self._participants:
                return "Company already registered"
            return None
        if method == "submitRecord":
            if sender not in self._participants:
                return "Company not registered"
            return None
        if method == "verifyRecord":
            record = self._records.get(to_int(args[0]))
            if record is None:
                return "Record does not exist"
            if record.reviewed:
                return "Record already verified"
            return None
        return f"Unknown method {method}"

    def _apply(self, method: str, args: tuple[Any, ...], sender: str) -> list[LedgerEvent]:
        if method == "register":
            name, external_id = args
            self._participants[sender] = (str(name), str(external_id))
            return [LedgerEvent("CompanyRegistered", {"company": sender, "name": str(name)})]
        if method == "submitRecord":
            data_type, value, unit, content_hash, comments = args
            record_id = self._create_record(
                sender,
                str(data_type),
                str(value),
                str(unit),
                str(normalize_ledger_value(content_hash)),
                str(comments),
            )
            return [
                LedgerEvent(
                    "RecordCreated",
                    {"recordId": record_id, "owner": sender, "dataType": str(data_type)},
                )
            ]
        # verifyRecord
        record_id, approved, comments = to_int(args[0]), bool(args[1]), str(args[2])
        record = self._records[record_id]
        record.reviewed = True
        record.is_verified = approved
        record.verifier = sender
        record.comments = comments
        return [
            LedgerEvent(
                "RecordVerified",
                {"recordId": record_id, "verifier": sender, "approved": approved},
            )
        ]

    # ------------------------------------------------------------------
    # LedgerClientProtocol
    # ------------------------------------------------------------------

    async def read(self, method: str, *args: Any) -> Any:
        self._check_available(method)
        self.reads.append((method, args))
        if method == "isRegistered":
            return str(args[0]).lower() in self._participants
        if method == "getRecord":
            record_id = to_int(args[0])
            if record_id in self._failures.record_reads:
                raise LedgerUnavailableError(method, reason=f"injected read failure for {record_id}")
            delay = self._failures.record_read_delays.get(record_id)
            if delay:
                await asyncio.sleep(delay)
            record = self._records.get(record_id)
            if record is None:
                raise LedgerRevertError(method, "Record does not exist")
            return normalize_ledger_value(record.as_struct())
        if method == "getRecordsByOwner":
            return list(self._records_by_owner.get(str(args[0]).lower(), []))
        if method == "totalParticipants":
            return len(self._participants)
        if method == "totalRecords":
            return len(self._records)
        raise LedgerRevertError(method, f"Unknown read method {method}")

    async def is_registered(self, address: str) -> bool:
        return bool(await self.read("isRegistered", address))

    async def get_record(self, record_id: int) -> LedgerRecord:
        return decode_ledger_record(record_id, await self.read("getRecord", record_id))

    async def get_records_by_owner(self, address: str) -> list[int]:
        return [to_int(item) for item in await self.read("getRecordsByOwner", address)]

    async def total_participants(self) -> int:
        return to_int(await self.read("totalParticipants"))

    async def total_records(self) -> int:
        return to_int(await self.read("totalRecords"))

    async def simulate(self, method: str, args: Sequence[Any], sender: str) -> int:
        self._check_available("simulate")
        call_args = tuple(args)
        self.simulations.append((method, call_args, sender.lower()))
        if self._failures.simulation_error is not None:
            raise self._failures.simulation_error
        reason = self._revert_reason(method, call_args, sender.lower())
        if reason is not None:
            raise LedgerRevertError(method, reason)
        return SIMULATED_COSTS.get(method, 100_000)

    async def current_price(self) -> int:
        self._check_available("current_price")
        if self._failures.price_unavailable:
            raise LedgerUnavailableError("current_price", reason="price oracle unavailable")
        return self._price

    async def send(
        self,
        method: str,
        args: Sequence[Any],
        sender: str,
        fee_budget: int,
        fee_price: int,
    ) -> str:
        self._check_available("send")
        if self._failures.send_error is not None:
            error, self._failures.send_error = self._failures.send_error, None
            raise error
        sender = sender.lower()
        if sender in self._failures.insufficient_funds:
            raise InsufficientFundsError(sender, method)

        call_args = tuple(args)
        transaction_id = "0x" + uuid4().hex + uuid4().hex
        self.sent.append(
            SentCall(method, call_args, sender, fee_budget, fee_price, transaction_id)
        )

        self._block += 1
        reason = self._failures.forced_reverts.pop(method, None)
        if reason is None:
            reason = self._revert_reason(method, call_args, sender)
        if reason is not None:
            self._transactions[transaction_id] = _PendingTx(
                receipt=None, revert_reason=reason, method=method
            )
            return transaction_id

        events = [
            event
            for event in self._apply(method, call_args, sender)
            if event.name not in self._failures.suppressed_events
        ]
        gas_used = min(SIMULATED_COSTS.get(method, 100_000), fee_budget)
        self._transactions[transaction_id] = _PendingTx(
            receipt=TxReceipt(
                transaction_id=transaction_id,
                included_block=self._block,
                fee_consumed=gas_used * fee_price,
                events=tuple(
                    LedgerEvent(e.name, e.args, log_index=i) for i, e in enumerate(events)
                ),
            ),
            method=method,
        )
        return transaction_id

    async def wait_for_receipt(self, transaction_id: str, timeout: float) -> TxReceipt:
        if self._failures.withhold_receipts:
            raise LedgerUnavailableError(
                "wait_for_receipt",
                reason=f"inclusion not observed within {timeout}s",
                transaction_id=transaction_id,
            )
        self._check_available("wait_for_receipt")
        pending = self._transactions.get(transaction_id)
        if pending is None:
            raise LedgerUnavailableError(
                "wait_for_receipt",
                reason="unknown transaction",
                transaction_id=transaction_id,
            )
        if pending.receipt is None:
            raise LedgerRevertError(pending.method, pending.revert_reason or "")
        return pending.receipt

    async def submit(
        self,
        method: str,
        args: Sequence[Any],
        sender: str,
        fee_budget: int,
        fee_price: int,
        timeout: float,
    ) -> TxReceipt:
        transaction_id = await self.send(method, args, sender, fee_budget, fee_price)
        return await self.wait_for_receipt(transaction_id, timeout)
