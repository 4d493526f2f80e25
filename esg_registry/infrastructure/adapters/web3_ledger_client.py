"""web3.py adapter for LedgerClientProtocol.

Talks JSON-RPC to an EVM node through ``AsyncWeb3`` and the registry
contract's ABI. Transactions are sent with ``from`` set to the
participant's address and signed by the node (node-managed accounts).

Boundary rules:
- every RPC call is bounded by ``request_timeout_seconds``
- reads are retried with exponential backoff; sends never are
- results leave this module normalized (``normalize_ledger_value``)
- web3 and transport exceptions are translated into LedgerUnavailableError,
  LedgerRevertError or InsufficientFundsError
- a send that got no answer is reported with ``outcome_unknown``

Environment Variables:
- LEDGER_RPC_URL, LEDGER_CONTRACT_ADDRESS, LEDGER_CONTRACT_ABI_PATH
  (see esg_registry.config.ledger_config)
"""

from __future__ import annotations

import asyncio
import json
from collections import OrderedDict
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar

import structlog
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.exceptions import (
    ContractLogicError,
    TimeExhausted,
    TransactionNotFound,
    Web3Exception,
    Web3RPCError,
    Web3ValidationError,
)
from web3.logs import DISCARD

from esg_registry.config.ledger_config import LedgerConfig
from esg_registry.domain.errors import (
    InsufficientFundsError,
    LedgerRevertError,
    LedgerUnavailableError,
)
from esg_registry.domain.models.ledger import (
    LEDGER_RECORD_FIELDS,
    LedgerEvent,
    LedgerRecord,
    TxReceipt,
    decode_ledger_record,
    normalize_ledger_value,
    to_int,
)
from esg_registry.domain.models.participant import ADDRESS_PATTERN
from esg_registry.domain.services.revert_classifier import RevertKind, classify_revert

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# Sent calls kept for revert-reason replay; oldest dropped first.
_MAX_REMEMBERED_SENDS = 10_000


def load_contract_abi(path: str) -> tuple[list[dict[str, Any]], str | None]:
    """Load a contract ABI file.

    Accepts a bare ABI list or a build artifact object with an ``abi`` key
    and optionally an ``address`` key.

    Returns:
        ``(abi, address or None)``

    Raises:
        ValueError: If the file does not contain an ABI.
    """
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(data, list):
        return data, None
    if isinstance(data, dict) and isinstance(data.get("abi"), list):
        address = data.get("address")
        return data["abi"], address if isinstance(address, str) else None
    raise ValueError(f"No contract ABI found in {path}")


def _to_call_arg(value: Any) -> Any:
    """Convert a normalized argument into what web3 expects."""
    if isinstance(value, str) and ADDRESS_PATTERN.match(value):
        return AsyncWeb3.to_checksum_address(value)
    if isinstance(value, (list, tuple)):
        return [_to_call_arg(item) for item in value]
    return value


def _error_message(exc: BaseException) -> str:
    message = getattr(exc, "message", None)
    if isinstance(message, str) and message:
        return message
    return str(exc)


def translate_error(exc: BaseException, method: str, sender: str | None = None) -> Exception:
    """Map a web3 or transport exception onto the ledger error taxonomy."""
    message = _error_message(exc)
    if classify_revert(message) is RevertKind.INSUFFICIENT_FUNDS:
        return InsufficientFundsError(sender or "unknown", method)
    if isinstance(exc, ContractLogicError):
        return LedgerRevertError(method, message.removeprefix("execution reverted: "))
    if isinstance(exc, Web3ValidationError):
        return LedgerRevertError(method, message)
    if isinstance(exc, Web3RPCError) and "revert" in message.lower():
        return LedgerRevertError(method, message)
    return LedgerUnavailableError(method, reason=message or type(exc).__name__)


@dataclass(frozen=True)
class _SentCall:
    method: str
    args: tuple[Any, ...]
    sender: str
    fee_price: int


class Web3LedgerClient:
    """Production LedgerClientProtocol implementation on web3.py."""

    def __init__(
        self,
        config: LedgerConfig,
        web3: AsyncWeb3 | None = None,
        abi: list[dict[str, Any]] | None = None,
    ) -> None:
        file_address: str | None = None
        if abi is None:
            if not config.contract_abi_path:
                raise ValueError("LEDGER_CONTRACT_ABI_PATH is required for the web3 ledger")
            abi, file_address = load_contract_abi(config.contract_abi_path)
        address = config.contract_address or file_address
        if not address:
            raise ValueError("LEDGER_CONTRACT_ADDRESS is required for the web3 ledger")

        self._config = config
        self._w3 = web3 or AsyncWeb3(AsyncHTTPProvider(config.rpc_url))
        self._contract = self._w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(address), abi=abi
        )
        self._event_names = tuple(
            item["name"] for item in abi if item.get("type") == "event" and "name" in item
        )
        self._sent: OrderedDict[str, _SentCall] = OrderedDict()
        self._log = logger.bind(component="ledger", contract=address.lower())

    def _function(self, method: str, args: Sequence[Any]) -> Any:
        return getattr(self._contract.functions, method)(
            *(_to_call_arg(arg) for arg in args)
        )

    async def _bounded(self, awaitable: Awaitable[T], operation: str) -> T:
        try:
            return await asyncio.wait_for(
                awaitable, timeout=self._config.request_timeout_seconds
            )
        except asyncio.TimeoutError:
            raise LedgerUnavailableError(
                operation,
                reason=f"no answer within {self._config.request_timeout_seconds}s",
            ) from None

    async def _with_read_retries(
        self, operation: str, call: Callable[[], Awaitable[T]]
    ) -> T:
        attempts = self._config.read_retries
        for attempt in range(1, attempts + 1):
            cause: BaseException | None = None
            try:
                return await self._bounded(call(), operation)
            except LedgerUnavailableError as exc:
                error: Exception = exc
            except (Web3Exception, OSError) as exc:
                error, cause = translate_error(exc, operation), exc

            if not isinstance(error, LedgerUnavailableError) or attempt == attempts:
                raise error from cause
            delay = self._config.read_backoff_seconds * (2 ** (attempt - 1))
            self._log.warning(
                "ledger_read_retry",
                operation=operation,
                attempt=attempt,
                delay_seconds=delay,
                error=str(error),
            )
            await asyncio.sleep(delay)
        raise LedgerUnavailableError(operation, reason="no read attempts configured")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def read(self, method: str, *args: Any) -> Any:
        result = await self._with_read_retries(
            method, lambda: self._function(method, args).call()
        )
        return normalize_ledger_value(result)

    async def is_registered(self, address: str) -> bool:
        return bool(await self.read("isRegistered", address))

    async def get_record(self, record_id: int) -> LedgerRecord:
        raw = await self.read("getRecord", record_id)
        # A struct return may arrive wrapped in a one-element list.
        if (
            isinstance(raw, list)
            and len(raw) == 1
            and isinstance(raw[0], (list, dict))
            and len(raw[0]) == len(LEDGER_RECORD_FIELDS)
        ):
            raw = raw[0]
        try:
            return decode_ledger_record(record_id, raw)
        except ValueError as exc:
            raise LedgerRevertError("getRecord", f"undecodable record: {exc}") from exc

    async def get_records_by_owner(self, address: str) -> list[int]:
        return [to_int(item) for item in await self.read("getRecordsByOwner", address)]

    async def total_participants(self) -> int:
        return to_int(await self.read("totalParticipants"))

    async def total_records(self) -> int:
        return to_int(await self.read("totalRecords"))

    # ------------------------------------------------------------------
    # Fees
    # ------------------------------------------------------------------

    async def simulate(self, method: str, args: Sequence[Any], sender: str) -> int:
        try:
            estimate = await self._bounded(
                self._function(method, args).estimate_gas(
                    {"from": AsyncWeb3.to_checksum_address(sender)}
                ),
                "simulate",
            )
        except (ContractLogicError, Web3Exception, OSError) as exc:
            raise translate_error(exc, method, sender) from exc
        return to_int(estimate)

    async def current_price(self) -> int:
        try:
            price = await self._bounded(self._w3.eth.gas_price, "current_price")
        except (Web3Exception, OSError) as exc:
            raise translate_error(exc, "current_price") from exc
        return to_int(price)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def send(
        self,
        method: str,
        args: Sequence[Any],
        sender: str,
        fee_budget: int,
        fee_price: int,
    ) -> str:
        """Send once. Never retried, even on timeout.

        A refused connection or an error answer from the node means nothing
        was accepted. A timeout or a transport failure mid-request may hide
        an accepted transaction and is raised with ``outcome_unknown``.
        """
        try:
            tx_hash = await self._bounded(
                self._function(method, args).transact(
                    {
                        "from": AsyncWeb3.to_checksum_address(sender),
                        "gas": fee_budget,
                        "gasPrice": fee_price,
                    }
                ),
                "send",
            )
        except LedgerUnavailableError as exc:
            self._log.error("send_outcome_unknown", method=method, reason=exc.reason)
            raise LedgerUnavailableError(
                "send", reason=exc.reason, outcome_unknown=True
            ) from None
        except (ContractLogicError, Web3Exception, OSError) as exc:
            error = translate_error(exc, method, sender)
            if isinstance(error, LedgerUnavailableError) and not isinstance(
                exc, (Web3RPCError, ConnectionRefusedError)
            ):
                self._log.error("send_outcome_unknown", method=method, reason=error.reason)
                error = LedgerUnavailableError(
                    "send", reason=error.reason, outcome_unknown=True
                )
            raise error from exc

        transaction_id = str(normalize_ledger_value(bytes(tx_hash)))
        self._sent[transaction_id] = _SentCall(method, tuple(args), sender.lower(), fee_price)
        while len(self._sent) > _MAX_REMEMBERED_SENDS:
            self._sent.popitem(last=False)
        self._log.info("transaction_sent", method=method, transaction_id=transaction_id)
        return transaction_id

    async def _revert_reason(self, call: _SentCall, block_number: int) -> str:
        """Replay a failed call at its block to recover the revert reason."""
        try:
            await self._bounded(
                self._function(call.method, call.args).call(
                    {"from": AsyncWeb3.to_checksum_address(call.sender)},
                    block_identifier=block_number,
                ),
                "revert_reason",
            )
        except ContractLogicError as exc:
            return _error_message(exc).removeprefix("execution reverted: ")
        except (LedgerUnavailableError, Web3Exception, OSError):
            return ""
        return ""

    def _decode_events(self, receipt: Any) -> tuple[LedgerEvent, ...]:
        events: list[LedgerEvent] = []
        for name in self._event_names:
            event_type = getattr(self._contract.events, name)()
            for entry in event_type.process_receipt(receipt, errors=DISCARD):
                events.append(
                    LedgerEvent(
                        name=str(entry["event"]),
                        args=normalize_ledger_value(dict(entry["args"])),
                        log_index=to_int(entry["logIndex"]),
                    )
                )
        events.sort(key=lambda event: event.log_index)
        return tuple(events)

    async def wait_for_receipt(self, transaction_id: str, timeout: float) -> TxReceipt:
        try:
            receipt = await self._w3.eth.wait_for_transaction_receipt(
                transaction_id, timeout=timeout  # type: ignore[arg-type]
            )
        except (TimeExhausted, TransactionNotFound, asyncio.TimeoutError):
            raise LedgerUnavailableError(
                "wait_for_receipt",
                reason=f"inclusion not observed within {timeout}s",
                transaction_id=transaction_id,
            ) from None
        except (Web3Exception, OSError) as exc:
            raise LedgerUnavailableError(
                "wait_for_receipt",
                reason=_error_message(exc),
                transaction_id=transaction_id,
            ) from exc

        call = self._sent.pop(transaction_id, None)
        block_number = to_int(receipt["blockNumber"])
        if to_int(receipt["status"]) == 0:
            method = call.method if call else "unknown"
            reason = await self._revert_reason(call, block_number) if call else ""
            raise LedgerRevertError(method, reason)

        gas_used = to_int(receipt["gasUsed"])
        # Pre-London nodes omit effectiveGasPrice; the offered price applies there.
        fallback_price = call.fee_price if call else 0
        unit_price = to_int(receipt.get("effectiveGasPrice", fallback_price))
        return TxReceipt(
            transaction_id=transaction_id,
            included_block=block_number,
            fee_consumed=gas_used * unit_price,
            events=self._decode_events(receipt),
        )

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
