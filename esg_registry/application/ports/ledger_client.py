"""Ledger client port.

Defines the contract between the application layer and the remote ledger.
Follows hexagonal architecture with port/adapter pattern; adapters live in
``esg_registry.infrastructure``.

Contract rules every adapter must honor:
- Reads are side-effect free and may be retried by the adapter.
- ``send`` is NOT idempotent and must never be retried by the adapter.
- All results are normalized at this boundary: integers as ``int``, byte
  strings as ``0x`` hex, addresses lower-cased; typed readers return domain
  dataclasses (LedgerRecord, TxReceipt).
- Library exceptions are translated into LedgerUnavailableError,
  LedgerRevertError or InsufficientFundsError.
"""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Sequence
from typing import Any, Protocol

from esg_registry.domain.models.ledger import LedgerRecord, TxReceipt


class LedgerReaderProtocol(Protocol):
    """Typed, side-effect-free ledger reads."""

    @abstractmethod
    async def is_registered(self, address: str) -> bool:
        """Return True when the ledger holds a registration for ``address``."""
        ...

    @abstractmethod
    async def get_record(self, record_id: int) -> LedgerRecord:
        """Fetch and decode one record.

        Raises:
            LedgerUnavailableError: Node unreachable or timed out.
            LedgerRevertError: The contract rejected the read (e.g. unknown id).
        """
        ...

    @abstractmethod
    async def get_records_by_owner(self, address: str) -> list[int]:
        """Return the identifiers of all records submitted by ``address``."""
        ...

    @abstractmethod
    async def total_participants(self) -> int:
        ...

    @abstractmethod
    async def total_records(self) -> int:
        ...


class LedgerClientProtocol(LedgerReaderProtocol, Protocol):
    """Full ledger accessor: reads, fee metering and transaction submission."""

    @abstractmethod
    async def read(self, method: str, *args: Any) -> Any:
        """Call a read-only contract method and return its normalized result."""
        ...

    @abstractmethod
    async def simulate(self, method: str, args: Sequence[Any], sender: str) -> int:
        """Return the simulated execution cost of a call.

        Raises:
            LedgerUnavailableError: Node unreachable.
            LedgerRevertError: The call would revert.
        """
        ...

    @abstractmethod
    async def current_price(self) -> int:
        """Return the ledger's current fee unit price."""
        ...

    @abstractmethod
    async def send(
        self,
        method: str,
        args: Sequence[Any],
        sender: str,
        fee_budget: int,
        fee_price: int,
    ) -> str:
        """Send a state-changing call and return its transaction id.

        Never retried by the adapter.

        Raises:
            LedgerUnavailableError: Node unreachable; nothing was sent. With
                ``outcome_unknown`` the send got no answer and may have
                been accepted.
            LedgerRevertError: Rejected at submission.
            InsufficientFundsError: Sender cannot cover the fee.
        """
        ...

    @abstractmethod
    async def wait_for_receipt(self, transaction_id: str, timeout: float) -> TxReceipt:
        """Wait until the transaction is included and return its receipt.

        Raises:
            LedgerUnavailableError: Inclusion not observed within ``timeout``
                (carries ``transaction_id``; the transaction may still land).
            LedgerRevertError: Included but execution failed.
        """
        ...

    @abstractmethod
    async def submit(
        self,
        method: str,
        args: Sequence[Any],
        sender: str,
        fee_budget: int,
        fee_price: int,
        timeout: float,
    ) -> TxReceipt:
        """Send and wait for inclusion in one call."""
        ...
