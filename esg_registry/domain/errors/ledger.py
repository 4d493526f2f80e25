"""Ledger boundary errors.

These errors are raised by LedgerClient adapters and by the
TransactionOrchestrator. They encode whether a ledger-visible effect may
already have happened:

- LedgerUnavailableError before send: nothing happened, the whole pipeline
  may be retried from the start.
- LedgerUnavailableError with a transaction_id: the transaction was sent but
  inclusion was not observed. It may still be included later.
- LedgerUnavailableError with outcome_unknown: the send itself got no
  answer. The node may have accepted the transaction without returning its
  id, so the outcome is treated like a sent transaction.
- EventNotFoundError: the transaction was included but the expected domain
  event is missing. Inconsistent state; never retried automatically.
"""

from __future__ import annotations

from typing import Any

from esg_registry.domain.exceptions import RegistryError


class LedgerUnavailableError(RegistryError):
    """Raised when the ledger node cannot be reached or did not answer in time.

    Attributes:
        operation: The ledger operation that failed (method or phase name).
        transaction_id: Set when the failure happened after the transaction
            was sent; the transaction may still be included.
        outcome_unknown: Set when the send got no answer, so whether the
            node accepted the transaction is not known.
    """

    kind = "ledger_unavailable"
    title = "Ledger Unavailable"
    status = 503

    def __init__(
        self,
        operation: str,
        reason: str = "",
        transaction_id: str | None = None,
        outcome_unknown: bool = False,
    ) -> None:
        self.operation = operation
        self.reason = reason
        self.transaction_id = transaction_id
        self.outcome_unknown = outcome_unknown
        message = f"Ledger unavailable during {operation}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)

    @property
    def submitted(self) -> bool:
        """True when a transaction was, or may have been, sent before the failure."""
        return self.transaction_id is not None or self.outcome_unknown

    def extra_problem_fields(self) -> dict[str, Any]:
        result: dict[str, Any] = {"operation": self.operation}
        if self.transaction_id is not None:
            result["transaction_id"] = self.transaction_id
        if self.outcome_unknown:
            result["outcome"] = "unknown"
        return result


class LedgerRevertError(RegistryError):
    """Raised when the ledger explicitly rejected a call.

    Attributes:
        method: Contract method that reverted.
        reason: Raw revert reason reported by the ledger.
    """

    kind = "ledger_revert"
    title = "Ledger Rejected Call"
    status = 502

    def __init__(self, method: str, reason: str = "") -> None:
        self.method = method
        self.reason = reason
        super().__init__(f"Ledger rejected {method}: {reason or 'no reason given'}")

    def extra_problem_fields(self) -> dict[str, Any]:
        return {"method": self.method, "reason": self.reason}


class InsufficientFundsError(RegistryError):
    """Raised when the sender's account cannot cover the execution fee."""

    kind = "insufficient_funds"
    title = "Insufficient Funds"
    status = 402

    def __init__(self, sender: str, method: str) -> None:
        self.sender = sender
        self.method = method
        super().__init__(
            f"Account {sender} has insufficient funds to pay for {method}"
        )

    def extra_problem_fields(self) -> dict[str, Any]:
        return {"sender": self.sender, "method": self.method}


class EventNotFoundError(RegistryError):
    """Raised when an included transaction lacks the expected domain event.

    The ledger holds a fact that this system could not identify. Manual
    reconciliation is required; re-submitting could duplicate the fact.

    Attributes:
        transaction_id: The included transaction.
        event_name: The event the caller declared it expects.
        field_name: The identifier field the caller wanted to extract.
    """

    kind = "event_not_found"
    title = "Expected Ledger Event Missing"
    status = 500

    def __init__(
        self,
        transaction_id: str,
        event_name: str,
        field_name: str,
        events_seen: tuple[str, ...] = (),
    ) -> None:
        self.transaction_id = transaction_id
        self.event_name = event_name
        self.field_name = field_name
        self.events_seen = events_seen
        super().__init__(
            f"Transaction {transaction_id} was included but did not emit "
            f"{event_name}.{field_name}; manual reconciliation required"
        )

    def extra_problem_fields(self) -> dict[str, Any]:
        return {
            "transaction_id": self.transaction_id,
            "event_name": self.event_name,
            "field_name": self.field_name,
            "events_seen": list(self.events_seen),
        }
