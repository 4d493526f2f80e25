"""Transaction orchestration: intent in, typed ledger result out.

Steps, each a possible failure point:
1. Estimate fee budget and price (FeeEstimator, with degraded fallbacks)
2. Send the call (LedgerClient.send, never retried here)
3. Wait for inclusion, bounded by the configured receipt timeout
4. Extract the declared identifier from the declared event

Failure semantics:
- Before send: LedgerUnavailableError without transaction_id. Nothing is
  on the ledger; the caller may retry the pipeline from the start.
- Send without an answer: LedgerUnavailableError with outcome_unknown. The
  request token stays claimed, so a retry under it is refused.
- Wait expiry: LedgerUnavailableError WITH transaction_id. The transaction
  may still be included later; callers must treat the outcome as unknown.
- Included without the expected event: EventNotFoundError. Inconsistent
  state requiring manual reconciliation; never retried.

This component never touches the mirror store.
"""

from __future__ import annotations

import asyncio
from collections import OrderedDict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

from esg_registry.application.ports.ledger_client import LedgerClientProtocol
from esg_registry.application.services.base import LoggingMixin
from esg_registry.application.services.fee_estimator import FeeEstimator
from esg_registry.domain.errors import (
    DuplicateSubmissionError,
    EventNotFoundError,
    InsufficientFundsError,
    LedgerRevertError,
    LedgerUnavailableError,
    ValidationError,
)
from esg_registry.domain.models.ledger import LedgerEvent, TxResult, to_int

# Extra time granted over the adapter's own receipt timeout before the
# orchestrator gives up on its side.
_WAIT_GRACE_SECONDS = 1.0
_MAX_REMEMBERED_TOKENS = 10_000


@dataclass(frozen=True)
class TransactionIntent:
    """A domain request to change ledger state.

    Attributes:
        method: Contract method to call.
        args: Positional call arguments.
        sender: Lower-cased address the call is sent from.
        expected_event: Event the call must emit, if an identifier is needed.
        id_field: Field of ``expected_event`` holding the identifier.
        request_token: Unique token of this attempt. Reusing a token that was
            already sent is refused, which stops a retry loop from
            duplicating a ledger-visible action.
    """

    method: str
    args: tuple[Any, ...]
    sender: str
    expected_event: str | None = None
    id_field: str | None = None
    request_token: str = field(default_factory=lambda: str(uuid4()))

    def __post_init__(self) -> None:
        if (self.expected_event is None) != (self.id_field is None):
            raise ValueError("expected_event and id_field must be given together")


def extract_event_field(
    events: Iterable[LedgerEvent],
    event_name: str,
    field_name: str,
    transaction_id: str,
) -> int:
    """Return an integer identifier field from the first matching event.

    Args:
        events: Decoded events of an included transaction.
        event_name: Name of the event the caller expects.
        field_name: Identifier field inside that event.
        transaction_id: Transaction the events belong to (for the error).

    Returns:
        The identifier as ``int``.

    Raises:
        EventNotFoundError: No such event, no such field, or the field is not
            an integer.
    """
    seen: list[str] = []
    for event in events:
        seen.append(event.name)
        if event.name != event_name:
            continue
        if field_name not in event.args:
            break
        try:
            return to_int(event.args[field_name])
        except (TypeError, ValueError):
            break
    raise EventNotFoundError(
        transaction_id=transaction_id,
        event_name=event_name,
        field_name=field_name,
        events_seen=tuple(seen),
    )


class TransactionOrchestrator(LoggingMixin):
    """Turns a TransactionIntent into an included transaction and a TxResult."""

    def __init__(
        self,
        ledger: LedgerClientProtocol,
        fee_estimator: FeeEstimator,
        receipt_timeout_seconds: float,
    ) -> None:
        self._ledger = ledger
        self._fees = fee_estimator
        self._receipt_timeout = receipt_timeout_seconds
        self._sent_tokens: OrderedDict[str, str] = OrderedDict()
        self._init_logger(component="ledger")

    def _check_token(self, token: str) -> None:
        if token in self._sent_tokens:
            raise DuplicateSubmissionError(token)

    def _claim_token(self, token: str) -> None:
        # No await between check and insert, so concurrent runs cannot both claim.
        self._check_token(token)
        self._sent_tokens[token] = ""
        while len(self._sent_tokens) > _MAX_REMEMBERED_TOKENS:
            self._sent_tokens.popitem(last=False)

    def _release_token(self, token: str) -> None:
        self._sent_tokens.pop(token, None)

    async def execute(self, intent: TransactionIntent) -> TxResult:
        """Run one intent through fee estimation, send, inclusion and extraction.

        Raises:
            DuplicateSubmissionError: ``intent.request_token`` was already sent.
            LedgerUnavailableError: Node unreachable, or inclusion not observed
                in time (then ``transaction_id`` is set).
            LedgerRevertError: The ledger rejected the call.
            InsufficientFundsError: Sender cannot pay the fee.
            EventNotFoundError: Included without the expected event.
        """
        log = self._log_operation(
            "execute",
            method=intent.method,
            sender=intent.sender,
            request_token=intent.request_token,
        )
        self._check_token(intent.request_token)

        quote = await self._fees.quote(intent.method, intent.args, intent.sender)
        log.info(
            "transaction_prepared",
            fee_budget=quote.fee_budget,
            fee_price=quote.fee_price,
            budget_fallback=quote.budget_fallback,
            price_fallback=quote.price_fallback,
        )

        self._claim_token(intent.request_token)
        try:
            transaction_id = await self._ledger.send(
                intent.method,
                intent.args,
                intent.sender,
                quote.fee_budget,
                quote.fee_price,
            )
        except LedgerUnavailableError as exc:
            if exc.submitted:
                log.error(
                    "send_outcome_unknown",
                    reason=exc.reason,
                    action="manual_reconciliation_required",
                )
            else:
                self._release_token(intent.request_token)
            raise
        except (LedgerRevertError, InsufficientFundsError, ValidationError):
            self._release_token(intent.request_token)
            raise
        self._sent_tokens[intent.request_token] = transaction_id
        log = log.bind(transaction_id=transaction_id)
        log.info("transaction_sent")

        try:
            receipt = await asyncio.wait_for(
                self._ledger.wait_for_receipt(transaction_id, self._receipt_timeout),
                timeout=self._receipt_timeout + _WAIT_GRACE_SECONDS,
            )
        except asyncio.TimeoutError:
            log.warning("inclusion_not_observed", timeout_seconds=self._receipt_timeout)
            raise LedgerUnavailableError(
                operation="wait_for_receipt",
                reason=f"inclusion not observed within {self._receipt_timeout}s",
                transaction_id=transaction_id,
            ) from None

        log.info(
            "transaction_included",
            included_block=receipt.included_block,
            fee_consumed=receipt.fee_consumed,
            event_count=len(receipt.events),
        )

        extracted_id: int | None = None
        if intent.expected_event is not None and intent.id_field is not None:
            try:
                extracted_id = extract_event_field(
                    receipt.events,
                    intent.expected_event,
                    intent.id_field,
                    receipt.transaction_id,
                )
            except EventNotFoundError as exc:
                log.error(
                    "event_not_found",
                    expected_event=exc.event_name,
                    id_field=exc.field_name,
                    events_seen=list(exc.events_seen),
                    included_block=receipt.included_block,
                    action="manual_reconciliation_required",
                )
                raise

        return TxResult(
            transaction_id=receipt.transaction_id,
            included_block=receipt.included_block,
            fee_consumed=receipt.fee_consumed,
            fee_budget=quote.fee_budget,
            fee_price=quote.fee_price,
            events=receipt.events,
            extracted_id=extracted_id,
        )

    def sent_transaction(self, request_token: str) -> str | None:
        """Return the transaction id sent for ``request_token``, if any."""
        return self._sent_tokens.get(request_token) or None


def build_intent(
    method: str,
    args: Sequence[Any],
    sender: str,
    expected_event: str | None = None,
    id_field: str | None = None,
    request_token: str | None = None,
) -> TransactionIntent:
    """Convenience constructor generating a token when none is supplied."""
    if request_token is None:
        return TransactionIntent(
            method=method,
            args=tuple(args),
            sender=sender,
            expected_event=expected_event,
            id_field=id_field,
        )
    return TransactionIntent(
        method=method,
        args=tuple(args),
        sender=sender,
        expected_event=expected_event,
        id_field=id_field,
        request_token=request_token,
    )
