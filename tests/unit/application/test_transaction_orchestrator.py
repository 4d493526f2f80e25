"""Unit tests for TransactionOrchestrator and event extraction."""

import asyncio
from unittest.mock import AsyncMock

import pytest
from structlog.testing import capture_logs

from esg_registry.application.services import (
    FeeEstimator,
    TransactionIntent,
    TransactionOrchestrator,
    build_intent,
    extract_event_field,
)
from esg_registry.config.ledger_config import FeeConfig
from esg_registry.domain.errors import (
    DuplicateSubmissionError,
    EventNotFoundError,
    InsufficientFundsError,
    LedgerRevertError,
    LedgerUnavailableError,
)
from esg_registry.domain.models.ledger import LedgerEvent, TxReceipt
from esg_registry.infrastructure.stubs import SIMULATED_COSTS, LedgerClientStub
from tests.helpers import address

SENDER = address(1)


@pytest.fixture
def orchestrator(ledger: LedgerClientStub) -> TransactionOrchestrator:
    return TransactionOrchestrator(ledger, FeeEstimator(ledger, FeeConfig()), 1.0)


def _submit_intent(token: str | None = None) -> TransactionIntent:
    return build_intent(
        "submitRecord",
        ("carbon_emissions", "1000", "tonnes CO2", b"\x01" * 32, ""),
        sender=SENDER,
        expected_event="RecordCreated",
        id_field="recordId",
        request_token=token,
    )


class TestExtractEventField:
    def test_returns_integer_field(self) -> None:
        events = [
            LedgerEvent("Other", {"recordId": 99}),
            LedgerEvent("RecordCreated", {"recordId": "0x10"}),
        ]
        assert extract_event_field(events, "RecordCreated", "recordId", "0xaa") == 16

    def test_missing_event(self) -> None:
        with pytest.raises(EventNotFoundError) as exc_info:
            extract_event_field([LedgerEvent("Transfer")], "RecordCreated", "recordId", "0xaa")
        assert exc_info.value.transaction_id == "0xaa"
        assert exc_info.value.events_seen == ("Transfer",)

    def test_missing_field(self) -> None:
        with pytest.raises(EventNotFoundError):
            extract_event_field(
                [LedgerEvent("RecordCreated", {"owner": SENDER})],
                "RecordCreated",
                "recordId",
                "0xaa",
            )

    def test_non_integer_field(self) -> None:
        with pytest.raises(EventNotFoundError):
            extract_event_field(
                [LedgerEvent("RecordCreated", {"recordId": "abc"})],
                "RecordCreated",
                "recordId",
                "0xaa",
            )


class TestTransactionIntent:
    def test_event_and_field_required_together(self) -> None:
        with pytest.raises(ValueError):
            TransactionIntent("submitRecord", (), SENDER, expected_event="RecordCreated")

    def test_tokens_generated_unique(self) -> None:
        assert _submit_intent().request_token != _submit_intent().request_token


class TestExecute:
    async def test_success_returns_typed_result(
        self, orchestrator: TransactionOrchestrator, ledger: LedgerClientStub
    ) -> None:
        ledger.seed_registration(SENDER, "Acme")

        result = await orchestrator.execute(_submit_intent())

        expected_budget = SIMULATED_COSTS["submitRecord"] * 120 // 100
        assert result.extracted_id == 1
        assert result.fee_budget == expected_budget
        assert result.fee_price == 3_000_000_000
        assert result.fee_consumed == SIMULATED_COSTS["submitRecord"] * 3_000_000_000
        assert result.included_block > 0
        assert ledger.sent[0].fee_budget == expected_budget

    async def test_no_extraction_without_declared_event(
        self, orchestrator: TransactionOrchestrator
    ) -> None:
        result = await orchestrator.execute(
            build_intent("register", ("Acme", "REG-1"), sender=SENDER)
        )
        assert result.extracted_id is None
        assert [e.name for e in result.events] == ["CompanyRegistered"]

    async def test_missing_event_is_event_not_found(
        self, orchestrator: TransactionOrchestrator, ledger: LedgerClientStub
    ) -> None:
        ledger.seed_registration(SENDER, "Acme")
        ledger.suppress_event("RecordCreated")

        with capture_logs() as logs, pytest.raises(EventNotFoundError) as exc_info:
            await orchestrator.execute(_submit_intent())

        assert exc_info.value.transaction_id == ledger.sent[0].transaction_id
        errors = [e for e in logs if e["event"] == "event_not_found"]
        assert errors[0]["log_level"] == "error"
        assert errors[0]["action"] == "manual_reconciliation_required"

    async def test_unobserved_inclusion_carries_transaction_id(
        self, orchestrator: TransactionOrchestrator, ledger: LedgerClientStub
    ) -> None:
        ledger.seed_registration(SENDER, "Acme")
        ledger.withhold_receipts()

        with pytest.raises(LedgerUnavailableError) as exc_info:
            await orchestrator.execute(_submit_intent())

        assert exc_info.value.transaction_id == ledger.sent[0].transaction_id
        assert exc_info.value.submitted

    async def test_hanging_wait_bounded_by_receipt_timeout(self) -> None:
        ledger = AsyncMock()
        ledger.simulate.return_value = 100
        ledger.current_price.return_value = 1
        ledger.send.return_value = "0xabc"

        async def hang(transaction_id: str, timeout: float) -> TxReceipt:
            await asyncio.sleep(60)
            raise AssertionError("unreachable")

        ledger.wait_for_receipt.side_effect = hang
        orchestrator = TransactionOrchestrator(ledger, FeeEstimator(ledger, FeeConfig()), 0.05)

        with pytest.raises(LedgerUnavailableError) as exc_info:
            await orchestrator.execute(build_intent("register", ("Acme", ""), sender=SENDER))

        assert exc_info.value.transaction_id == "0xabc"

    async def test_unavailable_before_send_has_no_transaction_id(
        self, orchestrator: TransactionOrchestrator, ledger: LedgerClientStub
    ) -> None:
        ledger.set_unavailable()

        with pytest.raises(LedgerUnavailableError) as exc_info:
            await orchestrator.execute(build_intent("register", ("Acme", ""), sender=SENDER))

        assert exc_info.value.transaction_id is None
        assert ledger.sent == []

    async def test_revert_propagates(
        self, orchestrator: TransactionOrchestrator, ledger: LedgerClientStub
    ) -> None:
        ledger.force_revert("register", "paused")

        with pytest.raises(LedgerRevertError) as exc_info:
            await orchestrator.execute(build_intent("register", ("Acme", ""), sender=SENDER))

        assert exc_info.value.reason == "paused"

    async def test_insufficient_funds(
        self, orchestrator: TransactionOrchestrator, ledger: LedgerClientStub
    ) -> None:
        ledger.set_insufficient_funds(SENDER)
        with pytest.raises(InsufficientFundsError):
            await orchestrator.execute(build_intent("register", ("Acme", ""), sender=SENDER))

    async def test_fallback_budget_used_when_simulation_fails(
        self, orchestrator: TransactionOrchestrator, ledger: LedgerClientStub
    ) -> None:
        ledger.set_simulation_error(LedgerUnavailableError("simulate"))

        result = await orchestrator.execute(
            build_intent("register", ("Acme", ""), sender=SENDER)
        )

        assert result.fee_budget == 500_000
        assert ledger.sent[0].fee_budget == 500_000


class TestRequestTokens:
    async def test_reused_token_refused_without_second_send(
        self, orchestrator: TransactionOrchestrator, ledger: LedgerClientStub
    ) -> None:
        ledger.seed_registration(SENDER, "Acme")
        await orchestrator.execute(_submit_intent("attempt-1"))

        with pytest.raises(DuplicateSubmissionError):
            await orchestrator.execute(_submit_intent("attempt-1"))

        assert ledger.sent_methods() == ["submitRecord"]
        assert orchestrator.sent_transaction("attempt-1") == ledger.sent[0].transaction_id

    async def test_token_released_when_send_fails(
        self, orchestrator: TransactionOrchestrator, ledger: LedgerClientStub
    ) -> None:
        ledger.seed_registration(SENDER, "Acme")
        ledger.set_send_error(LedgerUnavailableError("send", reason="connection refused"))

        with pytest.raises(LedgerUnavailableError):
            await orchestrator.execute(_submit_intent("attempt-2"))
        assert orchestrator.sent_transaction("attempt-2") is None

        result = await orchestrator.execute(_submit_intent("attempt-2"))
        assert result.extracted_id == 1

    async def test_token_kept_after_unobserved_inclusion(
        self, orchestrator: TransactionOrchestrator, ledger: LedgerClientStub
    ) -> None:
        ledger.seed_registration(SENDER, "Acme")
        ledger.withhold_receipts()
        with pytest.raises(LedgerUnavailableError):
            await orchestrator.execute(_submit_intent("attempt-3"))

        ledger.withhold_receipts(False)
        with pytest.raises(DuplicateSubmissionError):
            await orchestrator.execute(_submit_intent("attempt-3"))
        assert len(ledger.sent) == 1

    async def test_token_kept_when_send_outcome_unknown(
        self, orchestrator: TransactionOrchestrator, ledger: LedgerClientStub
    ) -> None:
        ledger.seed_registration(SENDER, "Acme")
        ledger.set_send_error(
            LedgerUnavailableError("send", reason="no answer within 5s", outcome_unknown=True)
        )

        with capture_logs() as logs, pytest.raises(LedgerUnavailableError) as exc_info:
            await orchestrator.execute(_submit_intent("attempt-4"))

        assert exc_info.value.submitted
        assert any(entry["event"] == "send_outcome_unknown" for entry in logs)
        with pytest.raises(DuplicateSubmissionError):
            await orchestrator.execute(_submit_intent("attempt-4"))
        assert ledger.sent == []

    async def test_token_released_when_send_rejected(
        self, orchestrator: TransactionOrchestrator, ledger: LedgerClientStub
    ) -> None:
        ledger.seed_registration(SENDER, "Acme")
        ledger.set_send_error(LedgerRevertError("submitRecord", "nonce too low"))

        with pytest.raises(LedgerRevertError):
            await orchestrator.execute(_submit_intent("attempt-5"))

        result = await orchestrator.execute(_submit_intent("attempt-5"))
        assert result.extracted_id == 1
