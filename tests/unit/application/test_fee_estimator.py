"""Unit tests for FeeEstimator budget and price computation."""

from unittest.mock import AsyncMock

import pytest
from structlog.testing import capture_logs

from esg_registry.application.services import FeeEstimator
from esg_registry.config.ledger_config import GWEI, FeeConfig
from esg_registry.domain.errors import LedgerRevertError, LedgerUnavailableError
from esg_registry.infrastructure.stubs import SIMULATED_COSTS, LedgerClientStub
from tests.helpers import address


@pytest.fixture
def estimator(ledger: LedgerClientStub) -> FeeEstimator:
    return FeeEstimator(ledger, FeeConfig())


class TestApplyMultiplier:
    @pytest.mark.parametrize(
        ("simulated", "expected"),
        [(100_000, 120_000), (95_001, 114_001), (1, 1), (0, 0)],
    )
    def test_floors_product(
        self, estimator: FeeEstimator, simulated: int, expected: int
    ) -> None:
        assert estimator.apply_multiplier(simulated) == expected

    def test_never_below_simulated_cost(self, estimator: FeeEstimator) -> None:
        for simulated in (1, 7, 95_000, 2**200 + 3):
            budget = estimator.apply_multiplier(simulated)
            assert budget >= simulated
            assert budget == simulated * 12 // 10

    def test_custom_multiplier(self, ledger: LedgerClientStub) -> None:
        estimator = FeeEstimator(ledger, FeeConfig(safety_multiplier_percent=150))
        assert estimator.apply_multiplier(1_000) == 1_500


class TestEstimate:
    async def test_budget_from_simulation(
        self, estimator: FeeEstimator, ledger: LedgerClientStub
    ) -> None:
        sender = address(1)
        budget = await estimator.estimate("register", ("Acme", "REG-1"), sender)

        assert budget == SIMULATED_COSTS["register"] * 120 // 100
        assert ledger.simulations == [("register", ("Acme", "REG-1"), sender)]

    async def test_fallback_when_simulation_reverts(
        self, estimator: FeeEstimator, ledger: LedgerClientStub
    ) -> None:
        # Unregistered sender: submitRecord would revert.
        with capture_logs() as logs:
            budget = await estimator.estimate(
                "submitRecord", ("carbon_emissions", "1", "", b"\x00" * 32, ""), address(1)
            )

        assert budget == 500_000
        degraded = [e for e in logs if e["event"] == "degraded_mode"]
        assert degraded and degraded[0]["fallback"] == "fee_budget"
        assert degraded[0]["log_level"] == "warning"

    async def test_fallback_when_node_unavailable(
        self, estimator: FeeEstimator, ledger: LedgerClientStub
    ) -> None:
        ledger.set_simulation_error(LedgerUnavailableError("simulate"))
        assert await estimator.estimate("register", ("Acme", ""), address(1)) == 500_000

    async def test_unexpected_errors_propagate(self) -> None:
        ledger = AsyncMock()
        ledger.simulate.side_effect = RuntimeError("bug")
        estimator = FeeEstimator(ledger, FeeConfig())

        with pytest.raises(RuntimeError):
            await estimator.estimate("register", (), address(1))


class TestCurrentPrice:
    async def test_node_price(self, estimator: FeeEstimator) -> None:
        assert await estimator.current_price() == 3 * GWEI

    async def test_default_price_when_oracle_unavailable(
        self, estimator: FeeEstimator, ledger: LedgerClientStub
    ) -> None:
        ledger.set_price_unavailable()
        with capture_logs() as logs:
            price = await estimator.current_price()

        assert price == 2 * GWEI
        assert any(
            e["event"] == "degraded_mode" and e["fallback"] == "fee_price" for e in logs
        )


class TestQuote:
    async def test_flags_fallbacks(
        self, estimator: FeeEstimator, ledger: LedgerClientStub
    ) -> None:
        ledger.set_simulation_error(LedgerRevertError("register", "boom"))
        ledger.set_price_unavailable()

        quote = await estimator.quote("register", ("Acme", ""), address(1))

        assert quote.fee_budget == 500_000
        assert quote.fee_price == 2 * GWEI
        assert quote.budget_fallback is True
        assert quote.price_fallback is True

    async def test_no_fallbacks_on_healthy_node(self, estimator: FeeEstimator) -> None:
        quote = await estimator.quote("register", ("Acme", ""), address(1))
        assert not quote.budget_fallback
        assert not quote.price_fallback
