"""Fee estimation for ledger calls.

Budget:
    simulated cost x multiplier, rounded down to a whole unit. With a
    multiplier of at least 100% the budget is never below the simulated
    cost. When the node cannot simulate the call (commonly because the
    call would revert) the fixed fallback budget is used instead of failing
    the pipeline; the live ledger may still reject the call at submission.

Price:
    the node's current unit price, or the configured default minimum when
    the price oracle is unavailable.

Both fallbacks are degraded modes and are logged as ``degraded_mode``
warnings, never silently.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from esg_registry.application.ports.ledger_client import LedgerClientProtocol
from esg_registry.application.services.base import LoggingMixin
from esg_registry.config.ledger_config import FeeConfig
from esg_registry.domain.errors import (
    InsufficientFundsError,
    LedgerRevertError,
    LedgerUnavailableError,
)


@dataclass(frozen=True)
class FeeQuote:
    """Budget and unit price offered for one call.

    Attributes:
        fee_budget: Execution-cost ceiling.
        fee_price: Unit price.
        budget_fallback: True when the budget is the fixed fallback.
        price_fallback: True when the price is the default minimum.
    """

    fee_budget: int
    fee_price: int
    budget_fallback: bool = False
    price_fallback: bool = False


class FeeEstimator(LoggingMixin):
    """Computes execution-fee budget and price for pending ledger calls."""

    def __init__(self, ledger: LedgerClientProtocol, config: FeeConfig) -> None:
        self._ledger = ledger
        self._config = config
        self._init_logger(component="ledger")

    def apply_multiplier(self, simulated_cost: int) -> int:
        """Scale a simulated cost by the safety multiplier, flooring the result.

        Integer arithmetic keeps the result exact for arbitrarily large costs.
        """
        return simulated_cost * self._config.safety_multiplier_percent // 100

    async def estimate(self, method: str, args: Sequence[Any], sender: str) -> int:
        """Return the fee budget for a call.

        Args:
            method: Contract method name.
            args: Call arguments.
            sender: Address the call will be sent from.

        Returns:
            ``floor(simulated * multiplier)`` or the fallback budget.
        """
        budget, _ = await self._estimate_budget(method, args, sender)
        return budget

    async def current_price(self) -> int:
        """Return the fee unit price, falling back to the configured default."""
        price, _ = await self._price()
        return price

    async def quote(self, method: str, args: Sequence[Any], sender: str) -> FeeQuote:
        """Estimate budget and price together."""
        budget, budget_fallback = await self._estimate_budget(method, args, sender)
        price, price_fallback = await self._price()
        return FeeQuote(
            fee_budget=budget,
            fee_price=price,
            budget_fallback=budget_fallback,
            price_fallback=price_fallback,
        )

    async def _estimate_budget(
        self, method: str, args: Sequence[Any], sender: str
    ) -> tuple[int, bool]:
        log = self._log_operation("estimate", method=method, sender=sender)
        try:
            simulated = await self._ledger.simulate(method, args, sender)
        except (
            LedgerUnavailableError,
            LedgerRevertError,
            InsufficientFundsError,
        ) as exc:
            log.warning(
                "degraded_mode",
                fallback="fee_budget",
                fee_budget=self._config.fallback_budget,
                error_kind=exc.kind,
                error=exc.detail,
            )
            return self._config.fallback_budget, True

        budget = self.apply_multiplier(simulated)
        log.debug("fee_budget_estimated", simulated_cost=simulated, fee_budget=budget)
        return budget, False

    async def _price(self) -> tuple[int, bool]:
        try:
            return await self._ledger.current_price(), False
        except LedgerUnavailableError as exc:
            self._log_operation("current_price").warning(
                "degraded_mode",
                fallback="fee_price",
                fee_price=self._config.default_price,
                error=exc.detail,
            )
            return self._config.default_price, True
