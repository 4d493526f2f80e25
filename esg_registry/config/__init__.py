"""Configuration module for the ESG Registry.

Available Configurations:
- LedgerConfig: ledger node endpoint, contract location, timeouts and read retries
- FeeConfig: fee safety multiplier and degraded-mode fallbacks
- RuntimeConfig: environment and adapter selection
"""

from esg_registry.config.ledger_config import (
    DEFAULT_FEE_CONFIG,
    DEFAULT_LEDGER_CONFIG,
    TEST_LEDGER_CONFIG,
    FeeConfig,
    LedgerConfig,
    RuntimeConfig,
)

__all__ = [
    "DEFAULT_FEE_CONFIG",
    "DEFAULT_LEDGER_CONFIG",
    "FeeConfig",
    "LedgerConfig",
    "RuntimeConfig",
    "TEST_LEDGER_CONFIG",
]
