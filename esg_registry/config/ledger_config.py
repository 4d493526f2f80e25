"""Ledger and fee configuration.

This module defines configuration for the ledger client, fee estimation and
adapter selection, with environment variable overrides for deployment.

Environment Variables (Ledger):
- LEDGER_RPC_URL: JSON-RPC endpoint of the ledger node (default: http://localhost:8545)
- LEDGER_CONTRACT_ADDRESS: Address of the registry contract (required for web3 backend)
- LEDGER_CONTRACT_ABI_PATH: Path to the contract ABI JSON (required for web3 backend)
- LEDGER_REQUEST_TIMEOUT: Per-RPC timeout in seconds (default: 10.0)
- LEDGER_RECEIPT_TIMEOUT: Max wait for transaction inclusion in seconds (default: 120.0)
- LEDGER_READ_RETRIES: Attempts for side-effect-free reads (default: 3)
- LEDGER_READ_BACKOFF: Base backoff between read attempts in seconds (default: 0.5)
- LEDGER_MERGE_READ_TIMEOUT: Per-row ledger read timeout when merging (default: 5.0)

Environment Variables (Fees):
- FEE_SAFETY_MULTIPLIER_PERCENT: Budget multiplier over simulated cost, in percent (default: 120)
- FEE_FALLBACK_BUDGET: Budget used when simulation fails (default: 500000)
- FEE_DEFAULT_PRICE_WEI: Price used when the price oracle fails (default: 2 gwei)

Environment Variables (Runtime):
- ENVIRONMENT: production or development (default: development)
- LEDGER_BACKEND: stub or web3 (default: stub)
- MIRROR_BACKEND: stub or sql (default: stub)
"""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_RPC_URL = "http://localhost:8545"
GWEI = 1_000_000_000


def _get_int_env(key: str, default: int) -> int:
    """Get integer environment variable with default.

    Args:
        key: Environment variable name.
        default: Default value if not set or invalid.

    Returns:
        Parsed integer value or default.
    """
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float_env(key: str, default: float) -> float:
    """Get float environment variable with default.

    Args:
        key: Environment variable name.
        default: Default value if not set or invalid.

    Returns:
        Parsed float value or default.
    """
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _get_str_env(key: str, default: str) -> str:
    value = os.environ.get(key)
    if value is None or not value.strip():
        return default
    return value.strip()


@dataclass(frozen=True)
class LedgerConfig:
    """Configuration for the ledger client.

    Attributes:
        rpc_url: JSON-RPC endpoint of the ledger node.
        contract_address: Address of the registry contract.
        contract_abi_path: Path to the contract ABI JSON file. The file may be
            a bare ABI list or an object with ``abi`` (and ``address``) keys.
        request_timeout_seconds: Timeout applied to every RPC request.
        receipt_timeout_seconds: Max wait for inclusion after send. Expiry is
            reported as ledger-unavailable, not as transaction failure.
        read_retries: Attempts for side-effect-free reads (>= 1).
        read_backoff_seconds: Base delay between read attempts; doubles per attempt.
        merge_read_timeout_seconds: Per-row timeout for merged listing reads.
    """

    rpc_url: str = DEFAULT_RPC_URL
    contract_address: str = ""
    contract_abi_path: str = ""
    request_timeout_seconds: float = 10.0
    receipt_timeout_seconds: float = 120.0
    read_retries: int = 3
    read_backoff_seconds: float = 0.5
    merge_read_timeout_seconds: float = 5.0

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if not self.rpc_url:
            raise ValueError("rpc_url must not be empty")
        if self.request_timeout_seconds <= 0:
            raise ValueError(
                f"request_timeout_seconds must be positive, got {self.request_timeout_seconds}"
            )
        if self.receipt_timeout_seconds <= 0:
            raise ValueError(
                f"receipt_timeout_seconds must be positive, got {self.receipt_timeout_seconds}"
            )
        if self.read_retries < 1:
            raise ValueError(f"read_retries must be at least 1, got {self.read_retries}")
        if self.read_backoff_seconds < 0:
            raise ValueError(
                f"read_backoff_seconds must be non-negative, got {self.read_backoff_seconds}"
            )
        if self.merge_read_timeout_seconds <= 0:
            raise ValueError(
                "merge_read_timeout_seconds must be positive, "
                f"got {self.merge_read_timeout_seconds}"
            )

    @classmethod
    def from_environment(cls) -> LedgerConfig:
        """Create config from environment variables with defaults.

        Returns:
            LedgerConfig with values from environment or defaults.
        """
        return cls(
            rpc_url=_get_str_env("LEDGER_RPC_URL", DEFAULT_RPC_URL),
            contract_address=_get_str_env("LEDGER_CONTRACT_ADDRESS", ""),
            contract_abi_path=_get_str_env("LEDGER_CONTRACT_ABI_PATH", ""),
            request_timeout_seconds=_get_float_env("LEDGER_REQUEST_TIMEOUT", 10.0),
            receipt_timeout_seconds=_get_float_env("LEDGER_RECEIPT_TIMEOUT", 120.0),
            read_retries=_get_int_env("LEDGER_READ_RETRIES", 3),
            read_backoff_seconds=_get_float_env("LEDGER_READ_BACKOFF", 0.5),
            merge_read_timeout_seconds=_get_float_env("LEDGER_MERGE_READ_TIMEOUT", 5.0),
        )


@dataclass(frozen=True)
class FeeConfig:
    """Configuration for fee estimation.

    Attributes:
        safety_multiplier_percent: Budget as a percentage of the simulated cost.
            Integer percent keeps the arithmetic exact (120 == 1.2x).
        fallback_budget: Budget used when the ledger cannot simulate the call.
        default_price: Unit price used when the price oracle is unavailable.
    """

    safety_multiplier_percent: int = 120
    fallback_budget: int = 500_000
    default_price: int = 2 * GWEI

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.safety_multiplier_percent < 100:
            raise ValueError(
                "safety_multiplier_percent must be at least 100, "
                f"got {self.safety_multiplier_percent}"
            )
        if self.fallback_budget < 1:
            raise ValueError(
                f"fallback_budget must be positive, got {self.fallback_budget}"
            )
        if self.default_price < 1:
            raise ValueError(f"default_price must be positive, got {self.default_price}")

    @classmethod
    def from_environment(cls) -> FeeConfig:
        """Create config from environment variables with defaults."""
        return cls(
            safety_multiplier_percent=_get_int_env("FEE_SAFETY_MULTIPLIER_PERCENT", 120),
            fallback_budget=_get_int_env("FEE_FALLBACK_BUDGET", 500_000),
            default_price=_get_int_env("FEE_DEFAULT_PRICE_WEI", 2 * GWEI),
        )


@dataclass(frozen=True)
class RuntimeConfig:
    """Process-level wiring choices.

    Attributes:
        environment: ``production`` selects JSON logs, anything else console logs.
        ledger_backend: ``stub`` (in-memory ledger) or ``web3``.
        mirror_backend: ``stub`` (in-memory mirror) or ``sql``.
    """

    environment: str = "development"
    ledger_backend: str = "stub"
    mirror_backend: str = "stub"

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.ledger_backend not in ("stub", "web3"):
            raise ValueError(f"ledger_backend must be stub or web3, got {self.ledger_backend}")
        if self.mirror_backend not in ("stub", "sql"):
            raise ValueError(f"mirror_backend must be stub or sql, got {self.mirror_backend}")

    @classmethod
    def from_environment(cls) -> RuntimeConfig:
        """Create config from environment variables with defaults."""
        return cls(
            environment=_get_str_env("ENVIRONMENT", "development"),
            ledger_backend=_get_str_env("LEDGER_BACKEND", "stub").lower(),
            mirror_backend=_get_str_env("MIRROR_BACKEND", "stub").lower(),
        )


# Default configs
DEFAULT_LEDGER_CONFIG = LedgerConfig()
DEFAULT_FEE_CONFIG = FeeConfig()

# Testing config with short timeouts and no backoff
TEST_LEDGER_CONFIG = LedgerConfig(
    receipt_timeout_seconds=1.0,
    read_retries=2,
    read_backoff_seconds=0.0,
    merge_read_timeout_seconds=0.5,
)
