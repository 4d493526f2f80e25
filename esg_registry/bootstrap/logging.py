"""Bootstrap wiring for logging configuration."""

from __future__ import annotations

from esg_registry.config.ledger_config import RuntimeConfig
from esg_registry.infrastructure.observability import configure_structlog


def configure_logging(runtime: RuntimeConfig | None = None) -> None:
    """Configure structlog for the runtime environment (ENVIRONMENT by default)."""
    runtime = runtime or RuntimeConfig.from_environment()
    configure_structlog(environment=runtime.environment)


__all__ = ["configure_logging"]
