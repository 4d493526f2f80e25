"""Liveness response for /v1/health."""

from typing import Literal

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Process liveness and the adapters this process was wired with."""

    status: Literal["healthy"] = "healthy"
    version: str = Field(description="esg_registry package version")
    ledger_backend: Literal["stub", "web3"]
    mirror_backend: Literal["stub", "sql"]
