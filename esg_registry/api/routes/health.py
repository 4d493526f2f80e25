"""Health check endpoint for the ESG Registry API."""

from fastapi import APIRouter, Depends

from esg_registry import __version__
from esg_registry.api.dependencies import get_container
from esg_registry.api.models import HealthResponse
from esg_registry.bootstrap.container import Container

router = APIRouter(prefix="/v1", tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(container: Container = Depends(get_container)) -> HealthResponse:
    """Return process health and the configured backends.

    The ledger is not contacted; use /v1/stats to see ledger reachability.
    """
    return HealthResponse(
        version=__version__,
        ledger_backend=container.runtime.ledger_backend,
        mirror_backend=container.runtime.mirror_backend,
    )
