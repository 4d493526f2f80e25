"""API routers."""

from esg_registry.api.routes.health import router as health_router
from esg_registry.api.routes.participants import router as participants_router
from esg_registry.api.routes.records import router as records_router
from esg_registry.api.routes.stats import router as stats_router
from esg_registry.api.routes.verification import router as verification_router

__all__: list[str] = [
    "health_router",
    "participants_router",
    "records_router",
    "stats_router",
    "verification_router",
]
