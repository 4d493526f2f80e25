"""FastAPI application entry point for the ESG Registry."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from structlog import get_logger

from esg_registry import __version__
from esg_registry.api.errors import RETRY_AFTER_SECONDS
from esg_registry.api.middleware import LoggingMiddleware
from esg_registry.api.routes import (
    health_router,
    participants_router,
    records_router,
    stats_router,
    verification_router,
)
from esg_registry.bootstrap import build_container, configure_logging, load_dotenv_file
from esg_registry.bootstrap.container import Container
from esg_registry.domain.errors import LedgerUnavailableError, RegistryError

logger = get_logger()


async def registry_error_handler(request: Request, exc: RegistryError) -> JSONResponse:
    """Last-resort mapping for domain errors a route did not translate."""
    body = exc.to_rfc7807_dict()
    body["instance"] = str(request.url)
    headers = None
    if isinstance(exc, LedgerUnavailableError) and not exc.submitted:
        headers = {"Retry-After": str(RETRY_AFTER_SECONDS)}
    return JSONResponse(
        status_code=exc.status,
        content=body,
        headers=headers,
        media_type="application/problem+json",
    )


def create_app(container: Container | None = None) -> FastAPI:
    """Create the application.

    Args:
        container: Pre-built container (tests). When omitted one is built
            from the environment at startup and closed at shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owned = container is None
        if owned:
            load_dotenv_file()
            configure_logging()
            app.state.container = build_container()
        logger.bind(component="api").info(
            "api_started",
            ledger_backend=app.state.container.runtime.ledger_backend,
            mirror_backend=app.state.container.runtime.mirror_backend,
        )
        try:
            yield
        finally:
            if owned:
                await app.state.container.close()
            logger.bind(component="api").info("api_stopped")

    app = FastAPI(
        title="ESG Registry API",
        description="Off-chain mirror and pipelines for the ESG ledger registry",
        version=__version__,
        lifespan=lifespan,
    )
    if container is not None:
        app.state.container = container

    app.add_middleware(LoggingMiddleware)
    app.add_exception_handler(RegistryError, registry_error_handler)

    app.include_router(health_router)
    app.include_router(participants_router)
    app.include_router(records_router)
    app.include_router(verification_router)
    app.include_router(stats_router)
    return app
