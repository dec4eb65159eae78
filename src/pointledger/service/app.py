"""FastAPI application factory for the ledger service."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .. import __version__
from ..errors import LedgerError, StoreUnavailable
from .config import LedgerConfig
from .core import LedgerService
from .middleware import CorrelationIdMiddleware, get_correlation_id
from .models import ErrorResponse
from .router import build_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan context manager for startup/shutdown."""
    service: LedgerService = app.state.ledger_service

    logger.info("Starting ledger service...")
    service.startup()
    app.state.ready = True

    yield

    logger.info("Shutting down ledger service...")
    app.state.ready = False
    service.close()
    logger.info("Ledger service shutdown complete")


async def _ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    body = ErrorResponse(
        detail=exc.message,
        kind=exc.kind,
        correlation_id=get_correlation_id(request),
    )
    if exc.status_code >= 500:
        logger.error(f"{exc.kind} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


def create_ledger_app(
    config: LedgerConfig,
    **service_kwargs,
) -> FastAPI:
    """Create and configure the ledger FastAPI application.

    Args:
        config: LedgerConfig instance
        **service_kwargs: Additional kwargs passed to LedgerService

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="Point Ledger",
        description="Asset ownership registry over a key-value state store",
        version=__version__,
        lifespan=_lifespan,
    )

    app.add_middleware(CorrelationIdMiddleware)
    app.add_exception_handler(LedgerError, _ledger_error_handler)

    ledger_service = LedgerService(config, **service_kwargs)

    router = build_router(ledger_service)
    app.include_router(router)

    app.state.ledger_service = ledger_service
    app.state.config = config
    app.state.ready = False

    @app.get("/healthz")
    def healthz() -> dict:
        """Health check endpoint with store verification."""
        checks = {}
        all_healthy = True

        try:
            ledger_service.store.get("_healthz")
            checks["state_store"] = {
                "status": "healthy",
                "backend": config.store_backend.value,
            }
        except StoreUnavailable as e:
            checks["state_store"] = {"status": "unhealthy", "error": e.message}
            all_healthy = False

        try:
            pending = ledger_service.registry.pending_intent()
            checks["write_intent"] = {
                "status": "healthy" if pending is None else "pending",
                "pending": pending.to_dict() if pending else None,
            }
        except LedgerError as e:
            checks["write_intent"] = {"status": "unhealthy", "error": e.message}
            all_healthy = False

        return {
            "status": "ok" if all_healthy else "degraded",
            "service": "pointledger",
            "version": __version__,
            "checks": checks,
        }

    @app.get("/ready")
    def ready() -> dict:
        """Readiness probe - true once startup reconciliation has run."""
        return {
            "ready": bool(getattr(app.state, "ready", False)),
            "service": "pointledger",
        }

    return app


def create_app_from_env() -> FastAPI:
    """Create app using environment variable configuration."""
    config = LedgerConfig.from_env()
    return create_ledger_app(config)


__all__ = ["create_ledger_app", "create_app_from_env"]
