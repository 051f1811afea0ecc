"""FastAPI application factory and lifecycle management."""

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from subscription_service.config import Config
from subscription_service.container import ServiceContainer, build_container
from subscription_service.logging_config import configure_from_env, get_logger
from subscription_service.middleware import ContextMiddleware, RequestLoggingMiddleware

SERVICE_VERSION = "0.1.0"

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Start the sweep scheduler with the app, stop it and the publisher on exit."""
    container: ServiceContainer = app.state.container
    logger.info("service_starting", version=SERVICE_VERSION)

    try:
        container.scheduler.start()
        logger.info("service_started", status="ready", scheduler_running=container.scheduler.running)
        yield
    finally:
        logger.info("service_shutting_down")
        container.shutdown()
        logger.info("service_stopped")


def _publisher_enabled(container: ServiceContainer) -> bool:
    is_enabled = getattr(container.publisher, "is_enabled", None)
    return bool(is_enabled()) if callable(is_enabled) else True


def create_app(config: Optional[Config] = None, container: Optional[ServiceContainer] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config: Loaded configuration (read from CONFIG_PATH when missing)
        container: Pre-built object graph, mainly for tests

    Returns:
        Configured FastAPI application instance
    """
    configure_from_env()

    if container is None:
        container = build_container(config or Config())

    app = FastAPI(
        title="Subscription Lifecycle Service",
        description="Subscription state machine, expiry sweeps and expiry reminders",
        version=SERVICE_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    include_request_details = os.getenv("LOG_REQUEST_DETAILS", "true").lower() == "true"
    app.add_middleware(RequestLoggingMiddleware, include_request_details=include_request_details)
    app.add_middleware(ContextMiddleware)

    from subscription_service.api.control import router as control_router
    from subscription_service.api.points import router as points_router
    from subscription_service.api.subscriptions import router as subscriptions_router

    app.include_router(subscriptions_router)
    app.include_router(points_router)
    app.include_router(control_router)

    @app.get("/")
    async def root() -> dict[str, str]:
        logger.debug("root_endpoint_called")
        return {
            "service": "subscription-service",
            "status": "running",
            "version": SERVICE_VERSION,
        }

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Detailed health check."""
        return {
            "status": "healthy",
            "pubsub": "connected" if _publisher_enabled(container) else "disabled",
            "scheduler": "running" if container.scheduler.running else "stopped",
            "config": f"loaded ({len(container.plans)} plans)",
        }

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "unhandled_exception",
            error=str(exc),
            error_type=type(exc).__name__,
            path=request.url.path,
            exc_info=True,
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred",
            },
        )

    logger.info("app_created", endpoints=len(app.routes))
    return app
