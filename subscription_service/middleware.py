"""FastAPI middleware for request/response logging and correlation."""

import time
import uuid
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from subscription_service.logging_config import bind_context, clear_context, get_logger

logger = get_logger(__name__)

# Path segments that are not subscription ids
_SUBSCRIPTION_SUBPATHS = {"user"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging HTTP requests and responses with correlation IDs.

    Features:
    - Generates unique request_id for each request
    - Logs request method, path, client IP
    - Logs response status code and duration
    - Binds request_id to all logs within request context
    """

    def __init__(self, app: ASGIApp, include_request_details: bool = True):
        super().__init__(app)
        self.include_request_details = include_request_details

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        bind_context(request_id=request_id)

        if self.include_request_details:
            logger.info(
                "request_started",
                method=request.method,
                path=request.url.path,
                query_params=str(request.query_params) if request.query_params else None,
                client_host=request.client.host if request.client else "unknown",
                user_agent=request.headers.get("user-agent"),
            )
        else:
            logger.info("request_started", method=request.method, path=request.url.path)

        start_time = time.perf_counter()

        try:
            response = await call_next(request)

            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.info(
                "request_completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round(duration_ms, 2),
            )

            response.headers["X-Request-ID"] = request_id
            return response

        except Exception as exc:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                "request_failed",
                method=request.method,
                path=request.url.path,
                duration_ms=round(duration_ms, 2),
                error=str(exc),
                error_type=type(exc).__name__,
                exc_info=True,
            )
            raise

        finally:
            clear_context()


def _segment_after(parts: list[str], marker: str) -> Optional[str]:
    if marker not in parts:
        return None
    index = parts.index(marker)
    if len(parts) > index + 1 and parts[index + 1]:
        return parts[index + 1]
    return None


class ContextMiddleware(BaseHTTPMiddleware):
    """Binds subscription_id, user_id and plan_id from the URL path to the logging context."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        parts = request.url.path.split("/")

        subscription_id = _segment_after(parts, "subscriptions")
        if subscription_id and subscription_id not in _SUBSCRIPTION_SUBPATHS:
            bind_context(subscription_id=subscription_id)

        user_id = _segment_after(parts, "user") or _segment_after(parts, "points")
        if user_id:
            bind_context(user_id=user_id)

        plan_id = _segment_after(parts, "plans")
        if plan_id:
            bind_context(plan_id=plan_id)

        return await call_next(request)
