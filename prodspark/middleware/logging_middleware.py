"""
Request logging middleware with correlation IDs for request tracing.

Each request gets a short request_id; the client's X-Session-ID (the same
value that de-duplicates product views) is bound next to it. Both live in
structlog's contextvars for the rest of the request, so every log line the
request produces carries them.
"""
import time
import uuid
from typing import Callable, Optional

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

SESSION_HEADER = "X-Session-ID"

logger = structlog.get_logger(__name__)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Logger whose events include the request's bound context."""
    return structlog.get_logger(name)


def get_request_id() -> str:
    return structlog.contextvars.get_contextvars().get("request_id", "")


def get_session_id() -> str:
    return structlog.contextvars.get_contextvars().get("session_id") or ""


def bind_product_context(product_id: str, user_id: Optional[str] = None) -> None:
    """Tag the rest of this request's log lines with the product (and user) acted on."""
    values = {"product_id": product_id}
    if user_id:
        values["user_id"] = user_id
    structlog.contextvars.bind_contextvars(**values)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware that:
    1. Assigns a unique request ID to each request
    2. Binds it and the client's session id to the logging context
    3. Logs request start/end with timing
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = str(uuid.uuid4())[:8]  # Short ID for readability
        session_id = request.headers.get(SESSION_HEADER) or None

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id, session_id=session_id)

        start_time = time.time()
        logger.info(
            "request_start",
            method=request.method,
            path=request.url.path,
            query=str(request.query_params),
        )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_error",
                error=str(e)[:200],
                duration_ms=round((time.time() - start_time) * 1000),
                exc_info=True,
            )
            raise

        duration_ms = (time.time() - start_time) * 1000
        log = logger.info if response.status_code < 400 else logger.warning
        log("request_end", status_code=response.status_code, duration_ms=round(duration_ms))

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{duration_ms / 1000:.4f}"
        structlog.contextvars.clear_contextvars()
        return response
