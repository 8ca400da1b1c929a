"""
Middleware package for the API.
"""
from prodspark.middleware.logging_middleware import (
    SESSION_HEADER,
    RequestLoggingMiddleware,
    bind_product_context,
    get_logger,
    get_request_id,
    get_session_id,
)

__all__ = [
    "SESSION_HEADER",
    "RequestLoggingMiddleware",
    "bind_product_context",
    "get_logger",
    "get_request_id",
    "get_session_id",
]
