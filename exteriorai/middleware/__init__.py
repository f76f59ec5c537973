"""
Middleware package for the API.
"""
from exteriorai.middleware.logging_middleware import (
    REQUEST_ID_HEADER,
    RequestLoggingMiddleware,
    get_request_context,
)

__all__ = [
    "RequestLoggingMiddleware",
    "REQUEST_ID_HEADER",
    "get_request_context",
]
