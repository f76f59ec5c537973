"""
Request logging middleware with correlation IDs for request tracing.

The ids are bound as structlog contextvars, so every log line emitted while
the request is handled carries them, whichever logger wrote it.
"""
import time
import uuid
from typing import Callable, Dict

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from exteriorai.core.logging import get_logger

REQUEST_ID_HEADER = "X-Request-ID"

logger = get_logger(__name__)


def extract_project_id(path: str) -> str:
    """Pull the project id out of /api/projects/{id}/... paths."""
    if "/projects/" not in path:
        return ""
    return path.split("/projects/", 1)[1].split("/")[0]


def get_request_context() -> Dict[str, str]:
    """request_id and, on project routes, project_id of the request being handled"""
    context = structlog.contextvars.get_contextvars()
    return {key: context[key] for key in ("request_id", "project_id") if key in context}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Assigns a short request id, binds it (and the project id of project
    routes) to the logging context, and logs each request with its timing.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = uuid.uuid4().hex[:8]
        path = request.url.path

        context = {"request_id": request_id}
        project_id = extract_project_id(path)
        if project_id:
            context["project_id"] = project_id

        with structlog.contextvars.bound_contextvars(**context):
            start_time = time.perf_counter()
            logger.info("request_started", method=request.method, path=path)

            try:
                response = await call_next(request)
            except Exception:
                logger.exception(
                    "request_failed",
                    method=request.method,
                    path=path,
                    duration_ms=round((time.perf_counter() - start_time) * 1000),
                )
                raise

            log = logger.info if response.status_code < 400 else logger.warning
            log(
                "request_finished",
                method=request.method,
                path=path,
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - start_time) * 1000),
            )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
