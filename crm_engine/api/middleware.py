"""
Request tracing for the CRM engine.

Every request gets an id that is echoed in the X-Request-ID header, attached
to error bodies and stamped on log records emitted while the request runs.
"""

import logging
import time
from contextvars import ContextVar
from typing import Optional
from uuid import uuid4

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def get_request_id() -> Optional[str]:
    """Get the current request ID from context."""
    return request_id_var.get()


class RequestIDLogFilter(logging.Filter):
    """Adds ``request_id`` to every record so formatters can reference it."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "request_id", None):
            record.request_id = get_request_id() or "-"
        return True


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Assigns a request ID (client supplied X-Request-ID or a new UUID4) and
    logs start and completion of each request with its duration.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid4())
        token = request_id_var.set(request_id)
        request.state.request_id = request_id
        start_time = time.perf_counter()

        try:
            logger.info(
                "Request started %s %s",
                request.method,
                request.url.path,
                extra={"client_ip": request.client.host if request.client else "unknown"},
            )
            response = await call_next(request)
            duration_ms = (time.perf_counter() - start_time) * 1000
            response.headers["X-Request-ID"] = request_id
            logger.info(
                "Request completed %s %s status=%s duration_ms=%.2f",
                request.method,
                request.url.path,
                response.status_code,
                duration_ms,
            )
            return response

        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                "Request failed %s %s error=%s duration_ms=%.2f",
                request.method,
                request.url.path,
                e,
                duration_ms,
            )
            raise

        finally:
            request_id_var.reset(token)
