"""Request context middleware.

Every request gets an ``X-Request-ID`` (propagated from the caller when
present) bound to the logging context, so the state-transition log lines a
booking emits can be tied back to the HTTP call that caused them.

Usage:
    from libs.common.middleware import add_observability_middleware

    app = FastAPI()
    add_observability_middleware(app)
"""

import logging
import time
from typing import Callable

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from libs.common.logging import (
    clear_request_context,
    configure_logging,
    get_logger,
    set_request_context,
)

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
QUIET_PATHS = frozenset({"/health"})


def _level_for(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind request id/path/method for the request's lifetime and log its outcome."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        request_id = set_request_context(
            request_id=request.headers.get(REQUEST_ID_HEADER),
            path=path,
            method=request.method,
        )
        started = time.perf_counter()
        quiet = path in QUIET_PATHS

        if not quiet:
            logger.debug("%s %s started", request.method, path)

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "%s %s crashed after %.2fms",
                request.method,
                path,
                (time.perf_counter() - started) * 1000,
            )
            raise
        else:
            duration_ms = round((time.perf_counter() - started) * 1000, 2)
            if not quiet:
                logger.log(
                    _level_for(response.status_code),
                    "%s %s -> %d (%.2fms)",
                    request.method,
                    path,
                    response.status_code,
                    duration_ms,
                    extra={
                        "extra_fields": {
                            "status_code": response.status_code,
                            "duration_ms": duration_ms,
                        }
                    },
                )
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            clear_request_context()


def add_observability_middleware(app: FastAPI) -> None:
    """Configure logging and install the request context middleware."""
    configure_logging()
    app.add_middleware(RequestContextMiddleware)
