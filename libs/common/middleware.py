"""Request tracing middleware for the FastAPI app.

Every request gets an ``X-Request-ID`` (propagated from the caller when
present) which is bound to the logging context and echoed back on the
response. Start and completion lines are logged with the elapsed time.

Usage:
    from libs.common.middleware import add_observability_middleware

    app = FastAPI()
    add_observability_middleware(app)
"""
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

QUIET_PATHS = frozenset({"/health"})


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Binds request metadata to the log context and logs the request lifecycle."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = set_request_context(
            request_id=request.headers.get("X-Request-ID"),
            path=request.url.path,
            method=request.method,
        )
        quiet = request.url.path in QUIET_PATHS
        started = time.perf_counter()

        if not quiet:
            logger.info(
                "%s %s started",
                request.method,
                request.url.path,
                extra={"extra_fields": {"query": request.url.query or None}},
            )

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "%s %s failed",
                request.method,
                request.url.path,
                extra={"extra_fields": {"duration_ms": _elapsed_ms(started)}},
            )
            raise
        finally:
            clear_request_context()

        if not quiet:
            log = logger.warning if response.status_code >= 400 else logger.info
            log(
                "%s %s -> %s",
                request.method,
                request.url.path,
                response.status_code,
                extra={
                    "extra_fields": {
                        "status_code": response.status_code,
                        "duration_ms": _elapsed_ms(started),
                    }
                },
            )

        response.headers["X-Request-ID"] = request_id
        return response


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


def add_observability_middleware(app: FastAPI) -> None:
    """Configure logging and install the request context middleware."""
    configure_logging()
    app.add_middleware(RequestContextMiddleware)
