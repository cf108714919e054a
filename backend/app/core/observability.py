"""
Observability setup.

Configures the `parcel_delivery` logger tree and tags every HTTP request with
a correlation id and a timing header.
"""

import logging
import time
import uuid
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("parcel_delivery.http")

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
CORRELATION_HEADER = "X-Correlation-ID"


def configure_logging(level: str = "INFO") -> None:
    """Attach a stream handler to the application logger hierarchy (once)."""
    app_logger = logging.getLogger("parcel_delivery")
    app_logger.setLevel(level.upper())
    if not app_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        app_logger.addHandler(handler)


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """
    Per-request correlation id and access log.

    The id is taken from the incoming header when present, exposed on
    `request.state.correlation_id` and echoed back on the response.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or uuid.uuid4().hex
        request.state.correlation_id = correlation_id

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)

        response.headers[CORRELATION_HEADER] = correlation_id
        response.headers["X-Process-Time"] = str(elapsed_ms)

        if response.status_code >= 500:
            level = logging.ERROR
        elif response.status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO

        logger.log(
            level,
            "%s %s -> %d (%.2f ms) [%s]",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            correlation_id,
        )
        return response
