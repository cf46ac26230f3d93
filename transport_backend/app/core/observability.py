"""
Request logging.

Every request gets a correlation ID (taken from the caller when present)
and one log line with its outcome, the acting user and the time it took.
"""

import logging
import time
import uuid
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from transport_backend.app.core.config import settings

logger = logging.getLogger("transport.requests")

CORRELATION_HEADER = "X-Correlation-ID"
QUIET_PATHS = ("/health",)


def configure_logging(level: str = None) -> None:
    """Configure logging once, at application start-up."""
    level = (level or settings.log_level).upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
    logging.getLogger("transport").setLevel(level)
    if not settings.db_echo:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id
        started = time.perf_counter()

        response = await call_next(request)

        duration_ms = (time.perf_counter() - started) * 1000
        response.headers[CORRELATION_HEADER] = correlation_id
        response.headers["X-Process-Time"] = f"{duration_ms:.2f}"

        # Set by the access gate, which runs inside this middleware
        identity = getattr(request.state, "identity", None)
        log_data = {
            "correlation_id": correlation_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round(duration_ms, 2),
            "user_id": identity["user_id"] if identity else None,
            "role": identity.get("role") if identity else None,
        }

        if response.status_code >= 500:
            logger.error("Request failed", extra=log_data)
        elif response.status_code >= 400:
            logger.warning("Request rejected", extra=log_data)
        elif request.url.path in QUIET_PATHS:
            logger.debug("Request served", extra=log_data)
        else:
            logger.info("Request served", extra=log_data)

        return response
