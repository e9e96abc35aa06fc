"""Request logging middleware with latency and redacted bearer query values."""

import logging
import time
from typing import Callable

from fastapi import Request, Response

logger = logging.getLogger(__name__)

SLOW_REQUEST_THRESHOLD_MS = 1000
HEALTH_PATHS = frozenset({"/health", "/health/ready"})

# Query parameters that act as credentials
REDACTED_PARAMS = frozenset({"token"})


def redact_query(request: Request) -> str:
    """Query string with credential-bearing values masked."""
    return "&".join(
        f"{key}={'***' if key in REDACTED_PARAMS else value}"
        for key, value in request.query_params.multi_items()
    )


async def request_logging_middleware(request: Request, call_next: Callable) -> Response:
    """Log every request with its status and latency.

    Invitation tokens are bearer credentials, so they never reach the log.
    """
    start_time = time.perf_counter()
    response = None

    try:
        response = await call_next(request)
        return response
    finally:
        latency_ms = (time.perf_counter() - start_time) * 1000
        status_code = response.status_code if response else 500
        path = request.url.path
        query = redact_query(request)
        target = f"{path}?{query}" if query else path
        log_msg = "%s %s - %d - %.2fms"
        args = (request.method, target, status_code, latency_ms)

        if path in HEALTH_PATHS:
            logger.debug(log_msg, *args)
        elif status_code >= 500:
            logger.error(log_msg, *args)
        elif latency_ms > SLOW_REQUEST_THRESHOLD_MS:
            logger.warning("SLOW REQUEST: " + log_msg, *args)
        elif status_code >= 400:
            logger.warning(log_msg, *args)
        else:
            logger.info(log_msg, *args)
