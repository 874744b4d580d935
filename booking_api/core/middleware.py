# booking_api/core/middleware.py
"""Custom middleware for request handling"""
import uuid
import time
import logging
from starlette.requests import Request

logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


async def correlation_id_middleware(request: Request, call_next):
    """Tag each request with a correlation ID, reusing the caller's when sent"""
    correlation_id = request.headers.get(CORRELATION_HEADER) or uuid.uuid4().hex
    request.state.correlation_id = correlation_id

    response = await call_next(request)
    response.headers[CORRELATION_HEADER] = correlation_id
    return response


async def request_logging_middleware(request: Request, call_next):
    """Log one line when a booking request starts and one when it finishes"""
    started = time.perf_counter()
    correlation_id = getattr(request.state, "correlation_id", "-")

    logger.info(f"[{correlation_id}] {request.method} {request.url.path} started")

    response = await call_next(request)

    elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
    logger.info(
        f"[{correlation_id}] {request.method} {request.url.path} "
        f"-> {response.status_code} in {elapsed_ms}ms"
    )

    return response
