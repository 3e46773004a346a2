import time
from collections.abc import Awaitable, Callable

from fastapi import Request, Response

from .logging_utils import log_api_request
from .metrics import record_http_request


async def log_requests_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Log and count every HTTP request with its duration."""
    started = time.perf_counter()
    response = await call_next(request)
    duration = time.perf_counter() - started

    log_api_request(request, response.status_code, duration * 1000)
    record_http_request(
        request.method, request.url.path, response.status_code, duration
    )
    return response
