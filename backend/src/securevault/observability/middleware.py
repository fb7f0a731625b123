"""Request correlation and access logging.

One middleware binds the request id for the lifetime of the request, echoes
it on the response, logs one line per request and records its duration.
"""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .logging_config import get_logger
from .metrics import http_request_duration_seconds
from .request_id import REQUEST_ID_HEADER, bind_request_id, resolve_request_id, unbind_request_id

logger = get_logger(__name__)


def _route_template(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", "unmatched")


class RequestIDMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        token = bind_request_id(request_id)
        started = time.perf_counter()
        context = {"method": request.method, "path": request.url.path}

        try:
            try:
                response = await call_next(request)
            except Exception:
                logger.error(
                    f"{request.method} {request.url.path} failed",
                    extra={**context, "duration_ms": round((time.perf_counter() - started) * 1000, 2)},
                    exc_info=True,
                )
                raise

            elapsed = time.perf_counter() - started
            http_request_duration_seconds.labels(
                method=request.method,
                route=_route_template(request),
                status_code=str(response.status_code),
            ).observe(elapsed)
            logger.info(
                f"{request.method} {request.url.path} {response.status_code}",
                extra={**context, "status_code": response.status_code, "duration_ms": round(elapsed * 1000, 2)},
            )
        finally:
            unbind_request_id(token)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
