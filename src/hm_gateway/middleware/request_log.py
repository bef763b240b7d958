"""Request logging middleware.

Each request gets a request id, reused from an inbound X-Request-ID header
when the caller (or the edge proxy) already set one. The id is stored on
request.state for the response envelope and returned as a header.

    INFO    POST /api/v1/appointments/create-with-wallet 200 41ms req_a1b2c3d4e5f6
    WARNING POST /api/v1/appointments/create-with-wallet 500 12ms req_0f9e8d7c6b5a
"""

import logging
import re
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from src.hm_common.response import new_request_id

logger = logging.getLogger("hm.request")

REQUEST_ID_HEADER = "X-Request-ID"
_INBOUND_ID_RE = re.compile(r"^[A-Za-z0-9_.\-]{8,64}$")


def resolve_request_id(inbound: str | None) -> str:
    if inbound and _INBOUND_ID_RE.match(inbound):
        return inbound
    return new_request_id()


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id

        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000

        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(
            level,
            "%s %s %d %.0fms %s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request_id,
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
