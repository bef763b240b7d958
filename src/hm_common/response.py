"""Response envelope shared by every endpoint and error handler.

    {"code": 0, "message": "success", "data": {...},
     "timestamp": "...", "request_id": "req_..."}

code is 0 on success, otherwise the AppError code. data carries the payload,
or structured error details (e.g. balance/required) when the error has them.
request_id echoes the id the request-log middleware put on request.state,
so a client can quote it when reporting a failed payment.
"""

import uuid
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field
from starlette.requests import Request

from src.hm_common.errors import AppError


def new_request_id() -> str:
    return f"req_{uuid.uuid4().hex[:12]}"


class ApiResponse(BaseModel):
    code: int = 0
    message: str = "success"
    data: Any = None
    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    request_id: str = Field(default_factory=new_request_id)


def _request_id(request: Request | None) -> str:
    if request is None:
        return new_request_id()
    return getattr(request.state, "request_id", None) or new_request_id()


def success_response(data: Any = None, request: Request | None = None) -> ApiResponse:
    if isinstance(data, BaseModel):
        data = data.model_dump()
    return ApiResponse(data=data, request_id=_request_id(request))


def error_response(exc: AppError, request: Request | None = None) -> ApiResponse:
    return ApiResponse(
        code=exc.code,
        message=exc.message,
        data=exc.data,
        request_id=_request_id(request),
    )
