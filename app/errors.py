from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse


class ApiError(Exception):
    status_code = 500
    default_code = "INTERNAL_ERROR"

    def __init__(self, message: str, *, code: str | None = None, status_code: int | None = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code
        self.code = code or self.default_code
        self.message = message


class NotFoundError(ApiError):
    status_code = 404
    default_code = "NOT_FOUND"


class ConflictError(ApiError):
    status_code = 409
    default_code = "CONFLICT"


class ValidationError(ApiError):
    status_code = 400
    default_code = "VALIDATION_ERROR"


class InvalidDateError(ValidationError):
    default_code = "INVALID_DATE"


def get_request_id(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        return str(request_id)
    return "unknown"


def error_response(request: Request, *, status_code: int, code: str, message: str) -> JSONResponse:
    payload = {
        "error": {
            "code": code,
            "message": message,
            "request_id": get_request_id(request),
        }
    }
    return JSONResponse(status_code=status_code, content=payload)
