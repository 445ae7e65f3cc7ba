from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from plant_doctor.core.errors import (
    FileTooLargeError,
    InvalidTransitionError,
    NoImageSelectedError,
    PlantDoctorError,
    SessionBusyError,
    SessionNotFoundError,
    ValidationError,
)


logger = logging.getLogger(__name__)


_STATUS_BY_ERROR = (
    (FileTooLargeError, 413),
    (ValidationError, 400),
    (SessionNotFoundError, 404),
    (SessionBusyError, 409),
    (NoImageSelectedError, 409),
    (InvalidTransitionError, 409),
)


def _get_request_id(request: Request) -> Optional[str]:
    """
    Best-effort request_id retrieval:
    - RequestIdMiddleware sets request.state.request_id
    - otherwise fall back to the inbound header
    """
    rid = getattr(getattr(request, "state", None), "request_id", None)
    if rid:
        return rid
    return request.headers.get("X-Request-Id")


def _error_payload(code: str, message: str, request_id: Optional[str]) -> Dict[str, Any]:
    return {"error": {"code": code, "message": message, "request_id": request_id}}


def _respond(request: Request, status_code: int, code: str, message: str) -> JSONResponse:
    rid = _get_request_id(request)
    return JSONResponse(
        status_code=status_code,
        content=_error_payload(code=code, message=message, request_id=rid),
        headers={"X-Request-Id": rid} if rid else None,
    )


async def plant_doctor_error_handler(request: Request, exc: PlantDoctorError) -> JSONResponse:
    """
    Session/validation errors raised by route handlers.
    Analysis failures never get here: they are part of the session state.
    """
    status_code = next((s for t, s in _STATUS_BY_ERROR if isinstance(exc, t)), 500)
    return _respond(request, status_code, exc.code, exc.user_message)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """
    Normalize HTTPException into the global error schema.
    detail may be a dict {"code", "message"} or a plain string.
    """
    code = "http_error"
    message = "Request failed"

    if isinstance(exc.detail, dict):
        code = str(exc.detail.get("code", code))
        message = str(exc.detail.get("message", message))
    elif isinstance(exc.detail, str):
        message = exc.detail

    return _respond(request, exc.status_code, code, message)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Normalize request validation errors (422) into a short summary like
    "file: Field required".
    """
    parts = []
    for err in exc.errors():
        loc = ".".join(str(x) for x in err.get("loc", []) if x != "body")
        msg = err.get("msg", "Invalid value")
        parts.append(f"{loc}: {msg}" if loc else str(msg))

    message = "; ".join(parts) if parts else "Validation error"
    return _respond(request, 422, "validation_error", message)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error")
    return _respond(request, 500, "internal_error", "Internal server error")


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PlantDoctorError, plant_doctor_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
