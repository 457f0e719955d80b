"""Typed failures and their mapping onto the uniform ``{status, message}`` response."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from http import HTTPStatus
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .utils.logger import get_logger

logger = get_logger(__name__)


class FailureKind(str, Enum):
    VALIDATION = "ValidationError"
    DECODE = "DecodeError"
    INFERENCE = "InferenceError"
    STORAGE = "StorageError"
    UNEXPECTED = "UnexpectedError"


STATUS_CODES: Dict[FailureKind, int] = {
    FailureKind.VALIDATION: 400,
    FailureKind.DECODE: 400,
    FailureKind.INFERENCE: 500,
    FailureKind.STORAGE: 500,
    FailureKind.UNEXPECTED: 500,
}

DEFAULT_MESSAGES: Dict[FailureKind, str] = {
    FailureKind.VALIDATION: "Invalid request payload",
    FailureKind.DECODE: "Uploaded file is not a valid image",
    FailureKind.INFERENCE: "An error occurred while running the prediction",
    FailureKind.STORAGE: "Failed to store or read prediction results",
    FailureKind.UNEXPECTED: "An unexpected error occurred",
}


@dataclass(frozen=True, slots=True)
class Failure:
    """A classified pipeline failure, returned by value instead of raised."""

    kind: FailureKind
    message: str

    @classmethod
    def of(cls, kind: FailureKind, message: Optional[str] = None) -> "Failure":
        return cls(kind=kind, message=message or DEFAULT_MESSAGES[kind])

    @property
    def status_code(self) -> int:
        return STATUS_CODES[self.kind]


def fail_payload(message: str) -> Dict[str, Any]:
    return {"status": "fail", "message": message}


def failure_response(failure: Failure) -> JSONResponse:
    return JSONResponse(status_code=failure.status_code, content=fail_payload(failure.message))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # Framework errors keep their status; only string details are public.
    if isinstance(exc.detail, str) and exc.detail:
        message = exc.detail
    else:
        try:
            message = HTTPStatus(exc.status_code).phrase
        except ValueError:
            message = DEFAULT_MESSAGES[FailureKind.UNEXPECTED]
    return JSONResponse(
        status_code=exc.status_code,
        content=fail_payload(message),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("Rejected malformed request", path=request.url.path, errors=len(exc.errors()))
    return failure_response(Failure.of(FailureKind.VALIDATION))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
