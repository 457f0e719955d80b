"""ASGI middleware for the transport-level body cap and unhandled errors."""
from __future__ import annotations

from fastapi import HTTPException
from starlette.datastructures import Headers
from starlette.formparsers import MultiPartException
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .errors import Failure, FailureKind, failure_response
from .utils.logger import get_logger

logger = get_logger(__name__)


def payload_too_large_message(max_bytes: int) -> str:
    return f"Payload content length greater than maximum allowed: {max_bytes}"


class PayloadTooLarge(HTTPException, MultiPartException):
    """Body cap violation raised from ``receive``.

    As a ``MultiPartException`` it makes the multipart parser close the spooled
    files it already opened before re-raising it as a 400 with this message;
    other body parsers pass it through as an ``HTTPException``.
    """

    def __init__(self, failure: Failure) -> None:
        HTTPException.__init__(self, status_code=failure.status_code, detail=failure.message)
        self.message = failure.message


class ContentSizeLimitMiddleware:
    """Rejects bodies over ``max_bytes`` by declared length or as they stream in."""

    def __init__(self, app: ASGIApp, max_bytes: int = 1_000_000) -> None:
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        failure = Failure.of(FailureKind.VALIDATION, payload_too_large_message(self.max_bytes))
        declared = Headers(scope=scope).get("content-length")
        if declared is not None and declared.isdigit() and int(declared) > self.max_bytes:
            response = failure_response(failure)
            await response(scope, receive, send)
            return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_bytes:
                    raise PayloadTooLarge(failure)
            return message

        await self.app(scope, limited_receive, send)


class UnhandledErrorMiddleware:
    """Turns exceptions that escaped the app into the generic 500 fail payload.

    Must sit inside ``CORSMiddleware`` so these responses keep CORS headers.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def tracking_send(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, tracking_send)
        except Exception as exc:
            logger.opt(exception=exc).error("Unhandled error", path=scope.get("path"))
            if response_started:
                raise
            response = failure_response(Failure.of(FailureKind.UNEXPECTED))
            await response(scope, receive, send)
