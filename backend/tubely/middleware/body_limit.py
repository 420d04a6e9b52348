"""
Request body size guard.

Pure ASGI middleware that rejects request bodies larger than a fixed limit
with ``413 Payload Too Large``:

- A declared ``Content-Length`` over the limit is refused before the
  application runs.
- Bodies without a usable ``Content-Length`` (chunked transfer) are counted
  as they stream in; the read that crosses the limit raises
  ``RequestBodyTooLarge``.

``RequestBodyTooLarge`` is an ``HTTPException`` so that FastAPI's body
parsing re-raises it untouched instead of reporting a generic parse error.
"""

import logging

from fastapi import HTTPException, status
from starlette.datastructures import Headers
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from tubely.exceptions import PayloadTooLarge
from tubely.utils.file_validator import format_file_size


logger = logging.getLogger(__name__)


class RequestBodyTooLarge(HTTPException):
    def __init__(self, max_body_size: int) -> None:
        super().__init__(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE)
        self.max_body_size = max_body_size


def payload_too_large_response(max_body_size: int) -> JSONResponse:
    error = PayloadTooLarge(
        f"Request body exceeds maximum size of {format_file_size(max_body_size)}",
        max_bytes=max_body_size,
    )
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


class BodySizeLimitMiddleware:
    """
    Enforce ``max_body_size`` on every HTTP request.

    Example:
        ```python
        app.add_middleware(BodySizeLimitMiddleware, max_body_size=1 << 30)
        ```
    """

    def __init__(self, app: ASGIApp, max_body_size: int) -> None:
        self.app = app
        self.max_body_size = max_body_size

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        content_length = Headers(scope=scope).get("content-length")
        if content_length is not None and content_length.isdigit():
            if int(content_length) > self.max_body_size:
                logger.warning(
                    "Rejected request with Content-Length %s over limit %d",
                    content_length,
                    self.max_body_size,
                    extra={"path": scope.get("path")},
                )
                await payload_too_large_response(self.max_body_size)(scope, receive, send)
                return

        received = 0
        response_started = False

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_body_size:
                    raise RequestBodyTooLarge(self.max_body_size)
            return message

        async def tracking_send(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, limited_receive, tracking_send)
        except RequestBodyTooLarge:
            if response_started:
                raise
            logger.warning(
                "Rejected streamed request body over limit %d",
                self.max_body_size,
                extra={"path": scope.get("path")},
            )
            await payload_too_large_response(self.max_body_size)(scope, receive, send)
