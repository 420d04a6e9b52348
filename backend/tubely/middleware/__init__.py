"""ASGI middleware for the Tubely backend."""

from tubely.middleware.body_limit import (
    BodySizeLimitMiddleware,
    RequestBodyTooLarge,
    payload_too_large_response,
)


__all__ = ["BodySizeLimitMiddleware", "RequestBodyTooLarge", "payload_too_large_response"]
