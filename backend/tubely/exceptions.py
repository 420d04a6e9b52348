"""
Error taxonomy for the Tubely ingestion and delivery pipeline.

Every failure in the pipeline is mapped exactly once to one of these
exceptions and surfaces to the caller; nothing is retried internally.
The FastAPI layer converts them into structured JSON error responses
(see ``tubely.main``).
"""

from typing import Any


class TubelyError(Exception):
    """Base exception for all pipeline errors."""

    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.error_code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class InvalidInput(TubelyError):
    """Bad identifier, wrong content type or malformed multipart body."""

    status_code = 400
    error_code = "invalid_input"


class RecordNotFound(InvalidInput):
    """The referenced video record does not exist."""

    status_code = 404
    error_code = "not_found"


class PayloadTooLarge(InvalidInput):
    """The request body exceeded the configured upload limit."""

    status_code = 413
    error_code = "payload_too_large"


class Unauthorized(TubelyError):
    """Missing or invalid credential, or the caller does not own the record."""

    status_code = 401
    error_code = "unauthorized"


class ProcessingFailed(TubelyError):
    """Probe or remux failure, or a stored reference that cannot be expanded."""

    status_code = 422
    error_code = "processing_failed"


class MalformedReferenceError(ProcessingFailed):
    """A persisted storage reference does not split into bucket and key."""

    error_code = "malformed_reference"


class StorageFailed(TubelyError):
    """Object storage or metadata store write failed."""

    status_code = 502
    error_code = "storage_failed"


class MetadataUpdateFailed(StorageFailed):
    """The metadata store rejected a record update."""

    error_code = "metadata_update_failed"


class OrphanedObjectError(StorageFailed):
    """
    The object was written to storage but the record was not updated.

    The object stays in the bucket unreferenced; nothing reconciles it
    automatically, so it is reported distinctly from a total failure.
    """

    error_code = "orphaned_object"


__all__ = [
    "TubelyError",
    "InvalidInput",
    "RecordNotFound",
    "PayloadTooLarge",
    "Unauthorized",
    "ProcessingFailed",
    "MalformedReferenceError",
    "StorageFailed",
    "MetadataUpdateFailed",
    "OrphanedObjectError",
]
