"""Moodtrack - Pipeline error taxonomy.

Every failure in the ingestion and deletion pipelines is raised as one of
these types. Each carries a stable error code that the HTTP layer maps
to a status via error_code_to_status().
"""

from __future__ import annotations

from enum import StrEnum


class PipelineErrorCode(StrEnum):
    """Error codes surfaced to API clients."""

    VALIDATION_FAILED = "VALIDATION_FAILED"
    ACQUISITION_FAILED = "ACQUISITION_FAILED"
    UPLOAD_FAILED = "UPLOAD_FAILED"
    PERSISTENCE_FAILED = "PERSISTENCE_FAILED"
    NOT_FOUND = "NOT_FOUND"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class PipelineError(Exception):
    """Base exception for pipeline errors."""

    # Set by the ingestion orchestrator to the state it failed in
    failed_state: str | None = None

    def __init__(self, error_code: str, message: str):
        self.error_code = error_code
        self.message = message
        super().__init__(f"{error_code}: {message}")


class ValidationError(PipelineError):
    """Bad or missing input. Never retried."""

    def __init__(self, message: str):
        super().__init__(PipelineErrorCode.VALIDATION_FAILED, message)


class AcquisitionError(PipelineError):
    """Audio extraction or download failed."""

    def __init__(self, reason: str):
        super().__init__(PipelineErrorCode.ACQUISITION_FAILED, f"Audio acquisition failed: {reason}")


class UpstreamUploadError(PipelineError):
    """The remote blob store rejected or did not confirm an upload."""

    def __init__(self, reason: str):
        super().__init__(PipelineErrorCode.UPLOAD_FAILED, f"Cloud upload failed: {reason}")


class PersistenceError(PipelineError):
    """Database failure. The transaction has already been rolled back."""

    def __init__(self, reason: str):
        super().__init__(PipelineErrorCode.PERSISTENCE_FAILED, f"Database error: {reason}")


class NotFoundError(PipelineError):
    """Requested record does not exist."""

    def __init__(self, what: str):
        super().__init__(PipelineErrorCode.NOT_FOUND, f"{what} not found")


def error_code_to_status(error_code: str) -> int:
    """Map error codes to HTTP status codes.

    - VALIDATION_FAILED -> 400
    - NOT_FOUND -> 404
    - everything else -> 500
    """
    if error_code == PipelineErrorCode.VALIDATION_FAILED:
        return 400
    if error_code == PipelineErrorCode.NOT_FOUND:
        return 404
    return 500


__all__ = [
    "PipelineErrorCode",
    "PipelineError",
    "ValidationError",
    "AcquisitionError",
    "UpstreamUploadError",
    "PersistenceError",
    "NotFoundError",
    "error_code_to_status",
]
