"""
Error taxonomy for the Tubely ingestion pipeline.

Every failure in the pipeline is terminal for the current request. Each error
class carries the HTTP status and machine-readable error code it maps to, and
the application-level exception handler in tubely.main renders it as:

    {"error": "<error_code>", "message": "<human readable message>"}

Status mapping:
- 400: input and format errors (bad id, malformed upload, unsupported media type)
- 401: authentication and ownership errors
- 404: unknown video record
- 413: request body above the configured ceiling
- 500: local/remote I/O and infrastructure errors
"""

from fastapi import status


class TubelyError(Exception):
    """Base exception for all pipeline errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "internal_error"
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, str]:
        return {"error": self.error_code, "message": self.message}


# =============================================================================
# Input errors (400)
# =============================================================================


class InvalidIdentifier(TubelyError):
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "invalid_identifier"
    default_message = "Invalid video ID"


class MalformedUpload(TubelyError):
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "malformed_upload"
    default_message = "Unable to parse form file"


class UnsupportedMediaType(TubelyError):
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "unsupported_media_type"
    default_message = "Unsupported media type"


class RequestTooLarge(TubelyError):
    status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    error_code = "request_too_large"
    default_message = "Request body exceeds the upload limit"

    def __init__(self, limit: int, message: str | None = None) -> None:
        self.limit = limit
        super().__init__(message or f"Request body exceeds the upload limit of {limit} bytes")


# =============================================================================
# Authentication and ownership errors (401)
# =============================================================================


class TokenMissing(TubelyError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "token_missing"
    default_message = "Couldn't find JWT"


class TokenInvalid(TubelyError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "token_invalid"
    default_message = "Couldn't validate JWT"


class Forbidden(TubelyError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "forbidden"
    default_message = "User is not the video owner"


# =============================================================================
# Lookup errors (404)
# =============================================================================


class VideoNotFound(TubelyError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "video_not_found"
    default_message = "Video not found"


# =============================================================================
# Infrastructure errors (500)
# =============================================================================


class ProbeUnavailable(TubelyError):
    error_code = "probe_unavailable"
    default_message = "Unable to inspect video streams"


class ProbeOutputInvalid(TubelyError):
    error_code = "probe_output_invalid"
    default_message = "Video inspection returned unusable output"


class ProcessingFailed(TubelyError):
    error_code = "processing_failed"
    default_message = "Unable to process video for fast start"


class StorageIOError(TubelyError):
    error_code = "storage_io_error"
    default_message = "Unable to write upload to local storage"


class PublishFailed(TubelyError):
    error_code = "publish_failed"
    default_message = "Unable to upload file to object storage"


class SigningFailed(TubelyError):
    error_code = "signing_failed"
    default_message = "Unable to generate presigned URL"


class RecordReadError(TubelyError):
    error_code = "record_read_error"
    default_message = "Unable to retrieve video metadata"


class RecordWriteError(TubelyError):
    error_code = "record_write_error"
    default_message = "Unable to update video"


__all__ = [
    "TubelyError",
    "InvalidIdentifier",
    "MalformedUpload",
    "UnsupportedMediaType",
    "RequestTooLarge",
    "TokenMissing",
    "TokenInvalid",
    "Forbidden",
    "VideoNotFound",
    "ProbeUnavailable",
    "ProbeOutputInvalid",
    "ProcessingFailed",
    "StorageIOError",
    "PublishFailed",
    "SigningFailed",
    "RecordReadError",
    "RecordWriteError",
]
