"""
Extraction error taxonomy.

Every failure inside the pipeline is one of these. Each class belongs to
exactly one client-visible category, carried as ``status_code``::

    ExtractionError
    ├── ClientError (400)
    │   ├── MissingFile
    │   ├── InvalidFileType
    │   ├── UploadTooLarge
    │   ├── ParseError
    │   │   ├── EmptyResponse
    │   │   └── MalformedResponse
    │   └── FieldError
    └── ServerError (500)
        ├── InvocationError
        │   ├── ModelServerError
        │   └── ModelInvocationError
        └── PersistenceError
"""
from __future__ import annotations

from typing import Optional


class ExtractionError(Exception):
    """Base class; ``message`` is safe to show to the caller verbatim."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ClientError(ExtractionError):
    status_code = 400


class ServerError(ExtractionError):
    status_code = 500


# ── Input ────────────────────────────────────────────────────────────────
class MissingFile(ClientError):
    def __init__(self):
        super().__init__("No image file provided")


class InvalidFileType(ClientError):
    def __init__(self, mime_type: Optional[str] = None):
        self.mime_type = mime_type
        super().__init__(
            "Invalid file type. Only .jpg, .jpeg, and .png files are allowed."
        )


class UploadTooLarge(ClientError):
    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        # size is a lower bound: uploads are read only up to limit + 1 bytes
        super().__init__(f"Image file is too large (limit {limit} bytes)")


# ── Model response ───────────────────────────────────────────────────────
class ParseError(ClientError):
    pass


class EmptyResponse(ParseError):
    def __init__(self):
        super().__init__("Empty response from AI model")


class MalformedResponse(ParseError):
    def __init__(self):
        super().__init__("Invalid JSON response from AI model")


class FieldError(ClientError):
    """Schema violation in the model output; ``field`` names the culprit."""

    PREFIX = "Invalid response from AI model: "

    def __init__(self, field: Optional[str], detail: str):
        self.field = field
        self.detail = detail
        super().__init__(self.PREFIX + detail)


# ── Upstream / storage ───────────────────────────────────────────────────
class InvocationError(ServerError):
    pass


class ModelServerError(InvocationError):
    """The model provider answered with a server-side (5xx) failure."""

    def __init__(self, status_code: Optional[int] = None):
        self.upstream_status = status_code
        super().__init__("AI model returned a 500 error")


class ModelInvocationError(InvocationError):
    """Model call failed for any other reason (network, auth, bad shape)."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Failed to extract receipt details: {reason}")


class PersistenceError(ServerError):
    pass
