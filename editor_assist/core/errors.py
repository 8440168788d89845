"""
Error taxonomy for the assistant.

Every error carries the HTTP status the endpoint answers with and a short,
user-facing message. Operator detail stays on the exception, not in the
message.
"""

from typing import Optional


class AssistError(Exception):
    """Base class for all assistant errors."""
    http_status = 500
    default_message = "Internal error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class ValidationError(AssistError):
    """Bad, missing or malformed input. Never retried."""
    http_status = 400
    default_message = "Invalid request"


class PayloadTooLargeError(ValidationError):
    """Prompt or context exceeds the configured size limit."""
    http_status = 413
    default_message = "Prompt or context too large"


class AuthError(AssistError):
    """Missing or invalid identity token."""
    http_status = 401
    default_message = "Unauthorized"


class QuotaExceededError(AssistError):
    """Daily request quota reached for the caller's tier."""
    http_status = 429
    default_message = "Daily AI quota reached"

    def __init__(self, used: int, limit: int, message: Optional[str] = None):
        super().__init__(message)
        self.used = used
        self.limit = limit


class UpstreamError(AssistError):
    """The language-model backend returned a non-success response."""
    http_status = 502
    default_message = "Upstream model error"

    def __init__(self, detail: str, status_code: Optional[int] = None):
        super().__init__()
        self.detail = detail
        self.status_code = status_code


class StorageError(AssistError):
    """The usage store failed. Detail goes to the server log only."""
    http_status = 500
    default_message = "Internal error"

    def __init__(self, detail: str = ""):
        super().__init__()
        self.detail = detail


class RetryableStorageError(StorageError):
    """The ledger transaction could not commit; the caller may retry later."""


class ParseError(AssistError):
    """Malformed structured action block. Recovered inside the extractor."""
    http_status = 200
    default_message = "Malformed action block"
