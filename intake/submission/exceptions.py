from enum import Enum


class FailureReason(str, Enum):
    """Enumerable reasons a submission is refused before any network call."""

    WEBHOOK_URL_MISSING = "webhook_url_missing"
    WEBHOOK_KEY_MISSING = "webhook_key_missing"
    USER_EMAIL_MISSING = "user_email_missing"
    BACKEND_CREDENTIALS_MISSING = "backend_credentials_missing"
    MAIN_ID_MISSING = "main_id_missing"
    ROLE_MISSING = "role_missing"
    CERTIFICATE_MISSING = "certificate_missing"
    CERTIFICATE_TYPE_INVALID = "certificate_type_invalid"
    INVALID_FILE_TYPE = "invalid_file_type"
    FILE_TOO_LARGE = "file_too_large"
    EMPTY_FILE = "empty_file"
    NO_SUCCESSFUL_UPLOADS = "no_successful_uploads"


class SubmissionError(Exception):
    """Base exception for all submission-related errors."""


class ConfigurationError(SubmissionError):
    """Raised when a required setting is absent. No network call is attempted."""

    def __init__(self, reason: FailureReason, message: str) -> None:
        self.reason = reason
        super().__init__(message)


class ValidationError(SubmissionError):
    """Raised when a file or form precondition fails."""

    def __init__(self, reason: FailureReason, message: str) -> None:
        self.reason = reason
        super().__init__(message)


class TransportError(SubmissionError):
    """Raised when the webhook cannot be reached, after the header-less retry."""


class ResponseError(SubmissionError):
    """Raised when the webhook answers with a non-2xx status."""

    def __init__(self, status: int, status_text: str, body: str) -> None:
        self.status = status
        self.status_text = status_text
        self.body = body
        super().__init__(f"HTTP {status}: {status_text} - {body}")


class ParseError(SubmissionError):
    """Raised when no session identifier can be extracted from the webhook response."""
