class RecordsError(Exception):
    """Base exception for session record lookups."""


class RecordNotFoundError(RecordsError):
    """Raised when a session has no stored identity or certificate records."""
