class UploadError(Exception):
    """Raised when a single backend call fails. Never aborts a batch."""

    def __init__(
        self,
        backend: str,
        filename: str,
        message: str,
        http_status: int | None = None,
        operation: str = "upload",
    ) -> None:
        self.backend = backend
        self.filename = filename
        self.message = message
        self.http_status = http_status
        self.operation = operation
        status = f" (HTTP {http_status})" if http_status is not None else ""
        super().__init__(f"{backend} {operation} of '{filename}' failed{status}: {message}")


class TokenError(UploadError):
    """Raised when a bearer credential for a backend cannot be acquired."""

    def __init__(self, backend: str, message: str, http_status: int | None = None) -> None:
        super().__init__(backend, "<token>", message, http_status)
