from collections.abc import Sequence

from intake.config.settings import Settings
from intake.logging.logger import Log
from intake.submission.exceptions import FailureReason, ValidationError
from intake.uploads.models import StagedFile


def format_file_size(size: int) -> str:
    """Human-readable size, e.g. 2621440 -> '2.5 MB'."""
    if size <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    exponent = 0
    while size >= 1024 ** (exponent + 1) and exponent < len(units) - 1:
        exponent += 1
    value = round(size / 1024**exponent, 2)
    return f"{value:g} {units[exponent]}"


class FileValidator:
    """Checks a candidate file against the accepted media types and size ceiling."""

    def __init__(self, accepted_media_types: Sequence[str], max_file_size_bytes: int) -> None:
        self._accepted = tuple(accepted_media_types)
        self._max_size = max_file_size_bytes

    @classmethod
    def from_settings(cls, settings: Settings) -> "FileValidator":
        return cls(settings.accepted_media_types, settings.max_file_size_bytes)

    def validate(self, file: StagedFile) -> None:
        """Raise ValidationError if the file cannot be staged.

        Raises:
            ValidationError: with reason INVALID_FILE_TYPE, EMPTY_FILE or FILE_TOO_LARGE.
        """
        if file.media_type not in self._accepted:
            Log.error(f"Invalid file type for '{file.name}': {file.media_type}")
            raise ValidationError(
                FailureReason.INVALID_FILE_TYPE,
                f"'{file.name}' must be one of {list(self._accepted)}, got '{file.media_type}'",
            )
        if file.size == 0:
            raise ValidationError(FailureReason.EMPTY_FILE, f"'{file.name}' is empty")
        if file.size > self._max_size:
            Log.error(f"File too large: '{file.name}' is {file.size} bytes")
            raise ValidationError(
                FailureReason.FILE_TOO_LARGE,
                f"'{file.name}' is {format_file_size(file.size)}; "
                f"files must not exceed {format_file_size(self._max_size)}",
            )
