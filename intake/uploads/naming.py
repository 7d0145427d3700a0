import re
import time

DEFAULT_FILE_NAME = "document"

_NON_ASCII = re.compile(r"[^\x00-\x7F]")
_WHITESPACE = re.compile(r"\s+")
_DISALLOWED = re.compile(r"[^A-Za-z0-9._-]")


def sanitize_file_name(name: str) -> str:
    """Reduce a file name to [A-Za-z0-9._-]; spaces become underscores.

    Falls back to DEFAULT_FILE_NAME when nothing is left, e.g. a name
    written entirely in Hebrew with no extension.
    """
    cleaned = _NON_ASCII.sub("", name).strip()
    cleaned = _WHITESPACE.sub("_", cleaned)
    cleaned = _DISALLOWED.sub("", cleaned)
    if not cleaned:
        return DEFAULT_FILE_NAME
    return cleaned


def unique_file_name(name: str, now_ms: int | None = None) -> str:
    """Prefix the sanitized name with a millisecond timestamp."""
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    return f"{now_ms}-{sanitize_file_name(name)}"


def join_path(*parts: str) -> str:
    """Join remote path segments, dropping empty ones and stray slashes."""
    return "/".join(p.strip("/") for p in parts if p and p.strip("/"))
