import mimetypes
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class DocumentCategory(str, Enum):
    """Closed set of document kinds a form can carry."""

    MAIN_ID = "mainId"
    ADDITIONAL_ID = "additionalId"
    INCORPORATION = "incorporation"
    AUTHORIZATION = "authorization"
    EXEMPTION = "exemption"

    @property
    def is_identity(self) -> bool:
        return self in (DocumentCategory.MAIN_ID, DocumentCategory.ADDITIONAL_ID)

    @property
    def is_certificate(self) -> bool:
        return not self.is_identity

    @classmethod
    def certificate_types(cls) -> list["DocumentCategory"]:
        return [c for c in cls if c.is_certificate]


@dataclass(frozen=True)
class StagedFile:
    """Binary content of a file attached in the form."""

    name: str
    content: bytes
    media_type: str
    size: int

    @classmethod
    def from_bytes(cls, name: str, content: bytes, media_type: str) -> "StagedFile":
        return cls(name=name, content=content, media_type=media_type, size=len(content))

    @classmethod
    def from_path(cls, path: Path, media_type: str | None = None) -> "StagedFile":
        """Read a local file; media type is guessed from the extension if not given."""
        content = path.read_bytes()
        if media_type is None:
            guessed, _ = mimetypes.guess_type(path.name)
            media_type = guessed or "application/octet-stream"
        return cls.from_bytes(path.name, content, media_type)


@dataclass(frozen=True)
class DocumentItem:
    """One file staged for upload, with the role and category it was attached under."""

    file: StagedFile
    role: str
    category: DocumentCategory


@dataclass(frozen=True)
class UploadedFile:
    """Normalized descriptor returned by every upload backend."""

    remote_id: str
    file_name: str
    web_url: str
    download_url: str
    size: int
    last_modified: str
    write_url: str | None = None


@dataclass(frozen=True)
class UploadSuccess:
    item_index: int
    role: str
    category: DocumentCategory
    original_name: str
    uploaded: UploadedFile
    media_type: str = ""


@dataclass(frozen=True)
class UploadFailure:
    item_index: int
    role: str
    category: DocumentCategory
    original_name: str
    error: str


UploadOutcome = UploadSuccess | UploadFailure


@dataclass
class BatchResult:
    """Outcomes of one batch, split by variant. Every input item lands in exactly one list."""

    successes: list[UploadSuccess] = field(default_factory=list)
    failures: list[UploadFailure] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.successes) + len(self.failures)

    def extend(self, other: "BatchResult") -> None:
        self.successes.extend(other.successes)
        self.failures.extend(other.failures)
