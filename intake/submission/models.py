from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from intake.uploads.models import DocumentItem, UploadFailure, UploadSuccess


class SubmissionState(str, Enum):
    IDLE = "Idle"
    VALIDATING = "Validating"
    UPLOADING = "Uploading"
    SUBMITTING = "Submitting"
    AWAITING_RESPONSE = "AwaitingResponse"
    PARSING = "Parsing"
    DONE = "Done"
    FAILED = "Failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SubmissionState.DONE, SubmissionState.FAILED)


@dataclass
class SubmissionForm:
    """Documents attached in the intake form, grouped the way they are uploaded."""

    main_id: DocumentItem | None = None
    additional_ids: list[DocumentItem] = field(default_factory=list)
    certificate: DocumentItem | None = None
    certificate_type: str = ""
    user_email: str = ""

    @property
    def roles(self) -> list[str]:
        items = [self.main_id, *self.additional_ids]
        return [item.role.strip() for item in items if item is not None and item.role.strip()]

    @property
    def items(self) -> list[DocumentItem]:
        staged = [self.main_id, *self.additional_ids, self.certificate]
        return [item for item in staged if item is not None]


@dataclass(frozen=True)
class PayloadDocument:
    """One successfully uploaded file as reported to the webhook."""

    item_id: int
    filename: str
    file_type: str
    doc_type: str
    role: str
    file_id: str
    web_url: str
    download_url: str
    file_size: int
    last_modified: str
    write_url: str | None = None

    @classmethod
    def from_success(cls, item_id: int, success: UploadSuccess) -> "PayloadDocument":
        uploaded = success.uploaded
        return cls(
            item_id=item_id,
            filename=success.original_name,
            file_type=success.media_type,
            doc_type=success.category.value,
            role=success.role,
            file_id=uploaded.remote_id,
            web_url=uploaded.web_url,
            download_url=uploaded.download_url,
            file_size=uploaded.size,
            last_modified=uploaded.last_modified,
            write_url=uploaded.write_url,
        )

    def to_wire(self, prefix: str) -> dict[str, Any]:
        wire: dict[str, Any] = {
            "itemId": self.item_id,
            "filename": self.filename,
            "fileType": self.file_type,
            "docType": self.doc_type,
            "role": self.role,
            f"{prefix}FileId": self.file_id,
            f"{prefix}WebUrl": self.web_url,
            f"{prefix}DownloadUrl": self.download_url,
            "fileSize": self.file_size,
            "lastModified": self.last_modified,
        }
        if self.write_url:
            wire[f"{prefix}WriteUrl"] = self.write_url
        return wire


@dataclass(frozen=True)
class SubmissionPayload:
    """Normalized structure POSTed to the automation webhook. Built once, never mutated."""

    documents: tuple[PayloadDocument, ...]
    document_type: str
    timestamp: str
    session_folder: str
    user_email: str
    api_key: str
    wire_prefix: str

    @property
    def total_files(self) -> int:
        return len(self.documents)

    def to_wire(self) -> dict[str, Any]:
        return {
            "documents": [doc.to_wire(self.wire_prefix) for doc in self.documents],
            "documentType": self.document_type,
            "timestamp": self.timestamp,
            "totalFiles": self.total_files,
            f"{self.wire_prefix}SessionFolder": self.session_folder,
            "userEmail": self.user_email,
            "apiKey": self.api_key,
            "key": self.api_key,
        }


@dataclass(frozen=True)
class ProgressEvent:
    state: SubmissionState
    percent: int
    message: str = ""


@dataclass
class SubmissionResult:
    """Final outcome of one submit call. ``error`` is set exactly when state is Failed."""

    state: SubmissionState
    session_id: str | None = None
    payload: SubmissionPayload | None = None
    failures: list[UploadFailure] = field(default_factory=list)
    error: Exception | None = None

    @property
    def succeeded(self) -> bool:
        return self.state is SubmissionState.DONE
