from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING

from intake.logging.logger import Log
from intake.uploads.exceptions import UploadError
from intake.uploads.models import (
    BatchResult,
    DocumentItem,
    UploadFailure,
    UploadOutcome,
    UploadSuccess,
)

if TYPE_CHECKING:
    from intake.uploads.base import BaseUploadBackend


class BatchUploader:
    """Drive one backend over a list of items, collecting outcomes per item.

    Items are uploaded strictly in input order. A failed item is recorded and
    the next item is attempted regardless; nothing is retried here.
    """

    def __init__(self, backend: BaseUploadBackend) -> None:
        self._backend = backend

    def upload_all(
        self,
        items: Sequence[DocumentItem],
        owner_identity: str,
        folder: str,
        on_outcome: Callable[[UploadOutcome], None] | None = None,
    ) -> BatchResult:
        result = BatchResult()
        total = len(items)
        Log.info(f"[{self._backend.name}] Uploading {total} file(s) to '{folder}'")

        for index, item in enumerate(items):
            outcome = self._upload_one(index, total, item, owner_identity, folder)
            if isinstance(outcome, UploadSuccess):
                result.successes.append(outcome)
            else:
                result.failures.append(outcome)
            if on_outcome is not None:
                on_outcome(outcome)

        Log.info(
            f"[{self._backend.name}] Batch complete: "
            f"{len(result.successes)} succeeded, {len(result.failures)} failed"
        )
        return result

    def _upload_one(
        self,
        index: int,
        total: int,
        item: DocumentItem,
        owner_identity: str,
        folder: str,
    ) -> UploadOutcome:
        Log.info(
            f"[{self._backend.name}] Uploading file {index + 1}/{total}: {item.file.name}"
        )
        try:
            uploaded = self._backend.upload(item.file, owner_identity, folder)
        except UploadError as exc:
            Log.error(f"[{self._backend.name}] Failed to upload file {index + 1}: {exc}")
            return self._failure(index, item, str(exc))
        except Exception as exc:
            # Adapter bug or unmapped SDK error; still only this item fails.
            Log.error(
                f"[{self._backend.name}] Unexpected error uploading file {index + 1}: {exc}"
            )
            return self._failure(index, item, f"{type(exc).__name__}: {exc}")
        return UploadSuccess(
            item_index=index,
            role=item.role,
            category=item.category,
            original_name=item.file.name,
            uploaded=uploaded,
            media_type=item.file.media_type,
        )

    @staticmethod
    def _failure(index: int, item: DocumentItem, error: str) -> UploadFailure:
        return UploadFailure(
            item_index=index,
            role=item.role,
            category=item.category,
            original_name=item.file.name,
            error=error,
        )
