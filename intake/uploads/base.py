from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from typing import ClassVar

from intake.uploads.batch import BatchUploader
from intake.uploads.models import BatchResult, DocumentItem, StagedFile, UploadedFile, UploadOutcome


class BaseUploadBackend(ABC):
    """Contract for all remote storage adapters.

    Every operation raises ``UploadError`` on a non-2xx response, an SDK
    failure or a transport failure.
    """

    name: ClassVar[str]
    # Prefix used for backend-specific keys in the webhook payload, e.g. "oneDrive".
    wire_prefix: ClassVar[str]

    @abstractmethod
    def upload(
        self,
        file: StagedFile,
        owner_identity: str,
        destination_path: str,
    ) -> UploadedFile:
        """Upload one file to remote storage.

        Args:
            file: Staged file content and metadata.
            owner_identity: Email of the user the file is stored for.
            destination_path: Folder path relative to the backend root.

        Returns:
            UploadedFile describing where the file landed.

        Raises:
            UploadError: on any non-2xx response, SDK or transport failure.
        """

    @abstractmethod
    def get_file_info(self, remote_id: str, owner_identity: str) -> UploadedFile:
        """Describe a stored file by the ``remote_id`` its upload returned."""

    @abstractmethod
    def list_files(
        self, owner_identity: str, folder: str = "", limit: int = 100
    ) -> list[UploadedFile]:
        """List up to ``limit`` stored files, optionally under ``folder``."""

    @abstractmethod
    def delete_file(self, remote_id: str, owner_identity: str) -> None:
        """Remove a stored file and any metadata kept for it."""

    def upload_many(
        self,
        items: Sequence[DocumentItem],
        owner_identity: str,
        folder: str,
        on_outcome: Callable[[UploadOutcome], None] | None = None,
    ) -> BatchResult:
        """Upload a list of items, isolating per-item failures."""
        return BatchUploader(self).upload_all(items, owner_identity, folder, on_outcome)

    def close(self) -> None:
        """Release network resources. SDK-backed adapters hold none of their own."""
