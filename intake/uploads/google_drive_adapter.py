import json
import uuid
from typing import Any

import httpx

from intake.logging.logger import Log
from intake.uploads.base import BaseUploadBackend
from intake.uploads.http_json import request_json
from intake.uploads.models import StagedFile, UploadedFile
from intake.uploads.naming import unique_file_name
from intake.uploads.tokens import BaseTokenProvider

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"


class GoogleDriveUploadBackend(BaseUploadBackend):
    """Multipart upload (metadata + media) to the Google Drive v3 API.

    Drive has no path addressing; the destination path is kept in the
    file's description and the file is placed under the configured parent
    folder id, if any. ``folder`` arguments elsewhere are Drive folder ids.
    """

    name = "google_drive"
    wire_prefix = "googleDrive"

    UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3/files"
    FILES_URL = "https://www.googleapis.com/drive/v3/files"
    FIELDS = "id,name,webViewLink,webContentLink,size,modifiedTime"

    def __init__(
        self,
        *,
        token_provider: BaseTokenProvider,
        api_key: str = "",
        parent_folder_id: str = "",
        timeout_seconds: float = 300.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._token_provider = token_provider
        self._api_key = api_key
        self._parent_folder_id = parent_folder_id
        self._client = client or httpx.Client(timeout=timeout_seconds)

    def upload(
        self,
        file: StagedFile,
        owner_identity: str,
        destination_path: str,
    ) -> UploadedFile:
        token = self._token_provider.get_token()
        remote_name = unique_file_name(file.name)
        metadata: dict[str, Any] = {
            "name": remote_name,
            "mimeType": file.media_type,
            "description": f"{destination_path} (uploaded for {owner_identity})",
        }
        if self._parent_folder_id:
            metadata["parents"] = [self._parent_folder_id]

        boundary = f"intake-{uuid.uuid4().hex}"
        result = request_json(
            self._client,
            "POST",
            self.UPLOAD_URL,
            backend=self.name,
            subject=file.name,
            params=self._params(uploadType="multipart", fields=self.FIELDS),
            content=build_multipart_related(boundary, metadata, file),
            headers={
                "Authorization": f"Bearer {token}",
                "Content-Type": f"multipart/related; boundary={boundary}",
            },
        )
        uploaded = _to_uploaded_file(result, remote_name, file.size)
        Log.info(f"[google_drive] Uploaded '{file.name}' as file {uploaded.remote_id}")
        return uploaded

    def get_file_info(self, remote_id: str, owner_identity: str) -> UploadedFile:
        result = request_json(
            self._client,
            "GET",
            f"{self.FILES_URL}/{remote_id}",
            backend=self.name,
            subject=remote_id,
            operation="lookup",
            params=self._params(fields=self.FIELDS),
            headers=self._auth(),
        )
        return _to_uploaded_file(result)

    def list_files(
        self, owner_identity: str, folder: str = "", limit: int = 100
    ) -> list[UploadedFile]:
        parent = folder or self._parent_folder_id
        query = f"mimeType != '{FOLDER_MIME_TYPE}' and trashed = false"
        if parent:
            query = f"'{parent}' in parents and {query}"
        result = request_json(
            self._client,
            "GET",
            self.FILES_URL,
            backend=self.name,
            subject=parent or "/",
            operation="listing",
            params=self._params(
                q=query,
                pageSize=str(limit),
                orderBy="modifiedTime desc",
                fields=f"files({self.FIELDS})",
            ),
            headers=self._auth(),
        )
        files = result.get("files", [])
        Log.info(f"[google_drive] Listed {len(files)} file(s)")
        return [_to_uploaded_file(item) for item in files]

    def delete_file(self, remote_id: str, owner_identity: str) -> None:
        request_json(
            self._client,
            "DELETE",
            f"{self.FILES_URL}/{remote_id}",
            backend=self.name,
            subject=remote_id,
            operation="delete",
            expect_body=False,
            params=self._params(),
            headers=self._auth(),
        )
        Log.info(f"[google_drive] Deleted file {remote_id}")

    def create_folder(self, folder_name: str, owner_identity: str, parent_id: str = "") -> str:
        """Create a Drive folder under ``parent_id``, else the configured parent; return its id."""
        parent = parent_id or self._parent_folder_id
        metadata: dict[str, Any] = {"name": folder_name, "mimeType": FOLDER_MIME_TYPE}
        if parent:
            metadata["parents"] = [parent]
        result = request_json(
            self._client,
            "POST",
            self.FILES_URL,
            backend=self.name,
            subject=folder_name,
            operation="folder creation",
            params=self._params(),
            json=metadata,
            headers=self._auth(),
        )
        Log.info(f"[google_drive] Created folder '{folder_name}'")
        return str(result.get("id", ""))

    def close(self) -> None:
        self._client.close()
        self._token_provider.close()

    def _params(self, **params: str) -> dict[str, str]:
        if self._api_key:
            params["key"] = self._api_key
        return params

    def _auth(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._token_provider.get_token()}"}


def _to_uploaded_file(
    result: dict[str, Any], fallback_name: str = "", size: int = 0
) -> UploadedFile:
    file_id = str(result.get("id", ""))
    return UploadedFile(
        remote_id=file_id,
        file_name=str(result.get("name", fallback_name)),
        web_url=result.get("webViewLink") or f"https://drive.google.com/file/d/{file_id}/view",
        download_url=result.get("webContentLink")
        or f"https://drive.google.com/uc?id={file_id}&export=download",
        size=int(result.get("size", size)),
        last_modified=str(result.get("modifiedTime", "")),
    )


def build_multipart_related(boundary: str, metadata: dict[str, Any], file: StagedFile) -> bytes:
    """Assemble a multipart/related body: JSON metadata part, then the raw file part."""
    delimiter = f"\r\n--{boundary}\r\n".encode()
    close_delimiter = f"\r\n--{boundary}--".encode()
    return b"".join(
        [
            delimiter,
            b"Content-Type: application/json; charset=UTF-8\r\n\r\n",
            json.dumps(metadata).encode("utf-8"),
            delimiter,
            f"Content-Type: {file.media_type}\r\n\r\n".encode(),
            file.content,
            close_delimiter,
        ]
    )
