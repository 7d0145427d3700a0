from typing import Any
from urllib.parse import quote

import httpx

from intake.logging.logger import Log
from intake.uploads.base import BaseUploadBackend
from intake.uploads.http_json import request_json
from intake.uploads.models import StagedFile, UploadedFile
from intake.uploads.naming import join_path, unique_file_name
from intake.uploads.tokens import BaseTokenProvider


class OneDriveUploadBackend(BaseUploadBackend):
    """Uploads raw bytes into a user's OneDrive via Microsoft Graph."""

    name = "onedrive"
    wire_prefix = "oneDrive"

    def __init__(
        self,
        *,
        token_provider: BaseTokenProvider,
        graph_base_url: str = "https://graph.microsoft.com/v1.0",
        timeout_seconds: float = 300.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._token_provider = token_provider
        self._graph_base_url = graph_base_url.rstrip("/")
        self._client = client or httpx.Client(timeout=timeout_seconds)

    def upload(
        self,
        file: StagedFile,
        owner_identity: str,
        destination_path: str,
    ) -> UploadedFile:
        token = self._token_provider.get_token()
        remote_name = unique_file_name(file.name)
        item_path = quote(join_path(destination_path, remote_name))
        url = f"{self._drive(owner_identity)}/root:/{item_path}:/content"
        Log.debug(f"[onedrive] PUT {url} ({file.size} bytes)")

        body = request_json(
            self._client,
            "PUT",
            url,
            backend=self.name,
            subject=file.name,
            content=file.content,
            headers={
                "Authorization": f"Bearer {token}",
                "Content-Type": file.media_type,
            },
        )
        Log.info(f"[onedrive] Uploaded '{file.name}' as '{body.get('name', remote_name)}'")
        return _to_uploaded_file(body, remote_name, file.size)

    def get_file_info(self, remote_id: str, owner_identity: str) -> UploadedFile:
        body = request_json(
            self._client,
            "GET",
            f"{self._drive(owner_identity)}/items/{quote(remote_id)}",
            backend=self.name,
            subject=remote_id,
            operation="lookup",
            headers=self._auth(),
        )
        return _to_uploaded_file(body)

    def list_files(
        self, owner_identity: str, folder: str = "", limit: int = 100
    ) -> list[UploadedFile]:
        folder = folder.strip("/")
        root = f"{self._drive(owner_identity)}/root"
        url = f"{root}:/{quote(folder)}:/children" if folder else f"{root}/children"
        body = request_json(
            self._client,
            "GET",
            url,
            backend=self.name,
            subject=folder or "/",
            operation="listing",
            params={"$top": limit},
            headers=self._auth(),
        )
        items = [item for item in body.get("value", []) if "folder" not in item]
        Log.info(f"[onedrive] Listed {len(items)} file(s) under '{folder or '/'}'")
        return [_to_uploaded_file(item) for item in items]

    def delete_file(self, remote_id: str, owner_identity: str) -> None:
        request_json(
            self._client,
            "DELETE",
            f"{self._drive(owner_identity)}/items/{quote(remote_id)}",
            backend=self.name,
            subject=remote_id,
            operation="delete",
            expect_body=False,
            headers=self._auth(),
        )
        Log.info(f"[onedrive] Deleted item {remote_id}")

    def create_folder(self, folder_name: str, owner_identity: str, parent_path: str = "") -> str:
        """Create a folder (renamed on conflict) and return its item id."""
        root = f"{self._drive(owner_identity)}/root"
        parent = f":/{quote(parent_path.strip('/'))}:" if parent_path.strip("/") else ""
        body = request_json(
            self._client,
            "POST",
            f"{root}{parent}/children",
            backend=self.name,
            subject=folder_name,
            operation="folder creation",
            json={
                "name": folder_name,
                "folder": {},
                "@microsoft.graph.conflictBehavior": "rename",
            },
            headers=self._auth(),
        )
        return str(body.get("id", ""))

    def close(self) -> None:
        self._client.close()
        self._token_provider.close()

    def _auth(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._token_provider.get_token()}"}

    def _drive(self, owner_identity: str) -> str:
        return f"{self._graph_base_url}/users/{quote(owner_identity, safe='@')}/drive"


def _to_uploaded_file(body: dict[str, Any], fallback_name: str = "", size: int = 0) -> UploadedFile:
    return UploadedFile(
        remote_id=str(body.get("id", "")),
        file_name=str(body.get("name", fallback_name)),
        web_url=str(body.get("webUrl", "")),
        download_url=str(body.get("@microsoft.graph.downloadUrl", "")),
        size=int(body.get("size", size)),
        last_modified=str(body.get("lastModifiedDateTime", "")),
    )
