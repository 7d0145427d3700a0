import io
from datetime import datetime, timedelta, timezone
from typing import Any

from google.cloud import storage

from intake.logging.logger import Log
from intake.uploads.base import BaseUploadBackend
from intake.uploads.exceptions import UploadError
from intake.uploads.models import StagedFile, UploadedFile
from intake.uploads.naming import join_path, unique_file_name


def build_gcs_client(project_id: str, credentials_path: str = "") -> storage.Client:
    """Create a storage client from a service-account file or default credentials."""
    if credentials_path:
        return storage.Client.from_service_account_json(credentials_path, project=project_id)
    return storage.Client(project=project_id or None)


class GcsUploadBackend(BaseUploadBackend):
    """Streams files into a Google Cloud Storage bucket.

    Returns a signed read URL and a signed write URL so the downstream
    automation can both fetch and replace the object without credentials.
    URLs use the library's default signing scheme, which accepts lifetimes
    beyond seven days.
    """

    name = "gcs"
    wire_prefix = "gcs"

    def __init__(
        self,
        *,
        client: Any,
        bucket_name: str,
        signed_url_days: int = 14,
    ) -> None:
        self._client = client
        self._bucket_name = bucket_name
        self._signed_url_ttl = timedelta(days=signed_url_days)

    def upload(
        self,
        file: StagedFile,
        owner_identity: str,
        destination_path: str,
    ) -> UploadedFile:
        remote_name = unique_file_name(file.name)
        object_path = join_path(destination_path, remote_name)
        uploaded_at = datetime.now(timezone.utc).isoformat()

        try:
            blob = self._client.bucket(self._bucket_name).blob(object_path)
            blob.metadata = {
                "originalName": file.name,
                "uploadedBy": owner_identity,
                "uploadedAt": uploaded_at,
            }
            read_url = blob.generate_signed_url(expiration=self._signed_url_ttl, method="GET")
            write_url = blob.generate_signed_url(
                expiration=self._signed_url_ttl,
                method="PUT",
                content_type=file.media_type,
            )
            blob.upload_from_file(
                io.BytesIO(file.content),
                size=file.size,
                content_type=file.media_type,
            )
        except Exception as exc:
            raise UploadError(self.name, file.name, str(exc)) from exc

        Log.info(f"[gcs] Uploaded '{file.name}' to gs://{self._bucket_name}/{object_path}")
        return UploadedFile(
            remote_id=object_path,
            file_name=remote_name,
            web_url=self._web_url(object_path),
            download_url=read_url,
            size=file.size,
            last_modified=uploaded_at,
            write_url=write_url,
        )

    def get_file_info(self, remote_id: str, owner_identity: str) -> UploadedFile:
        try:
            blob = self._client.bucket(self._bucket_name).get_blob(remote_id)
            info = self._describe(blob) if blob is not None else None
        except Exception as exc:
            raise UploadError(self.name, remote_id, str(exc), operation="lookup") from exc
        if info is None:
            raise UploadError(self.name, remote_id, "No such object", operation="lookup")
        return info

    def list_files(
        self, owner_identity: str, folder: str = "", limit: int = 100
    ) -> list[UploadedFile]:
        prefix = f"{folder.strip('/')}/" if folder.strip("/") else None
        try:
            blobs = self._client.list_blobs(self._bucket_name, prefix=prefix, max_results=limit)
            files = [self._describe(blob) for blob in blobs]
        except Exception as exc:
            raise UploadError(self.name, prefix or "/", str(exc), operation="listing") from exc
        Log.info(f"[gcs] Listed {len(files)} object(s) under '{prefix or '/'}'")
        return files

    def delete_file(self, remote_id: str, owner_identity: str) -> None:
        try:
            self._client.bucket(self._bucket_name).blob(remote_id).delete()
        except Exception as exc:
            raise UploadError(self.name, remote_id, str(exc), operation="delete") from exc
        Log.info(f"[gcs] Deleted gs://{self._bucket_name}/{remote_id}")

    def _describe(self, blob: Any) -> UploadedFile:
        updated = blob.updated.isoformat() if blob.updated else ""
        return UploadedFile(
            remote_id=blob.name,
            file_name=blob.name.rsplit("/", 1)[-1],
            web_url=self._web_url(blob.name),
            download_url=blob.generate_signed_url(expiration=self._signed_url_ttl, method="GET"),
            size=int(blob.size or 0),
            last_modified=updated,
        )

    def _web_url(self, object_path: str) -> str:
        return f"https://storage.cloud.google.com/{self._bucket_name}/{object_path}"
