from datetime import datetime, timezone
from typing import Any

import firebase_admin
from firebase_admin import credentials, firestore, storage

from intake.logging.logger import Log
from intake.uploads.base import BaseUploadBackend
from intake.uploads.exceptions import UploadError
from intake.uploads.models import StagedFile, UploadedFile
from intake.uploads.naming import join_path, unique_file_name


def initialize_firebase_app(
    project_id: str,
    storage_bucket: str,
    credentials_path: str = "",
) -> firebase_admin.App:
    """Return the default Firebase app, initializing it on first use."""
    if firebase_admin._apps:
        return firebase_admin.get_app()
    options = {"projectId": project_id, "storageBucket": storage_bucket}
    if credentials_path:
        cred = credentials.Certificate(credentials_path)
        return firebase_admin.initialize_app(cred, options)
    # Application Default Credentials
    return firebase_admin.initialize_app(options=options)


class FirebaseUploadBackend(BaseUploadBackend):
    """Uploads to Firebase Storage, then records file metadata in Firestore."""

    name = "firebase"
    wire_prefix = "firebase"

    def __init__(
        self,
        *,
        bucket: Any,
        firestore_client: Any,
        uploads_collection: str = "uploads",
    ) -> None:
        self._bucket = bucket
        self._db = firestore_client
        self._uploads_collection = uploads_collection

    @classmethod
    def from_app(cls, app: firebase_admin.App, uploads_collection: str) -> "FirebaseUploadBackend":
        return cls(
            bucket=storage.bucket(app=app),
            firestore_client=firestore.client(app=app),
            uploads_collection=uploads_collection,
        )

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
            blob = self._bucket.blob(object_path)
            blob.upload_from_string(file.content, content_type=file.media_type)
            download_url = blob.public_url
        except Exception as exc:
            raise UploadError(self.name, file.name, f"Storage upload failed: {exc}") from exc

        try:
            _, doc_ref = self._db.collection(self._uploads_collection).add(
                {
                    "fileName": remote_name,
                    "originalName": file.name,
                    "path": object_path,
                    "downloadURL": download_url,
                    "size": file.size,
                    "type": file.media_type,
                    "uploadedBy": owner_identity,
                    "createdAt": uploaded_at,
                }
            )
        except Exception as exc:
            raise UploadError(
                self.name, file.name, f"Metadata record failed: {exc}"
            ) from exc

        Log.info(f"[firebase] Uploaded '{file.name}' to {object_path} (doc {doc_ref.id})")
        return UploadedFile(
            remote_id=str(doc_ref.id),
            file_name=remote_name,
            web_url=download_url,
            download_url=download_url,
            size=file.size,
            last_modified=uploaded_at,
        )

    def get_file_info(self, remote_id: str, owner_identity: str) -> UploadedFile:
        snapshot = self._read_record(remote_id, "lookup")
        return _to_uploaded_file(snapshot.id, snapshot.to_dict() or {})

    def list_files(
        self, owner_identity: str, folder: str = "", limit: int = 100
    ) -> list[UploadedFile]:
        """Newest upload records first. ``folder`` filters on the stored object path."""
        prefix = f"{folder.strip('/')}/" if folder.strip("/") else ""
        try:
            query = (
                self._db.collection(self._uploads_collection)
                .order_by("createdAt", direction=firestore.Query.DESCENDING)
                .limit(limit)
            )
            snapshots = list(query.stream())
        except Exception as exc:
            raise UploadError(
                self.name, self._uploads_collection, str(exc), operation="listing"
            ) from exc
        files: list[UploadedFile] = []
        for snapshot in snapshots:
            record = snapshot.to_dict() or {}
            if str(record.get("path", "")).startswith(prefix):
                files.append(_to_uploaded_file(snapshot.id, record))
        Log.info(f"[firebase] Listed {len(files)} upload record(s)")
        return files

    def delete_file(self, remote_id: str, owner_identity: str) -> None:
        """Delete the stored object, then its Firestore record."""
        snapshot = self._read_record(remote_id, "delete")
        path = (snapshot.to_dict() or {}).get("path", "")
        try:
            if path:
                self._bucket.blob(path).delete()
            snapshot.reference.delete()
        except Exception as exc:
            raise UploadError(self.name, remote_id, str(exc), operation="delete") from exc
        Log.info(f"[firebase] Deleted {path or remote_id} (doc {remote_id})")

    def _read_record(self, remote_id: str, operation: str) -> Any:
        try:
            snapshot = self._db.collection(self._uploads_collection).document(remote_id).get()
        except Exception as exc:
            raise UploadError(self.name, remote_id, str(exc), operation=operation) from exc
        if not snapshot.exists:
            raise UploadError(
                self.name, remote_id, "No such upload record", operation=operation
            )
        return snapshot


def _to_uploaded_file(doc_id: str, record: dict[str, Any]) -> UploadedFile:
    return UploadedFile(
        remote_id=doc_id,
        file_name=str(record.get("fileName", "")),
        web_url=str(record.get("downloadURL", "")),
        download_url=str(record.get("downloadURL", "")),
        size=int(record.get("size", 0)),
        last_modified=str(record.get("createdAt", "")),
    )
