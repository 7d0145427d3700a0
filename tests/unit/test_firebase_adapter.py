from collections.abc import Callable
from unittest.mock import MagicMock, patch

import pytest

from intake.uploads.exceptions import UploadError
from intake.uploads.firebase_adapter import FirebaseUploadBackend, initialize_firebase_app
from intake.uploads.models import DocumentItem


def _backend() -> tuple[FirebaseUploadBackend, MagicMock, MagicMock]:
    bucket = MagicMock()
    bucket.blob.return_value.public_url = "https://storage.googleapis.com/b/path.pdf"
    db = MagicMock()
    doc_ref = MagicMock()
    doc_ref.id = "doc-77"
    db.collection.return_value.add.return_value = (MagicMock(), doc_ref)
    backend = FirebaseUploadBackend(
        bucket=bucket, firestore_client=db, uploads_collection="uploads"
    )
    return backend, bucket, db


class TestFirebaseUpload:
    def test_uploads_blob_then_writes_metadata(
        self, make_item: Callable[..., DocumentItem]
    ) -> None:
        backend, bucket, db = _backend()
        item = make_item()

        uploaded = backend.upload(item.file, "dana@example.com", "intake/s1/main-id")

        blob_path = bucket.blob.call_args.args[0]
        assert blob_path.startswith("intake/s1/main-id/")
        assert blob_path.endswith("-passport.pdf")
        bucket.blob.return_value.upload_from_string.assert_called_once_with(
            item.file.content, content_type="application/pdf"
        )
        db.collection.assert_called_once_with("uploads")
        record = db.collection.return_value.add.call_args.args[0]
        assert record["originalName"] == "passport.pdf"
        assert record["uploadedBy"] == "dana@example.com"
        assert record["path"] == blob_path
        assert uploaded.remote_id == "doc-77"
        assert uploaded.download_url == "https://storage.googleapis.com/b/path.pdf"

    def test_storage_failure_raises_upload_error(
        self, make_item: Callable[..., DocumentItem]
    ) -> None:
        backend, bucket, db = _backend()
        bucket.blob.return_value.upload_from_string.side_effect = RuntimeError("403 Forbidden")

        with pytest.raises(UploadError, match="Storage upload failed"):
            backend.upload(make_item().file, "dana@example.com", "f")
        db.collection.assert_not_called()

    def test_metadata_failure_raises_upload_error(
        self, make_item: Callable[..., DocumentItem]
    ) -> None:
        backend, _bucket, db = _backend()
        db.collection.return_value.add.side_effect = RuntimeError("unavailable")

        with pytest.raises(UploadError, match="Metadata record failed"):
            backend.upload(make_item().file, "dana@example.com", "f")


class TestInitializeFirebaseApp:
    @patch("intake.uploads.firebase_adapter.firebase_admin")
    def test_reuses_existing_app(self, mock_admin: MagicMock) -> None:
        mock_admin._apps = {"[DEFAULT]": MagicMock()}
        initialize_firebase_app("proj", "proj.appspot.com")
        mock_admin.get_app.assert_called_once()
        mock_admin.initialize_app.assert_not_called()

    @patch("intake.uploads.firebase_adapter.credentials")
    @patch("intake.uploads.firebase_adapter.firebase_admin")
    def test_initializes_with_service_account(
        self, mock_admin: MagicMock, mock_credentials: MagicMock
    ) -> None:
        mock_admin._apps = {}
        initialize_firebase_app("proj", "proj.appspot.com", "/secrets/sa.json")
        mock_credentials.Certificate.assert_called_once_with("/secrets/sa.json")
        mock_admin.initialize_app.assert_called_once_with(
            mock_credentials.Certificate.return_value,
            {"projectId": "proj", "storageBucket": "proj.appspot.com"},
        )


def _snapshot(doc_id: str, record: dict | None) -> MagicMock:
    snapshot = MagicMock()
    snapshot.id = doc_id
    snapshot.exists = record is not None
    snapshot.to_dict.return_value = record
    return snapshot


UPLOAD_RECORD = {
    "fileName": "1700000000000-passport.pdf",
    "path": "intake/s1/main-id/1700000000000-passport.pdf",
    "downloadURL": "https://storage.googleapis.com/b/passport.pdf",
    "size": 42,
    "createdAt": "2026-03-01T10:00:00+00:00",
}


class TestFirebaseFileOperations:
    def test_get_file_info_reads_upload_record(self) -> None:
        backend, _bucket, db = _backend()
        document = db.collection.return_value.document
        document.return_value.get.return_value = _snapshot("doc-77", UPLOAD_RECORD)

        info = backend.get_file_info("doc-77", "dana@example.com")

        document.assert_called_once_with("doc-77")
        assert info.remote_id == "doc-77"
        assert info.file_name == "1700000000000-passport.pdf"
        assert info.size == 42

    def test_get_file_info_unknown_doc_raises(self) -> None:
        backend, _bucket, db = _backend()
        db.collection.return_value.document.return_value.get.return_value = _snapshot("x", None)
        with pytest.raises(UploadError, match="No such upload record"):
            backend.get_file_info("x", "dana@example.com")

    def test_list_files_newest_first_filtered_by_folder(self) -> None:
        backend, _bucket, db = _backend()
        query = db.collection.return_value.order_by.return_value.limit.return_value
        query.stream.return_value = [
            _snapshot("doc-77", UPLOAD_RECORD),
            _snapshot("doc-12", {**UPLOAD_RECORD, "path": "intake/s2/main-id/b.pdf"}),
        ]

        files = backend.list_files("dana@example.com", folder="intake/s1", limit=25)

        order_by = db.collection.return_value.order_by
        assert order_by.call_args.args == ("createdAt",)
        order_by.return_value.limit.assert_called_once_with(25)
        assert [f.remote_id for f in files] == ["doc-77"]

    def test_delete_file_removes_object_then_record(self) -> None:
        backend, bucket, db = _backend()
        snapshot = _snapshot("doc-77", UPLOAD_RECORD)
        db.collection.return_value.document.return_value.get.return_value = snapshot

        backend.delete_file("doc-77", "dana@example.com")

        bucket.blob.assert_called_once_with(UPLOAD_RECORD["path"])
        bucket.blob.return_value.delete.assert_called_once()
        snapshot.reference.delete.assert_called_once()

    def test_delete_storage_failure_keeps_record(self) -> None:
        backend, bucket, db = _backend()
        snapshot = _snapshot("doc-77", UPLOAD_RECORD)
        db.collection.return_value.document.return_value.get.return_value = snapshot
        bucket.blob.return_value.delete.side_effect = RuntimeError("403")

        with pytest.raises(UploadError, match="firebase delete of 'doc-77' failed"):
            backend.delete_file("doc-77", "dana@example.com")
        snapshot.reference.delete.assert_not_called()
