from collections.abc import Callable

import pytest

from intake.config.settings import Settings
from intake.uploads.models import DocumentCategory, DocumentItem, StagedFile
from upload_fakes import FakeUploadBackend

PDF = "application/pdf"


@pytest.fixture()
def pdf_bytes() -> bytes:
    return b"%PDF-1.4\n1 0 obj\n<<>>\nendobj\ntrailer\n<<>>\n%%EOF\n"


@pytest.fixture()
def make_item(pdf_bytes: bytes) -> Callable[..., DocumentItem]:
    def _make(
        name: str = "passport.pdf",
        role: str = "owner",
        category: DocumentCategory = DocumentCategory.MAIN_ID,
        media_type: str = PDF,
        content: bytes | None = None,
    ) -> DocumentItem:
        return DocumentItem(
            file=StagedFile.from_bytes(
                name, pdf_bytes if content is None else content, media_type
            ),
            role=role,
            category=category,
        )

    return _make


@pytest.fixture()
def fake_backend() -> FakeUploadBackend:
    return FakeUploadBackend()


@pytest.fixture()
def failing_backend() -> Callable[[set[str]], FakeUploadBackend]:
    return FakeUploadBackend


@pytest.fixture()
def submission_settings() -> Settings:
    return Settings(
        webhook_url="https://hook.example/intake",
        webhook_api_key="key-1234567890",
        user_email="dana@example.com",
        upload_backend="onedrive",
        onedrive_token_proxy_url="http://localhost:3001/token",
    )
