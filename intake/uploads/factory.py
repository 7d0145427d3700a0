from collections.abc import Callable
from typing import ClassVar

from intake.config.settings import Settings
from intake.submission.exceptions import ConfigurationError, FailureReason
from intake.uploads.base import BaseUploadBackend
from intake.uploads.firebase_adapter import FirebaseUploadBackend, initialize_firebase_app
from intake.uploads.gcs_adapter import GcsUploadBackend, build_gcs_client
from intake.uploads.google_drive_adapter import GoogleDriveUploadBackend
from intake.uploads.onedrive_adapter import OneDriveUploadBackend
from intake.uploads.tokens import (
    BaseTokenProvider,
    ClientCredentialsTokenProvider,
    ProxyTokenProvider,
    StaticTokenProvider,
)


class UploadBackendFactory:
    """Creates the configured upload backend. Selection happens once, here."""

    BACKENDS: ClassVar[tuple[str, ...]] = ("onedrive", "google_drive", "firebase", "gcs")

    @classmethod
    def create(cls, settings: Settings) -> BaseUploadBackend:
        backend = settings.upload_backend.lower()
        builders: dict[str, Callable[[Settings], BaseUploadBackend]] = {
            "onedrive": cls._create_onedrive,
            "google_drive": cls._create_google_drive,
            "firebase": cls._create_firebase,
            "gcs": cls._create_gcs,
        }
        builder = builders.get(backend)
        if builder is None:
            raise ValueError(
                f"Unknown upload backend '{backend}'. Choose from: {list(cls.BACKENDS)}"
            )
        return builder(settings)

    @classmethod
    def _create_onedrive(cls, settings: Settings) -> BaseUploadBackend:
        return OneDriveUploadBackend(
            token_provider=cls._onedrive_token_provider(settings),
            graph_base_url=settings.onedrive_graph_base_url,
            timeout_seconds=settings.webhook_timeout_ms / 1000,
        )

    @classmethod
    def _onedrive_token_provider(cls, settings: Settings) -> BaseTokenProvider:
        if settings.onedrive_token_proxy_url:
            return ProxyTokenProvider(settings.onedrive_token_proxy_url, backend="onedrive")
        _require(
            "onedrive",
            onedrive_tenant_id=settings.onedrive_tenant_id,
            onedrive_client_id=settings.onedrive_client_id,
            onedrive_client_secret=settings.onedrive_client_secret,
        )
        return ClientCredentialsTokenProvider(
            tenant_id=settings.onedrive_tenant_id,
            client_id=settings.onedrive_client_id,
            client_secret=settings.onedrive_client_secret,
        )

    @classmethod
    def _create_google_drive(cls, settings: Settings) -> BaseUploadBackend:
        _require("google_drive", google_drive_access_token=settings.google_drive_access_token)
        return GoogleDriveUploadBackend(
            token_provider=StaticTokenProvider(
                settings.google_drive_access_token, backend="google_drive"
            ),
            api_key=settings.google_drive_api_key,
            parent_folder_id=settings.google_drive_parent_folder_id,
            timeout_seconds=settings.webhook_timeout_ms / 1000,
        )

    @classmethod
    def _create_firebase(cls, settings: Settings) -> BaseUploadBackend:
        _require(
            "firebase",
            firebase_project_id=settings.firebase_project_id,
            firebase_storage_bucket=settings.firebase_storage_bucket,
        )
        app = initialize_firebase_app(
            settings.firebase_project_id,
            settings.firebase_storage_bucket,
            settings.firebase_credentials_path,
        )
        return FirebaseUploadBackend.from_app(app, settings.firebase_uploads_collection)

    @classmethod
    def _create_gcs(cls, settings: Settings) -> BaseUploadBackend:
        _require("gcs", gcs_bucket=settings.gcs_bucket)
        return GcsUploadBackend(
            client=build_gcs_client(settings.gcs_project_id, settings.gcs_credentials_path),
            bucket_name=settings.gcs_bucket,
            signed_url_days=settings.gcs_signed_url_days,
        )


def _require(backend: str, **values: str) -> None:
    missing = [name for name, value in values.items() if not value]
    if missing:
        raise ConfigurationError(
            FailureReason.BACKEND_CREDENTIALS_MISSING,
            f"Upload backend '{backend}' requires settings: {', '.join(missing)}",
        )
