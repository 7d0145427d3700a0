from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", frozen=True)

    app_env: str = "dev"
    log_level: str = "INFO"

    webhook_url: str = ""
    webhook_api_key: str = ""
    webhook_timeout_ms: int = 300_000

    upload_backend: str = "onedrive"
    max_file_size_bytes: int = 10 * 1024 * 1024
    accepted_media_types: list[str] = ["application/pdf"]
    storage_base_folder: str = "intake-sessions"

    user_email: str = ""

    onedrive_tenant_id: str = ""
    onedrive_client_id: str = ""
    onedrive_client_secret: str = ""
    onedrive_token_proxy_url: str = ""
    onedrive_graph_base_url: str = "https://graph.microsoft.com/v1.0"

    google_drive_access_token: str = ""
    google_drive_api_key: str = ""
    google_drive_parent_folder_id: str = ""

    firebase_project_id: str = ""
    firebase_storage_bucket: str = ""
    firebase_credentials_path: str = ""
    firebase_uploads_collection: str = "uploads"

    gcs_project_id: str = ""
    gcs_bucket: str = ""
    gcs_credentials_path: str = ""
    gcs_signed_url_days: int = 14

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "intake"
    db_username: str = "intake"
    db_password: str = "secret"

    identity_table: str = "table_id"
    certificate_table: str = "HR_cert_id"
