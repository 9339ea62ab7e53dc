"""Application configuration (settings and environment).

Single source of truth for all configuration. Uses pydantic-settings
with .env support. Firebase credentials and storage backend are
validated at load time.
"""

from functools import lru_cache

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resumable upload chunks must be multiples of 256 KiB (GCS requirement).
UPLOAD_CHUNK_ALIGNMENT = 256 * 1024


class Settings(BaseSettings):
    """Application settings loaded from environment and .env.

    All settings are optional with defaults; validate_firebase_and_storage
    checks the combinations that cannot work together.
    """

    # App
    app_name: str = "forms-library"
    app_version: str = "1.0.0"
    debug: bool = False

    # CORS
    allowed_origins: str = "http://localhost:3000,http://localhost:8080"

    # Firebase: use key (env, full JSON string) or path (JSON file).
    firebase_service_account_key: SecretStr | None = None
    firebase_service_account_path: str | None = None
    # Overrides project_id from the service account (and the auth audience).
    firebase_project_id: str | None = None
    firebase_storage_bucket: str | None = None

    # Storage: "firebase" (Firebase Storage / GCS) or "local" (filesystem, development)
    storage_backend: str = "local"
    storage_root: str = "/var/forms-library/storage"
    storage_base_url: str | None = None
    max_upload_size: int = 50 * 1024 * 1024  # 50MB
    upload_chunk_size: int = 1024 * 1024

    # Forms
    forms_page_size: int = 20
    forms_max_page_size: int = 100
    realtime_limit: int = 50
    realtime_poll_interval_seconds: float = 5.0
    recent_upload_days: int = 30

    # Auth: Firebase ID tokens; X-User-ID header accepted only when enabled (development).
    auth_allow_user_header: bool = False
    user_id_header_name: str = "X-User-ID"

    # Rate limits (slowapi syntax), per client address.
    rate_limit_uploads: str = "30/minute"
    rate_limit_writes: str = "120/minute"

    # Request bodies: multipart uploads get the larger limit (file plus form fields).
    request_max_body_size: int = 55 * 1024 * 1024
    request_max_json_body_size: int = 1024 * 1024

    # OpenTelemetry
    telemetry_enabled: bool = False
    telemetry_exporter: str = "console"
    telemetry_otlp_endpoint: str | None = None
    telemetry_sample_rate: float = 1.0
    telemetry_environment: str = "development"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_firebase_and_storage(self) -> "Settings":
        """Validate storage backend, chunk size and paging limits.

        - firebase storage: FIREBASE_STORAGE_BUCKET and service account required.
        - upload_chunk_size: positive multiple of 256 KiB.
        """
        if self.storage_backend == "firebase":
            if not self.firebase_storage_bucket:
                raise ValueError(
                    "FIREBASE_STORAGE_BUCKET is required when storage_backend is 'firebase'."
                )
            if not self.has_firebase_credentials:
                raise ValueError(
                    "When storage_backend is 'firebase', set FIREBASE_SERVICE_ACCOUNT_KEY (full JSON string) "
                    "or FIREBASE_SERVICE_ACCOUNT_PATH (path to JSON file)."
                )
        elif self.storage_backend != "local":
            raise ValueError(
                f"Invalid storage_backend '{self.storage_backend}'. "
                "Must be one of: 'local', 'firebase'"
            )
        if self.upload_chunk_size <= 0 or self.upload_chunk_size % UPLOAD_CHUNK_ALIGNMENT:
            raise ValueError(
                f"upload_chunk_size must be a positive multiple of {UPLOAD_CHUNK_ALIGNMENT} bytes"
            )
        if not 1 <= self.forms_page_size <= self.forms_max_page_size:
            raise ValueError("forms_page_size must be between 1 and forms_max_page_size")
        if self.realtime_poll_interval_seconds <= 0:
            raise ValueError("realtime_poll_interval_seconds must be positive")
        return self

    @property
    def has_firebase_credentials(self) -> bool:
        has_key = (
            self.firebase_service_account_key
            and self.firebase_service_account_key.get_secret_value()
        )
        return bool(has_key or self.firebase_service_account_path)


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings (single instance per process).

    Validation runs on first call, not at import time. In tests, call
    get_settings.cache_clear() before overriding env vars so the next
    get_settings() uses the new values.

    Returns:
        Loaded and validated Settings instance.
    """
    return Settings()
