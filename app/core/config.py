from functools import lru_cache
from typing import Any, List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_DEFAULT_CORS = ["http://localhost:3000"]


def _parse_cors_origins(v: Any) -> List[str]:
    try:
        if v is None or v == "":
            return _DEFAULT_CORS.copy()
        if isinstance(v, list):
            return [x for x in v if isinstance(x, str) and x.strip()]
        s = str(v).strip()
        if not s:
            return _DEFAULT_CORS.copy()
        if s.startswith("["):
            import json
            out = json.loads(s)
            return [x for x in out if isinstance(x, str) and x.strip()] or _DEFAULT_CORS.copy()
        return [x.strip() for x in s.split(",") if x.strip()] or _DEFAULT_CORS.copy()
    except Exception:
        return _DEFAULT_CORS.copy()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # App
    env: str = Field(default="production", description="ENV")
    debug: bool = Field(default=False, description="DEBUG")
    secret_key: str = Field(default="change-me-in-production-min-32-chars")
    public_base_url: str = Field(default="http://localhost:3000", alias="PUBLIC_BASE_URL")

    # MongoDB
    mongodb_uri: str = Field(default="mongodb://localhost:27017", alias="MONGODB_URI")
    mongodb_db_name: str = Field(default="healthclub", alias="MONGODB_DB_NAME")

    # Redis (arq worker)
    redis_url: str = Field(default="redis://localhost:6379/0", alias="REDIS_URL")

    # Auth
    admin_secret_key: str = Field(default="", alias="ADMIN_SECRET_KEY")
    app_api_key: str = Field(default="", alias="APP_API_KEY")
    cron_secret: str = Field(default="", alias="CRON_SECRET")

    # Firebase Cloud Messaging
    firebase_project_id: str | None = Field(default=None, alias="FIREBASE_PROJECT_ID")
    firebase_service_account_path: str | None = Field(default=None, alias="FIREBASE_SERVICE_ACCOUNT_PATH")
    firebase_service_account_json: str | None = Field(default=None, alias="FIREBASE_SERVICE_ACCOUNT_JSON")

    # Sentry
    sentry_dsn: str | None = Field(default=None, alias="SENTRY_DSN")

    # CORS: env as string, exposed as list
    cors_origins_raw: str = Field(
        default="http://localhost:3000",
        alias="CORS_ORIGINS",
        description="Comma-separated or JSON list",
    )

    @property
    def cors_origins(self) -> List[str]:
        return _parse_cors_origins(getattr(self, "cors_origins_raw", None))

    @property
    def is_development(self) -> bool:
        return self.env.lower() == "development"

    # Notification dispatch
    notification_batch_size: int = Field(default=5, alias="NOTIFICATION_BATCH_SIZE")
    notification_max_errors: int = Field(default=10, alias="NOTIFICATION_MAX_ERRORS")
    push_send_timeout_seconds: float = Field(default=10.0, alias="PUSH_SEND_TIMEOUT_SECONDS")
    recipient_directory_timeout_seconds: float = Field(default=30.0, alias="RECIPIENT_DIRECTORY_TIMEOUT_SECONDS")
    stall_threshold_minutes: int = Field(default=5, alias="STALL_THRESHOLD_MINUTES")

    # Push log retention
    push_log_retention_days: int = Field(default=90, alias="PUSH_LOG_RETENTION_DAYS")
    push_log_cleanup_hour: int = Field(default=3, alias="PUSH_LOG_CLEANUP_HOUR")


@lru_cache
def get_settings() -> Settings:
    return Settings()
