from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "portfolio-content-api"
    environment: str = "dev"
    data_dir: str = "data"
    uploads_dir: str = "uploads"
    credly_base_url: str = "https://www.credly.com"
    credly_badge_url_base: str = "https://www.credly.com/badges"
    credly_username: str = "joyson-fernandes"
    certifications_cache_ttl_minutes: float = 60.0
    upstream_response_cache_ttl_minutes: float = 5.0
    upstream_timeout_seconds: float = 10.0
    feed_url: str | None = None
    admin_token: str | None = None
    cron_secret: str | None = None
    certifications_webhook_token: str | None = None
    experience_sync_token: str | None = None
    upload_max_bytes: int = 5 * 1024 * 1024
    upload_allowed_types: list[str] = ["image/jpeg", "image/jpg", "image/png", "image/webp"]
    default_profile_picture_url: str = "/static/profile-default.png"
    otel_enabled: bool = True
    otel_service_name: str = "portfolio-content-api"
    otel_exporter_otlp_endpoint: str | None = None
    otel_exporter_otlp_headers: str | None = None
    otel_trace_sample_ratio: float = 1.0
    otel_log_correlation: bool = True

    model_config = SettingsConfigDict(env_prefix="PF_", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()


class WorkerSettings(BaseSettings):
    environment: str = "dev"
    api_base_url: str = "http://localhost:8000"
    cron_secret: str | None = None
    request_timeout_seconds: float = 30.0
    certifications_refresh_interval_seconds: float = 3600.0
    projects_refresh_interval_seconds: float = 6 * 3600.0
    poll_interval_seconds: float = 30.0
    max_backoff_seconds: float = 900.0
    otel_enabled: bool = True
    otel_service_name: str = "portfolio-refresh-worker"
    otel_exporter_otlp_endpoint: str | None = None
    otel_exporter_otlp_headers: str | None = None
    otel_trace_sample_ratio: float = 1.0
    otel_log_correlation: bool = True

    model_config = SettingsConfigDict(env_prefix="PF_WORKER_", extra="ignore")


@lru_cache
def get_worker_settings() -> WorkerSettings:
    return WorkerSettings()
