from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Optional, List


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="APP_",
        case_sensitive=False,
        extra="ignore",
    )

    # App settings
    debug: bool = False
    app_name: str = "Wayfarer"
    cors_allowed_origins: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    # Database settings
    database_url: str = "sqlite+aiosqlite:///./wayfarer.db"

    # JWT settings
    jwt_secret_key: str = "your-jwt-secret-key-change-in-production"
    jwt_algorithm: str = "HS256"
    # 1 day = 24 * 60 = 1,440 minutes
    jwt_expiry_minutes: int = 1440

    # Storage settings
    storage_backend: str = "local"  # "local" or "s3"
    media_root: str = "media"
    # Base URL for local storage URLs
    local_base_url: str = "http://localhost:8000"
    s3_bucket: Optional[str] = None
    s3_region: Optional[str] = None
    s3_endpoint_url: Optional[str] = None
    s3_access_key_id: Optional[str] = None
    s3_secret_access_key: Optional[str] = None
    s3_public_base_url: Optional[str] = None
    s3_use_path_style: bool = False

    # Upload limits (MB)
    photo_max_mb: int = 10
    max_review_images: int = 5

    # Social login (a provider is enabled once its client id is set)
    google_client_id: Optional[str] = None
    facebook_app_id: Optional[str] = None
    apple_client_id: Optional[str] = None

    # Timeouts
    http_timeout_seconds: int = 30

    # Recommendations
    recommended_min_rating: float = Field(default=4.0, ge=1, le=5)
    recommended_limit: int = Field(default=5, ge=1)

    # Rate limiting (per client IP, sliding window; disabled by default)
    rate_limit_enabled: bool = False
    rate_limit_requests: int = 100
    rate_limit_window_seconds: int = 15 * 60

    # Metrics
    metrics_token: Optional[str] = None

    # Logging
    log_sample_rate: float = 0.1


settings = Settings()
