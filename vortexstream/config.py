"""Configuration management for VortexStream."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_prefix="VS_", extra="ignore")

    # Token signing and encryption keys
    access_token_secret: str
    refresh_token_secret: str
    token_enc_key: str

    access_token_ttl_seconds: int = 86400  # 1 day
    refresh_token_ttl_seconds: int = 864000  # 10 days

    # Database
    database_url: str = "sqlite+aiosqlite:///./dev.db"
    create_tables_on_startup: bool = True

    # Media host (Cloudinary)
    cloudinary_cloud_name: str = Field(default="")
    cloudinary_api_key: str = Field(default="")
    cloudinary_api_secret: str = Field(default="")
    media_timeout_seconds: float = 120.0

    # Upload staging
    upload_temp_dir: str = Field(default="./public/temp")
    max_image_bytes: int = 5 * 1024 * 1024
    max_video_bytes: int = 200 * 1024 * 1024

    # Pagination
    page_size_default: int = 10
    page_size_max: int = 100

    # CORS
    frontend_origin: str = "http://localhost:5173"

    # Environment
    env: str = Field(default="dev", pattern="^(dev|prod)$")


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get cached settings instance (singleton pattern)."""
    global _settings
    if _settings is None:
        _settings = Settings()  # type: ignore[call-arg]
    return _settings
