"""
Configuration management for the Pollution Report API
Uses Pydantic Settings for environment-based configuration
"""

from typing import List, Optional, Literal
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Application settings
    app_name: str = "Pollution Report API"
    app_version: str = "1.0.0"
    debug: bool = False

    # Server settings
    host: str = "0.0.0.0"
    port: int = 8080

    # Submission settings
    max_files: int = Field(default=3, ge=1)
    upload_mode: Literal["parallel", "sequential"] = "parallel"
    upload_path_prefix: str = "reports"

    # Image normalization (target byte band and width)
    image_max_width: int = Field(default=1280, ge=1)
    image_target_min_kb: int = Field(default=200, ge=0)
    image_target_max_kb: int = Field(default=400, ge=1)
    report_image_max_size_mb: int = Field(default=10, ge=1)

    # Listing and analytics
    report_page_limit: int = Field(default=50, ge=1)
    analytics_days: int = Field(default=7, ge=1)

    # Geocoding (cosmetic location text only)
    geocoding_enabled: bool = True
    geocoding_user_agent: str = "pollution-report-api"

    # CORS settings
    cors_origins: List[str] = ["*"]
    cors_methods: List[str] = ["*"]
    cors_headers: List[str] = ["*"]

    # Redis settings for document storage
    redis_url: Optional[str] = None
    redis_host: Optional[str] = None
    redis_port: int = 6379
    redis_username: Optional[str] = "default"
    redis_password: Optional[str] = None
    redis_db: int = 0

    # Cloudinary settings for image storage
    cloudinary_cloud_name: Optional[str] = None
    cloudinary_api_key: Optional[str] = None
    cloudinary_api_secret: Optional[str] = None

    # Deployment settings
    environment: str = "development"

    # Logging settings
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
    )

    @property
    def image_target_min_bytes(self) -> int:
        return self.image_target_min_kb * 1024

    @property
    def image_target_max_bytes(self) -> int:
        return self.image_target_max_kb * 1024

    @property
    def report_image_max_bytes(self) -> int:
        return self.report_image_max_size_mb * 1024 * 1024


# Global settings instance
settings = Settings()
