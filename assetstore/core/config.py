"""Application configuration using Pydantic Settings."""

import os
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Service settings with environment variable support.

    The ``AWS_S3_*`` values are not read directly by the file provider; they
    are exposed under their ``aws.s3.*`` property names through
    ``SettingsPropertySource`` so a host application can swap in its own
    property source instead.
    """

    # Service Identity
    SERVICE_NAME: str = "assetstore"
    VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"  # development, staging, production

    # Logging Configuration
    LOG_LEVEL: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    LOG_JSON: bool = True    # JSON logs (prod) vs pretty console (dev)
    DEBUG: bool = False

    # Local cache for downloaded objects
    LOCAL_CACHE_PATH: str = os.path.join(os.getcwd(), "filecache")

    # Amazon S3 properties (aws.s3.*)
    AWS_S3_SECRET_KEY: Optional[str] = None
    AWS_S3_ACCESS_KEY_ID: Optional[str] = None
    AWS_S3_DEFAULT_BUCKET_NAME: Optional[str] = None
    AWS_S3_DEFAULT_BUCKET_REGION: Optional[str] = None
    AWS_S3_ENDPOINT_URI: Optional[str] = None
    AWS_S3_BUCKET_SUB_DIRECTORY: Optional[str] = None
    AWS_S3_STATIC_ASSET_FILE_EXTENSION_PATTERN: Optional[str] = None
    AWS_S3_VERSION_SUB_DIRECTORY: Optional[str] = None

    @field_validator('LOG_LEVEL')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure LOG_LEVEL names a standard logging level."""
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"LOG_LEVEL must be a standard logging level, got '{v}'")
        return level

    @property
    def is_debug_mode(self) -> bool:
        """Check if the service is in debug mode."""
        return self.DEBUG or self.LOG_LEVEL == "DEBUG"

    @property
    def use_json_logs(self) -> bool:
        """Determine if JSON logging should be used.

        In production, always use JSON logs.
        In development, allow override via LOG_JSON setting.
        """
        if self.ENVIRONMENT == "production":
            return True
        if self.DEBUG:
            return self.LOG_JSON
        return True

    class Config:
        """Pydantic configuration."""
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
