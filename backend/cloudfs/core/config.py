"""
Application configuration management using Pydantic Settings.

Every value can be set through the environment (or a ``.env`` file) under the
upper-case alias shown next to it.
"""
from functools import lru_cache
from typing import Any, Dict, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MiB = 1024 * 1024


class Settings(BaseSettings):
    """Settings of the file storage service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Service
    app_name: str = Field(default="Cloud File Storage", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    app_description: str = Field(
        default="Per-user folders and files on top of an S3-compatible object store",
        alias="APP_DESCRIPTION"
    )
    environment: Literal["development", "staging", "production"] = Field(
        default="production", alias="ENVIRONMENT"
    )
    debug: bool = Field(default=False, alias="DEBUG")
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    allowed_origins: list[str] = Field(default=["http://localhost:3000"], alias="ALLOWED_ORIGINS")

    # Header carrying the id of the user the gateway already authenticated
    user_id_header: str = Field(default="X-User-Id", alias="USER_ID_HEADER")

    # Object store shared by all users
    storage_provider: Literal["minio", "s3"] = Field(default="minio", alias="STORAGE_PROVIDER")
    storage_bucket_name: str = Field(default="user-files", alias="STORAGE_BUCKET_NAME")
    storage_call_timeout_seconds: float = Field(default=30.0, ge=0, alias="STORAGE_CALL_TIMEOUT_SECONDS")
    storage_upload_part_size: int = Field(default=10 * MiB, ge=5 * MiB, alias="STORAGE_UPLOAD_PART_SIZE")
    storage_stream_chunk_size: int = Field(default=64 * 1024, gt=0, alias="STORAGE_STREAM_CHUNK_SIZE")
    storage_max_file_size: int = Field(default=100 * MiB, gt=0, alias="STORAGE_MAX_FILE_SIZE")

    # MinIO
    minio_endpoint: str = Field(default="localhost:9000", alias="MINIO_ENDPOINT")
    minio_access_key: str = Field(default="minioadmin", alias="MINIO_ACCESS_KEY")
    minio_secret_key: str = Field(default="minioadmin", alias="MINIO_SECRET_KEY")
    minio_secure: bool = Field(default=False, alias="MINIO_SECURE")
    minio_region: Optional[str] = Field(default=None, alias="MINIO_REGION")

    # AWS S3 or any S3-compatible endpoint
    aws_access_key_id: Optional[str] = Field(default=None, alias="AWS_ACCESS_KEY_ID")
    aws_secret_access_key: Optional[str] = Field(default=None, alias="AWS_SECRET_ACCESS_KEY")
    aws_region: str = Field(default="us-east-1", alias="AWS_REGION")
    s3_endpoint_url: Optional[str] = Field(default=None, alias="S3_ENDPOINT_URL")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: Literal["json", "console"] = Field(default="json", alias="LOG_FORMAT")

    @field_validator("environment", "storage_provider", "log_format", mode="before")
    @classmethod
    def lower_case_choice(cls, v):
        return v.lower() if isinstance(v, str) else v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def storage_driver_options(self) -> Dict[str, Any]:
        """Options shared by every storage driver; a zero timeout disables it."""
        return {
            "call_timeout": self.storage_call_timeout_seconds or None,
            "upload_part_size": self.storage_upload_part_size,
            "stream_chunk_size": self.storage_stream_chunk_size,
        }


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()


# Global settings instance
settings = get_settings()
