"""Unified configuration management for the catalog service.

Settings are read from the environment once; provider clients are built
from the resulting object at startup.
"""

import os
from typing import Optional

from pydantic import BaseModel, validator

from .schemas import DatabaseConfig, LogConfig, ServiceConfig


class ServiceSettings(BaseModel):
    """Settings for the catalog service."""

    # ========================================================================
    # BASIC SETTINGS
    # ========================================================================
    log_level: str
    log_format: str
    debug: bool
    environment: str
    service_port: int = 8000

    # ========================================================================
    # DATABASE SETTINGS
    # ========================================================================
    database_url: Optional[str] = None

    # ========================================================================
    # GENERATIVE PROVIDER
    # ========================================================================
    openai_api_key: Optional[str] = None
    vision_model: str = "gpt-4o-mini"
    entry_model: str = "gpt-4o-mini"
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = 1536

    # ========================================================================
    # IMAGE STORAGE
    # ========================================================================
    cloudinary_cloud_name: Optional[str] = None
    cloudinary_api_key: Optional[str] = None
    cloudinary_api_secret: Optional[str] = None
    cloudinary_folder: str = "catalog"

    # ========================================================================
    # SPEECH SYNTHESIS
    # ========================================================================
    fakeyou_username: Optional[str] = None
    fakeyou_password: Optional[str] = None
    fakeyou_model_token: str = "weight_dh8zry5bgkfm0z6nv3anqa9y5"
    voice_timeout_seconds: float = 4.5

    # ========================================================================
    # PROCESSING SETTINGS
    # ========================================================================
    max_image_size_mb: int = 10
    service_request_timeout: Optional[int] = 30
    max_concurrent_requests: Optional[int] = 10

    @validator("log_level")
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()

    @validator("environment")
    def validate_environment(cls, v):
        """Validate environment."""
        valid_envs = ["development", "staging", "production"]
        if v.lower() not in valid_envs:
            raise ValueError(f"Environment must be one of {valid_envs}")
        return v.lower()

    @validator("voice_timeout_seconds")
    def validate_voice_timeout(cls, v):
        """The voice budget must stay well under the request ceiling."""
        if v <= 0 or v >= 30:
            raise ValueError("Voice timeout must be between 0 and 30 seconds")
        return v

    def get_log_config(self) -> LogConfig:
        """Get logging configuration."""
        return LogConfig(level=self.log_level, format=self.log_format)

    def get_service_config(self) -> ServiceConfig:
        """Get service configuration."""
        return ServiceConfig(
            port=self.service_port,
            timeout_seconds=self.service_request_timeout or 30,
            max_concurrent_requests=self.max_concurrent_requests or 10,
        )

    def get_database_config(self) -> DatabaseConfig:
        """Get database configuration."""
        if not self.database_url:
            raise ValueError("Database configuration not available")
        return DatabaseConfig(
            url=self.database_url,
            timeout_seconds=self.service_request_timeout or 30,
        )

    def configured_providers(self) -> dict[str, bool]:
        """Report which external providers have credentials configured."""
        return {
            "openai": bool(self.openai_api_key),
            "cloudinary": all([
                self.cloudinary_cloud_name,
                self.cloudinary_api_key,
                self.cloudinary_api_secret,
            ]),
            "fakeyou": bool(self.fakeyou_username and self.fakeyou_password),
            "database": bool(self.database_url),
        }


# ============================================================================
# SETTINGS LOADER
# ============================================================================

def get_settings() -> ServiceSettings:
    """Get service settings.

    Loads all environment variables once and caches the result.
    """
    if not hasattr(get_settings, "_instance"):
        def parse_bool(value: str) -> bool:
            return value.lower() in ("true", "1", "yes", "on")

        get_settings._instance = ServiceSettings(
            # Basic settings (required)
            log_level=os.environ["LOG_LEVEL"],
            log_format=os.environ["LOG_FORMAT"],
            debug=parse_bool(os.environ["DEBUG"]),
            environment=os.environ["ENVIRONMENT"],
            service_port=int(os.environ.get("SERVICE_PORT", "8000")),

            database_url=os.environ.get("DATABASE_URL"),

            # Generative provider
            openai_api_key=os.environ.get("OPENAI_API_KEY"),
            vision_model=os.environ.get("VISION_MODEL", "gpt-4o-mini"),
            entry_model=os.environ.get("ENTRY_MODEL", "gpt-4o-mini"),
            embedding_model=os.environ.get("EMBEDDING_MODEL", "text-embedding-3-small"),
            embedding_dimensions=int(os.environ.get("EMBEDDING_DIMENSIONS", "1536")),

            # Image storage
            cloudinary_cloud_name=os.environ.get("CLOUDINARY_CLOUD_NAME"),
            cloudinary_api_key=os.environ.get("CLOUDINARY_API_KEY"),
            cloudinary_api_secret=os.environ.get("CLOUDINARY_API_SECRET"),
            cloudinary_folder=os.environ.get("CLOUDINARY_FOLDER", "catalog"),

            # Speech synthesis
            fakeyou_username=os.environ.get("FAKEYOU_USERNAME"),
            fakeyou_password=os.environ.get("FAKEYOU_PASSWORD"),
            fakeyou_model_token=os.environ.get(
                "FAKEYOU_MODEL_TOKEN", "weight_dh8zry5bgkfm0z6nv3anqa9y5"
            ),
            voice_timeout_seconds=float(os.environ.get("VOICE_TIMEOUT_SECONDS", "4.5")),

            # Processing settings
            max_image_size_mb=int(os.environ.get("MAX_IMAGE_SIZE_MB", "10")),
            service_request_timeout=int(os.environ.get("SERVICE_REQUEST_TIMEOUT", "30")),
            max_concurrent_requests=int(os.environ.get("MAX_CONCURRENT_REQUESTS", "10")),
        )
    return get_settings._instance
