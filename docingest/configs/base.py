"""
Base configuration settings.

Shared `.env` handling plus the service-level knobs read by the API entry
point: environment name, log level, bind address and CORS origins.

Dependencies: pydantic_settings
System role: Foundation for all configuration classes
"""

from pydantic import Field
from pydantic_settings import BaseSettings as PydanticBaseSettings, SettingsConfigDict


class BaseSettings(PydanticBaseSettings):
    """Service settings shared by the API process and workers."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    environment: str = Field(default="development", description="Deployment environment name")
    log_level: str = Field(default="INFO", description="Root log level for docingest loggers")
    api_host: str = Field(default="0.0.0.0", description="Interface uvicorn binds to")
    api_port: int = Field(default=8000, ge=1, le=65535, description="Port uvicorn listens on")
    cors_origins: list[str] = Field(
        default=["*"],
        description="Origins allowed to call the HTTP API",
    )
