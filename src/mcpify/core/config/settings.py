"""
Application configuration management.

Handles loading configuration from environment variables and .env files so the
proxy can run as a 12-factor app (every CLI option has an environment fallback).
"""

import json
from typing import Annotated, Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode


class ApplicationSettings(BaseSettings):
    """Application configuration."""

    app_name: str = Field(default="mcpify", alias="APP_NAME")
    log_level: str = Field(default="WARNING", alias="LOG_LEVEL")
    log_file: str | None = Field(None, alias="LOG_FILE")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: Any) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v = str(v).upper()
        if v not in allowed:
            raise ValueError(f"LOG_LEVEL must be one of {allowed}")
        return str(v)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


class ProxySettings(BaseSettings):
    """OpenAPI-to-MCP proxy configuration."""

    spec: str | None = Field(
        None, alias="OPENAPI_SPEC_URL", description="Path or URL of the OpenAPI document"
    )
    base_url: str | None = Field(
        None, alias="BASE_URL", description="Overrides the server URL of the document"
    )

    # Transport settings (default to HTTP)
    transport: str = Field(default="http", alias="TRANSPORT")
    host: str = Field(default="127.0.0.1", alias="HOST")
    port: int = Field(default=8080, alias="PORT")
    path: str = Field(default="/mcp", alias="MCP_PATH")

    # Outbound request settings
    auth_headers: Annotated[dict[str, str], NoDecode] = Field(
        default_factory=dict, alias="AUTH_HEADERS"
    )
    request_timeout: float = Field(default=30.0, alias="REQUEST_TIMEOUT")
    verify_ssl: bool = Field(default=True, alias="VERIFY_SSL")
    proxy_url: str | None = Field(None, alias="HTTP_PROXY_URL")
    open_world: bool = Field(default=True, alias="OPEN_WORLD")

    @field_validator("transport")
    @classmethod
    def validate_transport(cls, v: Any) -> str:
        allowed = {"http", "stdio", "sse"}
        if str(v) not in allowed:
            raise ValueError(f"TRANSPORT must be one of {allowed}")
        return str(v)

    @field_validator("auth_headers", mode="before")
    @classmethod
    def parse_auth_headers(cls, v: Any) -> dict[str, str]:
        if v is None or v == "":
            return {}
        if isinstance(v, str):
            try:
                parsed = json.loads(v)
            except json.JSONDecodeError as e:
                raise ValueError(f"AUTH_HEADERS must be a JSON object: {e}") from e
            if not isinstance(parsed, dict):
                raise ValueError("AUTH_HEADERS must be a JSON object")
            v = parsed
        if isinstance(v, dict):
            return {str(k): str(val) for k, val in v.items()}
        return v  # type: ignore[no-any-return]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


class Settings(BaseSettings):
    """Main settings class that combines all configuration sections."""

    application: ApplicationSettings = Field(default_factory=ApplicationSettings)
    proxy: ProxySettings = Field(default_factory=ProxySettings)  # type: ignore[arg-type]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


def load_settings() -> Settings:
    """
    Load settings from environment variables and .env file.

    Returns:
        Settings: Configured settings instance
    """
    return Settings()


_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get cached settings instance (singleton pattern).

    Returns:
        Settings: Cached settings instance
    """
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
