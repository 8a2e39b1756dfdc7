"""Configuration management using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Credential fields accept the unprefixed variable names used by common
    OSS deployments (``OSS_ACCESS_KEY_ID``, ``ACCESS_KEY_ID``...). Everything
    else is read with the ``OSSPRESIGN_`` prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="OSSPRESIGN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Default credentials and target
    access_key_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("OSS_ACCESS_KEY_ID", "ACCESS_KEY_ID", "ACCESSKEYID"),
        description="Access key id used when a request does not carry one",
    )
    access_key_secret: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "OSS_ACCESS_KEY_SECRET", "ACCESS_KEY_SECRET", "ACCESSSECRET"
        ),
        description="Access key secret used when a request does not carry one",
    )
    bucket: str | None = Field(
        default=None,
        validation_alias=AliasChoices("OSS_BUCKET", "BUCKET"),
        description="Default bucket name",
    )
    region: str | None = Field(
        default=None,
        validation_alias=AliasChoices("OSS_REGION", "REGION"),
        description="Default region code (e.g. oss-cn-hangzhou)",
    )
    endpoint: str | None = Field(
        default=None,
        validation_alias=AliasChoices("OSS_ENDPOINT", "ENDPOINT"),
        description="Fully-qualified endpoint override (e.g. https://cdn.example.com)",
    )
    security_token: str | None = Field(
        default=None,
        validation_alias=AliasChoices("OSS_STS_TOKEN", "STS_TOKEN"),
        description="Short-lived STS security token",
    )
    cloud_box_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("OSS_CLOUDBOX_ID", "CLOUD_BOX_ID", "CLOUDBOXID"),
        description="Cloud box id (signs with the oss-cloudbox product)",
    )

    # Signing
    default_expires: int = Field(
        default=3600,
        description="Expiry in seconds applied by the HTTP entrypoint when none is given",
    )
    hash_provider: Literal["hashlib", "cryptography"] = Field(
        default="hashlib",
        description="Backend supplying SHA-256 and HMAC-SHA256",
    )

    # Service
    service_host: str = Field(
        default="0.0.0.0",
        description="Host for the signing HTTP server",
    )
    service_port: int = Field(
        default=8080,
        description="Port for the signing HTTP server",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Minimum log level",
    )
    log_json: bool = Field(
        default=False,
        description="Render logs as JSON lines instead of console output",
    )

    # Tracing
    tracing_enabled: bool = Field(
        default=False,
        description="Enable OpenTelemetry tracing",
    )
    tracing_otlp_endpoint: str | None = Field(
        default=None,
        description="OTLP collector endpoint (e.g. http://localhost:4317)",
    )
    tracing_console: bool = Field(
        default=False,
        description="Emit traces to console (debug only)",
    )
    tracing_service_name: str | None = Field(
        default=None,
        description="Service name for tracing (defaults to osspresign)",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
