"""Pydantic models for parsing the config.yaml configuration file.

This module contains Pydantic models that correspond to the structure of config.yaml.
These models handle validation and type conversion of the YAML configuration data.
"""

from __future__ import annotations

import os
from typing import Literal

from loguru import logger
from pydantic import BaseModel, Field, computed_field
from sqlalchemy.engine import make_url


class LoggingConfig(BaseModel):
    """Logging configuration model."""

    level: str = Field(default="INFO", description="Logging level")
    format: Literal["json", "plain"] = Field(default="json", description="Log format")
    file: str | None = Field(default="logs/app.log", description="Log file path")
    max_size_mb: int = Field(default=10, description="Maximum log file size in MB")
    backup_count: int = Field(
        default=5, description="Number of backup log files to keep"
    )


class DatabaseConfig(BaseModel):
    """Database configuration model."""

    url: str = Field(
        default="sqlite:///./database.db",
        description="Database connection URL",
    )
    pool_size: int = Field(default=20, description="Connection pool size")
    environment_mode: str = Field(
        default="development", description="Environment mode: development or production"
    )
    max_overflow: int = Field(default=10, description="Maximum pool overflow")
    pool_timeout: int = Field(default=30, description="Pool timeout in seconds")
    pool_recycle: int = Field(default=1800, description="Pool recycle time in seconds")
    statement_timeout_ms: int = Field(
        default=15000, description="Per-statement timeout applied by the driver"
    )
    password_env_var: str | None = Field(
        default=None,
        description="Environment variable name containing database password",
    )
    password_file: str | None = Field(
        default=None,
        description="Path to file containing database password",
    )

    @computed_field
    @property
    def password(self) -> str | None:
        """
        Get the database password from the appropriate source.
        1. In development or test mode, parse it from the URL if present
        2. In production mode, read it from the mounted secrets file given by
           `password_file` or the environment variable named by `password_env_var`
        """
        if self.environment_mode in ("development", "test"):
            return make_url(self.url).password
        if self.environment_mode == "production":
            if self.password_file:
                try:
                    with open(self.password_file) as f:
                        return f.read().strip()
                except OSError as e:
                    raise ValueError(
                        "Failed to read database password from file."
                    ) from e
            if self.password_env_var:
                password = os.getenv(self.password_env_var)
                if password:
                    return password
                raise ValueError(
                    f"Environment variable {self.password_env_var} not set"
                )
            if "sqlite" in self.url:
                return None
            raise ValueError(
                "In production mode, either password_file or password_env_var must be set"
            )
        raise ValueError(
            "Invalid environment_mode; must be 'development', 'production', or 'test'"
        )

    @computed_field
    @property
    def connection_string(self) -> str:
        """Construct the database connection string with the resolved password."""
        base_url = make_url(self.url)

        if base_url.password and self.environment_mode == "production":
            logger.warning(
                "Database URL contains a password in production mode; "
                "consider using a secrets file or environment variable."
            )

        resolved_password = self.password
        if resolved_password and resolved_password != base_url.password:
            base_url = base_url.set(password=resolved_password)

        # Render manually to avoid SQLAlchemy's password masking
        return base_url.render_as_string(hide_password=False)


class MemberDirectoryConfig(BaseModel):
    """External member directory (CRM lookup) configuration."""

    url: str = Field(
        default="http://member-service:8081/api",
        description="Base URL of the member directory API",
    )
    timeout_seconds: float = Field(
        default=5.0, description="Request-scoped timeout for existence lookups"
    )
    api_token: str | None = Field(
        default=None, description="Bearer token sent to the member directory"
    )


class UploadConfig(BaseModel):
    """Bulk CSV upload configuration."""

    authority_delimiter: str = Field(
        default="|", description="Separator between authorities in one CSV cell"
    )
    encoding: str = Field(default="utf-8-sig", description="Encoding of uploaded files")
    max_reason_length: int = Field(
        default=200, description="Truncate infrastructure error reasons to this length"
    )


class AppConfig(BaseModel):
    """Application configuration model."""

    environment: Literal["development", "production", "test"] = Field(
        default="development", description="Application environment"
    )
    name: str = Field(default="userService", description="Application name")
    host: str = Field(default="localhost", description="Application host")
    port: int = Field(default=8000, description="Application port")
    actor_header: str = Field(
        default="X-Authenticated-User",
        description="Header carrying the login of the caller, set by the gateway",
    )
    authorities_header: str = Field(
        default="X-Authenticated-Authorities",
        description="Header carrying the caller's comma-separated authorities",
    )

    @property
    def base_url(self) -> str:
        """Construct the base URL from host and port."""
        scheme = "https" if self.environment == "production" else "http"
        return f"{scheme}://{self.host}:{self.port}"


class ConfigData(BaseModel):
    """Root configuration model that matches the config.yaml structure."""

    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    database: DatabaseConfig = Field(
        default_factory=DatabaseConfig, description="Database configuration"
    )
    member_directory: MemberDirectoryConfig = Field(
        default_factory=MemberDirectoryConfig,
        description="Member directory configuration",
    )
    upload: UploadConfig = Field(
        default_factory=UploadConfig, description="CSV upload configuration"
    )
    app: AppConfig = Field(
        default_factory=AppConfig, description="Application configuration"
    )
