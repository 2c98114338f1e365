from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnvironmentVariables(BaseSettings):
    """Simple primitive values loaded from environment variables and .env files."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
    )

    app_environment: Literal["development", "production", "test"] = Field(
        default="development"
    )
    app_config_file: str = Field(default="config.yaml")
    log_level: str = Field(default="INFO")

    database_url: str = Field(default="sqlite:///./database.db")
    member_directory_url: str | None = Field(default=None)
