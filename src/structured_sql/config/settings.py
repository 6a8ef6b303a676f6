"""
Configuration management for structured-sql.

This module provides environment-based configuration using Pydantic BaseSettings,
so connection parameters and logging options can be supplied through
environment variables or a .env file instead of being hard-coded by callers.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Determine project root for resolving .env by default
PROJECT_ROOT = Path(__file__).resolve().parents[3]
DEFAULT_ENV_FILE = PROJECT_ROOT / ".env"
ENV_FILE_OVERRIDE = os.getenv("STRUCTURED_SQL_ENV_FILE")
if ENV_FILE_OVERRIDE:
    env_file_candidate = Path(ENV_FILE_OVERRIDE).expanduser()
    if not env_file_candidate.is_absolute():
        env_file_candidate = PROJECT_ROOT / env_file_candidate
    SETTINGS_ENV_FILE = env_file_candidate
else:
    SETTINGS_ENV_FILE = DEFAULT_ENV_FILE


class Settings(BaseSettings):
    """
    Application settings with environment variable support.

    Environment variables are automatically loaded with the STRUCTURED_SQL_
    prefix. For example, STRUCTURED_SQL_DRIVER=pgsql selects the PostgreSQL
    driver for Db.from_settings().

    Logging fields (no prefix, uppercase names):
    - LOG_LEVEL: Logging level (uppercase)
    - LOG_TO_FILE: Enable file logging
    - LOG_FILE_DIR: Directory for log files
    """

    LOG_LEVEL: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Logging level (uppercase)",
    )
    LOG_TO_FILE: bool = Field(
        default=False,
        validation_alias="LOG_TO_FILE",
        description="Also write logs to a daily rotating file",
    )
    LOG_FILE_DIR: str = Field(
        default="logs",
        validation_alias="LOG_FILE_DIR",
        description="Directory for log files",
    )

    driver: str = Field(default="sqlite", description="Driver registry key")
    dsn: Optional[str] = Field(
        default=None,
        description="Complete connection string (overrides individual parameters)",
    )
    host: Optional[str] = Field(default=None, description="Database host")
    port: Optional[int] = Field(default=None, description="Database port")
    user: Optional[str] = Field(default=None, description="Database user")
    password: Optional[str] = Field(default=None, description="Database password")
    dbname: Optional[str] = Field(default=None, description="Database name")
    charset: Optional[str] = Field(default=None, description="Connection charset")

    @field_validator("driver")
    @classmethod
    def normalize_driver(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.strip().upper()

    def get_connection_params(self) -> Dict[str, Any]:
        """
        Build the params mapping accepted by structured_sql.io.connectors.connect.

        Unset values are dropped so driver defaults from the registry apply.

        Returns:
            Dictionary with at least the "driver" key
        """
        params: Dict[str, Any] = {
            "driver": self.driver,
            "dsn": self.dsn,
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "password": self.password,
            "dbname": self.dbname,
            "charset": self.charset,
        }
        return {key: value for key, value in params.items() if value is not None}

    model_config = SettingsConfigDict(
        env_prefix="STRUCTURED_SQL_",
        env_file=str(SETTINGS_ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance with loaded configuration
    """
    return Settings()
