"""
Configuration management using Pydantic Settings.

All configuration values are loaded from environment variables
with sensible defaults where appropriate.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Project root (where the .env file is located)
ROOT_DIR = Path(__file__).resolve().parent.parent.parent
ENV_FILE = ROOT_DIR / ".env"

# Load .env into environment for nested settings models
load_dotenv(ENV_FILE)


class AppSettings(BaseSettings):
    """Application-level configuration."""

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_env: Literal["development", "staging", "production"] = "development"
    app_name: str = "report-hub"
    app_version: str = "0.1.0"
    app_debug: bool = False


class DatabaseSettings(BaseSettings):
    """Database configuration."""

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_prefix="DB_",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    url: str = "sqlite:///./report_hub.db"
    pool_size: int = 20
    max_overflow: int = 10
    echo: bool = False

    @property
    def is_sqlite(self) -> bool:
        """SQLite does not take pool sizing arguments."""
        return self.url.startswith("sqlite")


class LogSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_prefix="LOG_",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    level: str = "INFO"
    format: Literal["json", "text"] = "json"


class ReportSettings(BaseSettings):
    """Report import and retention configuration."""

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_prefix="REPORTS_",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    import_patterns: str = "*.yaml,*.yml"
    retention_days: int = Field(default=30, ge=1)

    @field_validator("import_patterns")
    @classmethod
    def validate_import_patterns(cls, v: str) -> str:
        """At least one glob pattern is required for directory imports."""
        if not any(p.strip() for p in v.split(",")):
            raise ValueError("REPORTS_IMPORT_PATTERNS must name at least one glob pattern")
        return v

    @property
    def import_patterns_list(self) -> list[str]:
        """Parse import glob patterns into a list."""
        return [p.strip() for p in self.import_patterns.split(",") if p.strip()]


class Settings(BaseSettings):
    """Main settings class that aggregates all configuration sections."""

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app: AppSettings = Field(default_factory=AppSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    log: LogSettings = Field(default_factory=LogSettings)
    reports: ReportSettings = Field(default_factory=ReportSettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
