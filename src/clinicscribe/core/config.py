"""
Configuration management for Clinic Scribe.

This module provides centralized configuration using Pydantic Settings
for environment-based configuration management.
"""

import json
import os
from pathlib import Path
from typing import List, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import SUPPORTED_LANGUAGE_CODES
from .exceptions import ConfigurationError


class DictationSettings(BaseSettings):
    """Dictation capture and transcript aggregation settings."""

    model_config = SettingsConfigDict(env_prefix="DICTATION_")

    language: str = Field(default="en", description="Default dictation language code")
    continuous: bool = Field(
        default=True,
        description="Restart the recognition engine when it ends unexpectedly",
    )
    confidence_threshold: float = Field(
        default=0.7,
        description="Minimum confidence for a final result to enter the transcript",
    )
    default_speaker: str = Field(default="doctor", description="Speaker tag at session start")
    echo_cancellation: bool = Field(default=True, description="Request echo cancellation")
    noise_suppression: bool = Field(default=True, description="Request noise suppression")
    auto_gain_control: bool = Field(default=True, description="Request automatic gain control")
    acquire_timeout_seconds: float = Field(
        default=15.0,
        description="Seconds to wait for the client to grant microphone access",
    )

    @field_validator("confidence_threshold")
    @classmethod
    def validate_threshold(cls, v: float) -> float:
        """Validate the confidence threshold range."""
        if not 0.0 <= v <= 1.0:
            raise ValueError("Confidence threshold must be between 0.0 and 1.0")
        return v

    @field_validator("default_speaker")
    @classmethod
    def validate_speaker(cls, v: str) -> str:
        """Validate the default speaker tag."""
        if v.lower() not in ("doctor", "patient"):
            raise ValueError("Default speaker must be 'doctor' or 'patient'")
        return v.lower()

    @field_validator("language")
    @classmethod
    def validate_language(cls, v: str) -> str:
        """Validate the dictation language code."""
        code = v.strip().lower()
        if code.split("-")[0] not in SUPPORTED_LANGUAGE_CODES:
            raise ValueError(f"Language must be one of: {sorted(SUPPORTED_LANGUAGE_CODES)}")
        return code

    @field_validator("acquire_timeout_seconds")
    @classmethod
    def validate_acquire_timeout(cls, v: float) -> float:
        """Validate the acquisition timeout."""
        if v <= 0 or v > 120:
            raise ValueError("Acquire timeout must be between 0 and 120 seconds")
        return v


class NotesApiSettings(BaseSettings):
    """Note-generation service configuration settings."""

    model_config = SettingsConfigDict(env_prefix="NOTES_API_")

    base_url: str = Field(default="", description="Base URL of the note-generation service")
    api_token: str = Field(default="", description="Bearer token for the note-generation service")
    timeout_seconds: float = Field(default=120.0, description="Request timeout in seconds")

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate base URL format."""
        if v and not v.startswith(("http://", "https://")):
            raise ValueError("Notes API base URL must start with 'http://' or 'https://'")
        return v.rstrip("/")


class RecordsApiSettings(BaseSettings):
    """Clinic records API (transcript persistence) configuration settings."""

    model_config = SettingsConfigDict(env_prefix="RECORDS_API_")

    base_url: str = Field(
        default="",
        description="Base URL of the records API; empty disables transcript persistence",
    )
    api_token: str = Field(default="", description="Bearer token for the records API")
    timeout_seconds: float = Field(default=15.0, description="Request timeout in seconds")

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate base URL format."""
        if v and not v.startswith(("http://", "https://")):
            raise ValueError("Records API base URL must start with 'http://' or 'https://'")
        return v.rstrip("/")

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)


class CORSSettings(BaseSettings):
    """CORS configuration settings."""

    model_config = SettingsConfigDict(env_prefix="CORS_")

    allowed_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Allowed CORS origins",
    )
    allowed_methods: List[str] = Field(
        default=["GET", "POST", "OPTIONS"],
        description="Allowed HTTP methods",
    )
    allowed_headers: List[str] = Field(
        default=["*"], description="Allowed HTTP headers"
    )
    allow_credentials: bool = Field(
        default=True, description="Allow credentials in CORS"
    )

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def parse_allowed_origins(cls, v):
        """Parse allowed origins from string or list."""
        if isinstance(v, str):
            # Handle JSON-like string format
            if v.startswith("[") and v.endswith("]"):
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    return [v.strip()]
            return [item.strip() for item in v.split(",") if item.strip()]
        return v


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: str = Field(default="INFO", description="Logging level")
    format: str = Field(default="json", description="Log format (json or text)")

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate logging level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format."""
        if v.lower() not in ("json", "text"):
            raise ValueError("Log format must be 'json' or 'text'")
        return v.lower()


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # Application settings
    app_name: str = Field(default="Clinic Scribe", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    app_env: str = Field(default="development", description="Application environment")
    debug: bool = Field(default=False, description="Debug mode")
    port: int = Field(default=8000, description="Application port")
    host: str = Field(default="0.0.0.0", description="Application host")

    # Sub-settings
    dictation: DictationSettings = Field(default_factory=DictationSettings)
    notes_api: NotesApiSettings = Field(default_factory=NotesApiSettings)
    records_api: RecordsApiSettings = Field(default_factory=RecordsApiSettings)
    cors: CORSSettings = Field(default_factory=CORSSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        """Validate application environment."""
        valid_envs = ["development", "staging", "production", "testing"]
        if v.lower() not in valid_envs:
            raise ValueError(f"App environment must be one of: {valid_envs}")
        return v.lower()

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port number."""
        if not 1 <= v <= 65535:
            raise ValueError("Port must be between 1 and 65535")
        return v

    @property
    def is_testing(self) -> bool:
        """Check if running in testing mode."""
        return self.app_env == "testing"


# Global settings instance (loaded after attempting to read .env)
_settings: Optional[Settings] = None


def _load_env_file_if_available() -> None:
    """Best-effort load of .env by searching current and parent directories.

    Sub-settings read their own prefixed variables from the process
    environment, so the file has to be loaded into ``os.environ`` first.
    """
    from dotenv import load_dotenv

    cwd = Path(os.getcwd()).resolve()
    for parent in [cwd, *cwd.parents]:
        candidate = parent / ".env"
        if candidate.exists():
            # Do not override already-set environment variables
            load_dotenv(dotenv_path=str(candidate), override=False)
            break


def get_settings() -> Settings:
    """Get application settings instance (lazy-init with .env discovery)."""
    global _settings
    if _settings is None:
        _load_env_file_if_available()
        try:
            _settings = Settings()
        except ValidationError as e:
            fields = [".".join(str(part) for part in error["loc"]) for error in e.errors()]
            raise ConfigurationError(
                f"Invalid configuration: {e.error_count()} error(s)", {"fields": fields}
            ) from e
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
