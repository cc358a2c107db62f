"""Application configuration with Pydantic Settings validation."""

from __future__ import annotations

from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppConfig(BaseSettings):
    """All application settings, loaded from environment / .env file."""

    model_config = SettingsConfigDict(
        env_file=("../.env", ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Database ──────────────────────────────────────────
    database_url: str = "sqlite:///database_storage.db"

    # ── Export document metadata ──────────────────────────
    export_creator: str = "Database Storage"
    export_title: str = "Database Storage"
    export_subject: str = "Form entries"

    # ── Uploaded resources ────────────────────────────────
    resource_base_url: str = "/_Resources/Persistent"

    # ── Server ────────────────────────────────────────────
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: str = "http://localhost:5173,http://localhost:3000"

    # ── Logging ───────────────────────────────────────────
    log_level: str = "INFO"
    log_file: Optional[str] = None
    log_json: bool = False

    # ── Validators ────────────────────────────────────────
    @field_validator("cors_origins", "resource_base_url", mode="before")
    @classmethod
    def ensure_string(cls, v: object) -> str:
        return str(v).strip()

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


# Module-level config cache shared by the app factory and request dependencies
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Load and validate the application config once per process."""
    global _config
    if _config is None:
        _config = AppConfig()
    return _config


def reset_config() -> None:
    """Drop the cached config so the next get_config() reloads the environment."""
    global _config
    _config = None
