"""Configuration loading for the AutoRAG Notes server."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from autorag_notes.constants import CONFIG_PATH, CONFIG_PATH_ENV

logger = logging.getLogger(__name__)


def _config_file_path() -> Path:
    return Path(os.environ.get(CONFIG_PATH_ENV, str(CONFIG_PATH))).expanduser()


class Settings(BaseSettings):
    """Server settings.

    Values come from environment variables first, then an optional
    ``autorag_notes.yaml`` file (or the file named by ``AUTORAG_NOTES_CONFIG``),
    then the defaults below. Every field is optional so the server can start
    for local development; features whose settings are missing report a
    :class:`~autorag_notes.exceptions.ConfigurationError` when used.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    transport: Literal["stdio", "sse", "streamable-http"] = "streamable-http"
    base_url: str = "http://localhost:8000"
    log_level: str = "INFO"

    # Google OAuth
    google_client_id: Optional[str] = None
    google_client_secret: Optional[str] = None
    google_hosted_domain: Optional[str] = Field(
        None,
        description="Comma-separated list of Google Workspace domains allowed to sign in.",
    )
    grant_ttl_seconds: int = Field(86_400, gt=0)

    # Used only when OAuth is not configured (local stdio sessions)
    dev_user_email: Optional[str] = None

    # Object store
    storage_backend: Literal["local", "r2"] = "local"
    storage_path: Path = Path("~/.autorag-notes/objects")
    r2_bucket: Optional[str] = None
    r2_endpoint_url: Optional[str] = None
    r2_access_key_id: Optional[str] = None
    r2_secret_access_key: Optional[str] = None
    r2_region: str = "auto"

    # Cloudflare AutoRAG / Workers AI
    cloudflare_account_id: Optional[str] = None
    cloudflare_api_token: Optional[str] = None
    autorag_id: str = "notes"

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("storage_path")
    @classmethod
    def expand_storage_path(cls, v: Path) -> Path:
        return v.expanduser()

    @property
    def oauth_enabled(self) -> bool:
        """True when Google client credentials are configured."""
        return bool(self.google_client_id and self.google_client_secret)

    @property
    def allowed_domains(self) -> list[str]:
        """Normalized domain allowlist; empty means any Google account may sign in."""
        if not self.google_hosted_domain:
            return []
        return [d.strip().lower() for d in self.google_hosted_domain.split(",") if d.strip()]

    @property
    def callback_url(self) -> str:
        return f"{self.base_url}/callback"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls, yaml_file=_config_file_path()),
            file_secret_settings,
        )


def load_settings() -> Settings:
    """Load and validate server settings.

    Returns:
        A fully populated :class:`Settings` instance.

    Raises:
        pydantic.ValidationError: If a provided value has the wrong shape
            (e.g. an unknown ``STORAGE_BACKEND``).
    """
    settings = Settings()
    config_file = _config_file_path()
    if config_file.is_file():
        logger.info("Loaded settings file %s", config_file)
    if not settings.oauth_enabled:
        logger.warning("Google OAuth is not configured; tools will use DEV_USER_EMAIL")
    return settings


# Module-level singleton - loaded once at import time
SETTINGS = load_settings()
