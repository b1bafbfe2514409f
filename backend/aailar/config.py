"""AAILAR application configuration.

Loads settings from two YAML files:
  * aailar.settings.yaml: non-secret configuration
  * aailar.secrets.yaml: passwords (never committed)

File locations can be overridden with the AAILAR_SETTINGS and AAILAR_SECRETS
environment variables. Missing files fall back to defaults.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SETTINGS_FILE = Path("aailar.settings.yaml")
SECRETS_FILE  = Path("aailar.secrets.yaml")


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.warning("Config file not found: %s", path)
        return {}
    with path.open(encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


# ---------------------------------------------------------------------------
# Secrets models
# ---------------------------------------------------------------------------


class Secrets(BaseModel):
    chat_password:        str           = "Ak47"
    bulk_delete_password: Optional[str] = None
    file_upload_password: str           = "Ak47"
    file_delete_password: str           = "Ak47"
    link_upload_password: str           = "Ak47"
    link_delete_password: str           = "Ak47"
    admin_password:       str           = "change-me-in-production"


# ---------------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------------


class ServerSettings(BaseModel):
    host:            str       = "0.0.0.0"
    port:            int       = 5000
    allowed_origins: List[str] = Field(default_factory=lambda: ["*"])


class LoggingSettings(BaseModel):
    level: str = "info"


class ChatSettings(BaseModel):
    """Limits for the chat room and its admission guard."""
    max_total_connections:      int  = 100
    max_connections_per_origin: int  = 5
    history_limit:              int  = 500
    replay_limit:               int  = 100
    max_message_length:         int  = 1000
    reply_preview_length:       int  = 100
    max_display_name_length:    int  = 32
    trust_forwarded_for:        bool = False

    @field_validator(
        "max_total_connections",
        "max_connections_per_origin",
        "history_limit",
        "max_message_length",
        "max_display_name_length",
    )
    @classmethod
    def _positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be at least 1")
        return value


class FileSettings(BaseModel):
    upload_dir:          str       = "uploads"
    db_path:             str       = "file_metadata.duckdb"
    max_file_size_bytes: int       = 15 * 1024 * 1024
    allowed_mime_types:  List[str] = Field(default_factory=lambda: [
        "application/pdf",
        "application/vnd.ms-excel",
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "image/jpeg",
        "image/jpg",
        "image/png",
        "image/gif",
    ])
    categories:          List[str] = Field(default_factory=lambda: [
        "academic", "relaxing", "sessions",
    ])


class LinkSettings(BaseModel):
    """Storage and field limits for the shared links library."""
    db_path:                str = "shared_links.duckdb"
    max_title_length:       int = 200
    max_description_length: int = 1000
    max_url_length:         int = 500


class AppConfig(BaseModel):
    server:  ServerSettings  = Field(default_factory=ServerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    chat:    ChatSettings    = Field(default_factory=ChatSettings)
    files:   FileSettings    = Field(default_factory=FileSettings)
    links:   LinkSettings    = Field(default_factory=LinkSettings)
    secrets: Secrets         = Field(default_factory=Secrets)


# ---------------------------------------------------------------------------
# Runtime-mutable room password
# ---------------------------------------------------------------------------


class RoomPasswordStore:
    """Holds the current room password.

    The admin surface replaces it at runtime; the chat room reads it through
    :meth:`get` on every join attempt.
    """

    def __init__(self, initial: str) -> None:
        self._password = initial

    def get(self) -> str:
        return self._password

    def set(self, new_password: str) -> None:
        self._password = new_password
        logger.info("Room password updated")


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------


def _resolve(env_var: str, default: Path) -> Path:
    override = os.environ.get(env_var)
    return Path(override) if override else default


def load_config(
    settings_path: Optional[Path] = None,
    secrets_path: Optional[Path] = None,
) -> AppConfig:
    """Load and merge settings + secrets into a single *AppConfig* object."""
    settings_path = settings_path or _resolve("AAILAR_SETTINGS", SETTINGS_FILE)
    secrets_path  = secrets_path or _resolve("AAILAR_SECRETS", SECRETS_FILE)

    settings_data = _load_yaml(Path(settings_path))
    secrets_data  = _load_yaml(Path(secrets_path))

    # Merge: secrets live under the "secrets" key in AppConfig
    settings_data["secrets"] = secrets_data

    config = AppConfig(**settings_data)
    logger.info(
        "Settings loaded (server=%s:%s, max_connections=%s, per_origin=%s)",
        config.server.host,
        config.server.port,
        config.chat.max_total_connections,
        config.chat.max_connections_per_origin,
    )
    return config


_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Return the process-wide configuration, loading it on first use."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: AppConfig) -> None:
    """Replace the process-wide configuration (used by tests)."""
    global _config
    _config = config


def reset_config() -> None:
    """Drop the cached configuration so the next call reloads from disk."""
    global _config
    _config = None
