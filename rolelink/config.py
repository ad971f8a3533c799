"""
rolelink.config — Environment + YAML Configuration Loader
==========================================================

**Why this file exists:**
Every component receives one explicit :class:`RoleLinkConfig` built at
startup.  Secrets (OAuth client, bot token, application id, public URL)
come from the environment — usually a ``.env`` file loaded with
``python-dotenv``.  Soft settings (platform name, storage backend, web
bind address, HTTP timeout) come from an optional ``config.yaml``.

Nothing below the entry point reads ``os.environ`` directly.

Usage::

    from rolelink.config import load_config

    cfg = load_config()            # reads ./config.yaml if present
    print(cfg.connect_url)         # "https://example.org/connect"
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

# Environment variable → config attribute.  All are mandatory.
REQUIRED_ENV: dict[str, str] = {
    "DISCORD_CLIENT_ID": "client_id",
    "DISCORD_CLIENT_SECRET": "client_secret",
    "DISCORD_TOKEN": "bot_token",
    "DISCORD_APP_ID": "app_id",
    "BASE_URL": "base_url",
}

STORAGE_BACKENDS = ("json", "sql")


class ConfigError(RuntimeError):
    """Raised when required configuration is missing or malformed."""


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class RoleLinkConfig:
    """Immutable configuration shared by the bot, web app and sync core."""

    # Secrets / identity (environment)
    client_id: str
    client_secret: str
    bot_token: str
    app_id: str
    base_url: str

    # Soft settings (config.yaml)
    platform_name: str = "Linked Roles App"
    storage_backend: str = "json"
    storage_path: str = "storage.json"
    database_url: str | None = None
    web_host: str = "0.0.0.0"
    web_port: int = 3000
    http_timeout_seconds: float = 10.0
    dev_guild_id: int | None = None

    @property
    def redirect_uri(self) -> str:
        return f"{self.base_url}/callback"

    @property
    def connect_url(self) -> str:
        return f"{self.base_url}/connect"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(
    path: str | Path = "config.yaml",
    environ: Mapping[str, str] | None = None,
) -> RoleLinkConfig:
    """Build a :class:`RoleLinkConfig` from the environment and *path*.

    Parameters
    ----------
    path:
        Optional YAML file with soft settings.  A missing file means
        defaults are used.
    environ:
        Mapping to read secrets from.  Defaults to ``os.environ``.

    Raises
    ------
    ConfigError
        If any required environment variable is missing or blank, or a
        soft setting has an invalid value.  All missing names are
        reported together.
    """
    env = os.environ if environ is None else environ

    secrets: dict[str, str] = {}
    missing: list[str] = []
    for var, attr in REQUIRED_ENV.items():
        value = (env.get(var) or "").strip()
        if not value:
            missing.append(var)
        secrets[attr] = value
    if missing:
        raise ConfigError(
            "Missing required environment variables: " + ", ".join(missing)
        )
    secrets["base_url"] = secrets["base_url"].rstrip("/")

    raw = _read_yaml(Path(path))
    storage = raw.get("storage") or {}
    web = raw.get("web") or {}

    backend = str(storage.get("backend", "json")).lower()
    if backend not in STORAGE_BACKENDS:
        raise ConfigError(
            f"storage.backend must be one of {STORAGE_BACKENDS}, got {backend!r}"
        )

    database_url = (env.get("DATABASE_URL") or "").strip() or None
    if backend == "sql" and not database_url:
        raise ConfigError("storage.backend is 'sql' but DATABASE_URL is not set.")

    dev_guild = (env.get("DEV_GUILD_ID") or "").strip()

    try:
        return RoleLinkConfig(
            **secrets,
            platform_name=str(raw.get("platform_name", "Linked Roles App")),
            storage_backend=backend,
            storage_path=str(storage.get("path", "storage.json")),
            database_url=database_url,
            web_host=str(web.get("host", "0.0.0.0")),
            web_port=int(web.get("port", 3000)),
            http_timeout_seconds=float(raw.get("http_timeout_seconds", 10)),
            dev_guild_id=int(dev_guild) if dev_guild else None,
        )
    except ValueError as exc:
        raise ConfigError(f"Invalid configuration value: {exc}") from exc


def _read_yaml(config_path: Path) -> dict:
    if not config_path.exists():
        logger.info("No %s found — using default soft settings.", config_path)
        return {}
    with open(config_path, encoding="utf-8") as fh:
        raw = yaml.safe_load(fh) or {}
    if not isinstance(raw, dict):
        raise ConfigError(f"{config_path} must contain a mapping at the top level.")
    return raw
