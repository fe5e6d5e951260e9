from __future__ import annotations

import os
from dataclasses import dataclass


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "y", "on"}


def _get_str(name: str, default: str) -> str:
    return os.getenv(name, default).strip() or default


@dataclass(frozen=True)
class Settings:
    token: str
    sqlite_path: str
    log_level: str
    # When set, slash commands are synced to this guild only (instant updates while developing).
    sync_guild_id: int = 0
    resync_on_startup: bool = True
    cache_default_ttl_seconds: int = 120
    # Path to a legacy data.json; imported once at startup when present.
    legacy_data_file: str = ""


def load_settings() -> Settings:
    token = os.getenv("DISCORD_TOKEN", "").strip()
    if not token:
        raise RuntimeError("DISCORD_TOKEN is required")
    return Settings(
        token=token,
        sqlite_path=_get_str("SQLITE_PATH", "rolebot.sqlite3"),
        log_level=_get_str("LOG_LEVEL", "INFO"),
        sync_guild_id=_get_int("SYNC_GUILD_ID", 0),
        resync_on_startup=_get_bool("RESYNC_ON_STARTUP", True),
        cache_default_ttl_seconds=_get_int("CACHE_DEFAULT_TTL_SECONDS", 120),
        legacy_data_file=os.getenv("LEGACY_DATA_FILE", "").strip(),
    )
