"""
Configuration helpers for the EventEase backend.

Settings are read from environment variables once and cached, so that
routers/services/scripts do not fetch os.environ directly.
"""

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
import os

ROOT = Path(__file__).resolve().parents[2]

CAPACITY_POLICIES = ("reject", "clamp")


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    app_env: str
    data_file: Path
    backup_dir: Path
    backup_retention: int
    backup_interval_seconds: int
    capacity_policy: str
    autoflush: bool
    log_level: str
    log_file: str | None
    cors_origins: tuple[str, ...]


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    def _int(value: str, default: int = 0) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    def _bool(value: str | None, default: bool = False) -> bool:
        if value is None:
            return default
        return value.strip().lower() in {"1", "true", "yes", "on"}

    def _path(value: str | None, default: Path) -> Path:
        if not value or not value.strip():
            return default
        return Path(value.strip()).expanduser()

    policy = (os.getenv("CAPACITY_POLICY") or "reject").strip().lower()
    if policy not in CAPACITY_POLICIES:
        policy = "reject"
    origins = tuple(
        origin.strip().rstrip("/")
        for origin in (os.getenv("CORS_ORIGINS") or "").split(",")
        if origin.strip()
    )

    return Settings(
        app_env=(os.getenv("APP_ENV") or "dev").lower(),
        data_file=_path(os.getenv("EVENTS_DATA_FILE"), ROOT / "data" / "events.json"),
        backup_dir=_path(os.getenv("EVENTS_BACKUP_DIR"), ROOT / "backups"),
        backup_retention=max(1, _int(os.getenv("BACKUP_RETENTION", "5"), 5)),
        backup_interval_seconds=max(0, _int(os.getenv("BACKUP_INTERVAL_SECONDS", "0"), 0)),
        capacity_policy=policy,
        autoflush=_bool(os.getenv("EVENTS_AUTOFLUSH"), True),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        log_file=(os.getenv("LOG_FILE") or "").strip() or None,
        cors_origins=origins,
    )
