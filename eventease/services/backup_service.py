"""Timestamped snapshots of the events file plus a retention policy."""
from __future__ import annotations

import datetime as dt
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from eventease.domain.errors import StorageIOError
from eventease.repositories.json_storage import JsonEventStorage, atomic_write_bytes, parse_collection

logger = logging.getLogger(__name__)

BACKUP_PREFIX = "events-backup-"
BACKUP_SUFFIX = ".json"
DEFAULT_RETENTION = 5


def backup_timestamp(moment: dt.datetime) -> str:
    """Lexicographically sortable, filesystem-safe UTC timestamp."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(dt.timezone.utc)
    return moment.strftime("%Y-%m-%dT%H-%M-%S-%fZ")


@dataclass(frozen=True)
class BackupInfo:
    backup_id: str
    path: Path
    size: int


@dataclass(frozen=True)
class BackupResult:
    backup_id: str
    path: Path
    event_count: int
    pruned: tuple[str, ...] = ()


class BackupService:
    """Creates backups of the storage file and prunes the oldest ones."""

    def __init__(
        self,
        storage: JsonEventStorage,
        backup_dir: Path | str,
        *,
        retention: int = DEFAULT_RETENTION,
        clock: Callable[[], dt.datetime] | None = None,
    ) -> None:
        if retention < 1:
            raise ValueError("retention must be >= 1")
        self.storage = storage
        self.backup_dir = Path(backup_dir)
        self.retention = retention
        self._clock = clock or (lambda: dt.datetime.now(dt.timezone.utc))
        self._lock = threading.Lock()

    def create_backup(self) -> BackupResult:
        """Copy the current data file into the backup directory, then prune.

        The source is whatever the last atomic replace left on disk, so a
        concurrent store write yields either the old or the new collection.
        Reading and naming happen under one lock: a later name never holds
        older content.
        """
        with self._lock:
            raw = self.storage.read_bytes()
            records = parse_collection(raw, self.storage.path)
            target = self._next_path()
            try:
                atomic_write_bytes(target, raw)
            except OSError as exc:
                logger.error("Backup failed: %s", exc)
                raise StorageIOError(f"Could not write backup {target}: {exc}") from exc
            logger.info("Backup created: %s (%d events)", target.name, len(records))
            pruned = self.enforce_retention()
        return BackupResult(
            backup_id=target.stem,
            path=target,
            event_count=len(records),
            pruned=tuple(pruned),
        )

    def list_backups(self) -> list[BackupInfo]:
        """Existing backups, newest first."""
        if not self.backup_dir.is_dir():
            return []
        found = []
        for path in self.backup_dir.glob(f"{BACKUP_PREFIX}*{BACKUP_SUFFIX}"):
            if not path.is_file():
                continue
            try:
                size = path.stat().st_size
            except OSError:
                continue
            found.append(BackupInfo(backup_id=path.stem, path=path, size=size))
        found.sort(key=lambda info: info.path.name, reverse=True)
        return found

    def enforce_retention(self, limit: int | None = None) -> list[str]:
        """Delete every backup older than the ``limit`` newest ones.

        Deletion failures are logged and skipped so that they never block
        the next backup.  Returns the ids that were removed.
        """
        if limit is None:
            limit = self.retention
        if limit < 0:
            raise ValueError("limit must be >= 0")
        removed: list[str] = []
        for info in self.list_backups()[limit:]:
            try:
                info.path.unlink()
            except FileNotFoundError:
                continue
            except OSError as exc:
                logger.warning("Could not delete old backup %s: %s", info.path.name, exc)
                continue
            logger.info("Deleted old backup: %s", info.path.name)
            removed.append(info.backup_id)
        return removed

    def _next_path(self) -> Path:
        moment = self._clock()
        candidate = self._path_for(moment)
        while candidate.exists():
            moment += dt.timedelta(microseconds=1)
            candidate = self._path_for(moment)
        return candidate

    def _path_for(self, moment: dt.datetime) -> Path:
        return self.backup_dir / f"{BACKUP_PREFIX}{backup_timestamp(moment)}{BACKUP_SUFFIX}"


class PeriodicBackup:
    """Daemon thread that calls ``create_backup`` every ``interval_seconds``."""

    def __init__(self, service: BackupService, interval_seconds: float) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self.service = service
        self.interval_seconds = interval_seconds
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="eventease-backup", daemon=True)
        self._thread.start()
        logger.info("Periodic backup every %ss", self.interval_seconds)

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout)
            self._thread = None

    def run_once(self) -> BackupResult | None:
        try:
            return self.service.create_backup()
        except Exception:
            logger.exception("Scheduled backup failed")
            return None

    def _run(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            self.run_once()
