"""
JSON file persistence adapter for the event collection.

The whole collection lives in one human-readable JSON array.  Every save
rewrites the file through a temporary sibling and ``os.replace`` so readers
(including the backup job) only ever see a complete old or new file.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable
import json
import logging
import os
import tempfile

from eventease.domain.errors import (
    CorruptDataError,
    DataFileNotFoundError,
    EventStoreError,
    StorageIOError,
)
from eventease.domain.events import Event

logger = logging.getLogger(__name__)


def atomic_write_bytes(path: Path, payload: bytes) -> None:
    """Write ``payload`` to ``path`` without ever exposing a partial file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as tmp:
            tmp.write(payload)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


def parse_collection(raw: bytes | str, source: Path) -> list[dict]:
    """Decode a JSON array of objects, raising CorruptDataError otherwise."""
    try:
        data = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise CorruptDataError(f"{source} is not valid JSON: {exc}") from exc
    if not isinstance(data, list):
        raise CorruptDataError(f"{source} must contain a JSON array of events")
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            raise CorruptDataError(f"{source}: entry #{index} is not an object")
    return data


class JsonEventStorage:
    """Loads and saves the full event collection as one JSON document."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def read_bytes(self) -> bytes:
        try:
            return self.path.read_bytes()
        except FileNotFoundError as exc:
            raise DataFileNotFoundError(f"Data file not found: {self.path}") from exc
        except OSError as exc:
            raise StorageIOError(f"Could not read {self.path}: {exc}") from exc

    def load(self) -> list[Event]:
        raw = self.read_bytes()
        records = parse_collection(raw, self.path)
        events: list[Event] = []
        seen: set[str] = set()
        for index, record in enumerate(records):
            try:
                event = Event.from_dict(record)
            except EventStoreError as exc:
                raise CorruptDataError(f"{self.path}: entry #{index} is invalid: {exc.message}") from exc
            if event.id in seen:
                raise CorruptDataError(f"{self.path}: duplicate event id {event.id!r}")
            seen.add(event.id)
            events.append(event)
        logger.info("Loaded %d events from %s", len(events), self.path)
        return events

    def save(self, events: Iterable[Event]) -> None:
        records = [event.to_dict() for event in events]
        payload = json.dumps(records, ensure_ascii=False, indent=2).encode("utf-8")
        try:
            atomic_write_bytes(self.path, payload)
        except OSError as exc:
            logger.error("Error saving events to %s: %s", self.path, exc)
            raise StorageIOError(f"Could not write {self.path}: {exc}") from exc
        logger.debug("Saved %d events to %s", len(records), self.path)
