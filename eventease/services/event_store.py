"""Event store: the authoritative in-memory collection plus its durability rules.

Readers work on an immutable snapshot (a dict of frozen ``Event`` objects that
is replaced, never mutated).  Writers serialize on one lock, build the next
snapshot, persist it and only then publish it, so a failed save leaves memory
exactly as it was.
"""
from __future__ import annotations

import datetime as dt
import logging
import threading
from typing import Any, Callable, Mapping

from eventease.domain.errors import (
    CapacityExceededError,
    DataFileNotFoundError,
    DuplicateEventError,
    EventNotFoundError,
    InvalidEventError,
    StoreNotReadyError,
)
from eventease.domain.events import (
    STATUSES,
    Event,
    EventFilter,
    EventPatch,
    EventStats,
    default_events,
    new_event,
    new_event_id,
    utcnow,
)
from eventease.repositories.json_storage import JsonEventStorage

logger = logging.getLogger(__name__)

CAPACITY_REJECT = "reject"
CAPACITY_CLAMP = "clamp"

Snapshot = dict[str, Event]


class EventStore:
    """CRUD, registration, queries and stats over the event collection."""

    def __init__(
        self,
        storage: JsonEventStorage,
        *,
        capacity_policy: str = CAPACITY_REJECT,
        autoflush: bool = True,
        clock: Callable[[], dt.datetime] | None = None,
    ) -> None:
        if capacity_policy not in (CAPACITY_REJECT, CAPACITY_CLAMP):
            raise ValueError(f"Unknown capacity policy: {capacity_policy!r}")
        self.storage = storage
        self.capacity_policy = capacity_policy
        self.autoflush = autoflush
        self._clock = clock or utcnow
        self._events: Snapshot = {}
        self._lock = threading.Lock()
        self._ready = False
        self._dirty = False

    # ------------------------- lifecycle -------------------------
    def init(self) -> None:
        """Load the collection, seeding it when no data file exists.

        CorruptDataError and StorageIOError propagate: the store stays unusable
        and nothing is written over the existing file.
        """
        with self._lock:
            if self._ready:
                return
            try:
                events = self.storage.load()
            except DataFileNotFoundError:
                logger.info("Events file not found, creating with default data...")
                events = default_events(self._clock())
                self.storage.save(events)
                logger.info("Default events created successfully")
            self._events = {event.id: event for event in events}
            self._dirty = False
            self._ready = True
        logger.info("Data storage initialized with %d events", len(events))

    def is_ready(self) -> bool:
        return self._ready

    def flush(self) -> None:
        """Persist pending changes (only needed with ``autoflush=False``)."""
        with self._lock:
            self._require_ready()
            if self._dirty:
                self.storage.save(self._events.values())
                self._dirty = False

    def close(self) -> None:
        """Flush deferred changes and mark the store unusable."""
        with self._lock:
            if not self._ready:
                return
            if self._dirty:
                logger.info("Ensuring all data is saved...")
                self.storage.save(self._events.values())
                self._dirty = False
            self._ready = False

    # -------------------------- queries --------------------------
    def get_all(self) -> list[Event]:
        return list(self._snapshot().values())

    def get_by_id(self, event_id: str) -> Event:
        event = self._snapshot().get(event_id)
        if event is None:
            raise EventNotFoundError(event_id)
        return event

    def filter(self, criteria: EventFilter | None = None, **kwargs: Any) -> list[Event]:
        """List events matching every supplied criterion (category/status/search)."""
        if criteria is None:
            criteria = EventFilter(**kwargs)
        events = self._snapshot().values()
        if criteria.is_empty():
            return list(events)
        return [event for event in events if criteria.matches(event)]

    def get_categories(self) -> list[str]:
        seen: dict[str, None] = {}
        for event in self._snapshot().values():
            seen.setdefault(event.category, None)
        return list(seen)

    def get_stats(self) -> EventStats:
        events = list(self._snapshot().values())
        unknown = [event.id for event in events if event.status not in STATUSES]
        if unknown:
            logger.warning("Events with unknown status excluded from status counts: %s", ", ".join(unknown))
        return EventStats.from_events(events)

    # ------------------------- mutations -------------------------
    def create(self, data: Mapping[str, Any]) -> Event:
        with self._lock:
            self._require_ready()
            if not isinstance(data, Mapping):
                raise InvalidEventError("Event data must be an object")
            requested_id = data.get("id")
            if requested_id is not None and not isinstance(requested_id, str):
                raise InvalidEventError("Field 'id' must be a string")
            if requested_id and requested_id in self._events:
                raise DuplicateEventError(requested_id)
            event_id = requested_id or self._unique_id()
            event = new_event(data, event_id=event_id, now=self._clock())
            following = dict(self._events)
            following[event.id] = event
            self._commit(following)
        logger.info("Created event %s (%s)", event.id, event.title)
        return event

    def update(self, event_id: str, patch: EventPatch | Mapping[str, Any]) -> Event:
        with self._lock:
            self._require_ready()
            if not isinstance(patch, EventPatch):
                patch = EventPatch.from_mapping(patch)
            current = self._events.get(event_id)
            if current is None:
                raise EventNotFoundError(event_id)
            if patch.is_empty():
                return current
            updated = patch.apply(current, clamp=self.capacity_policy == CAPACITY_CLAMP)
            if updated == current:
                return current
            following = dict(self._events)
            following[event_id] = updated
            self._commit(following)
        logger.info("Updated event %s (%s)", event_id, ", ".join(patch.changes()))
        return updated

    def delete(self, event_id: str) -> Event:
        with self._lock:
            self._require_ready()
            following = dict(self._events)
            removed = following.pop(event_id, None)
            if removed is None:
                raise EventNotFoundError(event_id)
            self._commit(following)
        logger.info("Deleted event %s (%s)", event_id, removed.title)
        return removed

    def register(self, event_id: str) -> Event:
        """Take one seat; the capacity check and increment are indivisible."""
        with self._lock:
            self._require_ready()
            current = self._events.get(event_id)
            if current is None:
                raise EventNotFoundError(event_id)
            if current.is_full:
                raise CapacityExceededError(event_id)
            updated = EventPatch(attendees=current.attendees + 1).apply(current)
            following = dict(self._events)
            following[event_id] = updated
            self._commit(following)
        logger.info("Registration for event %s (%d/%d)", event_id, updated.attendees, updated.capacity)
        return updated

    # -------------------------- helpers --------------------------
    def _snapshot(self) -> Snapshot:
        self._require_ready()
        return self._events

    def _require_ready(self) -> None:
        if not self._ready:
            raise StoreNotReadyError()

    def _unique_id(self) -> str:
        while True:
            candidate = new_event_id()
            if candidate not in self._events:
                return candidate

    def _commit(self, following: Snapshot) -> None:
        """Persist then publish; the caller must hold the lock."""
        if self.autoflush:
            self.storage.save(following.values())
        else:
            self._dirty = True
        self._events = following
