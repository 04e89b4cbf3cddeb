"""Event records and the value objects built around them.

``Event`` is immutable and validates its invariants at construction time, so
every event held by the store (or rebuilt from disk) satisfies
``0 <= attendees <= capacity``.  Updates go through ``EventPatch``, which
produces a brand new ``Event`` and therefore re-runs the same checks.
"""
from __future__ import annotations

import datetime as dt
import math
import secrets
from dataclasses import dataclass, fields, replace
from typing import Any, Callable, Iterable, Mapping

from eventease.domain.errors import InvalidEventError, InvalidStateError

STATUS_UPCOMING = "upcoming"
STATUS_COMPLETED = "completed"
STATUSES = (STATUS_UPCOMING, STATUS_COMPLETED)

DEFAULT_CAPACITY = 100
DEFAULT_PRICE = 0
DEFAULT_ORGANIZER = "Anonymous"
DEFAULT_TIME = dt.time(0, 0)

# Fields a client must send when creating an event.
REQUIRED_FIELDS = ("title", "description", "date", "location", "category")
IMMUTABLE_FIELDS = ("id", "createdAt", "created_at")


def utcnow() -> dt.datetime:
    """Current UTC time truncated to milliseconds (the persisted precision)."""
    now = dt.datetime.now(dt.timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def new_event_id() -> str:
    return secrets.token_hex(8)


def format_timestamp(value: dt.datetime) -> str:
    timespec = "milliseconds" if value.microsecond % 1000 == 0 else "microseconds"
    text = value.isoformat(timespec=timespec)
    if text.endswith("+00:00"):
        text = text[:-6] + "Z"
    return text


def format_clock(value: dt.time) -> str:
    if value.second == 0 and value.microsecond == 0:
        return value.isoformat(timespec="minutes")
    return value.isoformat()


# ----------------------------- parsers -----------------------------
def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _text(value: Any, name: str, *, allow_empty: bool = False) -> str:
    if not isinstance(value, str):
        raise InvalidEventError(f"Field '{name}' must be a string")
    value = value.strip()
    if not value and not allow_empty:
        raise InvalidEventError(f"Field '{name}' must not be empty")
    return value


def _optional_text(value: Any, name: str) -> str:
    return _text(value, name, allow_empty=True)


def _count(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise InvalidEventError(f"Field '{name}' must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise InvalidEventError(f"Field '{name}' must be an integer")


def _amount(value: Any, name: str) -> int | float:
    if isinstance(value, bool):
        raise InvalidEventError(f"Field '{name}' must be a number")
    if isinstance(value, str):
        raw = value.strip()
        try:
            value = int(raw)
        except ValueError:
            try:
                value = float(raw)
            except ValueError:
                raise InvalidEventError(f"Field '{name}' must be a number") from None
    if isinstance(value, (int, float)) and math.isfinite(value):
        return value
    raise InvalidEventError(f"Field '{name}' must be a number")


def _calendar_date(value: Any, name: str) -> dt.date:
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if isinstance(value, str):
        try:
            return dt.date.fromisoformat(value.strip())
        except ValueError:
            pass
    raise InvalidEventError(f"Field '{name}' must be a date (YYYY-MM-DD)")


def _clock(value: Any, name: str) -> dt.time:
    if isinstance(value, dt.time):
        return value
    if isinstance(value, str):
        try:
            return dt.time.fromisoformat(value.strip())
        except ValueError:
            pass
    raise InvalidEventError(f"Field '{name}' must be a time of day (HH:MM)")


def _timestamp(value: Any, name: str) -> dt.datetime:
    if isinstance(value, dt.datetime):
        return value
    if isinstance(value, str):
        try:
            return dt.datetime.fromisoformat(value.strip())
        except ValueError:
            pass
    raise InvalidEventError(f"Field '{name}' must be an ISO 8601 timestamp")


def _status(value: Any, name: str) -> str:
    status = _text(value, name)
    if status not in STATUSES:
        raise InvalidEventError(f"Field '{name}' must be one of: {', '.join(STATUSES)}")
    return status


# --------------------------- domain model ---------------------------
@dataclass(frozen=True)
class Event:
    """A single event record."""

    id: str
    title: str
    description: str
    date: dt.date
    location: str
    category: str
    created_at: dt.datetime
    time: dt.time = DEFAULT_TIME
    capacity: int = DEFAULT_CAPACITY
    attendees: int = 0
    price: int | float = DEFAULT_PRICE
    organizer: str = DEFAULT_ORGANIZER
    status: str = STATUS_UPCOMING

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id:
            raise InvalidEventError("Event id must be a non-empty string")
        for name in ("title", "description", "location"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise InvalidEventError(f"Field '{name}' must not be empty")
        for name in ("capacity", "attendees"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidEventError(f"Field '{name}' must be an integer")
        if self.capacity < 0:
            raise InvalidStateError("Capacity cannot be negative")
        if self.attendees < 0:
            raise InvalidStateError("Attendees cannot be negative")
        if self.attendees > self.capacity:
            raise InvalidStateError(
                f"Attendees ({self.attendees}) cannot exceed capacity ({self.capacity})"
            )
        if self.price < 0:
            raise InvalidStateError("Price cannot be negative")

    @property
    def is_full(self) -> bool:
        return self.attendees >= self.capacity

    def to_dict(self) -> dict:
        """Persisted/JSON shape (camelCase keys, ISO strings)."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "date": self.date.isoformat(),
            "time": format_clock(self.time),
            "location": self.location,
            "category": self.category,
            "capacity": self.capacity,
            "attendees": self.attendees,
            "price": self.price,
            "organizer": self.organizer,
            "status": self.status,
            "createdAt": format_timestamp(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Event":
        """Rebuild an event from its persisted shape."""
        if not isinstance(data, Mapping):
            raise InvalidEventError("Event must be an object")
        missing = [key for key in ("id", "createdAt", *REQUIRED_FIELDS) if key not in data]
        if missing:
            raise InvalidEventError(f"Missing fields: {', '.join(missing)}")
        return cls(
            id=_text(data["id"], "id"),
            title=_text(data["title"], "title"),
            description=_text(data["description"], "description"),
            date=_calendar_date(data["date"], "date"),
            location=_text(data["location"], "location"),
            category=_optional_text(data["category"], "category"),
            created_at=_timestamp(data["createdAt"], "createdAt"),
            time=_clock(data["time"], "time") if data.get("time") else DEFAULT_TIME,
            capacity=_count(data.get("capacity", DEFAULT_CAPACITY), "capacity"),
            attendees=_count(data.get("attendees", 0), "attendees"),
            price=_amount(data.get("price", DEFAULT_PRICE), "price"),
            organizer=_optional_text(data.get("organizer", DEFAULT_ORGANIZER), "organizer"),
            status=_text(data.get("status", STATUS_UPCOMING), "status"),
        )


def new_event(data: Mapping[str, Any], *, event_id: str, now: dt.datetime) -> Event:
    """Build a fresh event from client input, applying creation defaults.

    ``id``/``createdAt``/``attendees``/``status`` are honoured when the caller
    supplies them; everything else optional falls back to the documented
    defaults.
    """
    if not isinstance(data, Mapping):
        raise InvalidEventError("Event data must be an object")
    missing = [key for key in REQUIRED_FIELDS if _is_blank(data.get(key))]
    if missing:
        raise InvalidEventError(f"Missing required fields: {', '.join(missing)}")

    def _or_default(key: str, parser: Callable[[Any, str], Any], default: Any) -> Any:
        value = data.get(key)
        return default if _is_blank(value) else parser(value, key)

    return Event(
        id=event_id,
        title=_text(data["title"], "title"),
        description=_text(data["description"], "description"),
        date=_calendar_date(data["date"], "date"),
        location=_text(data["location"], "location"),
        category=_text(data["category"], "category"),
        created_at=_or_default("createdAt", _timestamp, now),
        time=_or_default("time", _clock, DEFAULT_TIME),
        capacity=_or_default("capacity", _count, DEFAULT_CAPACITY),
        attendees=_or_default("attendees", _count, 0),
        price=_or_default("price", _amount, DEFAULT_PRICE),
        organizer=_or_default("organizer", _optional_text, DEFAULT_ORGANIZER),
        status=_or_default("status", _status, STATUS_UPCOMING),
    )


_PATCH_PARSERS: dict[str, Callable[[Any, str], Any]] = {
    "title": _text,
    "description": _text,
    "date": _calendar_date,
    "time": _clock,
    "location": _text,
    "category": _text,
    "capacity": _count,
    "attendees": _count,
    "price": _amount,
    "organizer": _optional_text,
    "status": _status,
}


@dataclass(frozen=True)
class EventPatch:
    """Partial update: ``None`` means the field is left untouched."""

    title: str | None = None
    description: str | None = None
    date: dt.date | None = None
    time: dt.time | None = None
    location: str | None = None
    category: str | None = None
    capacity: int | None = None
    attendees: int | None = None
    price: int | float | None = None
    organizer: str | None = None
    status: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "EventPatch":
        """Parse client input; unknown keys are ignored, immutable keys rejected."""
        if not isinstance(data, Mapping):
            raise InvalidEventError("Update data must be an object")
        for key in IMMUTABLE_FIELDS:
            if key in data:
                raise InvalidEventError(f"Field '{key}' cannot be changed")
        values = {
            name: parser(data[name], name)
            for name, parser in _PATCH_PARSERS.items()
            if data.get(name) is not None
        }
        return cls(**values)

    def changes(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}

    def is_empty(self) -> bool:
        return not self.changes()

    def apply(self, event: Event, *, clamp: bool = False) -> Event:
        """Return ``event`` with the present fields merged over it.

        With ``clamp`` the merged attendee count is lowered to the merged
        capacity instead of failing with ``InvalidStateError``.
        """
        changes = self.changes()
        if clamp:
            capacity = changes.get("capacity", event.capacity)
            attendees = changes.get("attendees", event.attendees)
            if isinstance(capacity, int) and attendees > capacity >= 0:
                changes["attendees"] = capacity
        return replace(event, **changes)


@dataclass(frozen=True)
class EventFilter:
    """Optional, AND-combined listing criteria. Blank values are ignored."""

    category: str | None = None
    status: str | None = None
    search: str | None = None

    def is_empty(self) -> bool:
        return not (self.category or self.status or self.search)

    def matches(self, event: Event) -> bool:
        if self.category and event.category.lower() != self.category.lower():
            return False
        if self.status and event.status != self.status:
            return False
        if self.search:
            needle = self.search.lower()
            if needle not in event.title.lower() and needle not in event.description.lower():
                return False
        return True


@dataclass(frozen=True)
class EventStats:
    total_events: int
    upcoming_count: int
    completed_count: int
    total_attendees: int
    total_revenue: int | float

    @classmethod
    def from_events(cls, events: Iterable[Event]) -> "EventStats":
        total = upcoming = completed = attendees = 0
        revenue: int | float = 0
        for event in events:
            total += 1
            if event.status == STATUS_UPCOMING:
                upcoming += 1
            elif event.status == STATUS_COMPLETED:
                completed += 1
            attendees += event.attendees
            revenue += event.attendees * event.price
        return cls(
            total_events=total,
            upcoming_count=upcoming,
            completed_count=completed,
            total_attendees=attendees,
            total_revenue=revenue,
        )

    def to_dict(self) -> dict:
        return {
            "totalEvents": self.total_events,
            "upcomingCount": self.upcoming_count,
            "completedCount": self.completed_count,
            "totalAttendees": self.total_attendees,
            "totalRevenue": self.total_revenue,
        }


def default_events(now: dt.datetime) -> list[Event]:
    """Seed data written when no data file exists yet."""
    return [
        Event(
            id="1",
            title="Tech Conference 2024",
            description="Annual technology conference featuring industry leaders",
            date=dt.date(2024, 6, 15),
            time=dt.time(9, 0),
            location="Convention Center, Downtown",
            category="Technology",
            capacity=500,
            attendees=120,
            price=299,
            organizer="Tech Events Inc.",
            status=STATUS_COMPLETED,
            created_at=now,
        ),
        Event(
            id="2",
            title="Music Festival",
            description="Three-day music festival with top artists",
            date=dt.date(2024, 7, 20),
            time=dt.time(18, 0),
            location="Central Park",
            category="Entertainment",
            capacity=1000,
            attendees=850,
            price=150,
            organizer="Music Productions",
            status=STATUS_COMPLETED,
            created_at=now,
        ),
        Event(
            id="3",
            title="Business Networking",
            description="Professional networking event for entrepreneurs",
            date=dt.date(2024, 5, 10),
            time=dt.time(19, 0),
            location="Grand Hotel",
            category="Business",
            capacity=200,
            attendees=180,
            price=75,
            organizer="Business Network",
            status=STATUS_COMPLETED,
            created_at=now,
        ),
    ]
