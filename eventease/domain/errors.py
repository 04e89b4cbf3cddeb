"""Error taxonomy for the event store.

Every error carries a user-safe message, a machine code and the HTTP status
the web layer should answer with.
"""
from __future__ import annotations


class EventStoreError(Exception):
    """Base error raised across the store boundary."""

    code = "error"
    status_code = 500

    def __init__(self, message: str, code: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code


class StoreNotReadyError(EventStoreError):
    """Raised when the store is used before init() completed."""

    code = "not_ready"
    status_code = 503

    def __init__(self, message: str = "Storage not ready yet") -> None:
        super().__init__(message)


class EventNotFoundError(EventStoreError):
    """Raised when no event has the requested id."""

    code = "not_found"
    status_code = 404

    def __init__(self, event_id: str) -> None:
        super().__init__("Event not found")
        self.event_id = event_id


class InvalidEventError(EventStoreError):
    """Raised when input data is missing a required field or has a bad value."""

    code = "invalid"
    status_code = 400


class InvalidStateError(EventStoreError):
    """Raised when a mutation would break a record invariant."""

    code = "invalid_state"
    status_code = 400


class DuplicateEventError(InvalidStateError):
    """Raised when creating an event with an id that is already taken."""

    code = "duplicate"
    status_code = 409

    def __init__(self, event_id: str) -> None:
        super().__init__(f"Event id {event_id!r} already exists")
        self.event_id = event_id


class CapacityExceededError(EventStoreError):
    """Raised when registering for an event that is already full."""

    code = "capacity_exceeded"
    status_code = 400

    def __init__(self, event_id: str) -> None:
        super().__init__("Event is at full capacity")
        self.event_id = event_id


class DataFileNotFoundError(EventStoreError):
    """Raised by the persistence adapter when the data file does not exist."""

    code = "data_missing"


class CorruptDataError(EventStoreError):
    """Raised when the persisted file cannot be parsed into events."""

    code = "corrupt_data"


class StorageIOError(EventStoreError):
    """Raised when reading or writing the data file fails."""

    code = "io_failure"
