"""
High-level use cases for the EventEase API.

The event store owns the in-memory collection and its invariants; the backup
service snapshots the persisted file.  Routers and scripts call these
services instead of touching the JSON file directly.
"""
