"""
Core utilities shared across the EventEase API.

This package hosts configuration helpers (env vars, storage paths, the
capacity policy) and the logging setup used by the app and the scripts.
"""
