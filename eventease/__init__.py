"""EventEase: persistent event records with capacity-bounded registration."""

__version__ = "1.0.0"
