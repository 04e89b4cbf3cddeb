"""
Persistence adapters.

These modules encapsulate how events are stored and retrieved (today one JSON
file).  Services depend on the adapter rather than touching the file.
"""
