"""Domain objects (events, errors) with no dependency on storage or HTTP."""
