"""Web Gateway - session-aware entry gateway for a versioned REST API."""

__version__ = "1.0.0"
