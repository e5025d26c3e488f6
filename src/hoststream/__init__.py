"""hoststream - local telemetry streaming service."""

__version__ = "0.1.0"
