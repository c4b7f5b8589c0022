"""slotbook: availability and booking engine for meeting event types."""

__version__ = "0.1.0"
