"""Scribe Dispatch: signed webhook delivery and notification fan-out."""

__version__ = "1.0.0"
