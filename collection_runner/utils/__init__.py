"""Utilities package."""

from collection_runner.utils.timestamps import iso_now, now_ms

__all__ = ["iso_now", "now_ms"]
