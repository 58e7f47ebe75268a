"""Utility modules."""

from services.lending.src.lending.utils.timestamps import to_unix, truncate_to_hour

__all__ = ["truncate_to_hour", "to_unix"]
