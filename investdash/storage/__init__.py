# Storage module
"""Persistence for portfolio, watchlist and alert state."""

from .storage import IStorageService, JsonFileStorage

__all__ = ["IStorageService", "JsonFileStorage"]
