# Watchlist module
"""Watchlist membership, price targets and alerts."""

from .models import Alert, Watchlist, WatchlistItem
from .manager import AlertManager, WatchlistManager, WatchlistSerializer

__all__ = [
    "Alert",
    "Watchlist",
    "WatchlistItem",
    "AlertManager",
    "WatchlistManager",
    "WatchlistSerializer",
]
