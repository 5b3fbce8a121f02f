"""Data models for watchlists and price alerts."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from investdash.market.models import Asset
from investdash.portfolio.models import new_id, utcnow

WatchDirection = Literal["above", "below"]
AlertType = Literal["price_above", "price_below", "percent_change"]

ALERT_TYPES = ("price_above", "price_below", "percent_change")


@dataclass
class WatchlistItem:
    """An asset on the watchlist with an optional price target."""
    asset_id: str
    asset: Asset
    alert_price: Optional[Decimal] = None
    alert_type: Optional[WatchDirection] = None
    notes: Optional[str] = None
    added_at: datetime = field(default_factory=utcnow)
    id: str = field(default_factory=new_id)

    @property
    def target_reached(self) -> bool:
        """True when the snapshot price has crossed the configured target."""
        if self.alert_price is None or self.alert_type is None:
            return False
        if self.alert_type == "above":
            return self.asset.price >= self.alert_price
        return self.asset.price <= self.alert_price


@dataclass
class Watchlist:
    id: str = "watchlist-1"
    name: str = "My Watchlist"
    items: List[WatchlistItem] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class Alert:
    """A price alert on one asset.

    Attributes:
        asset_id: Identity of the watched asset
        asset: Latest asset snapshot seen by the alert manager
        type: price_above, price_below or percent_change
        threshold: Price level, or absolute 24h percent move for percent_change
        triggered: Whether the condition has fired
        triggered_at: When the condition fired
    """
    asset_id: str
    asset: Asset
    type: AlertType
    threshold: Decimal
    triggered: bool = False
    triggered_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=utcnow)
    id: str = field(default_factory=new_id)

    def condition_met(self, asset: Asset) -> bool:
        if self.type == "price_above":
            return asset.price >= self.threshold
        if self.type == "price_below":
            return asset.price <= self.threshold
        return abs(asset.change_percent_24h) >= self.threshold
