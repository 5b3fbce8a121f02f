"""Data models for market assets."""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Literal, Optional

AssetType = Literal["stock", "crypto", "etf"]

ASSET_TYPES = ("stock", "crypto", "etf")


@dataclass(frozen=True)
class Asset:
    """Immutable market snapshot for a single asset.

    Attributes:
        id: Lookup identity (e.g. "AAPL", "BTC")
        symbol: Display ticker
        name: Human readable name
        type: One of "stock", "crypto" or "etf"
        price: Last traded price
        change_24h: Absolute price change over the last 24 hours
        change_percent_24h: Relative price change over the last 24 hours
        market_cap: Market capitalisation
        volume_24h: Traded volume over the last 24 hours
        high_24h: Highest price over the last 24 hours
        low_24h: Lowest price over the last 24 hours
        logo_url: Optional logo for display
    """
    id: str
    symbol: str
    name: str
    type: AssetType
    price: Decimal
    change_24h: Decimal = Decimal("0")
    change_percent_24h: Decimal = Decimal("0")
    market_cap: Decimal = Decimal("0")
    volume_24h: Decimal = Decimal("0")
    high_24h: Decimal = Decimal("0")
    low_24h: Decimal = Decimal("0")
    logo_url: Optional[str] = None

    def with_price(self, price: Decimal, change_24h: Optional[Decimal] = None) -> "Asset":
        """Return a copy of this asset quoted at a new price.

        When ``change_24h`` is omitted the previous close implied by the
        current snapshot is kept, so the 24h change moves with the price.
        """
        previous_close = self.price - self.change_24h
        if change_24h is None:
            change_24h = price - previous_close
        else:
            previous_close = price - change_24h
        if previous_close:
            change_pct = change_24h / previous_close * Decimal("100")
        else:
            change_pct = Decimal("0")
        return replace(
            self,
            price=price,
            change_24h=change_24h,
            change_percent_24h=change_pct,
            high_24h=max(self.high_24h, price),
            low_24h=min(self.low_24h, price) if self.low_24h else price,
        )


_DECIMAL_FIELDS = (
    "price",
    "change_24h",
    "change_percent_24h",
    "market_cap",
    "volume_24h",
    "high_24h",
    "low_24h",
)


def asset_to_dict(asset: Asset) -> dict:
    """Serialize an asset snapshot to a JSON-compatible dictionary."""
    data = {
        "id": asset.id,
        "symbol": asset.symbol,
        "name": asset.name,
        "type": asset.type,
        "logo_url": asset.logo_url,
    }
    for name in _DECIMAL_FIELDS:
        data[name] = str(getattr(asset, name))
    return data


def asset_from_dict(data: dict) -> Asset:
    """Restore an asset snapshot written by ``asset_to_dict``."""
    return Asset(
        id=data["id"],
        symbol=data.get("symbol", data["id"]),
        name=data.get("name", data["id"]),
        type=data.get("type", "stock"),
        logo_url=data.get("logo_url"),
        **{name: Decimal(data.get(name, "0")) for name in _DECIMAL_FIELDS},
    )
