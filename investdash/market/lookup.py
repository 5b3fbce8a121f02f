"""Asset lookup interfaces and the in-memory price book."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from .models import Asset

logger = logging.getLogger(__name__)


class IAssetLookup(ABC):
    """Interface for resolving asset ids to market snapshots.

    Abstracts the source of asset data so the portfolio aggregator and
    watchlist managers can work with any price book implementation.
    """

    @abstractmethod
    def resolve(self, asset_id: str) -> Optional[Asset]:
        """Get the current snapshot for an asset.

        Args:
            asset_id: Asset identity (case-insensitive)

        Returns:
            Asset snapshot, or None if the asset is unknown
        """
        ...

    @abstractmethod
    def all_assets(self) -> List[Asset]:
        """Get every known asset in insertion order."""
        ...


class InMemoryAssetLookup(IAssetLookup):
    """Process-local price book keyed by upper-cased asset id.

    Market providers push fresh snapshots in through ``update_assets`` or
    ``update_price``; readers only ever see immutable ``Asset`` objects.
    """

    def __init__(self, assets: Iterable[Asset] = ()) -> None:
        self._assets: Dict[str, Asset] = {}
        self.update_assets(assets)

    @staticmethod
    def _key(asset_id: str) -> str:
        return asset_id.strip().upper()

    def resolve(self, asset_id: str) -> Optional[Asset]:
        if not asset_id:
            return None
        return self._assets.get(self._key(asset_id))

    def all_assets(self) -> List[Asset]:
        return list(self._assets.values())

    def update_assets(self, assets: Iterable[Asset]) -> None:
        """Insert or replace asset snapshots.

        Snapshots with a non-finite or negative price are skipped.
        """
        for asset in assets:
            if not asset.price.is_finite() or asset.price < 0:
                logger.warning(f"Ignoring snapshot for '{asset.id}' with invalid price {asset.price}")
                continue
            self._assets[self._key(asset.id)] = asset

    def update_price(
        self, asset_id: str, price: Decimal, change_24h: Optional[Decimal] = None
    ) -> Optional[Asset]:
        """Requote a known asset.

        Args:
            asset_id: Asset identity
            price: New price
            change_24h: Optional absolute 24h change reported by the source

        Returns:
            The updated snapshot, or None if the asset is unknown or the
            quote is not a finite positive price
        """
        current = self.resolve(asset_id)
        if current is None:
            logger.warning(f"Price update for unknown asset '{asset_id}' ignored")
            return None
        if not price.is_finite() or price <= 0:
            logger.warning(f"Invalid price {price} for '{asset_id}' ignored")
            return None
        if change_24h is not None and not change_24h.is_finite():
            logger.warning(f"Invalid 24h change {change_24h} for '{asset_id}' ignored")
            return None
        updated = current.with_price(price, change_24h)
        self._assets[self._key(asset_id)] = updated
        return updated

    def top_movers(self, limit: int = 5) -> Dict[str, List[Asset]]:
        """Split assets into top gainers and top losers by 24h percent change."""
        ordered = sorted(self._assets.values(), key=lambda a: a.change_percent_24h, reverse=True)
        gainers = [a for a in ordered if a.change_percent_24h > 0][:limit]
        losers = [a for a in reversed(ordered) if a.change_percent_24h < 0][:limit]
        return {"gainers": gainers, "losers": losers}

    def __len__(self) -> int:
        return len(self._assets)

    def __contains__(self, asset_id: object) -> bool:
        return isinstance(asset_id, str) and self.resolve(asset_id) is not None
