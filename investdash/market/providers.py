from __future__ import annotations

import logging
import ssl
import threading
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

import certifi
import httpx
import truststore

from .lookup import IAssetLookup, InMemoryAssetLookup
from .mock_data import seeded_random
from .models import Asset

logger = logging.getLogger(__name__)

COINGECKO_BASE = "https://api.coingecko.com/api/v3"

# CoinGecko coin ids for the crypto symbols the dashboard knows about
COINGECKO_IDS: Dict[str, str] = {
    "BTC": "bitcoin",
    "ETH": "ethereum",
    "SOL": "solana",
    "BNB": "binancecoin",
    "ADA": "cardano",
    "XRP": "ripple",
    "DOGE": "dogecoin",
}


def _dec(value: object, default: str = "0") -> Decimal:
    if value is None:
        return Decimal(default)
    return Decimal(str(value))


class IMarketProvider(ABC):
    """Interface for market snapshot sources."""

    @abstractmethod
    def fetch(self, asset_ids: Iterable[str]) -> Dict[str, Asset]:
        """Fetch fresh snapshots keyed by upper-cased asset id.

        Ids the source does not cover are left out of the result.
        """
        ...

    def close(self) -> None:
        pass


class MockMarketProvider(IMarketProvider):
    """Generated quotes: a seeded random walk over the current price book.

    Each ``fetch`` nudges the price of every requested asset by at most
    ``volatility`` and keeps the previous close, so 24h change figures
    move consistently with the price.
    """

    def __init__(self, lookup: IAssetLookup, seed: int = 42, volatility: float = 0.005) -> None:
        self._lookup = lookup
        self._rnd = seeded_random(seed)
        self._volatility = volatility

    def fetch(self, asset_ids: Iterable[str]) -> Dict[str, Asset]:
        out: Dict[str, Asset] = {}
        for asset_id in asset_ids:
            asset = self._lookup.resolve(asset_id)
            if asset is None:
                continue
            step = (self._rnd() - 0.5) * 2 * self._volatility
            price = (asset.price * (Decimal("1") + Decimal(str(round(step, 6))))).quantize(Decimal("0.01"))
            if price <= 0:
                price = asset.price
            out[asset.id.upper()] = asset.with_price(price)
        return out


class CoinGeckoProvider(IMarketProvider):
    """Crypto quotes from the public CoinGecko API.

    Symbols are mapped to CoinGecko coin ids through ``COINGECKO_IDS``;
    coins listed by ``fetch_top`` are added to that map so they can be
    refreshed by ``fetch`` afterwards.
    """

    def __init__(self, timeout_s: float = 7.0, base_url: str = COINGECKO_BASE) -> None:
        self._client = httpx.Client(base_url=base_url, timeout=timeout_s, verify=self._make_ssl_context())
        self._lock = threading.Lock()
        self._coin_ids: Dict[str, str] = dict(COINGECKO_IDS)

    def fetch(self, asset_ids: Iterable[str]) -> Dict[str, Asset]:
        wanted = {a.strip().upper() for a in asset_ids}
        ids = [self._coin_ids[s] for s in sorted(wanted) if s in self._coin_ids]
        if not ids:
            return {}
        out = {}
        for asset in self.fetch_markets(ids):
            if asset.id in wanted:
                out[asset.id] = asset
        return out

    def fetch_markets(self, coin_ids: List[str], vs_currency: str = "usd") -> List[Asset]:
        params = {
            "vs_currency": vs_currency,
            "ids": ",".join(coin_ids),
            "order": "market_cap_desc",
            "per_page": max(len(coin_ids), 1),
            "page": 1,
            "sparkline": "false",
        }
        with self._lock:
            r = self._client.get("/coins/markets", params=params)
        r.raise_for_status()
        out: List[Asset] = []
        last_err: Exception | None = None
        for coin in r.json() or []:
            try:
                out.append(self._to_asset(coin))
            except (KeyError, TypeError, ArithmeticError) as e:
                last_err = e
                logger.warning(f"Skipping malformed CoinGecko entry {coin!r}: {e}")
                continue
        if not out and last_err:
            raise last_err
        return out

    def fetch_top(self, limit: int = 20) -> List[Asset]:
        params = {"vs_currency": "usd", "order": "market_cap_desc", "per_page": int(limit), "page": 1}
        with self._lock:
            r = self._client.get("/coins/markets", params=params)
        r.raise_for_status()
        out: List[Asset] = []
        for coin in r.json() or []:
            try:
                asset = self._to_asset(coin)
            except (KeyError, TypeError, ArithmeticError) as e:
                logger.warning(f"Skipping malformed CoinGecko entry {coin!r}: {e}")
                continue
            if coin.get("id"):
                self._coin_ids.setdefault(asset.id, str(coin["id"]))
            out.append(asset)
        return out

    @staticmethod
    def _to_asset(coin: dict) -> Asset:
        symbol = str(coin["symbol"]).upper()
        return Asset(
            id=symbol,
            symbol=symbol,
            name=str(coin.get("name") or symbol),
            type="crypto",
            price=_dec(coin["current_price"]),
            change_24h=_dec(coin.get("price_change_24h")),
            change_percent_24h=_dec(coin.get("price_change_percentage_24h")),
            market_cap=_dec(coin.get("market_cap")),
            volume_24h=_dec(coin.get("total_volume")),
            high_24h=_dec(coin.get("high_24h")),
            low_24h=_dec(coin.get("low_24h")),
            logo_url=coin.get("image"),
        )

    def close(self) -> None:
        self._client.close()

    def _make_ssl_context(self) -> ssl.SSLContext:
        # OS trust store first, certifi bundle when the platform store is unusable
        try:
            return truststore.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
        except (ssl.SSLError, OSError) as e:
            logger.warning(f"System trust store unavailable, using certifi bundle: {e}")
            return ssl.create_default_context(cafile=certifi.where())


def create_provider(source: str, lookup: IAssetLookup, timeout_s: float = 7.0) -> IMarketProvider:
    source = source.lower()
    if source == "coingecko":
        return CoinGeckoProvider(timeout_s=timeout_s)
    if source != "mock":
        logger.warning(f"Unknown market source '{source}', using mock data")
    return MockMarketProvider(lookup)


def refresh_lookup(
    provider: IMarketProvider,
    lookup: InMemoryAssetLookup,
    asset_ids: Optional[Iterable[str]] = None,
) -> int:
    """Pull fresh snapshots from ``provider`` into ``lookup``.

    Returns:
        Number of assets updated
    """
    ids = list(asset_ids) if asset_ids is not None else [a.id for a in lookup.all_assets()]
    fresh = provider.fetch(ids)
    lookup.update_assets(fresh.values())
    return len(fresh)
