# Market module
"""Asset records, price lookup and market data providers."""

from .models import Asset, AssetType, asset_from_dict, asset_to_dict
from .lookup import IAssetLookup, InMemoryAssetLookup
from .mock_data import MOCK_ASSETS, generate_portfolio_history, generate_price_history
from .providers import (
    CoinGeckoProvider,
    IMarketProvider,
    MockMarketProvider,
    create_provider,
    refresh_lookup,
)

__all__ = [
    "Asset",
    "AssetType",
    "asset_to_dict",
    "asset_from_dict",
    "IAssetLookup",
    "InMemoryAssetLookup",
    "MOCK_ASSETS",
    "generate_price_history",
    "generate_portfolio_history",
    "IMarketProvider",
    "MockMarketProvider",
    "CoinGeckoProvider",
    "create_provider",
    "refresh_lookup",
]
