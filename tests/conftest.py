from __future__ import annotations

import os
from decimal import Decimal

import pytest
from PySide6.QtCore import QCoreApplication

from investdash.market.lookup import InMemoryAssetLookup
from investdash.market.mock_data import MOCK_ASSETS
from investdash.market.models import Asset


@pytest.fixture(scope="session", autouse=True)
def _qt_app():
    # Use offscreen to avoid any display requirement in CI
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


def _make_asset(asset_id: str, price: str, change: str = "0", type: str = "stock") -> Asset:
    return Asset(
        id=asset_id,
        symbol=asset_id,
        name=f"{asset_id} Corp",
        type=type,  # type: ignore[arg-type]
        price=Decimal(price),
        change_24h=Decimal(change),
    )


@pytest.fixture
def make_asset():
    """Factory for ad-hoc asset snapshots."""
    return _make_asset


@pytest.fixture
def lookup() -> InMemoryAssetLookup:
    return InMemoryAssetLookup(MOCK_ASSETS)
