from __future__ import annotations

from decimal import Decimal

import pytest
from hypothesis import given, settings, strategies as st

from investdash.market.lookup import InMemoryAssetLookup
from investdash.market.mock_data import (
    MOCK_ASSETS,
    SERIES_ANCHOR,
    generate_portfolio_history,
    generate_price_history,
    seeded_random,
)
from investdash.market.models import asset_from_dict, asset_to_dict


def test_with_price_keeps_previous_close(make_asset):
    asset = make_asset("ACME", "100", change="10")

    moved = asset.with_price(Decimal("99"))

    assert moved.price == Decimal("99")
    assert moved.change_24h == Decimal("9")
    assert moved.change_percent_24h == Decimal("10")
    assert moved.high_24h == Decimal("99")
    assert moved.low_24h == Decimal("99")
    assert asset.price == Decimal("100")


def test_with_price_uses_reported_change(make_asset):
    moved = make_asset("ACME", "100").with_price(Decimal("110"), Decimal("10"))

    assert moved.change_24h == Decimal("10")
    assert moved.change_percent_24h == Decimal("10")


def test_with_price_zero_previous_close_has_zero_percent(make_asset):
    moved = make_asset("ACME", "5", change="5").with_price(Decimal("7"), Decimal("7"))

    assert moved.change_percent_24h == 0


def test_asset_dict_round_trip():
    for asset in MOCK_ASSETS:
        assert asset_from_dict(asset_to_dict(asset)) == asset


def test_lookup_is_case_insensitive(lookup):
    assert lookup.resolve("btc") is lookup.resolve("BTC")
    assert lookup.resolve(" aapl ").id == "AAPL"
    assert lookup.resolve("") is None
    assert "eth" in lookup
    assert "NOPE" not in lookup
    assert len(lookup) == len(MOCK_ASSETS)


def test_update_price_unknown_asset_is_ignored(lookup):
    assert lookup.update_price("NOPE", Decimal("1")) is None
    assert len(lookup) == len(MOCK_ASSETS)


def test_update_assets_replaces_snapshot(lookup, make_asset):
    lookup.update_assets([make_asset("aapl", "1")])

    assert lookup.resolve("AAPL").price == Decimal("1")
    assert len(lookup) == len(MOCK_ASSETS)


def test_top_movers_split_by_sign(lookup):
    movers = lookup.top_movers(limit=3)

    gainers = movers["gainers"]
    losers = movers["losers"]
    assert 0 < len(gainers) <= 3
    assert 0 < len(losers) <= 3
    assert all(a.change_percent_24h > 0 for a in gainers)
    assert all(a.change_percent_24h < 0 for a in losers)
    assert [a.change_percent_24h for a in gainers] == sorted((a.change_percent_24h for a in gainers), reverse=True)
    assert [a.change_percent_24h for a in losers] == sorted(a.change_percent_24h for a in losers)


def test_empty_lookup():
    empty = InMemoryAssetLookup()

    assert empty.all_assets() == []
    assert empty.top_movers() == {"gainers": [], "losers": []}


@given(seed=st.integers(min_value=0, max_value=2**31 - 1))
@settings(max_examples=50)
def test_seeded_random_is_reproducible_and_bounded(seed):
    a = seeded_random(seed)
    b = seeded_random(seed)

    values = [a() for _ in range(20)]

    assert values == [b() for _ in range(20)]
    assert all(0 <= v <= 1 for v in values)


@given(
    base=st.decimals(min_value=Decimal("0.5"), max_value=Decimal("100000"), places=2),
    days=st.integers(min_value=0, max_value=60),
)
@settings(max_examples=50)
def test_price_history_ends_at_current_price(base, days):
    history = generate_price_history(base, days=days)

    assert len(history) == days + 1
    assert history[-1]["price"] == base
    assert history[-1]["timestamp"] == SERIES_ANCHOR
    stamps = [p["timestamp"] for p in history]
    assert stamps == sorted(stamps)
    assert history == generate_price_history(base, days=days)


def test_portfolio_history_ends_at_total_value():
    total = Decimal("125000.50")

    history = generate_portfolio_history(total, days=30)

    assert len(history) == 31
    assert history[-1]["value"] == total
    assert history[-1]["date"] == SERIES_ANCHOR.date().isoformat()
    assert all(p["value"] >= total * Decimal("0.5") - Decimal("0.01") for p in history)


@pytest.mark.parametrize("price", [Decimal("NaN"), Decimal("Infinity"), Decimal("0"), Decimal("-1")])
def test_update_price_rejects_invalid_quotes(lookup, price):
    before = lookup.resolve("AAPL")

    assert lookup.update_price("AAPL", price) is None
    assert lookup.resolve("AAPL") is before


def test_update_price_rejects_non_finite_change(lookup):
    before = lookup.resolve("AAPL")

    assert lookup.update_price("AAPL", Decimal("180"), Decimal("NaN")) is None
    assert lookup.resolve("AAPL") is before


def test_update_assets_skips_invalid_prices(lookup, make_asset):
    before = lookup.resolve("TSLA")

    lookup.update_assets([make_asset("TSLA", "NaN"), make_asset("NEWCO", "-3"), make_asset("ZERO", "0")])

    assert lookup.resolve("TSLA") is before
    assert "NEWCO" not in lookup
    assert lookup.resolve("ZERO").price == 0
