"""Tests for JSON file storage and portfolio persistence."""

from __future__ import annotations

import json
import tempfile
from decimal import Decimal

import pytest
from hypothesis import given, settings, strategies as st

from investdash.market.lookup import InMemoryAssetLookup
from investdash.market.mock_data import MOCK_ASSETS
from investdash.portfolio.aggregator import PortfolioAggregator, PortfolioSerializer
from investdash.storage.storage import JsonFileStorage


json_scalars = st.one_of(
    st.none(),
    st.booleans(),
    st.integers(min_value=-10**12, max_value=10**12),
    st.text(max_size=20),
)
json_documents = st.recursive(
    json_scalars,
    lambda children: st.one_of(
        st.lists(children, max_size=5),
        st.dictionaries(st.text(max_size=10), children, max_size=5),
    ),
    max_leaves=20,
)

positive_quantity_strategy = st.decimals(
    min_value=Decimal("0.001"),
    max_value=Decimal("1000"),
    places=8,
    allow_nan=False,
    allow_infinity=False
)

positive_price_strategy = st.decimals(
    min_value=Decimal("0.01"),
    max_value=Decimal("100000"),
    places=2,
    allow_nan=False,
    allow_infinity=False
)


@given(data=json_documents)
@settings(max_examples=50)
def test_storage_save_load_returns_same_document(data):
    with tempfile.TemporaryDirectory() as tmp:
        storage = JsonFileStorage(tmp)
        storage.save("portfolio", data)

        assert storage.load("portfolio") == data


def test_load_missing_key_returns_none(tmp_path):
    assert JsonFileStorage(tmp_path).load("watchlist") is None


def test_load_corrupted_document_returns_none(tmp_path):
    storage = JsonFileStorage(tmp_path)
    (tmp_path / "alerts.json").write_text("{not json", encoding="utf-8")

    assert storage.load("alerts") is None


def test_save_overwrites_and_leaves_no_temp_files(tmp_path):
    storage = JsonFileStorage(tmp_path)
    storage.save("portfolio", {"v": 1})
    storage.save("portfolio", {"v": 2})

    assert storage.load("portfolio") == {"v": 2}
    assert [p.name for p in tmp_path.iterdir()] == ["portfolio.json"]


def test_failed_save_keeps_previous_document(tmp_path):
    storage = JsonFileStorage(tmp_path)
    storage.save("portfolio", {"v": 1})

    with pytest.raises(TypeError):
        storage.save("portfolio", {"v": object()})

    assert storage.load("portfolio") == {"v": 1}
    assert [p.name for p in tmp_path.iterdir()] == ["portfolio.json"]


def test_keys_and_delete(tmp_path):
    storage = JsonFileStorage(tmp_path / "nested")
    storage.save("watchlist", [])
    storage.save("alerts", [])

    assert storage.keys() == ["alerts", "watchlist"]

    storage.delete("alerts")
    storage.delete("missing")

    assert storage.keys() == ["watchlist"]


def test_key_with_separator_stays_in_base_path(tmp_path):
    storage = JsonFileStorage(tmp_path)
    storage.save("../escape", {"ok": True})

    assert (tmp_path / ".._escape.json").exists()
    assert storage.load("../escape") == {"ok": True}


@given(
    buys=st.lists(
        st.tuples(
            st.sampled_from(["AAPL", "BTC", "ETH", "VTI"]),
            positive_quantity_strategy,
            positive_price_strategy,
        ),
        min_size=0,
        max_size=8,
    )
)
@settings(max_examples=50)
def test_portfolio_persistence_round_trip(buys):
    """
    Holdings and transaction history written through storage come back
    unchanged, and the aggregates are recomputed to the same values.
    """
    lookup = InMemoryAssetLookup(MOCK_ASSETS)
    aggregator = PortfolioAggregator(lookup)
    for asset_id, quantity, price in buys:
        aggregator.add_transaction(asset_id, "buy", quantity, price, fees="1.50", notes="dca")

    with tempfile.TemporaryDirectory() as tmp:
        storage = JsonFileStorage(tmp)
        storage.save("portfolio", PortfolioSerializer.serialize(aggregator))
        data = storage.load("portfolio")

    portfolio, transactions = PortfolioSerializer.deserialize(data, lookup)
    restored = PortfolioAggregator(lookup)
    restored.reset(portfolio, transactions)

    saved = aggregator.portfolio
    result = restored.portfolio
    assert [(h.id, h.asset_id, h.quantity, h.average_cost) for h in result.holdings] == [
        (h.id, h.asset_id, h.quantity, h.average_cost) for h in saved.holdings
    ]
    assert result.total_value == saved.total_value
    assert result.total_cost == saved.total_cost
    assert result.total_profit_loss_percent == saved.total_profit_loss_percent
    assert result.created_at == saved.created_at
    assert [(t.id, t.quantity, t.price, t.fees, t.notes, t.timestamp) for t in restored.get_transactions()] == [
        (t.id, t.quantity, t.price, t.fees, t.notes, t.timestamp) for t in aggregator.get_transactions()
    ]


def test_serialized_portfolio_has_no_aggregates(lookup):
    aggregator = PortfolioAggregator(lookup)
    aggregator.add_holding("AAPL", 10, 150)

    data = PortfolioSerializer.serialize(aggregator)

    assert "total_value" not in data
    assert data["holdings"][0]["quantity"] == "10"
    json.dumps(data)


def test_restored_holding_uses_current_price(lookup):
    aggregator = PortfolioAggregator(lookup)
    aggregator.add_holding("NVDA", 2, 400)
    data = PortfolioSerializer.serialize(aggregator)

    lookup.update_price("NVDA", Decimal("500"))
    portfolio, _ = PortfolioSerializer.deserialize(data, lookup)
    restored = PortfolioAggregator(lookup, portfolio)

    assert restored.portfolio.total_value == Decimal("1000")
    assert restored.portfolio.total_profit_loss == Decimal("200")


def test_restored_holding_falls_back_to_stored_asset(lookup):
    aggregator = PortfolioAggregator(lookup)
    aggregator.add_holding("QQQ", 3, 400)
    data = PortfolioSerializer.serialize(aggregator)

    portfolio, _ = PortfolioSerializer.deserialize(data, InMemoryAssetLookup())

    assert portfolio.holdings[0].asset.name == "Invesco QQQ Trust"
