"""Property-based tests for allocation and performance analytics."""

from __future__ import annotations

import csv
import os
import tempfile
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from hypothesis import given, settings, strategies as st

from investdash.market.lookup import InMemoryAssetLookup
from investdash.market.mock_data import MOCK_ASSETS
from investdash.portfolio.aggregator import PortfolioAggregator
from investdash.portfolio.analytics import (
    PerformanceAnalytics,
    allocation_by_asset,
    allocation_by_type,
)
from investdash.portfolio.models import Portfolio, Transaction


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

asset_id_strategy = st.sampled_from(["AAPL", "BTC", "ETH", "SPY", "QQQ", "SOL"])

LOOKUP = InMemoryAssetLookup(MOCK_ASSETS)
BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _txn(asset_id: str, kind: str, quantity: str, price: str, minutes: int, fees: str = "0") -> Transaction:
    return Transaction(
        portfolio_id="portfolio-1",
        asset_id=asset_id,
        asset=LOOKUP.resolve(asset_id),
        type=kind,  # type: ignore[arg-type]
        quantity=Decimal(quantity),
        price=Decimal(price),
        timestamp=BASE_TIME + timedelta(minutes=minutes),
        fees=Decimal(fees),
    )


@given(
    buys=st.lists(
        st.tuples(asset_id_strategy, positive_quantity_strategy, positive_price_strategy),
        min_size=1,
        max_size=12,
    )
)
@settings(max_examples=100)
def test_allocation_percentages_sum_to_100(buys):
    """
    For any non-empty portfolio the asset and type allocations each cover
    the whole portfolio value.
    """
    aggregator = PortfolioAggregator(InMemoryAssetLookup(MOCK_ASSETS))
    for asset_id, quantity, price in buys:
        aggregator.add_holding(asset_id, quantity, price)
    portfolio = aggregator.portfolio

    by_asset = allocation_by_asset(portfolio)
    by_type = allocation_by_type(portfolio)

    assert sum((s.value for s in by_asset), Decimal("0")) == portfolio.total_value
    assert abs(sum((s.percent for s in by_asset), Decimal("0")) - 100) < Decimal("1e-20")
    assert abs(sum((s.percent for s in by_type), Decimal("0")) - 100) < Decimal("1e-20")
    assert [s.value for s in by_asset] == sorted((s.value for s in by_asset), reverse=True)
    assert {s.type for s in by_type} == {h.asset.type for h in portfolio.holdings}


def test_allocation_of_empty_portfolio_is_empty():
    assert allocation_by_asset(Portfolio()) == []
    assert allocation_by_type(Portfolio()) == []


def test_allocation_by_type_groups_and_capitalises():
    aggregator = PortfolioAggregator(InMemoryAssetLookup(MOCK_ASSETS))
    aggregator.add_holding("AAPL", 1, 1)
    aggregator.add_holding("BTC", 1, 1)
    aggregator.add_holding("MSFT", 1, 1)

    slices = allocation_by_type(aggregator.portfolio)

    assert [s.name for s in slices] == ["Stock", "Crypto"]
    assert slices[0].value == LOOKUP.resolve("AAPL").price + LOOKUP.resolve("MSFT").price


def test_realized_pnl_uses_weighted_average_cost():
    analytics = PerformanceAnalytics()
    txns = [
        _txn("AAPL", "buy", "10", "100", 0),
        _txn("AAPL", "buy", "10", "200", 1),
        _txn("AAPL", "sell", "5", "180", 2, fees="1"),
        _txn("AAPL", "sell", "5", "120", 3),
    ]

    metrics = analytics.calculate_metrics(txns)

    # average cost 150: (180-150)*5 - 1 = 149, (120-150)*5 = -150
    assert metrics.realized_pnl == Decimal("-1")
    assert metrics.total_trades == 2
    assert metrics.profitable_trades == 1
    assert metrics.win_rate == Decimal("50")
    assert metrics.total_fees == Decimal("1")
    assert metrics.total_volume == Decimal("1000") + Decimal("2000") + Decimal("900") + Decimal("600")


def test_sell_without_prior_buy_counts_as_zero():
    analytics = PerformanceAnalytics()

    pnl = analytics.calculate_realized_pnl([_txn("TSLA", "sell", "10", "260", 0)])

    assert pnl == 0


def test_no_trades_means_zero_win_rate():
    metrics = PerformanceAnalytics().calculate_metrics([_txn("BTC", "buy", "1", "100", 0)])

    assert metrics.total_trades == 0
    assert metrics.win_rate == 0


@given(
    minutes=st.lists(st.integers(min_value=0, max_value=100_000), min_size=0, max_size=20),
    descending=st.booleans(),
)
@settings(max_examples=100)
def test_sort_transactions_by_timestamp(minutes, descending):
    txns = [_txn("ETH", "buy", "1", "10", m) for m in minutes]

    ordered = PerformanceAnalytics().sort_transactions_by_timestamp(txns, descending=descending)

    stamps = [t.timestamp for t in ordered]
    assert stamps == sorted(stamps, reverse=descending)
    assert len(ordered) == len(txns)


def test_filter_transactions():
    analytics = PerformanceAnalytics()
    txns = [
        _txn("AAPL", "buy", "1", "1", 0),
        _txn("BTC", "buy", "1", "1", 1),
        _txn("AAPL", "sell", "1", "1", 2),
    ]

    assert len(analytics.filter_transactions(txns, asset_id="aapl")) == 2
    assert len(analytics.filter_transactions(txns, type="buy")) == 2
    assert len(analytics.filter_transactions(txns, asset_id="AAPL", type="sell")) == 1


def test_export_to_csv_writes_every_transaction():
    analytics = PerformanceAnalytics()
    txns = [_txn("AAPL", "buy", "25", "142.00", 0, fees="4.95"), _txn("AAPL", "sell", "5", "150", 1)]

    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "history.csv")
        analytics.export_to_csv(txns, path)
        with open(path, newline="", encoding="utf-8") as f:
            rows = list(csv.DictReader(f))

    assert [r["id"] for r in rows] == [t.id for t in txns]
    assert rows[0]["total"] == "3550.00"
    assert rows[0]["fees"] == "4.95"
    assert rows[1]["type"] == "sell"
