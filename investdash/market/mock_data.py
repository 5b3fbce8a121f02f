"""Mock market data and deterministic series generators.

Seeds the dashboard with a fixed asset universe, a demo portfolio, sample
watchlist entries and alerts so the application is usable without any
network access.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, Dict, List, Tuple

from .models import Asset


def _asset(
    id: str,
    name: str,
    type: str,
    price: str,
    change: str,
    change_pct: str,
    market_cap: str,
    volume: str,
    high: str,
    low: str,
) -> Asset:
    return Asset(
        id=id,
        symbol=id,
        name=name,
        type=type,  # type: ignore[arg-type]
        price=Decimal(price),
        change_24h=Decimal(change),
        change_percent_24h=Decimal(change_pct),
        market_cap=Decimal(market_cap),
        volume_24h=Decimal(volume),
        high_24h=Decimal(high),
        low_24h=Decimal(low),
    )


MOCK_ASSETS: Tuple[Asset, ...] = (
    _asset("AAPL", "Apple Inc.", "stock", "178.72", "2.34", "1.33", "2780000000000", "52340000", "179.50", "175.80"),
    _asset("GOOGL", "Alphabet Inc.", "stock", "141.80", "-1.20", "-0.84", "1780000000000", "28450000", "143.20", "140.50"),
    _asset("MSFT", "Microsoft Corporation", "stock", "378.91", "4.56", "1.22", "2810000000000", "19870000", "380.00", "374.20"),
    _asset("NVDA", "NVIDIA Corporation", "stock", "495.22", "12.88", "2.67", "1220000000000", "41230000", "498.00", "480.50"),
    _asset("TSLA", "Tesla Inc.", "stock", "238.45", "-5.67", "-2.32", "756000000000", "98760000", "245.00", "236.20"),
    _asset("AMZN", "Amazon.com Inc.", "stock", "178.25", "1.89", "1.07", "1850000000000", "45670000", "179.80", "176.00"),
    _asset("META", "Meta Platforms Inc.", "stock", "505.75", "8.32", "1.67", "1290000000000", "15890000", "508.00", "496.50"),
    _asset("BTC", "Bitcoin", "crypto", "67234.50", "1245.30", "1.89", "1320000000000", "28500000000", "68000.00", "65800.00"),
    _asset("ETH", "Ethereum", "crypto", "3456.78", "-45.23", "-1.29", "415000000000", "12400000000", "3520.00", "3420.00"),
    _asset("SOL", "Solana", "crypto", "148.92", "8.45", "6.02", "65000000000", "3200000000", "152.00", "140.00"),
    _asset("SPY", "SPDR S&P 500 ETF", "etf", "456.78", "3.21", "0.71", "420000000000", "78900000", "458.00", "453.50"),
    _asset("QQQ", "Invesco QQQ Trust", "etf", "389.45", "4.56", "1.18", "198000000000", "45600000", "391.00", "385.20"),
    _asset("VTI", "Vanguard Total Stock Market ETF", "etf", "234.56", "1.23", "0.53", "320000000000", "4500000", "235.50", "233.00"),
)

# (asset_id, quantity, average_cost)
MOCK_HOLDINGS: Tuple[Tuple[str, str, str], ...] = (
    ("AAPL", "50", "145.00"),
    ("GOOGL", "25", "120.50"),
    ("MSFT", "30", "320.00"),
    ("NVDA", "15", "280.00"),
    ("BTC", "0.75", "42000.00"),
    ("ETH", "5", "2200.00"),
    ("SPY", "40", "420.00"),
    ("SOL", "100", "85.00"),
)

# (asset_id, type, quantity, price, timestamp, fees)
MOCK_TRANSACTIONS: Tuple[Tuple[str, str, str, str, str, str], ...] = (
    ("BTC", "buy", "0.5", "38000.00", "2023-02-10T09:00:00+00:00", "25.00"),
    ("AAPL", "buy", "25", "142.00", "2023-03-15T10:30:00+00:00", "4.95"),
    ("NVDA", "buy", "15", "280.00", "2023-04-05T13:45:00+00:00", "4.95"),
    ("AAPL", "buy", "25", "148.00", "2023-06-22T14:15:00+00:00", "4.95"),
    ("TSLA", "sell", "10", "260.00", "2023-08-15T15:00:00+00:00", "4.95"),
    ("BTC", "buy", "0.25", "50000.00", "2023-11-20T11:30:00+00:00", "18.00"),
)

# (asset_id, alert_price, alert_type, notes)
MOCK_WATCHLIST: Tuple[Tuple[str, str | None, str | None, str | None], ...] = (
    ("TSLA", "250.00", "above", "Wait for breakout above $250"),
    ("META", "480.00", "below", "Buy opportunity if drops below $480"),
    ("SOL", "200.00", "above", "Take profits at $200"),
    ("QQQ", None, None, None),
    ("AMZN", "170.00", "below", "Strong support at $170"),
)

# (asset_id, type, threshold)
MOCK_ALERTS: Tuple[Tuple[str, str, str], ...] = (
    ("BTC", "price_above", "70000"),
    ("NVDA", "price_above", "500"),
    ("ETH", "price_below", "3000"),
)

# Fixed anchor so generated series are reproducible
SERIES_ANCHOR = datetime(2024, 1, 18, tzinfo=timezone.utc)


def seeded_random(seed: int) -> Callable[[], float]:
    """Linear congruential generator returning floats in [0, 1]."""
    state = seed & 0x7FFFFFFF

    def _next() -> float:
        nonlocal state
        state = (state * 1103515245 + 12345) & 0x7FFFFFFF
        return state / 0x7FFFFFFF

    return _next


def generate_price_history(
    base_price: Decimal, days: int = 365, volatility: float = 0.02
) -> List[Dict[str, object]]:
    """Generate a deterministic daily price series ending at ``base_price``.

    Args:
        base_price: Current price; the last point always equals it
        days: Number of days of history before the anchor date
        volatility: Daily relative move scale

    Returns:
        List of {"timestamp", "price", "volume"} points, oldest first
    """
    base = float(base_price)
    rnd = seeded_random(int(base * 1000))
    current = base * (1 - days * volatility * 0.1)
    floor = base * 0.3
    history: List[Dict[str, object]] = []
    for i in range(days, -1, -1):
        change = (rnd() - 0.48) * volatility * current
        current = max(current + change, floor)
        history.append({
            "timestamp": SERIES_ANCHOR - timedelta(days=i),
            "price": Decimal(str(round(current, 2))),
            "volume": int(rnd() * 100_000_000),
        })
    if history:
        history[-1]["price"] = base_price
    return history


def generate_portfolio_history(total_value: Decimal, days: int = 90) -> List[Dict[str, object]]:
    """Generate a deterministic daily portfolio value series ending at ``total_value``."""
    target = float(total_value)
    rnd = seeded_random(int(target) + days)
    value = target * 0.85
    floor = target * 0.5
    anchor: date = SERIES_ANCHOR.date()
    history: List[Dict[str, object]] = []
    for i in range(days, -1, -1):
        change = (rnd() - 0.45) * value * 0.015
        value = max(value + change, floor)
        history.append({
            "date": (anchor - timedelta(days=i)).isoformat(),
            "value": Decimal(str(round(value, 2))),
        })
    history[-1]["value"] = total_value
    return history
