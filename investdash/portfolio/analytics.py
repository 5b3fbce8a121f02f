"""Portfolio analytics: allocation breakdowns and trading performance."""

import csv
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from .models import ZERO, HUNDRED, Portfolio, Transaction, percent_of


@dataclass(frozen=True)
class AllocationSlice:
    """One slice of an allocation breakdown.

    Attributes:
        name: Asset symbol or capitalised asset type
        value: Market value in the slice
        percent: Share of the portfolio's total value (0-100)
        type: Asset type of the slice
    """
    name: str
    value: Decimal
    percent: Decimal
    type: str


def allocation_by_asset(portfolio: Portfolio) -> List[AllocationSlice]:
    """Allocation per holding, largest first."""
    slices = [
        AllocationSlice(
            name=h.asset.symbol,
            value=h.current_value,
            percent=percent_of(h.current_value, portfolio.total_value),
            type=h.asset.type,
        )
        for h in portfolio.holdings
    ]
    return sorted(slices, key=lambda s: s.value, reverse=True)


def allocation_by_type(portfolio: Portfolio) -> List[AllocationSlice]:
    """Allocation grouped by asset type, in first-seen order."""
    groups: Dict[str, Decimal] = {}
    for h in portfolio.holdings:
        groups[h.asset.type] = groups.get(h.asset.type, ZERO) + h.current_value
    return [
        AllocationSlice(
            name=asset_type.capitalize(),
            value=value,
            percent=percent_of(value, portfolio.total_value),
            type=asset_type,
        )
        for asset_type, value in groups.items()
    ]


@dataclass
class PerformanceMetrics:
    """Performance metrics for trading activity.

    Attributes:
        total_trades: Total number of completed sell trades
        profitable_trades: Number of trades with positive PnL
        win_rate: Percentage of profitable trades (0-100)
        realized_pnl: Total realized profit/loss from closed positions, net of sell fees
        total_volume: Total trading volume (sum of all transaction values)
        total_fees: Sum of fees over all transactions
    """
    total_trades: int
    profitable_trades: int
    win_rate: Decimal
    realized_pnl: Decimal
    total_volume: Decimal
    total_fees: Decimal


class IPerformanceAnalytics(ABC):
    """Interface for performance analytics operations."""

    @abstractmethod
    def calculate_metrics(self, transactions: List[Transaction]) -> PerformanceMetrics:
        """Calculate comprehensive performance metrics from transactions."""
        ...

    @abstractmethod
    def calculate_realized_pnl(self, transactions: List[Transaction]) -> Decimal:
        """Calculate total realized PnL from all sells."""
        ...

    @abstractmethod
    def export_to_csv(self, transactions: List[Transaction], filepath: str) -> None:
        """Export transaction history to CSV file."""
        ...

    @abstractmethod
    def sort_transactions_by_timestamp(
        self, transactions: List[Transaction], descending: bool = True
    ) -> List[Transaction]:
        """Sort transactions by timestamp, most recent first by default."""
        ...


class PerformanceAnalytics(IPerformanceAnalytics):
    """Concrete implementation of performance analytics.

    Replays the transaction log with the same weighted average cost
    method the aggregator uses, so realized PnL on a sell is
    (sell price - average cost) x quantity.
    """

    def calculate_metrics(self, transactions: List[Transaction]) -> PerformanceMetrics:
        """Calculate comprehensive performance metrics from transactions.

        Args:
            transactions: List of all transactions

        Returns:
            PerformanceMetrics with calculated values
        """
        sell_pnls = self._calculate_per_trade_pnl(transactions)
        total_trades = len(sell_pnls)
        profitable_trades = sum(1 for pnl in sell_pnls if pnl > ZERO)
        if total_trades > 0:
            win_rate = Decimal(profitable_trades) / Decimal(total_trades) * HUNDRED
        else:
            win_rate = ZERO

        return PerformanceMetrics(
            total_trades=total_trades,
            profitable_trades=profitable_trades,
            win_rate=win_rate,
            realized_pnl=sum(sell_pnls, ZERO),
            total_volume=sum((txn.total for txn in transactions), ZERO),
            total_fees=sum((txn.fees for txn in transactions), ZERO),
        )

    def calculate_realized_pnl(self, transactions: List[Transaction]) -> Decimal:
        return sum(self._calculate_per_trade_pnl(transactions), ZERO)

    def _calculate_per_trade_pnl(self, transactions: List[Transaction]) -> List[Decimal]:
        """Calculate PnL for each sell transaction.

        Sells without enough recorded buys before them (e.g. imported
        history) are costed against whatever basis exists; a sell with no
        basis at all contributes 0.
        """
        # {asset_id: (total_quantity, total_cost)}
        cost_basis: Dict[str, Tuple[Decimal, Decimal]] = {}
        sell_pnls: List[Decimal] = []

        for txn in sorted(transactions, key=lambda t: t.timestamp):
            key = txn.asset_id.upper()
            qty, cost = cost_basis.get(key, (ZERO, ZERO))

            if txn.type == "buy":
                cost_basis[key] = (qty + txn.quantity, cost + txn.total)
                continue

            if qty <= ZERO:
                sell_pnls.append(ZERO)
                continue

            avg_cost = cost / qty
            sold = min(txn.quantity, qty)
            sell_pnls.append((txn.price - avg_cost) * sold - txn.fees)
            remaining = qty - sold
            cost_basis[key] = (remaining, avg_cost * remaining)

        return sell_pnls

    def sort_transactions_by_timestamp(
        self, transactions: List[Transaction], descending: bool = True
    ) -> List[Transaction]:
        return sorted(transactions, key=lambda t: t.timestamp, reverse=descending)

    def filter_transactions(
        self,
        transactions: List[Transaction],
        asset_id: Optional[str] = None,
        type: Optional[str] = None,
    ) -> List[Transaction]:
        """Filter transactions by asset and/or type, preserving order."""
        out = transactions
        if asset_id:
            out = [t for t in out if t.asset_id.upper() == asset_id.upper()]
        if type:
            out = [t for t in out if t.type == type]
        return list(out)

    def export_to_csv(self, transactions: List[Transaction], filepath: str) -> None:
        """Export transaction history to CSV file.

        Args:
            transactions: List of transactions to export
            filepath: Path to output CSV file
        """
        fieldnames = ["id", "asset_id", "symbol", "type", "quantity", "price", "total", "fees", "timestamp", "notes"]

        with open(filepath, "w", newline="", encoding="utf-8") as csvfile:
            writer = csv.DictWriter(csvfile, fieldnames=fieldnames)
            writer.writeheader()

            for txn in transactions:
                writer.writerow({
                    "id": txn.id,
                    "asset_id": txn.asset_id,
                    "symbol": txn.asset.symbol,
                    "type": txn.type,
                    "quantity": str(txn.quantity),
                    "price": str(txn.price),
                    "total": str(txn.total),
                    "fees": str(txn.fees),
                    "timestamp": txn.timestamp.isoformat(),
                    "notes": txn.notes or "",
                })
