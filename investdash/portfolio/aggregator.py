"""Portfolio aggregation: holdings, cost basis and portfolio roll-ups."""

import logging
from dataclasses import replace
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Optional, Tuple

from PySide6.QtCore import QObject, Signal

from investdash.market.lookup import IAssetLookup
from investdash.market.models import Asset, asset_from_dict, asset_to_dict

from .models import ZERO, Holding, Portfolio, Transaction, percent_of, utcnow

logger = logging.getLogger(__name__)


def _to_decimal(value) -> Optional[Decimal]:
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return None
    return result if result.is_finite() else None


def summarize(portfolio: Portfolio) -> Portfolio:
    """Recompute every aggregate of ``portfolio`` from its holdings.

    Totals are full re-sums over the holdings, never deltas, and both
    percentages are defined as 0 when their denominator is 0.
    """
    holdings = portfolio.holdings
    total_value = sum((h.current_value for h in holdings), ZERO)
    total_cost = sum((h.total_cost for h in holdings), ZERO)
    total_profit_loss = total_value - total_cost
    day_change = sum((h.day_change for h in holdings), ZERO)
    return replace(
        portfolio,
        total_value=total_value,
        total_cost=total_cost,
        total_profit_loss=total_profit_loss,
        total_profit_loss_percent=percent_of(total_profit_loss, total_cost),
        day_change=day_change,
        day_change_percent=percent_of(day_change, total_value - day_change),
    )


class PortfolioAggregator(QObject):
    """Owner of the portfolio snapshot and the transaction log.

    All mutation goes through this class. Every mutation replaces the
    portfolio snapshot with a new one whose aggregates are recomputed,
    then emits ``portfolioChanged``. Invalid input (unknown asset,
    non-positive quantity, negative price) is logged and ignored.

    Signals:
        portfolioChanged: Emitted with the new Portfolio snapshot
        transactionAdded: Emitted with each appended Transaction
    """

    portfolioChanged = Signal(object)
    transactionAdded = Signal(object)

    def __init__(
        self,
        lookup: IAssetLookup,
        portfolio: Optional[Portfolio] = None,
        transactions: Optional[Iterable[Transaction]] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        """Initialize the aggregator.

        Args:
            lookup: Asset lookup used to resolve ids and pick up prices
            portfolio: Starting snapshot (default: empty portfolio)
            transactions: Existing transaction history, oldest first
            parent: Optional Qt parent
        """
        super().__init__(parent)
        self._lookup = lookup
        self._portfolio = summarize(portfolio or Portfolio())
        self._transactions: List[Transaction] = list(transactions or [])

    # ----- Read access -----
    @property
    def portfolio(self) -> Portfolio:
        """Current immutable portfolio snapshot."""
        return self._portfolio

    def get_holdings(self) -> List[Holding]:
        return list(self._portfolio.holdings)

    def get_holding(self, holding_id: str) -> Optional[Holding]:
        for holding in self._portfolio.holdings:
            if holding.id == holding_id:
                return holding
        return None

    def get_holding_by_asset(self, asset_id: str) -> Optional[Holding]:
        key = asset_id.upper()
        for holding in self._portfolio.holdings:
            if holding.asset_id.upper() == key:
                return holding
        return None

    def get_transactions(self) -> List[Transaction]:
        """Get all transactions, oldest first."""
        return self._transactions.copy()

    # ----- Mutations -----
    def add_holding(self, asset_id: str, quantity, price) -> Optional[Holding]:
        """Buy into a holding, merging with any existing position.

        A new holding starts with ``average_cost = price``. An existing one
        gets the quantity-weighted mean of its old cost and the new price.
        The asset snapshot is re-resolved so valuation uses the live price,
        not the purchase price.

        Args:
            asset_id: Asset to buy
            quantity: Amount bought, must be > 0
            price: Purchase price per unit, must be >= 0

        Returns:
            The resulting holding, or None if the call was a no-op
        """
        asset = self._resolve(asset_id)
        qty = _to_decimal(quantity)
        cost = _to_decimal(price)
        if asset is None:
            return None
        if qty is None or qty <= ZERO:
            logger.warning(f"Ignoring holding for {asset_id}: invalid quantity {quantity!r}")
            return None
        if cost is None or cost < ZERO:
            logger.warning(f"Ignoring holding for {asset_id}: invalid price {price!r}")
            return None

        holdings = list(self._portfolio.holdings)
        index = self._index_of(asset.id)
        if index is None:
            holding = Holding(
                asset_id=asset.id,
                asset=asset,
                quantity=qty,
                average_cost=cost,
                portfolio_id=self._portfolio.id,
            )
            holdings.append(holding)
        else:
            existing = holdings[index]
            total_quantity = existing.quantity + qty
            new_average_cost = (existing.quantity * existing.average_cost + qty * cost) / total_quantity
            holding = replace(
                existing,
                asset=asset,
                quantity=total_quantity,
                average_cost=new_average_cost,
            )
            holdings[index] = holding

        self._commit(holdings)
        return holding

    def remove_holding(self, holding_id: str) -> bool:
        """Remove a holding by id.

        Returns:
            True if a holding was removed, False if the id was unknown
        """
        holdings = [h for h in self._portfolio.holdings if h.id != holding_id]
        if len(holdings) == len(self._portfolio.holdings):
            return False
        self._commit(holdings)
        return True

    def add_transaction(
        self,
        asset_id: str,
        type: str,
        quantity,
        price,
        *,
        timestamp: Optional[datetime] = None,
        fees=ZERO,
        notes: Optional[str] = None,
    ) -> Optional[Transaction]:
        """Record a trade and apply it to the holdings.

        A buy merges into the holding through ``add_holding``. A sell
        reduces the holding at unchanged average cost and removes it when
        the quantity reaches zero. Sells without a holding, or larger than
        the held quantity, are ignored and not recorded.

        Returns:
            The appended transaction, or None if the call was a no-op
        """
        asset = self._resolve(asset_id)
        if asset is None:
            return None
        kind = str(type).lower()
        qty = _to_decimal(quantity)
        unit_price = _to_decimal(price)
        fee = _to_decimal(fees)
        if kind not in ("buy", "sell"):
            logger.warning(f"Ignoring transaction for {asset_id}: unknown type {type!r}")
            return None
        if qty is None or qty <= ZERO or unit_price is None or unit_price < ZERO:
            logger.warning(f"Ignoring {kind} of {asset_id}: invalid quantity/price {quantity!r}@{price!r}")
            return None
        if fee is None or fee < ZERO:
            fee = ZERO

        if kind == "sell":
            held = self.get_holding_by_asset(asset.id)
            held_quantity = held.quantity if held else ZERO
            if qty > held_quantity:
                logger.warning(f"Ignoring sell of {qty} {asset.id}: only {held_quantity} held")
                return None

        transaction = Transaction(
            portfolio_id=self._portfolio.id,
            asset_id=asset.id,
            asset=asset,
            type=kind,  # type: ignore[arg-type]
            quantity=qty,
            price=unit_price,
            timestamp=timestamp or utcnow(),
            fees=fee,
            notes=notes,
        )
        self._transactions.append(transaction)
        self.transactionAdded.emit(transaction)

        if kind == "buy":
            self.add_holding(asset.id, qty, unit_price)
        else:
            self._reduce_holding(asset, qty)
        return transaction

    def recalculate_portfolio(self) -> Portfolio:
        """Re-resolve every holding's asset and recompute all aggregates.

        Cost basis is left untouched; only valuation moves. Holdings whose
        asset no longer resolves keep their previous snapshot.
        """
        holdings = []
        for holding in self._portfolio.holdings:
            asset = self._lookup.resolve(holding.asset_id)
            holdings.append(holding if asset is None else replace(holding, asset=asset))
        self._commit(holdings)
        return self._portfolio

    def reset(
        self,
        portfolio: Optional[Portfolio] = None,
        transactions: Optional[Iterable[Transaction]] = None,
    ) -> None:
        """Replace the whole state, e.g. after loading from storage."""
        self._portfolio = summarize(portfolio or Portfolio())
        self._transactions = list(transactions or [])
        self.portfolioChanged.emit(self._portfolio)

    # ----- Internals -----
    def _resolve(self, asset_id: str) -> Optional[Asset]:
        asset = self._lookup.resolve(asset_id) if asset_id else None
        if asset is None:
            logger.warning(f"Unknown asset '{asset_id}', skipping")
        return asset

    def _index_of(self, asset_id: str) -> Optional[int]:
        key = asset_id.upper()
        for i, holding in enumerate(self._portfolio.holdings):
            if holding.asset_id.upper() == key:
                return i
        return None

    def _reduce_holding(self, asset: Asset, quantity: Decimal) -> None:
        holdings = list(self._portfolio.holdings)
        index = self._index_of(asset.id)
        if index is None:
            return
        existing = holdings[index]
        remaining = existing.quantity - quantity
        if remaining == ZERO:
            del holdings[index]
        else:
            holdings[index] = replace(existing, asset=asset, quantity=remaining)
        self._commit(holdings)

    def _commit(self, holdings: List[Holding]) -> None:
        self._portfolio = summarize(
            replace(self._portfolio, holdings=tuple(holdings), updated_at=utcnow())
        )
        self.portfolioChanged.emit(self._portfolio)


class PortfolioSerializer:
    """Serializer for portfolio state to/from JSON-compatible dictionaries."""

    @staticmethod
    def serialize(aggregator: PortfolioAggregator) -> dict:
        """Serialize holdings and transaction history.

        Aggregates are not written; they are recomputed on load.
        """
        portfolio = aggregator.portfolio
        holdings = []
        for holding in portfolio.holdings:
            holdings.append({
                "id": holding.id,
                "asset_id": holding.asset_id,
                "asset": asset_to_dict(holding.asset),
                "quantity": str(holding.quantity),
                "average_cost": str(holding.average_cost),
            })

        transactions = []
        for txn in aggregator.get_transactions():
            transactions.append({
                "id": txn.id,
                "asset_id": txn.asset_id,
                "asset": asset_to_dict(txn.asset),
                "type": txn.type,
                "quantity": str(txn.quantity),
                "price": str(txn.price),
                "fees": str(txn.fees),
                "notes": txn.notes,
                "timestamp": txn.timestamp.isoformat(),
            })

        return {
            "id": portfolio.id,
            "name": portfolio.name,
            "description": portfolio.description,
            "created_at": portfolio.created_at.isoformat(),
            "updated_at": portfolio.updated_at.isoformat(),
            "holdings": holdings,
            "transactions": transactions,
        }

    @staticmethod
    def deserialize(data: dict, lookup: IAssetLookup) -> Tuple[Portfolio, List[Transaction]]:
        """Restore a portfolio snapshot and its transaction history.

        The result is meant for ``PortfolioAggregator.reset``, which
        recomputes the aggregates.

        Holdings pick up the current snapshot from ``lookup`` when the asset
        is known and fall back to the stored snapshot otherwise.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Expected a portfolio object, got {type(data).__name__}")
        portfolio_id = data.get("id", "portfolio-1")
        holdings = []
        for item in data.get("holdings", []):
            stored = asset_from_dict(item["asset"])
            holdings.append(Holding(
                id=item["id"],
                asset_id=item["asset_id"],
                asset=lookup.resolve(item["asset_id"]) or stored,
                quantity=Decimal(item["quantity"]),
                average_cost=Decimal(item["average_cost"]),
                portfolio_id=portfolio_id,
            ))

        transactions = []
        for txn in data.get("transactions", []):
            transactions.append(Transaction(
                id=txn["id"],
                portfolio_id=portfolio_id,
                asset_id=txn["asset_id"],
                asset=asset_from_dict(txn["asset"]),
                type=txn["type"],
                quantity=Decimal(txn["quantity"]),
                price=Decimal(txn["price"]),
                fees=Decimal(txn.get("fees", "0")),
                notes=txn.get("notes"),
                timestamp=datetime.fromisoformat(txn["timestamp"]),
            ))

        kwargs = {}
        for key in ("created_at", "updated_at"):
            if data.get(key):
                kwargs[key] = datetime.fromisoformat(data[key])
        portfolio = Portfolio(
            id=portfolio_id,
            name=data.get("name", "Main Portfolio"),
            description=data.get("description"),
            holdings=tuple(holdings),
            **kwargs,
        )
        return portfolio, transactions
