"""Data models for portfolio tracking."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Literal, Optional, Tuple
import uuid

from investdash.market.models import Asset

ZERO = Decimal("0")
HUNDRED = Decimal("100")

TransactionType = Literal["buy", "sell"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def percent_of(numerator: Decimal, denominator: Decimal) -> Decimal:
    """Return numerator / denominator * 100, or 0 when the denominator is 0."""
    if denominator == ZERO:
        return ZERO
    return numerator / denominator * HUNDRED


@dataclass(frozen=True)
class Holding:
    """A position in a single asset.

    Cost and valuation figures are derived from ``quantity``,
    ``average_cost`` and the asset snapshot, so they always agree.

    Attributes:
        id: Unique holding identifier (UUID)
        asset_id: Identity of the held asset
        asset: Asset snapshot used for valuation and display
        quantity: Amount held
        average_cost: Quantity-weighted mean purchase price
        portfolio_id: Owning portfolio
    """
    asset_id: str
    asset: Asset
    quantity: Decimal
    average_cost: Decimal
    portfolio_id: str
    id: str = field(default_factory=new_id)

    @property
    def total_cost(self) -> Decimal:
        """Cost basis of the position."""
        return self.quantity * self.average_cost

    @property
    def current_value(self) -> Decimal:
        """Market value at the snapshot price."""
        return self.quantity * self.asset.price

    @property
    def profit_loss(self) -> Decimal:
        return self.current_value - self.total_cost

    @property
    def profit_loss_percent(self) -> Decimal:
        return percent_of(self.profit_loss, self.total_cost)

    @property
    def day_change(self) -> Decimal:
        """Value change over the last 24 hours at the current quantity."""
        return self.asset.change_24h * self.quantity


@dataclass(frozen=True)
class Portfolio:
    """Immutable portfolio snapshot with cached aggregates.

    Aggregates are filled in by the aggregator from the holdings;
    they are never patched independently.
    """
    id: str = "portfolio-1"
    name: str = "Main Portfolio"
    description: Optional[str] = None
    holdings: Tuple[Holding, ...] = ()
    total_value: Decimal = ZERO
    total_cost: Decimal = ZERO
    total_profit_loss: Decimal = ZERO
    total_profit_loss_percent: Decimal = ZERO
    day_change: Decimal = ZERO
    day_change_percent: Decimal = ZERO
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class Transaction:
    """Represents a recorded buy or sell.

    Attributes:
        id: Unique transaction identifier (UUID)
        portfolio_id: Portfolio the trade belongs to
        asset_id: Identity of the traded asset
        asset: Asset snapshot at the time the trade was recorded
        type: "buy" or "sell"
        quantity: Amount traded
        price: Execution price per unit
        timestamp: Time of execution
        fees: Commission paid
        notes: Free-form note
    """
    portfolio_id: str
    asset_id: str
    asset: Asset
    type: TransactionType
    quantity: Decimal
    price: Decimal
    timestamp: datetime = field(default_factory=utcnow)
    fees: Decimal = ZERO
    notes: Optional[str] = None
    id: str = field(default_factory=new_id)

    @property
    def total(self) -> Decimal:
        """Calculate total value of this transaction."""
        return self.quantity * self.price
