# Portfolio module
"""Holdings, transactions, portfolio aggregation and analytics."""

from .models import Holding, Portfolio, Transaction, percent_of
from .aggregator import PortfolioAggregator, PortfolioSerializer, summarize
from .analytics import (
    AllocationSlice,
    IPerformanceAnalytics,
    PerformanceAnalytics,
    PerformanceMetrics,
    allocation_by_asset,
    allocation_by_type,
)

__all__ = [
    "Holding",
    "Portfolio",
    "Transaction",
    "percent_of",
    "PortfolioAggregator",
    "PortfolioSerializer",
    "summarize",
    "AllocationSlice",
    "allocation_by_asset",
    "allocation_by_type",
    "PerformanceMetrics",
    "IPerformanceAnalytics",
    "PerformanceAnalytics",
]
