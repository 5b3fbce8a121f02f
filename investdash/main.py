from __future__ import annotations

import logging
import sys
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Tuple

import httpx
from PySide6.QtCore import QCoreApplication, QObject, QTimer, Signal, Slot

from investdash.config import (
    ALERTS_STORAGE_KEY,
    PORTFOLIO_STORAGE_KEY,
    WATCHLIST_STORAGE_KEY,
    Settings,
    load_settings,
)
from investdash.market.lookup import InMemoryAssetLookup
from investdash.market.mock_data import (
    MOCK_ALERTS,
    MOCK_ASSETS,
    MOCK_HOLDINGS,
    MOCK_TRANSACTIONS,
    MOCK_WATCHLIST,
)
from investdash.market.providers import CoinGeckoProvider, IMarketProvider, create_provider, refresh_lookup
from investdash.portfolio.aggregator import PortfolioAggregator, PortfolioSerializer
from investdash.portfolio.models import Holding, Portfolio, Transaction
from investdash.storage import IStorageService, JsonFileStorage
from investdash.util.env import fix_ssl_env
from investdash.watchlist.manager import AlertManager, WatchlistManager, WatchlistSerializer
from investdash.watchlist.models import Alert, Watchlist, WatchlistItem

logger = logging.getLogger(__name__)

TOP_COINS_LIMIT = 20

# Raised by the deserializers on stored documents of the wrong shape
_RESTORE_ERRORS = (KeyError, TypeError, ValueError, AttributeError, ArithmeticError)


class DashboardController(QObject):
    """Wires the price book, aggregator, watchlist, alerts and storage.

    Owns the refresh loop: every tick pulls quotes from the market
    provider into the lookup, recalculates the portfolio and evaluates
    watchlist targets and alerts. State changes schedule a debounced save.
    """

    refreshed = Signal(object)  # Portfolio snapshot after a price refresh
    refreshFailed = Signal(str)

    def __init__(
        self,
        settings: Settings,
        storage: Optional[IStorageService] = None,
        provider: Optional[IMarketProvider] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._settings = settings
        self._storage = storage or JsonFileStorage(settings.data_dir)
        self.lookup = InMemoryAssetLookup(MOCK_ASSETS)
        self._provider = provider or create_provider(settings.market_source, self.lookup, settings.http_timeout_s)

        self.aggregator = PortfolioAggregator(self.lookup, parent=self)
        watchlist, alerts = self._load_state()
        self.watchlist = WatchlistManager(self.lookup, watchlist, parent=self)
        self.alerts = AlertManager(self.lookup, alerts, parent=self)

        self._save_timer = QTimer(self)
        self._save_timer.setSingleShot(True)
        self._save_timer.setInterval(settings.save_delay_ms)
        self._save_timer.timeout.connect(self.save_state)

        self._refresh_timer = QTimer(self)
        self._refresh_timer.setInterval(settings.refresh_interval_ms)
        self._refresh_timer.timeout.connect(self.refresh_prices)

        self.aggregator.portfolioChanged.connect(self._schedule_save)
        self.watchlist.watchlistChanged.connect(self._schedule_save)
        self.alerts.alertsChanged.connect(self._schedule_save)
        self.alerts.alertTriggered.connect(self._on_alert_triggered)

    # ----- Lifecycle -----
    def start(self) -> None:
        if isinstance(self._provider, CoinGeckoProvider):
            self._list_top_coins()
        self.refresh_prices()
        self._refresh_timer.start()
        logger.info(
            f"Refreshing {self._settings.market_source} prices every {self._settings.refresh_interval_ms} ms"
        )

    def stop(self) -> None:
        self._refresh_timer.stop()
        if self._save_timer.isActive():
            self._save_timer.stop()
            self.save_state()
        self._provider.close()

    def _list_top_coins(self) -> None:
        """Add the largest coins by market cap to the price book."""
        try:
            coins = self._provider.fetch_top(TOP_COINS_LIMIT)
        except (httpx.HTTPError, KeyError, TypeError, ArithmeticError) as e:
            logger.error(f"Failed to list top coins: {e}")
            return
        self.lookup.update_assets(coins)
        logger.info(f"Listed {len(coins)} top coins")

    @Slot()
    def refresh_prices(self) -> None:
        """Pull fresh quotes and recompute everything that depends on them."""
        try:
            updated = refresh_lookup(self._provider, self.lookup)
        except Exception as e:
            logger.error(f"Price refresh failed: {e}")
            self.refreshFailed.emit(str(e))
            return
        logger.debug(f"Refreshed {updated} assets")
        portfolio = self.aggregator.recalculate_portfolio()
        self.watchlist.refresh_assets()
        for item in self.watchlist.get_triggered_items():
            logger.info(f"Watchlist target {item.alert_type} {item.alert_price} reached for {item.asset_id}")
        self.alerts.evaluate()
        self.refreshed.emit(portfolio)

    # ----- Persistence -----
    def _schedule_save(self, *_args) -> None:
        self._save_timer.start()

    @Slot()
    def save_state(self) -> None:
        try:
            self._storage.save(PORTFOLIO_STORAGE_KEY, PortfolioSerializer.serialize(self.aggregator))
            self._storage.save(
                WATCHLIST_STORAGE_KEY, WatchlistSerializer.serialize_watchlist(self.watchlist.watchlist)
            )
            self._storage.save(ALERTS_STORAGE_KEY, WatchlistSerializer.serialize_alerts(self.alerts.get_alerts()))
            logger.info("Dashboard state saved to storage")
        except Exception as e:
            logger.error(f"Failed to save dashboard state: {e}")

    def _load_state(self) -> Tuple[Optional[Watchlist], List[Alert]]:
        """Restore stored state, or seed the demo data on first start.

        Each document is restored on its own. The portfolio is pushed into
        the aggregator and reseeded only when its own document is missing
        or unreadable; an unreadable watchlist or alert list starts empty.
        The watchlist and alerts are returned for the managers to be built
        from.
        """
        portfolio_data = self._storage.load(PORTFOLIO_STORAGE_KEY)
        watchlist_data = self._storage.load(WATCHLIST_STORAGE_KEY)
        alerts_data = self._storage.load(ALERTS_STORAGE_KEY)

        if portfolio_data is None and watchlist_data is None and alerts_data is None:
            logger.info("No stored state, seeding demo data")
            self._seed_demo_portfolio()
            return self._demo_watchlist_and_alerts()

        try:
            if portfolio_data is None:
                raise ValueError("no stored portfolio")
            portfolio, transactions = PortfolioSerializer.deserialize(portfolio_data, self.lookup)
            self.aggregator.reset(portfolio, transactions)
        except _RESTORE_ERRORS as e:
            logger.error(f"Failed to restore portfolio, seeding demo portfolio: {e}")
            self._seed_demo_portfolio()

        watchlist: Optional[Watchlist] = None
        if watchlist_data is not None:
            try:
                watchlist = WatchlistSerializer.deserialize_watchlist(watchlist_data, self.lookup)
            except _RESTORE_ERRORS as e:
                logger.error(f"Failed to restore watchlist, starting empty: {e}")
                watchlist = Watchlist()

        alerts: List[Alert] = []
        if alerts_data is not None:
            try:
                alerts = WatchlistSerializer.deserialize_alerts(alerts_data, self.lookup)
            except _RESTORE_ERRORS as e:
                logger.error(f"Failed to restore alerts, starting empty: {e}")

        logger.info("Dashboard state restored from storage")
        return watchlist, alerts

    def _seed_demo_portfolio(self) -> None:
        portfolio_id = Portfolio().id
        holdings = []
        for asset_id, quantity, average_cost in MOCK_HOLDINGS:
            asset = self.lookup.resolve(asset_id)
            if asset is None:
                continue
            holdings.append(Holding(
                asset_id=asset.id,
                asset=asset,
                quantity=Decimal(quantity),
                average_cost=Decimal(average_cost),
                portfolio_id=portfolio_id,
            ))
        transactions = []
        for asset_id, kind, quantity, price, timestamp, fees in MOCK_TRANSACTIONS:
            asset = self.lookup.resolve(asset_id)
            if asset is None:
                continue
            transactions.append(Transaction(
                portfolio_id=portfolio_id,
                asset_id=asset.id,
                asset=asset,
                type=kind,  # type: ignore[arg-type]
                quantity=Decimal(quantity),
                price=Decimal(price),
                timestamp=datetime.fromisoformat(timestamp),
                fees=Decimal(fees),
            ))
        self.aggregator.reset(
            Portfolio(
                id=portfolio_id,
                name="Main Portfolio",
                description="Primary investment portfolio",
                holdings=tuple(holdings),
            ),
            transactions,
        )

    def _demo_watchlist_and_alerts(self) -> Tuple[Watchlist, List[Alert]]:
        items = []
        for asset_id, alert_price, alert_type, notes in MOCK_WATCHLIST:
            asset = self.lookup.resolve(asset_id)
            if asset is None:
                continue
            items.append(WatchlistItem(
                asset_id=asset.id,
                asset=asset,
                alert_price=Decimal(alert_price) if alert_price else None,
                alert_type=alert_type,  # type: ignore[arg-type]
                notes=notes,
            ))

        alerts = []
        for asset_id, kind, threshold in MOCK_ALERTS:
            asset = self.lookup.resolve(asset_id)
            if asset is None:
                continue
            alerts.append(Alert(asset_id=asset.id, asset=asset, type=kind, threshold=Decimal(threshold)))  # type: ignore[arg-type]
        return Watchlist(name="Tech & Crypto Watch", items=items), alerts

    def _on_alert_triggered(self, alert: Alert) -> None:
        logger.warning(
            f"ALERT {alert.asset.symbol}: {alert.type.replace('_', ' ')} {alert.threshold} "
            f"(now {alert.asset.price})"
        )


def _log_summary(portfolio: Portfolio) -> None:
    logger.info(
        f"{portfolio.name}: value {portfolio.total_value:.2f} "
        f"P/L {portfolio.total_profit_loss:+.2f} ({portfolio.total_profit_loss_percent:+.2f}%) "
        f"day {portfolio.day_change:+.2f} ({portfolio.day_change_percent:+.2f}%)"
    )


def main() -> int:
    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    fix_ssl_env()
    app = QCoreApplication(sys.argv)
    controller = DashboardController(settings)
    controller.refreshed.connect(_log_summary)
    app.aboutToQuit.connect(controller.stop)
    controller.start()
    return app.exec()


if __name__ == "__main__":
    raise SystemExit(main())
