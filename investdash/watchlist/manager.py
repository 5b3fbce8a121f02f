"""Watchlist and price alert management."""

import logging
from dataclasses import replace
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Optional

from PySide6.QtCore import QObject, Signal

from investdash.market.lookup import IAssetLookup
from investdash.market.models import asset_from_dict, asset_to_dict
from investdash.portfolio.models import utcnow

from .models import ALERT_TYPES, Alert, Watchlist, WatchlistItem

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = ("alert_price", "alert_type", "notes")


def _finite_decimal(value) -> Decimal:
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValueError(f"Invalid price: {value!r}")
    if not result.is_finite():
        raise ValueError(f"Invalid price: {value!r}")
    return result


def _optional_decimal(value) -> Optional[Decimal]:
    if value is None:
        return None
    return _finite_decimal(value)


class WatchlistManager(QObject):
    """Manages watchlist membership and per-item price targets.

    Signals:
        watchlistChanged: Emitted with the Watchlist after every change
    """

    watchlistChanged = Signal(object)

    def __init__(
        self,
        lookup: IAssetLookup,
        watchlist: Optional[Watchlist] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._lookup = lookup
        self._watchlist = watchlist or Watchlist()

    @property
    def watchlist(self) -> Watchlist:
        return replace(self._watchlist, items=list(self._watchlist.items))

    def get_items(self) -> List[WatchlistItem]:
        return list(self._watchlist.items)

    def get_item(self, item_id: str) -> Optional[WatchlistItem]:
        for item in self._watchlist.items:
            if item.id == item_id:
                return item
        return None

    def contains(self, asset_id: str) -> bool:
        key = asset_id.upper()
        return any(i.asset_id.upper() == key for i in self._watchlist.items)

    def add_to_watchlist(
        self,
        asset_id: str,
        alert_price=None,
        alert_type: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Optional[WatchlistItem]:
        """Add an asset to the watchlist.

        Unknown assets, assets already on the list and invalid targets
        are skipped.

        Returns:
            The new item, or None if nothing was added
        """
        asset = self._lookup.resolve(asset_id)
        if asset is None:
            logger.warning(f"Unknown asset '{asset_id}', not added to watchlist")
            return None
        if self.contains(asset.id):
            return None
        if alert_type is not None and alert_type not in ("above", "below"):
            logger.warning(f"Invalid watchlist alert type {alert_type!r} for {asset.id}")
            return None
        try:
            price = _optional_decimal(alert_price)
        except ValueError as e:
            logger.warning(f"{e} for {asset.id}")
            return None

        item = WatchlistItem(
            asset_id=asset.id,
            asset=asset,
            alert_price=price,
            alert_type=alert_type,  # type: ignore[arg-type]
            notes=notes,
        )
        self._watchlist.items.append(item)
        self.watchlistChanged.emit(self.watchlist)
        return item

    def remove_from_watchlist(self, item_id: str) -> bool:
        items = [i for i in self._watchlist.items if i.id != item_id]
        if len(items) == len(self._watchlist.items):
            return False
        self._watchlist.items = items
        self.watchlistChanged.emit(self.watchlist)
        return True

    def update_watchlist_item(self, item_id: str, **updates) -> Optional[WatchlistItem]:
        """Update the price target or notes of an item.

        Only ``alert_price``, ``alert_type`` and ``notes`` can be changed;
        other keys are ignored.
        """
        changes = {k: v for k, v in updates.items() if k in _EDITABLE_FIELDS}
        ignored = set(updates) - set(changes)
        if ignored:
            logger.warning(f"Ignoring non-editable watchlist fields: {sorted(ignored)}")
        if changes.get("alert_type") not in (None, "above", "below"):
            logger.warning(f"Invalid watchlist alert type {changes['alert_type']!r}")
            return None
        if "alert_price" in changes:
            try:
                changes["alert_price"] = _optional_decimal(changes["alert_price"])
            except ValueError as e:
                logger.warning(str(e))
                return None

        for index, item in enumerate(self._watchlist.items):
            if item.id == item_id:
                updated = replace(item, **changes)
                self._watchlist.items[index] = updated
                self.watchlistChanged.emit(self.watchlist)
                return updated
        return None

    def refresh_assets(self) -> None:
        """Pick up current snapshots for every watched asset."""
        items = []
        for item in self._watchlist.items:
            asset = self._lookup.resolve(item.asset_id)
            items.append(item if asset is None else replace(item, asset=asset))
        self._watchlist.items = items
        self.watchlistChanged.emit(self.watchlist)

    def get_triggered_items(self) -> List[WatchlistItem]:
        """Items whose price target has been reached."""
        return [i for i in self._watchlist.items if i.target_reached]


class AlertManager(QObject):
    """Manages price alerts and evaluates them against the lookup.

    Signals:
        alertsChanged: Emitted with the alert list after every change
        alertTriggered: Emitted once per alert when its condition first holds
    """

    alertsChanged = Signal(object)
    alertTriggered = Signal(object)

    def __init__(
        self,
        lookup: IAssetLookup,
        alerts: Optional[Iterable[Alert]] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._lookup = lookup
        self._alerts: List[Alert] = list(alerts or [])

    def get_alerts(self) -> List[Alert]:
        return self._alerts.copy()

    def get_active_alerts(self) -> List[Alert]:
        return [a for a in self._alerts if not a.triggered]

    def add_alert(self, asset_id: str, type: str, threshold) -> Optional[Alert]:
        asset = self._lookup.resolve(asset_id)
        if asset is None:
            logger.warning(f"Unknown asset '{asset_id}', alert not created")
            return None
        if type not in ALERT_TYPES:
            logger.warning(f"Invalid alert type {type!r} for {asset.id}")
            return None
        try:
            level = _finite_decimal(threshold)
        except ValueError:
            logger.warning(f"Invalid alert threshold {threshold!r} for {asset.id}")
            return None

        alert = Alert(asset_id=asset.id, asset=asset, type=type, threshold=level)  # type: ignore[arg-type]
        self._alerts.append(alert)
        self.alertsChanged.emit(self.get_alerts())
        return alert

    def remove_alert(self, alert_id: str) -> bool:
        alerts = [a for a in self._alerts if a.id != alert_id]
        if len(alerts) == len(self._alerts):
            return False
        self._alerts = alerts
        self.alertsChanged.emit(self.get_alerts())
        return True

    def evaluate(self) -> List[Alert]:
        """Check every untriggered alert against the current snapshots.

        Returns:
            Alerts that fired during this evaluation
        """
        fired: List[Alert] = []
        now = utcnow()
        for index, alert in enumerate(self._alerts):
            asset = self._lookup.resolve(alert.asset_id)
            if asset is None:
                continue
            if alert.triggered or not alert.condition_met(asset):
                self._alerts[index] = replace(alert, asset=asset)
                continue
            updated = replace(alert, asset=asset, triggered=True, triggered_at=now)
            self._alerts[index] = updated
            fired.append(updated)
            logger.info(f"Alert {alert.type} {alert.threshold} fired for {asset.id} at {asset.price}")

        for alert in fired:
            self.alertTriggered.emit(alert)
        if fired:
            self.alertsChanged.emit(self.get_alerts())
        return fired


class WatchlistSerializer:
    """Serializer for watchlist and alert state."""

    @staticmethod
    def serialize_watchlist(watchlist: Watchlist) -> dict:
        return {
            "id": watchlist.id,
            "name": watchlist.name,
            "created_at": watchlist.created_at.isoformat(),
            "items": [
                {
                    "id": item.id,
                    "asset_id": item.asset_id,
                    "asset": asset_to_dict(item.asset),
                    "alert_price": None if item.alert_price is None else str(item.alert_price),
                    "alert_type": item.alert_type,
                    "notes": item.notes,
                    "added_at": item.added_at.isoformat(),
                }
                for item in watchlist.items
            ],
        }

    @staticmethod
    def deserialize_watchlist(data: dict, lookup: IAssetLookup) -> Watchlist:
        if not isinstance(data, dict):
            raise ValueError(f"Expected a watchlist object, got {type(data).__name__}")
        items = []
        for raw in data.get("items", []):
            items.append(WatchlistItem(
                id=raw["id"],
                asset_id=raw["asset_id"],
                asset=lookup.resolve(raw["asset_id"]) or asset_from_dict(raw["asset"]),
                alert_price=_optional_decimal(raw.get("alert_price")),
                alert_type=raw.get("alert_type"),
                notes=raw.get("notes"),
                added_at=datetime.fromisoformat(raw["added_at"]),
            ))
        kwargs = {}
        if data.get("created_at"):
            kwargs["created_at"] = datetime.fromisoformat(data["created_at"])
        return Watchlist(
            id=data.get("id", "watchlist-1"),
            name=data.get("name", "My Watchlist"),
            items=items,
            **kwargs,
        )

    @staticmethod
    def serialize_alerts(alerts: List[Alert]) -> list:
        return [
            {
                "id": alert.id,
                "asset_id": alert.asset_id,
                "asset": asset_to_dict(alert.asset),
                "type": alert.type,
                "threshold": str(alert.threshold),
                "triggered": alert.triggered,
                "triggered_at": alert.triggered_at.isoformat() if alert.triggered_at else None,
                "created_at": alert.created_at.isoformat(),
            }
            for alert in alerts
        ]

    @staticmethod
    def deserialize_alerts(data: list, lookup: IAssetLookup) -> List[Alert]:
        if not isinstance(data, list):
            raise ValueError(f"Expected a list of alerts, got {type(data).__name__}")
        alerts = []
        for raw in data:
            triggered_at = raw.get("triggered_at")
            alerts.append(Alert(
                id=raw["id"],
                asset_id=raw["asset_id"],
                asset=lookup.resolve(raw["asset_id"]) or asset_from_dict(raw["asset"]),
                type=raw["type"],
                threshold=_finite_decimal(raw["threshold"]),
                triggered=bool(raw.get("triggered", False)),
                triggered_at=datetime.fromisoformat(triggered_at) if triggered_at else None,
                created_at=datetime.fromisoformat(raw["created_at"]),
            ))
        return alerts
