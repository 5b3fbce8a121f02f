"""Runtime settings read from the environment."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

ENV_PREFIX = "INVESTDASH_"

MARKET_SOURCES = ("mock", "coingecko")

PORTFOLIO_STORAGE_KEY = "portfolio"
WATCHLIST_STORAGE_KEY = "watchlist"
ALERTS_STORAGE_KEY = "alerts"


@dataclass(frozen=True)
class Settings:
    """Dashboard settings.

    Attributes:
        data_dir: Directory holding the persisted JSON documents
        market_source: "mock" (generated quotes) or "coingecko"
        refresh_interval_ms: Period of the price refresh timer
        http_timeout_s: Timeout for market data requests
        log_level: Root logging level name
        save_delay_ms: Debounce delay before state is written to disk
    """
    data_dir: Path = Path("~/.investdash").expanduser()
    market_source: str = "mock"
    refresh_interval_ms: int = 30_000
    http_timeout_s: float = 7.0
    log_level: str = "INFO"
    save_delay_ms: int = 750


def _number(env: Mapping[str, str], name: str, default, cast):
    raw = env.get(ENV_PREFIX + name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = cast(raw)
    except ValueError:
        logger.warning(f"Invalid {ENV_PREFIX}{name}={raw!r}, using {default}")
        return default
    if value <= 0:
        logger.warning(f"{ENV_PREFIX}{name} must be positive, using {default}")
        return default
    return value


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build settings from ``env`` (default: ``os.environ``)."""
    env = os.environ if env is None else env
    defaults = Settings()

    source = env.get(ENV_PREFIX + "MARKET_SOURCE", defaults.market_source).strip().lower()
    if source not in MARKET_SOURCES:
        logger.warning(f"Unknown market source {source!r}, using {defaults.market_source!r}")
        source = defaults.market_source

    data_dir = env.get(ENV_PREFIX + "DATA_DIR")
    level = env.get(ENV_PREFIX + "LOG_LEVEL", defaults.log_level).strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        logger.warning(f"Unknown log level {level!r}, using {defaults.log_level}")
        level = defaults.log_level

    return Settings(
        data_dir=Path(data_dir).expanduser() if data_dir else defaults.data_dir,
        market_source=source,
        refresh_interval_ms=_number(env, "REFRESH_MS", defaults.refresh_interval_ms, int),
        http_timeout_s=_number(env, "HTTP_TIMEOUT", defaults.http_timeout_s, float),
        log_level=level,
        save_delay_ms=_number(env, "SAVE_DELAY_MS", defaults.save_delay_ms, int),
    )
