# portfolio_ledger/logic/market_change.py

import logging
from typing import Optional, Sequence

from pydantic import BaseModel

from portfolio_ledger.core.models.candle import Candle
from portfolio_ledger.logic.baseline_pricing import CandleProvider, DAY_MS, pct_change
from portfolio_ledger.logic.ttl_cache import TTLCache

logger = logging.getLogger(__name__)

STABLECOINS = frozenset({"USDT", "USDC"})


class MarketChange(BaseModel):
    change_1d_pct: Optional[float] = None
    change_7d_pct: Optional[float] = None
    change_30d_pct: Optional[float] = None


def _close_at_or_before(candles: Sequence[Candle], target_ms: int) -> Optional[float]:
    for candle in reversed(candles):
        if candle.ts <= target_ms:
            return candle.close
    return None


def _close_days_ago(candles: Sequence[Candle], days_ago: int) -> Optional[float]:
    index = len(candles) - (days_ago + 1)
    return candles[index].close if index >= 0 else None


def changes_from_daily_candles(candles: Sequence[Candle]) -> MarketChange:
    """
    1d/7d/30d percentage changes of the latest daily close.

    The 7d and 30d baselines are the last close at or before the target day;
    when the series does not reach that far back, the bar that many places
    from the end is used, then the oldest bar.
    """
    candles = sorted(candles, key=lambda c: c.ts)
    if len(candles) < 2:
        return MarketChange()

    last, prev = candles[-1], candles[-2]

    def baseline(days: int) -> Optional[float]:
        close = _close_at_or_before(candles, last.ts - days * DAY_MS)
        if close is None:
            close = _close_days_ago(candles, days)
        if close is None:
            close = candles[0].close
        return close

    return MarketChange(
        change_1d_pct=pct_change(last.close, prev.close),
        change_7d_pct=pct_change(last.close, baseline(7)),
        change_30d_pct=pct_change(last.close, baseline(30)),
    )


class MarketChangeCalculator:
    """
    Multi-day price changes per asset, cached for the lifetime of the injected TTLCache.
    Stablecoins are pinned to zero change without touching the provider.
    """
    def __init__(self, candle_provider: CandleProvider, cache: TTLCache):
        self._candle_provider = candle_provider
        self._cache = cache

    def compute_changes(self, asset: str) -> MarketChange:
        asset = asset.upper()
        cached = self._cache.get(asset)
        if cached is not None:
            return cached

        if asset in STABLECOINS:
            changes = MarketChange(change_1d_pct=0.0, change_7d_pct=0.0, change_30d_pct=0.0)
        else:
            try:
                changes = changes_from_daily_candles(self._candle_provider.fetch_daily_candles(asset))
            except Exception as e:
                logger.warning(f"MarketChangeCalculator: candle fetch failed for {asset}: {e}")
                changes = MarketChange()

        self._cache.set(asset, changes)
        return changes
