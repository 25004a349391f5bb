# portfolio_ledger/logic/baseline_pricing.py

import logging
from datetime import datetime, timezone
from typing import Optional, Protocol, Sequence, Union

from portfolio_ledger.core.enums.baseline_mode import BaselineMode
from portfolio_ledger.core.models.candle import Candle

logger = logging.getLogger(__name__)

DAY_MS = 24 * 60 * 60 * 1000


class CandleProvider(Protocol):
    """
    Source of OHLCV bars for one base asset. Bars carry their start time in
    epoch milliseconds; daily bars start at 00:00 UTC.
    """
    def fetch_daily_candles(self, asset: str) -> Sequence[Candle]:
        ...

    def fetch_intraday_candles(self, asset: str) -> Sequence[Candle]:
        ...


def start_of_utc_day(ts_ms: int) -> int:
    return (int(ts_ms) // DAY_MS) * DAY_MS


def end_of_utc_day(ts_ms: int) -> int:
    return start_of_utc_day(ts_ms) + DAY_MS - 1


def typical_price(candle: Candle) -> float:
    return candle.typical_price


def pct_change(now: Optional[float], baseline: Optional[float]) -> Optional[float]:
    """Percentage change from `baseline` to `now`, or None unless both are positive."""
    current = float(now or 0)
    base = float(baseline or 0)
    if not (current > 0) or not (base > 0):
        return None
    return (current / base - 1) * 100


def _to_ms(ts: Union[int, float, datetime]) -> int:
    if isinstance(ts, datetime):
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        return int(ts.timestamp() * 1000)
    return int(ts)


def _in_day(candles: Sequence[Candle], day_start: int, day_end: int) -> list[Candle]:
    return [c for c in candles if day_start <= c.ts <= day_end]


class BaselinePricer:
    """
    Computes the reference price of an asset for the UTC day containing a
    given timestamp, by daily close or by volume-weighted average price.
    """
    def __init__(self, candle_provider: CandleProvider, default_mode: Union[BaselineMode, str] = BaselineMode.CLOSE):
        self._candle_provider = candle_provider
        self._default_mode = default_mode

    def close_for_day(self, asset: str, ts: Union[int, float, datetime]) -> Optional[float]:
        ts_ms = _to_ms(ts)
        day = _in_day(self._candle_provider.fetch_daily_candles(asset), start_of_utc_day(ts_ms), end_of_utc_day(ts_ms))
        return float(day[0].close) if day else None

    def vwap_for_day(self, asset: str, ts: Union[int, float, datetime]) -> Optional[float]:
        """
        Intraday VWAP over the UTC day, using (high+low+close)/3 as each bar's
        price and only bars with positive volume and price. Falls back to the
        daily bar's typical price when the day has no intraday volume.
        """
        ts_ms = _to_ms(ts)
        day_start, day_end = start_of_utc_day(ts_ms), end_of_utc_day(ts_ms)

        sum_pv = 0.0
        sum_v = 0.0
        for candle in _in_day(self._candle_provider.fetch_intraday_candles(asset), day_start, day_end):
            price = typical_price(candle)
            if candle.vol > 0 and price > 0:
                sum_pv += price * candle.vol
                sum_v += candle.vol
        if sum_v > 0:
            return sum_pv / sum_v

        logger.debug(f"No intraday volume for {asset} on {day_start}; falling back to the daily typical price.")
        daily = _in_day(self._candle_provider.fetch_daily_candles(asset), day_start, day_end)
        return typical_price(daily[0]) if daily else None

    def compute_baseline_price(
        self,
        asset: str,
        ts: Union[int, float, datetime],
        mode: Optional[Union[BaselineMode, str]] = None,
    ) -> Optional[float]:
        """Uses the pricer's default mode when none is given. Unknown modes are treated as close."""
        if mode is None:
            mode = self._default_mode
        mode_value = mode.value if isinstance(mode, BaselineMode) else str(mode or "").lower()
        if mode_value == BaselineMode.VWAP.value:
            return self.vwap_for_day(asset, ts)
        return self.close_for_day(asset, ts)
