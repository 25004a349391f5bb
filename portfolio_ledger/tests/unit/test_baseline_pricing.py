# portfolio_ledger/tests/unit/test_baseline_pricing.py

import pytest
from datetime import datetime, timezone

from portfolio_ledger.core.enums.baseline_mode import BaselineMode
from portfolio_ledger.core.models.candle import Candle
from portfolio_ledger.logic.baseline_pricing import (
    BaselinePricer,
    end_of_utc_day,
    pct_change,
    start_of_utc_day,
)

DAY_MS = 86400000
HOUR_MS = 3600000
JAN_2 = 1704153600000  # 2024-01-02T00:00:00Z
NOON = JAN_2 + 12 * HOUR_MS

@pytest.fixture
def provider(mocker):
    """A mocked CandleProvider with one daily bar per day around Jan 2."""
    provider = mocker.Mock()
    provider.fetch_daily_candles.return_value = [
        Candle(ts=JAN_2 - DAY_MS, open=90, high=100, low=80, close=95, vol=10),
        Candle(ts=JAN_2, open=95, high=120, low=90, close=105, vol=12),
        Candle(ts=JAN_2 + DAY_MS, open=105, high=110, low=100, close=108, vol=8),
    ]
    provider.fetch_intraday_candles.return_value = []
    return provider

@pytest.fixture
def pricer(provider):
    return BaselinePricer(candle_provider=provider)

def test_utc_day_bounds():
    assert start_of_utc_day(NOON) == JAN_2
    assert end_of_utc_day(NOON) == JAN_2 + DAY_MS - 1
    assert start_of_utc_day(JAN_2) == JAN_2

@pytest.mark.parametrize("now, baseline, expected", [
    (110, 100, 10.0),
    (90, 100, -10.0),
    (100, 0, None),
    (0, 100, None),
    (None, 100, None),
    (-5, 100, None),
])
def test_pct_change(now, baseline, expected):
    result = pct_change(now, baseline)
    if expected is None:
        assert result is None
    else:
        assert result == pytest.approx(expected)

def test_close_mode_uses_daily_bar_of_the_day(pricer, provider):
    assert pricer.compute_baseline_price("BTC", NOON, BaselineMode.CLOSE) == 105
    provider.fetch_intraday_candles.assert_not_called()

def test_close_mode_accepts_datetime(pricer):
    target = datetime(2024, 1, 2, 23, 59, tzinfo=timezone.utc)

    assert pricer.compute_baseline_price("BTC", target, "close") == 105

def test_close_mode_without_bar_returns_none(pricer):
    assert pricer.compute_baseline_price("BTC", JAN_2 + 10 * DAY_MS, "close") is None

def test_vwap_from_intraday_candles(pricer, provider):
    provider.fetch_intraday_candles.return_value = [
        Candle(ts=JAN_2 + HOUR_MS, high=102, low=98, close=100, vol=1),       # tp 100
        Candle(ts=JAN_2 + 2 * HOUR_MS, high=112, low=108, close=110, vol=3),  # tp 110
        Candle(ts=JAN_2 + 3 * HOUR_MS, high=500, low=500, close=500, vol=0),  # no volume, ignored
        Candle(ts=JAN_2 - HOUR_MS, high=1, low=1, close=1, vol=100),          # previous day, ignored
    ]

    assert pricer.compute_baseline_price("BTC", NOON, BaselineMode.VWAP) == pytest.approx(107.5)
    provider.fetch_daily_candles.assert_not_called()

def test_vwap_falls_back_to_daily_typical_price(pricer, provider):
    provider.fetch_intraday_candles.return_value = [
        Candle(ts=JAN_2 + HOUR_MS, high=102, low=98, close=100, vol=0),
    ]

    # (120 + 90 + 105) / 3
    assert pricer.compute_baseline_price("BTC", NOON, "vwap") == pytest.approx(105.0)

def test_vwap_without_any_data_returns_none(pricer, provider):
    provider.fetch_daily_candles.return_value = []

    assert pricer.compute_baseline_price("BTC", NOON, "vwap") is None

def test_unknown_mode_behaves_like_close(pricer):
    assert pricer.compute_baseline_price("BTC", NOON, "median") == 105

def test_default_mode_applies_when_mode_omitted(provider):
    provider.fetch_intraday_candles.return_value = [
        Candle(ts=JAN_2 + HOUR_MS, high=100, low=100, close=100, vol=2),
    ]

    assert BaselinePricer(provider).compute_baseline_price("BTC", NOON) == 105
    assert BaselinePricer(provider, default_mode=BaselineMode.VWAP).compute_baseline_price("BTC", NOON) == pytest.approx(100.0)

def test_builders_follow_settings(provider, monkeypatch):
    from portfolio_ledger.api.v1.dependencies import build_baseline_pricer, build_market_change_calculator
    from portfolio_ledger.core.config.settings import settings

    monkeypatch.setattr(settings, "BASELINE_MODE", BaselineMode.VWAP)
    monkeypatch.setattr(settings, "MARKET_CHANGE_CACHE_TTL_SECONDS", 60.0)
    provider.fetch_intraday_candles.return_value = [
        Candle(ts=JAN_2 + HOUR_MS, high=100, low=100, close=100, vol=2),
    ]

    assert build_baseline_pricer(provider).compute_baseline_price("BTC", NOON) == pytest.approx(100.0)
    calculator = build_market_change_calculator(provider)
    calculator.compute_changes("BTC")
    calculator.compute_changes("BTC")
    provider.fetch_daily_candles.assert_called_once_with("BTC")
