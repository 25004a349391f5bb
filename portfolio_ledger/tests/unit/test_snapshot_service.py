# portfolio_ledger/tests/unit/test_snapshot_service.py

import pytest

from portfolio_ledger.core.models.candle import Candle
from portfolio_ledger.logic.snapshot_calculator import SnapshotCalculator
from portfolio_ledger.services.ledger_repository import LedgerRepository
from portfolio_ledger.services.snapshot_service import SnapshotService, day_pct_from_bar
from portfolio_ledger.storage.history_store import SnapshotHistoryStore
from portfolio_ledger.storage.lots_storage import JSONLotsBackend

DAY_MS = 86400000

@pytest.fixture
def repository(tmp_path):
    repository = LedgerRepository(storage=JSONLotsBackend(tmp_path))
    repository.create_lot({"action": "buy", "asset": "BTC", "qty": "1", "unit_cost_usd": "20000", "date": "2024-01-01"})
    return repository

@pytest.fixture
def history_store(tmp_path):
    return SnapshotHistoryStore(tmp_path, max_history=5)

@pytest.fixture
def service(repository, history_store):
    """Provides a SnapshotService with a frozen clock and a 10 USD dust threshold."""
    return SnapshotService(
        repository=repository,
        history_store=history_store,
        calculator=SnapshotCalculator(clock=lambda: 1700000000),
        ref_fiat="USD",
        min_usd_ignore=10,
    )

def test_capture_appends_to_history(service, history_store):
    snapshot = service.capture({"BTC": 1, "ETH": 2}, {"BTC": {"price": 30000, "day_pct": 1}, "ETH": {"price": 2000}})

    assert snapshot.total_value_usd == pytest.approx(34000)
    by_symbol = {p.symbol: p for p in snapshot.positions}
    assert by_symbol["BTC"].pnl_pct == pytest.approx(50.0)
    assert by_symbol["BTC"].unreconciled is False
    assert by_symbol["ETH"].unreconciled is True
    assert history_store.latest() == snapshot
    assert service.latest_prices() == {"BTC": 30000, "ETH": 2000}

def test_capture_threshold_override(service):
    snapshot = service.capture({"BTC": 0.0001}, {"BTC": {"price": 30000}}, min_usd_ignore=1)

    assert [p.symbol for p in snapshot.positions] == ["BTC"]

def test_history_and_latest(service):
    assert service.latest() is None
    assert service.latest_prices() == {}

    for price in (1, 2, 3):
        service.capture({"BTC": 100}, {"BTC": {"price": price}})

    assert [s.positions[0].price for s in service.history(2)] == [2, 3]

def test_day_pct_from_bar():
    assert day_pct_from_bar(Candle(ts=0, open=100, high=120, low=90, close=110)) == pytest.approx(10.0)
    assert day_pct_from_bar(Candle(ts=0, open=0, high=1, low=1, close=1)) is None

def test_backfill_builds_one_snapshot_per_bar(service, history_store):
    candles = {
        "BTC": [Candle(ts=d * DAY_MS, open=100, high=130, low=90, close=120) for d in range(1, 8)],
        "ETH": [Candle(ts=d * DAY_MS, open=10, high=10, low=10, close=10) for d in range(5, 8)],
    }

    snapshots = service.backfill({"BTC": 1, "ETH": 5}, candles, days=4)

    assert [s.time for s in snapshots] == [4 * 86400, 5 * 86400, 6 * 86400, 7 * 86400]
    assert [p.symbol for p in snapshots[0].positions] == ["BTC"]
    assert {p.symbol for p in snapshots[-1].positions} == {"BTC", "ETH"}
    assert snapshots[0].positions[0].day_pct == pytest.approx(20.0)
    assert len(history_store.load().history) == 4

def test_backfill_skipped_when_history_exists(service, history_store):
    service.capture({"BTC": 1}, {"BTC": {"price": 30000}})

    assert service.backfill({"BTC": 1}, {"BTC": [Candle(ts=DAY_MS, high=1, low=1, close=1)]}) == []
    assert len(history_store.load().history) == 1
