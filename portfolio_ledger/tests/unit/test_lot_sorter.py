# portfolio_ledger/tests/unit/test_lot_sorter.py

import pytest
from decimal import Decimal

from portfolio_ledger.logic.lot_sorter import LotSorter, lot_sort_key
from portfolio_ledger.core.models.lot import Lot

@pytest.fixture
def sorter():
    """Provides a LotSorter instance."""
    return LotSorter()

def make_lot(lot_id, ts, asset="BTC", action="buy", qty="1", cost="10"):
    return Lot(id=lot_id, action=action, asset=asset, qty=Decimal(qty),
               unit_cost_usd=Decimal(cost) if cost is not None else None, ts=ts)

def test_sort_lots_by_timestamp_then_id(sorter):
    lots = {
        "BTC": [
            make_lot("000003", "2024-01-02"),
            make_lot("000002", "2024-01-01T12:00:00Z"),
            make_lot("000001", "2024-01-02"),
        ]
    }

    sorted_lots = sorter.sort_lots(lots)

    assert [lot.id for lot in sorted_lots["BTC"]] == ["000002", "000001", "000003"]

def test_sort_lots_compares_parsed_timestamps_not_strings(sorter):
    """An offset timestamp is ordered by its instant, not its text."""
    lots = {
        "BTC": [
            make_lot("000001", "2024-01-01T10:00:00+02:00"), # 08:00 UTC
            make_lot("000002", "2024-01-01T09:00:00Z"),
        ]
    }

    assert [lot.id for lot in sorter.sort_lots(lots)["BTC"]] == ["000001", "000002"]

def test_sort_lots_assets_in_symbol_order_and_empty_dropped(sorter):
    lots = {
        "SOL": [make_lot("000003", "2024-01-01", asset="SOL")],
        "ADA": [make_lot("000001", "2024-01-01", asset="ADA")],
        "BTC": [],
    }

    assert list(sorter.sort_lots(lots)) == ["ADA", "SOL"]

def test_sort_lots_does_not_modify_input(sorter):
    original = [make_lot("000002", "2024-01-02"), make_lot("000001", "2024-01-01")]
    lots = {"BTC": original}

    sorter.sort_lots(lots)

    assert [lot.id for lot in lots["BTC"]] == ["000002", "000001"]

def test_unparseable_timestamp_sorts_first():
    good = make_lot("000001", "2024-01-01")
    bad = make_lot("000002", "not-a-date")

    assert sorted([good, bad], key=lot_sort_key) == [bad, good]

def test_group_by_asset(sorter):
    lots = [
        make_lot("000001", "2024-01-01", asset="BTC"),
        make_lot("000002", "2024-01-01", asset="ETH"),
        make_lot("000003", "2024-01-02", asset="BTC"),
    ]

    grouped = sorter.group_by_asset(lots)

    assert {asset: [lot.id for lot in group] for asset, group in grouped.items()} == {
        "BTC": ["000001", "000003"],
        "ETH": ["000002"],
    }
