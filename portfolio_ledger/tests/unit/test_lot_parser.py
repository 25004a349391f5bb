# portfolio_ledger/tests/unit/test_lot_parser.py

import pytest
from decimal import Decimal

from portfolio_ledger.logic.lot_parser import LotParser
from portfolio_ledger.logic.error_reporter import ErrorReporter
from portfolio_ledger.core.models.lot import Lot

@pytest.fixture
def error_reporter():
    """Provides a fresh ErrorReporter instance for tests."""
    return ErrorReporter()

@pytest.fixture
def parser(error_reporter):
    """Provides a LotParser instance with an injected ErrorReporter."""
    return LotParser(error_reporter=error_reporter)

def get_base_valid_lot_data():
    """Returns a dictionary for a valid buy lot."""
    return {
        "id": "000001",
        "action": "buy",
        "asset": "BTC",
        "qty": "0.5",
        "unit_cost_usd": "30000",
        "date": "2024-01-02T10:00:00Z",
        "note": "first buy",
    }

def test_parse_lots_valid_single(parser, error_reporter):
    """Test successful parsing of a single valid lot."""
    parsed = parser.parse_lots([get_base_valid_lot_data()])

    assert len(parsed) == 1
    lot = parsed[0]
    assert isinstance(lot, Lot)
    assert lot.id == "000001"
    assert lot.qty == Decimal("0.5")
    assert lot.unit_cost_usd == Decimal("30000")
    assert lot.ts == "2024-01-02T10:00:00Z"
    assert lot.note == "first buy"
    assert not error_reporter.has_errors()

def test_parse_lot_accepts_ts_and_numbers(parser):
    raw = get_base_valid_lot_data()
    del raw["date"]
    raw["ts"] = "2024-01-03"
    raw["qty"] = 2
    raw["unit_cost_usd"] = 10.5

    lot = parser.parse_lot(raw)

    assert lot.ts == "2024-01-03"
    assert lot.qty == Decimal("2")
    assert lot.unit_cost_usd == Decimal("10.5")

@pytest.mark.parametrize("blank_cost", [None, "", "   "])
def test_parse_lot_blank_cost_becomes_none(parser, blank_cost):
    raw = get_base_valid_lot_data()
    raw["action"] = "deposit"
    raw["unit_cost_usd"] = blank_cost

    assert parser.parse_lot(raw).unit_cost_usd is None

def test_parse_lot_legacy_unit_cost(parser):
    raw = get_base_valid_lot_data()
    del raw["unit_cost_usd"]
    raw["unit_cost"] = "123.45"

    assert parser.parse_lot(raw).unit_cost_usd == Decimal("123.45")

def test_parse_lot_defaults_asset_and_note(parser):
    raw = get_base_valid_lot_data()
    del raw["asset"]
    del raw["note"]

    lot = parser.parse_lot(raw, default_asset="ETH")

    assert lot.asset == "ETH"
    assert lot.note == ""

def test_parse_lot_invalid_qty_reports_error(parser, error_reporter):
    """A non-numeric qty is reported against the lot and the lot is dropped."""
    raw = get_base_valid_lot_data()
    raw["qty"] = "lots"

    assert parser.parse_lot(raw) is None
    errors = error_reporter.get_errors()
    assert len(errors) == 1
    assert errors[0].startswith("asset=BTC id=000001: qty:")

def test_parse_lots_skips_non_objects(parser, error_reporter):
    parsed = parser.parse_lots([get_base_valid_lot_data(), "not a lot"])

    assert len(parsed) == 1
    assert error_reporter.get_errors() == ["asset=? id=(new): expected an object, got str"]

def test_parse_lots_keeps_valid_lots_when_one_fails(parser, error_reporter):
    bad = get_base_valid_lot_data()
    bad["id"] = "000002"
    bad["unit_cost_usd"] = "cheap"

    parsed = parser.parse_lots([get_base_valid_lot_data(), bad])

    assert [lot.id for lot in parsed] == ["000001"]
    assert error_reporter.has_errors_for("000002")
