# portfolio_ledger/tests/unit/test_error_reporter.py

import pytest
from portfolio_ledger.logic.error_reporter import ErrorReporter

@pytest.fixture
def error_reporter():
    """Provides a fresh ErrorReporter instance for each test."""
    return ErrorReporter()

def test_add_error_single(error_reporter):
    """Test adding a single violation."""
    error_reporter.add_error("BTC", "000001", "invalid date")

    errors = error_reporter.get_errors()
    assert errors == ["asset=BTC id=000001: invalid date"]
    assert error_reporter.has_errors() is True
    assert error_reporter.has_errors_for("000001") is True
    assert error_reporter.has_errors_for("000002") is False

def test_add_error_multiple_reasons_same_lot(error_reporter):
    """Every distinct reason for the same lot is kept, in order."""
    error_reporter.add_error("BTC", "000001", "invalid date")
    error_reporter.add_error("BTC", "000001", "invalid action")

    assert error_reporter.get_errors() == [
        "asset=BTC id=000001: invalid date",
        "asset=BTC id=000001: invalid action",
    ]

def test_add_error_duplicate_reason_kept_once(error_reporter):
    error_reporter.add_error("ETH", "000007", "qty must be non-zero number")
    error_reporter.add_error("ETH", "000007", "qty must be non-zero number")

    assert len(error_reporter.get_errors()) == 1

def test_get_errors_flattens_across_lots(error_reporter):
    error_reporter.add_error("BTC", "000001", "invalid date")
    error_reporter.add_error("ETH", "000002", "invalid action")

    assert error_reporter.get_errors() == [
        "asset=BTC id=000001: invalid date",
        "asset=ETH id=000002: invalid action",
    ]

def test_clear_errors(error_reporter):
    """Test clearing all collected violations."""
    error_reporter.add_error("BTC", "000001", "invalid date")
    error_reporter.clear()

    assert error_reporter.get_errors() == []
    assert error_reporter.has_errors() is False
    assert error_reporter.has_errors_for("000001") is False
