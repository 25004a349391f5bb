# portfolio_ledger/logic/lot_validator.py

import logging
from decimal import Decimal

from portfolio_ledger.core.enums.lot_action import LotAction
from portfolio_ledger.core.models.lot import Lot
from portfolio_ledger.core.timestamps import parse_timestamp
from portfolio_ledger.logic.error_reporter import ErrorReporter

logger = logging.getLogger(__name__)

class LotValidator:
    """
    Checks the per-lot invariants of a whole ledger.
    Every violation is reported; the caller rejects the batch if any were found.
    """
    def __init__(self, error_reporter: ErrorReporter):
        self._error_reporter = error_reporter

    def validate_lot(self, asset: str, lot: Lot):
        def report(reason: str):
            self._error_reporter.add_error(asset, lot.id, reason)

        if parse_timestamp(lot.ts) is None:
            report("invalid date")
        if not lot.asset:
            report("asset required")
        elif lot.asset != asset:
            report(f"asset {lot.asset} filed under {asset}")
        if not LotAction.is_valid(lot.action):
            report("invalid action")

        qty = lot.qty
        if not isinstance(qty, Decimal) or not qty.is_finite() or qty == 0:
            report("qty must be non-zero number")
        elif LotAction.is_supply(lot.action) and qty < 0:
            report(f"qty must be positive for {lot.action}")
        elif LotAction.is_consuming(lot.action) and qty > 0:
            report(f"qty must be negative for {lot.action}")

        cost = lot.unit_cost_usd
        if lot.action == LotAction.BUY and (cost is None or not cost.is_finite()):
            report("unit_cost_usd required for buy")
        if lot.action == LotAction.WITHDRAW and cost is not None:
            report("unit_cost_usd must be empty for withdraw")
        if cost is not None and cost.is_finite() and cost < 0:
            report("unit_cost_usd must not be negative")

    def validate_lots(self, lots_by_asset: dict[str, list[Lot]]) -> list[str]:
        """
        Validates every lot of every asset and returns the full list of violations
        (empty when the ledger is valid). Violations are also left in the ErrorReporter.
        """
        for asset in sorted(lots_by_asset):
            for lot in lots_by_asset[asset]:
                self.validate_lot(asset, lot)
        violations = self._error_reporter.get_errors()
        if violations:
            logger.warning(f"LotValidator: {len(violations)} violation(s) found.")
        return violations
