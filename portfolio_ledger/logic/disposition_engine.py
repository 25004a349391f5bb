# portfolio_ledger/logic/disposition_engine.py

from typing import Callable, Optional, Mapping, Any
from decimal import Decimal
import logging

from portfolio_ledger.core.enums.lot_action import LotAction
from portfolio_ledger.core.models.lot import Lot, ReconciledLot
from portfolio_ledger.core.models.reconciliation import (
    AssetReconciliation,
    AssetSummary,
    ReconciliationFailure,
    ReconciliationResult,
)
from portfolio_ledger.logic.cost_basis_strategies import CostBasisStrategy, LOFOBasisStrategy
from portfolio_ledger.logic.cost_objects import SupplyLot
from portfolio_ledger.logic.lot_sorter import LotSorter

logger = logging.getLogger(__name__)

# Quantities at or below this are treated as fully drawn.
QTY_TOLERANCE = Decimal("1e-12")


def _to_decimal(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class DispositionEngine:
    """
    Reconciles inventory per asset: replays every lot in chronological order,
    lets each sell/withdraw draw from the supply recorded before it through the
    cost basis strategy, and summarizes what remains.

    The engine never mutates its input; it returns new structures, so it can be
    used freely for dry runs.
    """
    def __init__(
        self,
        strategy_factory: Callable[[], CostBasisStrategy] = LOFOBasisStrategy,
        sorter: Optional[LotSorter] = None,
    ):
        self._strategy_factory = strategy_factory
        self._sorter = sorter or LotSorter()

    def reconcile(
        self,
        lots_by_asset: Mapping[str, list[Lot]],
        prices: Optional[Mapping[str, Any]] = None,
    ) -> ReconciliationResult:
        """
        Reconciles every asset independently, in ascending symbol order.
        Every failing asset is reported (first offending lot per asset); failing
        assets are left out of `assets`.
        """
        sorted_lots = self._sorter.sort_lots(dict(lots_by_asset))
        result = ReconciliationResult()

        for asset, lots in sorted_lots.items():
            price = _to_decimal((prices or {}).get(asset))
            reconciled, failure = self.reconcile_asset(asset, lots, price)
            if failure is not None:
                result.errors.append(failure)
            else:
                result.assets[asset] = reconciled

        if result.errors:
            logger.warning(f"DispositionEngine: Reconciliation failed for {[f.asset for f in result.errors]}.")
        else:
            logger.debug(f"DispositionEngine: Reconciled {len(result.assets)} asset(s).")
        return result

    def reconcile_asset(
        self, asset: str, lots: list[Lot], price: Optional[Decimal] = None
    ) -> tuple[Optional[AssetReconciliation], Optional[ReconciliationFailure]]:
        """
        Replays one asset's lots, which must already be in (ts, id) order.
        Returns either the reconciliation or the failure for the first lot whose demand could not be met.
        """
        strategy = self._strategy_factory()
        supply_by_index: dict[int, SupplyLot] = {}

        for index, lot in enumerate(lots):
            if LotAction.is_supply(lot.action):
                supply_by_index[index] = strategy.add_supply_lot(lot)
            elif LotAction.is_consuming(lot.action):
                _, unmet = strategy.consume_quantity(asset, abs(lot.qty))
                if unmet > QTY_TOLERANCE:
                    message = f"Negative inventory for {asset} on {lot.action} id={lot.id}"
                    logger.debug(f"DispositionEngine: {message} (unmet {unmet}).")
                    return None, ReconciliationFailure(asset=asset, lot_id=lot.id, message=message)

        reconciled_lots: list[ReconciledLot] = []
        for index, lot in enumerate(lots):
            supply = supply_by_index.get(index)
            remaining = None
            if supply is not None:
                remaining = supply.remaining_quantity if supply.remaining_quantity > QTY_TOLERANCE else Decimal(0)
            reconciled_lots.append(ReconciledLot(**lot.model_dump(), remaining=remaining))

        remaining_lots = [
            lot for lot in reconciled_lots
            if lot.remaining is not None and lot.remaining > QTY_TOLERANCE
        ]
        summary = self.summarize(strategy.get_supply_lots(asset), price)
        return AssetReconciliation(
            asset=asset,
            lots=reconciled_lots,
            remaining_lots=remaining_lots,
            summary=summary,
        ), None

    @staticmethod
    def summarize(supply_lots: list[SupplyLot], price: Optional[Decimal] = None) -> AssetSummary:
        """
        Totals the remaining supply. Null-cost deposits count toward `total_qty`
        but not toward the average cost or the unrealized P/L.
        """
        total_qty = Decimal(0)
        costed_qty = Decimal(0)
        costed_sum = Decimal(0)
        remaining_count = 0
        for supply in supply_lots:
            if supply.remaining_quantity <= QTY_TOLERANCE:
                continue
            remaining_count += 1
            total_qty += supply.remaining_quantity
            if supply.is_costed:
                costed_qty += supply.remaining_quantity
                costed_sum += supply.remaining_quantity * supply.cost_per_unit

        avg_cost = costed_sum / costed_qty if costed_qty > 0 else None
        unrealized = None
        if price is not None:
            unrealized = (price - avg_cost) * costed_qty if avg_cost is not None else Decimal(0)

        return AssetSummary(
            total_qty=total_qty,
            avg_cost_usd=avg_cost,
            unrealized_pl_usd=unrealized,
            remaining_lots=remaining_count,
        )

    @staticmethod
    def is_consumed(lot: Lot, remaining_by_lot_id: Mapping[str, Decimal]) -> bool:
        """
        A supply lot is consumed once any later sell/withdraw has drawn from it,
        i.e. its remaining quantity is below its original quantity.
        """
        if not LotAction.is_supply(lot.action):
            return False
        remaining = remaining_by_lot_id.get(lot.id, Decimal(0))
        return remaining < lot.qty - QTY_TOLERANCE
