# portfolio_ledger/logic/cost_basis_strategies.py
import heapq
import logging
from itertools import count
from typing import Protocol, Dict, Tuple, List
from collections import defaultdict
from decimal import Decimal

from portfolio_ledger.core.models.lot import Lot
from portfolio_ledger.logic.cost_objects import SupplyLot, Allocation
from portfolio_ledger.logic.lot_sorter import lot_sort_key

logger = logging.getLogger(__name__)

# --- Cost Basis Strategy Protocol ---

class CostBasisStrategy(Protocol):
    """
    Protocol (interface) for inventory consumption policies.
    Supply lots are added in chronological order; consuming lots draw from them.
    """
    def add_supply_lot(self, lot: Lot) -> SupplyLot:
        ...

    def consume_quantity(self, asset: str, quantity: Decimal) -> Tuple[List[Allocation], Decimal]:
        """Draws `quantity` (positive) and returns the allocations plus the unmet remainder."""
        ...

    def get_available_quantity(self, asset: str) -> Decimal:
        ...

    def get_supply_lots(self, asset: str) -> List[SupplyLot]:
        ...

# --- LOFO Cost Basis Strategy Implementation ---

class LOFOBasisStrategy:
    """
    Implements the Lowest-Cost-First-Out (LOFO) consumption policy.

    Supply is drawn in ascending cost order, ties broken by the supply lot's
    (timestamp, id); null-cost deposits count as infinitely expensive.
    A supply lot's ordering key never changes while it is drawn down, so an
    asset-scoped min-heap yields the same order as re-sorting after every draw.
    """
    def __init__(self):
        # Heap entries: (cost_per_unit, ts, lot_id, sequence, SupplyLot) per asset
        self._open_lots: Dict[str, list] = defaultdict(list)
        self._supply_lots: Dict[str, List[SupplyLot]] = defaultdict(list)
        self._sequence = count()
        logger.debug("LOFOBasisStrategy initialized.")

    def add_supply_lot(self, lot: Lot) -> SupplyLot:
        """
        Adds a buy or deposit lot to the open inventory of its asset.
        """
        supply = SupplyLot(lot)
        ts_key, lot_id = lot_sort_key(lot)
        heapq.heappush(
            self._open_lots[lot.asset],
            (supply.cost_per_unit, ts_key, lot_id, next(self._sequence), supply),
        )
        self._supply_lots[lot.asset].append(supply)
        logger.debug(f"LOFO: Added supply lot {supply.lot_id} (Qty: {supply.original_quantity}, Cost/Unit: {supply.cost_per_unit}) for {lot.asset}.")
        return supply

    def consume_quantity(self, asset: str, quantity: Decimal) -> Tuple[List[Allocation], Decimal]:
        """
        Consumes quantity from open supply, cheapest first.
        Returns the allocations made and the quantity that could not be met.
        """
        heap = self._open_lots[asset]
        required_quantity = quantity
        allocations: List[Allocation] = []

        while required_quantity > 0 and heap:
            current = heap[0][-1]
            take = min(current.remaining_quantity, required_quantity)
            current.remaining_quantity -= take
            required_quantity -= take
            allocations.append(Allocation(current.lot_id, take, current.cost_per_unit))
            logger.debug(f"  LOFO: Drew {take} from {current.lot_id} at {current.cost_per_unit}. Lot remaining: {current.remaining_quantity}. Still required: {required_quantity}.")
            if current.remaining_quantity <= 0:
                heapq.heappop(heap)

        if required_quantity > 0:
            logger.debug(f"LOFO: Supply exhausted for {asset}; unmet quantity {required_quantity}.")
        return allocations, required_quantity

    def get_available_quantity(self, asset: str) -> Decimal:
        return sum((entry[-1].remaining_quantity for entry in self._open_lots[asset]), Decimal(0))

    def get_supply_lots(self, asset: str) -> List[SupplyLot]:
        """All supply lots added for the asset, in the order they were added."""
        return list(self._supply_lots[asset])
