# portfolio_ledger/logic/cost_objects.py

from decimal import Decimal

from portfolio_ledger.core.models.lot import Lot

# Null-cost deposits sort after every costed lot, so they are consumed last.
INFINITE_COST = Decimal("Infinity")


class SupplyLot:
    """Represents inventory added by a buy or deposit lot, tracked while it is drawn down."""
    def __init__(self, lot: Lot):
        self.lot = lot
        self.original_quantity = lot.qty
        self.remaining_quantity = lot.qty
        self.cost_per_unit = lot.unit_cost_usd if lot.unit_cost_usd is not None else INFINITE_COST

    @property
    def lot_id(self) -> str:
        return self.lot.id

    @property
    def is_costed(self) -> bool:
        """True when the lot carries a finite cost basis."""
        return self.cost_per_unit.is_finite()

    def __repr__(self) -> str:
        return (f"SupplyLot(lot_id='{self.lot_id}', "
                f"original_qty={self.original_quantity}, "
                f"remaining_qty={self.remaining_quantity}, "
                f"cost_per_unit={self.cost_per_unit})")


class Allocation:
    """Quantity a consuming lot drew from one supply lot."""
    def __init__(self, supply_lot_id: str, quantity: Decimal, cost_per_unit: Decimal):
        self.supply_lot_id = supply_lot_id
        self.quantity = quantity
        self.cost_per_unit = cost_per_unit

    def __repr__(self) -> str:
        return f"Allocation(from='{self.supply_lot_id}', qty={self.quantity}, cost={self.cost_per_unit})"
