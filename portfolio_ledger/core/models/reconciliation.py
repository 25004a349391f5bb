# portfolio_ledger/core/models/reconciliation.py

from typing import Optional
from pydantic import BaseModel, Field
from decimal import Decimal

from portfolio_ledger.core.models.lot import ReconciledLot


class ReconciliationFailure(BaseModel):
    """A consuming lot that could not be satisfied by the supply available before it."""
    asset: str
    lot_id: str
    message: str


class AssetSummary(BaseModel):
    """Per-asset totals computed from the remaining (unconsumed) supply."""
    total_qty: Decimal = Field(default=Decimal(0))
    avg_cost_usd: Optional[Decimal] = Field(None, description="Weighted over costed supply only; None if none remains")
    unrealized_pl_usd: Optional[Decimal] = Field(None, description="None when no market price was supplied")
    remaining_lots: int = Field(default=0)


class AssetReconciliation(BaseModel):
    asset: str
    lots: list[ReconciledLot] = Field(default_factory=list, description="All lots in (ts, id) order")
    remaining_lots: list[ReconciledLot] = Field(default_factory=list, description="Supply lots with quantity left")
    summary: AssetSummary = Field(default_factory=AssetSummary)


class ReconciliationResult(BaseModel):
    """
    Outcome of a LOFO pass over a whole ledger.
    Assets that failed are reported in `errors` and carry no entry in `assets`.
    """
    assets: dict[str, AssetReconciliation] = Field(default_factory=dict)
    errors: list[ReconciliationFailure] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def error(self) -> Optional[str]:
        return self.errors[0].message if self.errors else None

    def summaries(self) -> dict[str, AssetSummary]:
        return {asset: rec.summary for asset, rec in self.assets.items()}

    def remaining_by_lot_id(self) -> dict[str, Decimal]:
        """Remaining quantity of every supply lot, keyed by lot id (0 if fully consumed)."""
        remaining: dict[str, Decimal] = {}
        for rec in self.assets.values():
            for lot in rec.lots:
                if lot.remaining is not None:
                    remaining[lot.id] = lot.remaining
        return remaining
