# portfolio_ledger/core/models/ledger.py

from typing import Optional
from pydantic import BaseModel, Field, ConfigDict

from portfolio_ledger.core.models.lot import Lot
from portfolio_ledger.core.timestamps import now_iso


class LedgerMeta(BaseModel):
    """Ledger header: the monotonic id counter and the last commit time."""
    last_id: int = Field(default=0, ge=0)
    strategy: str = Field(default="LOFO")
    updated_at: str = Field(default_factory=now_iso)


class Ledger(BaseModel):
    """
    The persisted cost-basis book: lots grouped by asset plus the header.
    Only the ledger repository mutates it, and only through validate-then-commit.
    """
    meta: LedgerMeta = Field(default_factory=LedgerMeta)
    lots_by_asset: dict[str, list[Lot]] = Field(default_factory=dict, alias="byAsset")

    model_config = ConfigDict(populate_by_name=True)

    def all_lots(self) -> list[Lot]:
        return [lot for asset in sorted(self.lots_by_asset) for lot in self.lots_by_asset[asset]]

    def lot_ids(self) -> set[str]:
        return {lot.id for lot in self.all_lots() if lot.id}

    def find_lot(self, lot_id: str) -> Optional[Lot]:
        for lot in self.all_lots():
            if lot.id == lot_id:
                return lot
        return None
