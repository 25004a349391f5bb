# portfolio_ledger/core/models/response.py

from typing import Any, List, Optional
from pydantic import BaseModel, Field, ConfigDict

from portfolio_ledger.core.models.lot import Lot, ReconciledLot
from portfolio_ledger.core.models.reconciliation import AssetSummary


class LotsViewMeta(BaseModel):
    strategy: str = Field(default="LOFO")
    last_id: int
    updated_at: str
    backend: str


class AssetView(BaseModel):
    """One asset of the reconciled ledger: its summary plus every lot in (ts, id) order."""
    asset: str
    summary: AssetSummary
    lots: List[ReconciledLot] = Field(default_factory=list)


class LotsView(BaseModel):
    """
    Represents the reconciled ledger as returned by GET /lots.
    `errors` is only non-empty if the stored ledger no longer reconciles (e.g. after a manual file edit).
    """
    meta: LotsViewMeta
    assets: List[AssetView] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)


class LotMutationResponse(BaseModel):
    """The committed lot together with its asset's refreshed summary."""
    lot: Lot
    summary: Optional[AssetSummary] = None


class ImportResult(BaseModel):
    imported: int = Field(default=0, description="Lots added to the ledger.")
    skipped: int = Field(default=0, description="Lots left out because their id already existed.")
    new_last_id: int
    warnings: List[str] = Field(default_factory=list)


class TradeMergeResult(BaseModel):
    """
    Outcome of merging fetched trades. Nothing is written unless `saved` is True;
    the reasons for a refused merge are reported in `warnings`.
    """
    created: int = 0
    skipped: int = 0
    warnings: List[str] = Field(default_factory=list)
    saved: bool = False


class ErrorResponse(BaseModel):
    """
    Represents the JSON body of every rejected request.
    """
    error: str = Field(..., description="Machine-readable error code, e.g. invalid, consumed_lot.")
    message: str
    details: Optional[Any] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": "reconciliation_failed",
                "message": "Negative inventory for BTC on sell id=000003",
                "details": [
                    {"asset": "BTC", "lot_id": "000003", "message": "Negative inventory for BTC on sell id=000003"}
                ]
            }
        }
    )
