# portfolio_ledger/core/models/request.py

from typing import Any, Optional
from pydantic import BaseModel, Field, ConfigDict

from portfolio_ledger.core.models.snapshot import PriceQuote
from portfolio_ledger.core.models.trade import TradeRecord


class LotUpdateRequest(BaseModel):
    """
    Editable fields of an existing lot. Only the fields present in the body are changed;
    an explicit null `unit_cost_usd` clears the cost.
    """
    date: Optional[str] = None
    qty: Optional[Any] = None
    unit_cost_usd: Optional[Any] = None
    note: Optional[str] = None

    model_config = ConfigDict(extra='ignore')

    def changes(self) -> dict[str, Any]:
        changed = {name: getattr(self, name) for name in self.model_fields_set}
        if changed.get("date") is None:
            changed.pop("date", None)
        if changed.get("qty") is None:
            changed.pop("qty", None)
        return changed


class LotImportRequest(BaseModel):
    """
    Raw lots to merge into the ledger. Entries are kept as dictionaries so every
    malformed field is reported by validation instead of failing the whole body.
    """
    lots: list[dict] = Field(..., description="Raw lot records, each optionally carrying an id.")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "lots": [
                    {"action": "buy", "asset": "BTC", "qty": "0.5", "unit_cost_usd": "30000", "date": "2024-01-02"},
                    {"id": "000042", "action": "deposit", "asset": "ETH", "qty": "2", "unit_cost_usd": None, "date": "2024-01-03"}
                ]
            }
        },
        extra='ignore'
    )


class SnapshotRequest(BaseModel):
    """
    Live balances and prices fetched by the caller. Balances are either bare
    numbers or {"free": n}; prices map each symbol to {price, day_pct}.
    """
    balances: dict[str, Any] = Field(default_factory=dict)
    prices: dict[str, PriceQuote] = Field(default_factory=dict)
    always_include: list[str] = Field(default_factory=list)
    min_usd_ignore: Optional[float] = Field(None, description="Defaults to the configured MIN_USD_IGNORE.")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "balances": {"BTC": 0.5, "ETH": {"free": 2}},
                "prices": {"BTC": {"price": 60000, "day_pct": 1.5}, "ETH": {"price": 3000, "day_pct": -2.0}},
                "always_include": ["ETH"]
            }
        },
        extra='ignore'
    )


class TradeMergeRequest(BaseModel):
    trades: list[TradeRecord] = Field(default_factory=list)
