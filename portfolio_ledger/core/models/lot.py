# portfolio_ledger/core/models/lot.py

from typing import Optional, Any
from pydantic import BaseModel, Field, ConfigDict, field_validator
from decimal import Decimal

LOT_ID_WIDTH = 6


def format_lot_id(number: int) -> str:
    """Zero-pads a numeric lot id to the fixed ledger width."""
    return str(number).zfill(LOT_ID_WIDTH)


class Lot(BaseModel):
    """
    Represents a single accounting record of an asset quantity change.
    Once committed, a lot is only superseded by an explicit edit or delete.
    """
    id: str = Field(default="", description="Zero-padded ledger identifier; empty until assigned")
    action: str = Field(..., description="One of buy, sell, deposit, withdraw")
    asset: str = Field(..., description="Ticker symbol, the inventory partition key")
    qty: Decimal = Field(..., description="Signed quantity: positive for buy/deposit, negative for sell/withdraw")
    unit_cost_usd: Optional[Decimal] = Field(None, description="Per-unit cost basis in USD")
    ts: str = Field(..., alias="date", description="ISO-8601 timestamp used as the primary ordering key")
    note: str = Field(default="", description="Free-text annotation, e.g. trade#<id> for dedup")

    model_config = ConfigDict(
        populate_by_name=True,
        from_attributes=True,
        frozen=True,
        coerce_numbers_to_str=True,
    )

    @field_validator("id", "note", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("action", "asset", mode="before")
    @classmethod
    def _strip_text(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("unit_cost_usd", mode="before")
    @classmethod
    def _blank_cost_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and value.strip() == "":
            return None
        return value


class ReconciledLot(Lot):
    """A lot annotated with the quantity left after LOFO consumption (supply lots only)."""
    remaining: Optional[Decimal] = Field(None, description="Remaining quantity for buy/deposit lots")
