# portfolio_ledger/core/models/trade.py

from typing import Optional
from pydantic import BaseModel, Field, ConfigDict, AliasChoices
from decimal import Decimal


class TradeRecord(BaseModel):
    """
    An executed exchange trade, as handed over by a trade fetcher.
    Only spot trades quoted in the reference fiat (or a USD stablecoin) are merged.
    """
    trade_id: str = Field(default="", validation_alias=AliasChoices("trade_id", "id", "match_id"))
    asset: str
    type: str = Field(..., description="Exchange order type, e.g. buy-limit, sell-market")
    amount: Decimal = Field(..., validation_alias=AliasChoices("amount", "filled_amount", "qty"))
    price: Optional[Decimal] = None
    created_at: Optional[int] = Field(None, description="Execution time in epoch milliseconds")

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    @property
    def side(self) -> Optional[str]:
        order_type = self.type.strip().lower()
        if order_type.startswith("buy"):
            return "buy"
        if order_type.startswith("sell"):
            return "sell"
        return None

    @property
    def note(self) -> str:
        return f"trade#{self.trade_id}" if self.trade_id else ""
