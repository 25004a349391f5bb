# portfolio_ledger/core/models/snapshot.py

from typing import Optional
from pydantic import BaseModel, Field


class PriceQuote(BaseModel):
    """Current market data for one symbol; either field may be missing after a failed fetch."""
    price: Optional[float] = None
    day_pct: Optional[float] = None


class Position(BaseModel):
    symbol: str
    free: float
    price: Optional[float] = None
    value: float = 0.0
    day_pct: Optional[float] = None
    pnl_pct: Optional[float] = None
    unreconciled: bool = False


class Snapshot(BaseModel):
    """A point-in-time valuation of the whole portfolio. Immutable once appended to history."""
    time: int = Field(..., description="Epoch seconds")
    ref_fiat: str = Field(default="USD")
    total_value_usd: float = Field(default=0.0)
    total_change_24h_pct: float = Field(default=0.0)
    positions: list[Position] = Field(default_factory=list)

    def price_map(self) -> dict[str, float]:
        return {p.symbol: p.price for p in self.positions if p.price is not None}


class SnapshotHistory(BaseModel):
    history: list[Snapshot] = Field(default_factory=list)
