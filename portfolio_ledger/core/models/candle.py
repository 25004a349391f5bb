# portfolio_ledger/core/models/candle.py

from pydantic import BaseModel, Field


class Candle(BaseModel):
    """One OHLCV bar; `ts` is the bar start in epoch milliseconds."""
    ts: int
    open: float = 0.0
    high: float
    low: float
    close: float
    vol: float = Field(default=0.0)

    @property
    def typical_price(self) -> float:
        return (self.high + self.low + self.close) / 3
