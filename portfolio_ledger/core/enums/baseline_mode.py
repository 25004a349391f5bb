# portfolio_ledger/core/enums/baseline_mode.py

from enum import Enum

class BaselineMode(str, Enum):
    """
    Defines how a historical reference price is derived for a UTC day.
    """
    CLOSE = "close"
    VWAP = "vwap"
