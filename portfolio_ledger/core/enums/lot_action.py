# portfolio_ledger/core/enums/lot_action.py

from enum import Enum

class LotAction(str, Enum):
    """
    Defines the supported ledger actions.
    Inheriting from 'str' ensures that the enum values are strings,
    making them directly usable and comparable with string inputs.
    """
    BUY = "buy"
    SELL = "sell"
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"

    @classmethod
    def list(cls):
        """Returns a list of all action values."""
        return list(map(lambda c: c.value, cls))

    @classmethod
    def is_valid(cls, action_str: str) -> bool:
        """Checks if a given string is a valid action."""
        return action_str in cls.list()

    @classmethod
    def is_supply(cls, action_str: str) -> bool:
        """Buy and deposit lots add inventory."""
        return action_str in (cls.BUY.value, cls.DEPOSIT.value)

    @classmethod
    def is_consuming(cls, action_str: str) -> bool:
        """Sell and withdraw lots draw inventory down."""
        return action_str in (cls.SELL.value, cls.WITHDRAW.value)
