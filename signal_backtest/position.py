"""Open position state and its mark-to-market valuation."""

from dataclasses import dataclass
from typing import Any


@dataclass
class Position:
    """The single open exposure of a run.

    Short positions are collateralised by the debited notional, so their value
    is the notional plus unrealized PnL rather than quantity * price.
    """
    side: str               # "long" or "short"
    quantity: float         # Units, > 0
    entry_price: float      # Post-slippage fill price
    entry_time: Any
    confidence: float = 0.0

    @property
    def notional(self) -> float:
        return self.entry_price * self.quantity

    def unrealized_pnl(self, price: float) -> float:
        """PnL if the position were closed at ``price``."""
        if self.side == "long":
            return (price - self.entry_price) * self.quantity
        return (self.entry_price - price) * self.quantity

    def unrealized_return(self, price: float) -> float:
        """Fractional return from entry at ``price`` (sign-flipped for shorts)."""
        if self.side == "long":
            return (price - self.entry_price) / self.entry_price
        return (self.entry_price - price) / self.entry_price

    def market_value(self, price: float) -> float:
        """Value returned to the balance if closed at ``price``, before commission."""
        if self.side == "long":
            return self.quantity * price
        return self.notional + self.unrealized_pnl(price)
