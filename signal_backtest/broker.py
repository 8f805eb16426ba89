"""Simulated fills: slippage and commission applied to every open and close."""

BUY_SIDES = ("long", "buy")


class SimulatedBroker:
    """Prices fills at the observed price with adverse slippage.

    - Buys (long entry, short exit) fill at price * (1 + slippage_rate)
    - Sells (short entry, long exit) fill at price * (1 - slippage_rate)
    - Commission is a flat fraction of the filled notional
    """

    def __init__(self, commission_rate: float = 0.001, slippage_rate: float = 0.0005):
        """
        Args:
            commission_rate: Commission as fraction of trade value (0.001 = 0.1%)
            slippage_rate: Slippage as fraction of price (0.0005 = 0.05%)
        """
        self.commission_rate = commission_rate
        self.slippage_rate = slippage_rate

    def apply_slippage(self, price: float, side: str) -> float:
        """Return the fill price for a buy ("long"/"buy") or sell ("short"/"sell")."""
        if side in BUY_SIDES:
            return price * (1 + self.slippage_rate)    # Higher fill for buys
        return price * (1 - self.slippage_rate)        # Lower fill for sells

    def calculate_commission(self, notional: float) -> float:
        """Commission on a fill of the given currency value."""
        return abs(notional * self.commission_rate)

    @staticmethod
    def exit_side(position_side: str) -> str:
        """Side of the fill that closes a position."""
        return "sell" if position_side == "long" else "buy"
