"""Immutable record of a closed position."""

from dataclasses import asdict, dataclass
from typing import Any

EXIT_REASONS = ("signal_change", "stop_loss", "take_profit", "backtest_end")


@dataclass(frozen=True)
class Trade:
    """A completed round trip. Created exactly once per closed position."""
    instrument: str
    side: str               # "long" or "short"
    entry_price: float
    exit_price: float
    entry_time: Any
    exit_time: Any
    quantity: float
    pnl: float              # Net of exit commission
    pnl_percent: float      # pnl relative to entry notional, in percent
    commission: float       # Exit commission
    reason: str
    confidence: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)
