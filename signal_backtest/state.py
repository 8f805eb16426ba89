"""Mutable state of a single backtest run."""

from dataclasses import dataclass, field
from typing import Any, Optional

from signal_backtest.position import Position
from signal_backtest.trade import Trade


@dataclass(frozen=True)
class EquityPoint:
    """Equity snapshot recorded once per processed step."""
    timestamp: Any
    equity: float
    drawdown: float         # Fraction below the running peak


@dataclass
class RunState:
    """Everything a run mutates while stepping through the series.

    Built fresh for every run and discarded afterwards; a run is never resumed.
    """
    balance: float
    peak_equity: float
    max_drawdown: float = 0.0
    position: Optional[Position] = None
    trades: list[Trade] = field(default_factory=list)
    equity_points: list[EquityPoint] = field(default_factory=list)

    @classmethod
    def initial(cls, initial_balance: float) -> "RunState":
        return cls(balance=initial_balance, peak_equity=initial_balance)

    @property
    def has_position(self) -> bool:
        return self.position is not None
