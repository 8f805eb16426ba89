"""Equity curve and drawdown tracking across a run."""

from typing import Any

from signal_backtest.state import EquityPoint, RunState


class PortfolioTracker:
    """Records one equity point per step and maintains peak/max drawdown."""

    def current_equity(self, state: RunState, price: float) -> float:
        """Balance plus the open position marked at ``price``."""
        equity = state.balance
        if state.position is not None:
            equity += state.position.market_value(price)
        return equity

    def record(self, state: RunState, price: float, timestamp: Any) -> EquityPoint:
        """Append the post-trade equity for this step.

        Drawdown is measured against the highest equity seen so far in the
        run, never a trailing window.
        """
        equity = self.current_equity(state, price)

        if equity > state.peak_equity:
            state.peak_equity = equity

        drawdown = 0.0
        if state.peak_equity > 0:
            drawdown = max((state.peak_equity - equity) / state.peak_equity, 0.0)
        state.max_drawdown = max(state.max_drawdown, drawdown)

        point = EquityPoint(timestamp=timestamp, equity=equity, drawdown=drawdown)
        state.equity_points.append(point)
        return point

