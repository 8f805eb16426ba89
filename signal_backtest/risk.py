"""Stop-loss and take-profit enforcement on the open position."""

import logging
from typing import Any, Optional

from signal_backtest.config import BacktestConfig
from signal_backtest.position_manager import PositionManager
from signal_backtest.state import RunState
from signal_backtest.trade import Trade

logger = logging.getLogger(__name__)


class RiskController:
    """Checks the open position against the configured exit thresholds.

    Thresholds are compared with the raw observed price. The close itself goes
    through the PositionManager and pays slippage, so realized PnL can land
    slightly beyond the threshold.
    """

    def __init__(self, config: BacktestConfig, positions: PositionManager):
        self.config = config
        self.positions = positions

    def check_exit(self, state: RunState, price: float) -> Optional[str]:
        """Return "stop_loss", "take_profit", or None for the current price."""
        if state.position is None:
            return None

        current_return = state.position.unrealized_return(price)

        # Stop-loss takes precedence
        if current_return <= -self.config.stop_loss_percent:
            return "stop_loss"
        if current_return >= self.config.take_profit_percent:
            return "take_profit"
        return None

    def enforce(self, state: RunState, instrument: str, price: float,
                timestamp: Any) -> Optional[Trade]:
        """Close the position if a threshold is crossed."""
        reason = self.check_exit(state, price)
        if reason is None:
            return None

        logger.debug(f"{reason} triggered for {instrument} @ {price:.4f}")
        return self.positions.close_position(state, instrument, price, timestamp, reason)
