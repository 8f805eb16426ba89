"""Opening and closing the run's single position.

These are the only operations that touch the balance:
- open debits notional + commission
- close credits position value - commission, where commission is
  quantity * exit fill * rate for either side
"""

import logging
from typing import Any, Optional

from signal_backtest.broker import SimulatedBroker
from signal_backtest.config import BacktestConfig
from signal_backtest.exceptions import PositionError
from signal_backtest.position import Position
from signal_backtest.signals import TradingDecision
from signal_backtest.state import RunState
from signal_backtest.trade import Trade

logger = logging.getLogger(__name__)

ACTION_SIDES = {"buy": "long", "sell": "short"}


class PositionManager:
    """Turns trading decisions into position opens and closes."""

    def __init__(self, config: BacktestConfig, broker: Optional[SimulatedBroker] = None):
        self.config = config
        self.broker = broker or SimulatedBroker(
            commission_rate=config.commission_rate,
            slippage_rate=config.slippage_rate,
        )

    def position_notional(self, state: RunState, confidence: float) -> float:
        """Risk-based sizing: a fraction of balance scaled by confidence.

        Full size is reached at confidence 0.5 and above.
        """
        base = state.balance * self.config.max_position_size
        return base * min(confidence * 2, 1)

    def open_position(self, state: RunState, instrument: str, side: str,
                      price: float, timestamp: Any, confidence: float) -> Optional[Position]:
        """Open a long or short position at ``price``.

        Returns:
            The new Position, or None when the balance cannot cover it
        """
        if state.has_position:
            raise PositionError(f"Cannot open {side} on {instrument} while a "
                                f"{state.position.side} position is open")

        notional = self.position_notional(state, confidence)
        fill_price = self.broker.apply_slippage(price, side)
        commission = self.broker.calculate_commission(notional)
        required = notional + commission

        if notional <= 0:
            logger.debug(f"Skipping {instrument} {side}: zero position size")
            return None
        if required > state.balance:
            logger.warning(f"Insufficient balance for {instrument} {side}: "
                           f"required {required:.2f}, available {state.balance:.2f}")
            return None

        state.position = Position(
            side=side,
            quantity=notional / fill_price,
            entry_price=fill_price,
            entry_time=timestamp,
            confidence=confidence,
        )
        state.balance -= required

        logger.debug(f"Opened {side} {instrument} @ {fill_price:.4f} "
                     f"(notional: {notional:.2f}, commission: {commission:.2f}, "
                     f"confidence: {confidence:.2f})")
        return state.position

    def close_position(self, state: RunState, instrument: str, price: float,
                       timestamp: Any, reason: str) -> Optional[Trade]:
        """Close the open position at ``price`` and record the trade.

        Returns:
            The recorded Trade, or None if there was nothing to close
        """
        position = state.position
        if position is None:
            return None

        fill_price = self.broker.apply_slippage(price, self.broker.exit_side(position.side))
        value = position.market_value(fill_price)
        # Commission is charged on the exit fill for both sides
        commission = self.broker.calculate_commission(position.quantity * fill_price)
        pnl = position.unrealized_pnl(fill_price) - commission

        state.balance += value - commission

        trade = Trade(
            instrument=instrument,
            side=position.side,
            entry_price=position.entry_price,
            exit_price=fill_price,
            entry_time=position.entry_time,
            exit_time=timestamp,
            quantity=position.quantity,
            pnl=pnl,
            pnl_percent=pnl / (position.entry_price * position.quantity) * 100,
            commission=commission,
            reason=reason,
            confidence=position.confidence,
        )
        state.trades.append(trade)
        state.position = None

        logger.debug(f"Closed {position.side} {instrument} @ {fill_price:.4f} "
                     f"({reason}) PnL: {pnl:.2f}. Balance: {state.balance:.2f}")
        return trade

    def apply_decision(self, state: RunState, instrument: str, decision: TradingDecision,
                       price: float, timestamp: Any) -> None:
        """Act on one step's decision.

        An open position meeting the opposite action is closed first
        (``signal_change``); a new position may then open at the same price if
        the decision is confident enough.
        """
        side = ACTION_SIDES.get(decision.action)
        if side is None:
            return

        if state.has_position and state.position.side != side:
            self.close_position(state, instrument, price, timestamp, "signal_change")

        if not state.has_position and decision.confidence > self.config.min_entry_confidence:
            self.open_position(state, instrument, side, price, timestamp, decision.confidence)
