"""Tests for opening, closing and decision handling."""

import sys
import os
import logging
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from signal_backtest.config import BacktestConfig
from signal_backtest.exceptions import PositionError
from signal_backtest.position_manager import PositionManager
from signal_backtest.signals import TradingDecision
from signal_backtest.state import RunState


def _decision(action, confidence):
    return TradingDecision(action=action, confidence=confidence, buy_score=0.0, sell_score=0.0)


class TestOpenClose:
    def setup_method(self):
        self.config = BacktestConfig(initial_balance=10_000, commission_rate=0.001,
                                     slippage_rate=0.0005, max_position_size=0.1)
        self.manager = PositionManager(self.config)
        self.state = RunState.initial(self.config.initial_balance)

    def test_position_size_scales_with_confidence(self):
        assert self.manager.position_notional(self.state, 0.25) == pytest.approx(500)
        assert self.manager.position_notional(self.state, 0.5) == pytest.approx(1000)
        assert self.manager.position_notional(self.state, 0.9) == pytest.approx(1000)

    def test_open_long_debits_notional_and_commission(self):
        position = self.manager.open_position(self.state, "BTCUSDT", "long", 100.0, 1, 0.9)

        assert position is self.state.position
        assert position.entry_price == pytest.approx(100.05)
        assert position.quantity == pytest.approx(1000 / 100.05)
        assert position.confidence == 0.9
        assert self.state.balance == pytest.approx(10_000 - 1000 - 1.0)

    def test_open_short_deflates_entry(self):
        position = self.manager.open_position(self.state, "BTCUSDT", "short", 100.0, 1, 0.9)
        assert position.entry_price == pytest.approx(99.95)
        assert self.state.balance == pytest.approx(8999.0)

    def test_close_long_records_trade(self):
        self.manager.open_position(self.state, "BTCUSDT", "long", 100.0, 1, 0.9)
        quantity = self.state.position.quantity
        balance_after_open = self.state.balance

        trade = self.manager.close_position(self.state, "BTCUSDT", 110.0, 2, "take_profit")

        exit_price = 110.0 * (1 - 0.0005)
        value = quantity * exit_price
        commission = value * 0.001
        expected_pnl = (exit_price - 100.05) * quantity - commission

        assert self.state.position is None
        assert self.state.trades == [trade]
        assert trade.exit_price == pytest.approx(exit_price)
        assert trade.commission == pytest.approx(commission)
        assert trade.pnl == pytest.approx(expected_pnl)
        assert trade.pnl_percent == trade.pnl / (trade.entry_price * trade.quantity) * 100
        assert trade.reason == "take_profit"
        assert trade.entry_time == 1 and trade.exit_time == 2
        assert self.state.balance == pytest.approx(balance_after_open + value - commission)

    def test_close_short_profits_when_price_falls(self):
        self.manager.open_position(self.state, "BTCUSDT", "short", 100.0, 1, 0.9)
        trade = self.manager.close_position(self.state, "BTCUSDT", 90.0, 2, "signal_change")

        assert trade.side == "short"
        assert trade.exit_price == pytest.approx(90.045)
        assert trade.pnl > 0
        assert self.state.balance > 10_000 - 1.0

    def test_close_short_records_trade(self):
        self.manager.open_position(self.state, "BTCUSDT", "short", 100.0, 1, 0.9)
        position = self.state.position
        balance_after_open = self.state.balance

        trade = self.manager.close_position(self.state, "BTCUSDT", 90.0, 2, "take_profit")

        exit_price = 90.0 * (1 + 0.0005)
        gross = (position.entry_price - exit_price) * position.quantity
        commission = position.quantity * exit_price * 0.001
        credit = position.entry_price * position.quantity + gross - commission

        assert trade.exit_price == pytest.approx(exit_price)
        assert trade.commission == pytest.approx(commission)
        assert trade.pnl == pytest.approx(gross - commission)
        assert trade.pnl_percent == trade.pnl / (trade.entry_price * trade.quantity) * 100
        assert self.state.balance == pytest.approx(balance_after_open + credit)

    def test_open_never_exceeds_balance(self):
        for balance in (0.0, 1.0, 99.9, 1_000.0, 10_000.0, 123_456.78):
            for max_size in (0.1, 0.5, 0.999, 1.0):
                for rate in (0.0, 0.001, 0.01):
                    config = BacktestConfig(initial_balance=max(balance, 1.0),
                                            commission_rate=rate, slippage_rate=0.0005,
                                            max_position_size=max_size)
                    manager = PositionManager(config)
                    state = RunState.initial(balance)

                    position = manager.open_position(state, "X", "long", 100.0, 1, 0.9)
                    if position is None:
                        assert state.balance == balance
                        continue
                    notional = balance * max_size
                    commission = notional * rate
                    assert notional + commission <= balance
                    assert state.balance == pytest.approx(balance - notional - commission)
                    assert state.balance >= 0

    def test_close_when_flat_is_noop(self):
        assert self.manager.close_position(self.state, "BTCUSDT", 100.0, 1, "backtest_end") is None
        assert self.state.trades == []
        assert self.state.balance == 10_000

    def test_double_open_raises(self):
        self.manager.open_position(self.state, "BTCUSDT", "long", 100.0, 1, 0.9)
        with pytest.raises(PositionError):
            self.manager.open_position(self.state, "BTCUSDT", "short", 100.0, 2, 0.9)

    def test_insufficient_balance_skips_open(self, caplog):
        config = BacktestConfig(initial_balance=10_000, commission_rate=0.001,
                                slippage_rate=0.0, max_position_size=1.0)
        manager = PositionManager(config)
        state = RunState.initial(config.initial_balance)

        with caplog.at_level(logging.WARNING):
            result = manager.open_position(state, "BTCUSDT", "long", 100.0, 1, 1.0)

        assert result is None
        assert state.position is None
        assert state.balance == 10_000
        assert "Insufficient balance" in caplog.text

    def test_full_balance_open_without_fees(self):
        config = BacktestConfig(commission_rate=0, slippage_rate=0, max_position_size=1.0)
        manager = PositionManager(config)
        state = RunState.initial(config.initial_balance)

        assert manager.open_position(state, "X", "long", 100.0, 1, 1.0) is not None
        assert state.balance == 0.0


class TestApplyDecision:
    def setup_method(self):
        self.config = BacktestConfig(commission_rate=0, slippage_rate=0)
        self.manager = PositionManager(self.config)
        self.state = RunState.initial(self.config.initial_balance)

    def test_hold_does_nothing(self):
        self.manager.apply_decision(self.state, "X", _decision("hold", 0.9), 100.0, 1)
        assert self.state.position is None

    def test_low_confidence_does_not_open(self):
        self.manager.apply_decision(self.state, "X", _decision("buy", 0.6), 100.0, 1)
        assert self.state.position is None

    def test_buy_opens_long(self):
        self.manager.apply_decision(self.state, "X", _decision("buy", 0.7), 100.0, 1)
        assert self.state.position.side == "long"

    def test_same_direction_keeps_position(self):
        self.manager.apply_decision(self.state, "X", _decision("buy", 0.7), 100.0, 1)
        first = self.state.position
        self.manager.apply_decision(self.state, "X", _decision("buy", 0.9), 105.0, 2)
        assert self.state.position is first
        assert self.state.trades == []

    def test_hold_keeps_position(self):
        self.manager.apply_decision(self.state, "X", _decision("buy", 0.7), 100.0, 1)
        self.manager.apply_decision(self.state, "X", _decision("hold", 0.0), 105.0, 2)
        assert self.state.position is not None

    def test_opposite_signal_closes_then_reverses(self):
        self.manager.apply_decision(self.state, "X", _decision("buy", 0.7), 100.0, 1)
        self.manager.apply_decision(self.state, "X", _decision("sell", 0.8), 105.0, 2)

        assert len(self.state.trades) == 1
        assert self.state.trades[0].reason == "signal_change"
        assert self.state.trades[0].exit_price == 105.0
        assert self.state.position.side == "short"
        assert self.state.position.entry_price == 105.0
        assert self.state.position.entry_time == 2

    def test_weak_opposite_signal_only_closes(self):
        self.manager.apply_decision(self.state, "X", _decision("buy", 0.7), 100.0, 1)
        self.manager.apply_decision(self.state, "X", _decision("sell", 0.5), 105.0, 2)

        assert len(self.state.trades) == 1
        assert self.state.position is None
