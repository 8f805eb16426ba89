"""Signal Backtest Engine - Core Package.

Usage:
    from signal_backtest import BacktestConfig, run_backtest

    report = run_backtest("BTCUSDT", payload["history"], payload["strategies"],
                          ml_prediction=None, config={"initialBalance": 10000})
"""

from signal_backtest.backtest import MIN_DATA_POINTS, BacktestEngine, BacktestReport, run_backtest
from signal_backtest.config import BacktestConfig
from signal_backtest.data import HistoricalData
from signal_backtest.exceptions import (
    BacktestError, DataValidationError, InsufficientDataError, PositionError,
)
from signal_backtest.metrics import Metrics
from signal_backtest.signals import IndicatorSignal, MLSignal, TradingDecision, aggregate_signals
from signal_backtest.trade import Trade

__all__ = [
    "MIN_DATA_POINTS",
    "BacktestConfig",
    "BacktestEngine",
    "BacktestError",
    "BacktestReport",
    "DataValidationError",
    "HistoricalData",
    "IndicatorSignal",
    "InsufficientDataError",
    "MLSignal",
    "Metrics",
    "PositionError",
    "Trade",
    "TradingDecision",
    "aggregate_signals",
    "run_backtest",
]
