"""Main BacktestEngine: step-by-step loop over one instrument's history.

This is the central file that ties together the signal aggregator, position
manager, risk controller, portfolio tracker and metrics to run a backtest.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Union

import pandas as pd

from signal_backtest.config import BacktestConfig
from signal_backtest.data import HistoricalData
from signal_backtest.exceptions import InsufficientDataError
from signal_backtest.metrics import Metrics
from signal_backtest.portfolio import PortfolioTracker
from signal_backtest.position_manager import PositionManager
from signal_backtest.risk import RiskController
from signal_backtest.signals import (
    MLSignal, aggregate_signals, parse_ml_prediction, signals_at_index,
)
from signal_backtest.state import RunState

logger = logging.getLogger(__name__)

# Fixed minimum sample size; not configurable
MIN_DATA_POINTS = 50


@dataclass(frozen=True)
class BacktestReport:
    """Immutable result of one run."""
    instrument: str

    # Performance
    initial_balance: float
    final_balance: float
    total_return: float
    total_return_percent: float

    # Risk
    max_drawdown: float
    max_drawdown_percent: float
    sharpe_ratio: float

    # Trades
    total_trades: int
    winning_trades: int
    losing_trades: int
    win_rate: float
    win_rate_percent: float

    # Profit
    avg_win: float
    avg_loss: float
    profit_factor: float
    largest_win: float = 0.0
    largest_loss: float = 0.0
    max_consecutive_wins: int = 0
    max_consecutive_losses: int = 0

    # Detailed data
    trades: tuple = field(default_factory=tuple)
    equity: tuple = field(default_factory=tuple)
    timestamps: tuple = field(default_factory=tuple)
    drawdowns: tuple = field(default_factory=tuple)

    @property
    def metrics(self) -> dict:
        """Scalar metrics only."""
        return {k: v for k, v in self.to_dict().items()
                if k not in ("instrument", "trades", "equity", "timestamps", "drawdowns")}

    @property
    def equity_curve(self) -> pd.Series:
        """Equity per processed step as a pandas Series indexed by timestamp."""
        return pd.Series(list(self.equity), index=list(self.timestamps), name="equity")

    @property
    def trade_log(self) -> pd.DataFrame:
        """All closed trades as a DataFrame."""
        if not self.trades:
            return pd.DataFrame()
        return pd.DataFrame([t.to_dict() for t in self.trades])

    def to_dict(self) -> dict:
        """JSON-ready representation. Field order is fixed."""
        return {
            "instrument": self.instrument,
            "initial_balance": self.initial_balance,
            "final_balance": self.final_balance,
            "total_return": self.total_return,
            "total_return_percent": self.total_return_percent,
            "max_drawdown": self.max_drawdown,
            "max_drawdown_percent": self.max_drawdown_percent,
            "sharpe_ratio": self.sharpe_ratio,
            "total_trades": self.total_trades,
            "winning_trades": self.winning_trades,
            "losing_trades": self.losing_trades,
            "win_rate": self.win_rate,
            "win_rate_percent": self.win_rate_percent,
            "avg_win": self.avg_win,
            "avg_loss": self.avg_loss,
            "profit_factor": self.profit_factor,
            "largest_win": self.largest_win,
            "largest_loss": self.largest_loss,
            "max_consecutive_wins": self.max_consecutive_wins,
            "max_consecutive_losses": self.max_consecutive_losses,
            "trades": [t.to_dict() for t in self.trades],
            "equity": list(self.equity),
            "timestamps": list(self.timestamps),
            "drawdowns": list(self.drawdowns),
        }

    def print_summary(self) -> None:
        """Print formatted performance summary."""
        Metrics(
            list(self.trades), list(self.equity),
            initial_balance=self.initial_balance,
            final_balance=self.final_balance,
        ).print_summary(self.instrument)


class BacktestEngine:
    """Backtest engine for one instrument at a time.

    Each step i (1..n-1; index 0 only seeds the run) is processed in order:
    1. Aggregate the indicator signals at i with the ML prediction
    2. Apply the decision (signal-change close, then possible open)
    3. Check stop-loss / take-profit on the open position
    4. Record post-trade equity and drawdown

    Afterwards any open position is force-closed at the last price and the
    metrics are computed. All mutable state lives in a RunState created per
    run, so runs never leak into each other.
    """

    def __init__(self, config: Optional[BacktestConfig] = None):
        self.config = config or BacktestConfig()
        self.positions = PositionManager(self.config)
        self.risk = RiskController(self.config, self.positions)
        self.portfolio = PortfolioTracker()

    def run(self, instrument: str,
            historical_data: Union[HistoricalData, dict],
            signals: Optional[dict] = None,
            ml_prediction: Union[MLSignal, dict, None] = None) -> BacktestReport:
        """Run the backtest.

        Args:
            instrument: Identifier the run is scoped to (e.g. "BTCUSDT")
            historical_data: HistoricalData or the collaborator's payload
            signals: Indicator name -> signal object, or per-index list of them
            ml_prediction: Optional ML prediction (payload or MLSignal)

        Returns:
            BacktestReport

        Raises:
            InsufficientDataError: fewer than MIN_DATA_POINTS prices
        """
        try:
            return self._run(instrument, historical_data, signals, ml_prediction)
        except Exception as e:
            logger.error(f"Backtest failed for {instrument}: {e}")
            raise

    def _run(self, instrument, historical_data, signals, ml_prediction) -> BacktestReport:
        if not isinstance(historical_data, HistoricalData):
            historical_data = HistoricalData.from_payload(historical_data)

        closes = historical_data.closes
        timestamps = historical_data.timestamps
        ml_signal = parse_ml_prediction(ml_prediction)

        logger.info(f"Starting backtest for {instrument}: {len(closes)} points, "
                    f"ML prediction: {'yes' if ml_signal else 'no'}")

        if len(closes) < MIN_DATA_POINTS:
            raise InsufficientDataError(instrument, len(closes), MIN_DATA_POINTS)

        logger.info(f"Balance: {self.config.initial_balance:,.2f} | "
                    f"Commission: {self.config.commission_rate * 100:.3f}% | "
                    f"Slippage: {self.config.slippage_rate * 100:.3f}%")

        state = RunState.initial(self.config.initial_balance)

        for idx in range(1, len(closes)):
            self._process_step(state, instrument, idx, closes[idx], timestamps[idx],
                               signals, ml_signal)

        # Force close at the last point
        self.positions.close_position(state, instrument, closes[-1], timestamps[-1],
                                      "backtest_end")

        report = self._build_report(instrument, state)
        logger.info(f"Backtest completed for {instrument}: {report.total_trades} trades, "
                    f"final balance {report.final_balance:,.2f} "
                    f"({report.total_return_percent:.2f}%), Sharpe {report.sharpe_ratio:.3f}")
        return report

    def _process_step(self, state: RunState, instrument: str, idx: int,
                      price: float, timestamp, signals: Optional[dict],
                      ml_signal: Optional[MLSignal]) -> None:
        decision = aggregate_signals(signals_at_index(signals, idx), ml_signal)
        self.positions.apply_decision(state, instrument, decision, price, timestamp)
        self.risk.enforce(state, instrument, price, timestamp)
        self.portfolio.record(state, price, timestamp)

    def _build_report(self, instrument: str, state: RunState) -> BacktestReport:
        metrics = Metrics(
            state.trades,
            [p.equity for p in state.equity_points],
            initial_balance=self.config.initial_balance,
            final_balance=state.balance,
        ).calculate_all()

        return BacktestReport(
            instrument=instrument,
            trades=tuple(state.trades),
            equity=tuple(p.equity for p in state.equity_points),
            timestamps=tuple(p.timestamp for p in state.equity_points),
            drawdowns=tuple(p.drawdown for p in state.equity_points),
            **metrics,
        )


def run_backtest(instrument: str, historical_data: Union[HistoricalData, dict],
                 signals: Optional[dict] = None,
                 ml_prediction: Union[MLSignal, dict, None] = None,
                 config: Union[BacktestConfig, dict, None] = None) -> BacktestReport:
    """Run one backtest with a fresh engine.

    ``config`` may be a BacktestConfig or a partial mapping of overrides.
    """
    if not isinstance(config, BacktestConfig):
        config = BacktestConfig.resolve(config)
    return BacktestEngine(config).run(instrument, historical_data, signals, ml_prediction)
