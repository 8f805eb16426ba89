"""Batch backtests across instruments with per-instrument failure isolation.

Each instrument gets its own engine and run state; one failing run never
aborts the batch. Runs share nothing, so they may go through a thread pool.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional, Protocol

import pandas as pd

from signal_backtest.backtest import BacktestEngine, BacktestReport
from signal_backtest.config import BacktestConfig

logger = logging.getLogger(__name__)


class DataProvider(Protocol):
    """Source of historical data and predictions (HTTP service or files)."""

    def get_historical_data(self, instrument: str) -> dict: ...

    def get_ml_prediction(self, instrument: str) -> Optional[dict]: ...

    def get_available_instruments(self) -> list: ...


@dataclass(frozen=True)
class RunOutcome:
    """Result of one instrument's run: a report or a failure description."""
    instrument: str
    report: Optional[BacktestReport] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        if self.ok:
            return self.report.to_dict()
        return {"instrument": self.instrument, "error": self.error}


class BatchRunner:
    """Runs backtests for many instruments against one provider."""

    def __init__(self, provider: DataProvider, config: Optional[BacktestConfig] = None,
                 max_workers: int = 1):
        self.provider = provider
        self.config = config or BacktestConfig()
        self.max_workers = max_workers

    def run_instrument(self, instrument: str) -> RunOutcome:
        """Fetch inputs and run one backtest, capturing any failure."""
        try:
            payload = self.provider.get_historical_data(instrument)
            ml_prediction = self.provider.get_ml_prediction(instrument)

            engine = BacktestEngine(self.config)
            report = engine.run(
                instrument,
                payload,
                payload.get("strategies"),
                ml_prediction,
            )
            return RunOutcome(instrument=instrument, report=report)
        except Exception as e:
            logger.error(f"Backtest failed for {instrument}: {e}")
            return RunOutcome(instrument=instrument, error=str(e))

    def run_all(self, instruments: Optional[list] = None) -> dict[str, RunOutcome]:
        """Run every instrument (default: all the provider offers).

        Returns:
            Instrument -> RunOutcome, in input order
        """
        if instruments is None:
            instruments = self.provider.get_available_instruments()

        logger.info(f"Starting backtests for {len(instruments)} instruments "
                    f"(workers: {self.max_workers})")

        if self.max_workers <= 1:
            outcomes = [self.run_instrument(i) for i in instruments]
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                outcomes = list(executor.map(self.run_instrument, instruments))

        failed = sum(1 for o in outcomes if not o.ok)
        logger.info(f"Batch complete: {len(outcomes) - failed} succeeded, {failed} failed")
        return {o.instrument: o for o in outcomes}

    @staticmethod
    def summarize(outcomes: dict[str, RunOutcome],
                  sort_by: str = "total_return_percent",
                  ascending: bool = False) -> pd.DataFrame:
        """Key metrics per instrument, ranked; failed runs are listed last."""
        rows = []
        for instrument, outcome in outcomes.items():
            row = {"instrument": instrument}
            if outcome.ok:
                row.update(outcome.report.metrics)
                row["error"] = None
            else:
                row["error"] = outcome.error
            rows.append(row)

        df = pd.DataFrame(rows)
        if df.empty:
            return df
        if sort_by not in df.columns:
            logger.warning(f"Column {sort_by} not found. Using input order.")
            return df.reset_index(drop=True)

        ranked = df.sort_values(sort_by, ascending=ascending,
                                na_position="last").reset_index(drop=True)
        ranked.index = ranked.index + 1
        ranked.index.name = "rank"
        return ranked

    @staticmethod
    def portfolio_summary(outcomes: dict[str, RunOutcome]) -> dict:
        """Aggregate figures across successful runs."""
        reports = [o.report for o in outcomes.values() if o.ok]
        total_trades = sum(r.total_trades for r in reports)
        total_wins = sum(r.winning_trades for r in reports)
        return {
            "successful": len(reports),
            "total": len(outcomes),
            "avg_return_percent": (
                sum(r.total_return_percent for r in reports) / len(reports) if reports else 0.0
            ),
            "total_trades": total_trades,
            "win_rate_percent": total_wins / total_trades * 100 if total_trades else 0.0,
        }
