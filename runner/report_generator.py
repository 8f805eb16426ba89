"""Report export: JSON reports, CSV trade logs, and console summaries."""

import json
import logging
from pathlib import Path
from typing import Optional

from signal_backtest.backtest import BacktestReport

logger = logging.getLogger(__name__)


def get_reports_dir() -> Path:
    """Get the reports directory under the working directory, creating it if needed."""
    path = Path.cwd() / "reports"
    path.mkdir(exist_ok=True)
    return path


class ReportGenerator:
    """Writes a BacktestReport to disk in various formats."""

    def __init__(self, report: BacktestReport):
        self.report = report

    def _default_path(self, suffix: str) -> str:
        name = self.report.instrument.replace("/", "_").lower()
        return str(get_reports_dir() / f"{name}{suffix}")

    def print_console_summary(self) -> None:
        """Print formatted KPI table to stdout."""
        self.report.print_summary()

    def export_json(self, output_path: Optional[str] = None) -> str:
        """Export the full report (metrics, trades, equity) as JSON.

        Returns:
            Path to the saved JSON file
        """
        if output_path is None:
            output_path = self._default_path("_report.json")

        Path(output_path).write_text(json.dumps(self.report.to_dict(), indent=2, default=str))
        logger.info(f"Report exported to {output_path}")
        return output_path

    def export_trade_log(self, output_path: Optional[str] = None) -> str:
        """Export the trade log as CSV.

        Returns:
            Path to the saved CSV file
        """
        if output_path is None:
            output_path = self._default_path("_trades.csv")

        self.report.trade_log.to_csv(output_path, index=False)
        logger.info(f"Trade log exported to {output_path}")
        return output_path
