"""Performance and risk metrics for a finished run.

The Sharpe ratio here is a deliberate simplification: mean per-step return
over its population standard deviation, scaled by sqrt(252) regardless of
the actual bar spacing and without a risk-free rate. It is comparable across
runs of this engine, not a rigorous annualized Sharpe.
"""

import numpy as np

from signal_backtest.utils import format_currency, format_percentage

PERIODS_PER_YEAR = 252

# (label, metric key, formatter); None rows are separators
SUMMARY_LAYOUT = [
    ("Initial Balance", "initial_balance", format_currency),
    ("Final Balance", "final_balance", format_currency),
    ("Total Return", "total_return_percent", format_percentage),
    None,
    ("Max Drawdown", "max_drawdown_percent", format_percentage),
    ("Sharpe Ratio", "sharpe_ratio", "{:.3f}".format),
    ("Profit Factor", "profit_factor", "{:.2f}".format),
    None,
    ("Total Trades", "total_trades", str),
    ("Win Rate", "win_rate_percent", "{:.1f}%".format),
    ("Avg Win", "avg_win", format_currency),
    ("Avg Loss", "avg_loss", format_currency),
    ("Largest Win", "largest_win", format_currency),
    ("Largest Loss", "largest_loss", format_currency),
    None,
    ("Max Consec. Wins", "max_consecutive_wins", str),
    ("Max Consec. Losses", "max_consecutive_losses", str),
]


def longest_streak(mask: np.ndarray) -> int:
    """Length of the longest run of True values."""
    if not mask.any():
        return 0
    # Pad with False so every run has a start and an end edge
    edges = np.diff(np.concatenate(([0], mask.astype(int), [0])))
    starts = np.flatnonzero(edges == 1)
    ends = np.flatnonzero(edges == -1)
    return int((ends - starts).max())


class Metrics:
    """Summary statistics from closed trades and the per-step equity values."""

    def __init__(self, trades: list, equity: list,
                 initial_balance: float, final_balance: float):
        """
        Args:
            trades: Closed Trade objects, in order
            equity: Equity value per processed step (seed point excluded)
            initial_balance: Starting balance; also seeds the return series
            final_balance: Balance after the final forced close
        """
        self.trades = trades
        self.initial_balance = initial_balance
        self.final_balance = final_balance

        # Seeded with the starting balance so the first step has a return
        self._equity = np.array([initial_balance] + list(equity), dtype=float)
        self._pnls = np.array([t.pnl for t in trades], dtype=float)

    def calculate_all(self) -> dict:
        """Every metric, in report order."""
        total_return = self.total_return()
        max_drawdown = self.max_drawdown()
        stats = self.trade_stats()
        return {
            "initial_balance": self.initial_balance,
            "final_balance": self.final_balance,
            "total_return": total_return,
            "total_return_percent": total_return * 100,
            "max_drawdown": max_drawdown,
            "max_drawdown_percent": max_drawdown * 100,
            "sharpe_ratio": self.sharpe_ratio(),
            **stats,
        }

    def total_return(self) -> float:
        if self.initial_balance == 0:
            return 0.0
        return (self.final_balance - self.initial_balance) / self.initial_balance

    def step_returns(self) -> np.ndarray:
        """Per-step returns (e[i] - e[i-1]) / e[i-1]."""
        if len(self._equity) < 2:
            return np.array([], dtype=float)
        return np.diff(self._equity) / self._equity[:-1]

    def max_drawdown(self) -> float:
        """Largest fractional decline from the running all-time-high equity."""
        peak = np.maximum.accumulate(self._equity)
        drawdowns = (peak - self._equity) / peak
        return float(max(drawdowns.max(), 0.0))

    def sharpe_ratio(self) -> float:
        """mean(returns) / pstdev(returns) * sqrt(252); 0 when undefined."""
        returns = self.step_returns()
        if len(returns) < 2:
            return 0.0
        std = returns.std()
        if std == 0:
            return 0.0
        return float(returns.mean() / std * np.sqrt(PERIODS_PER_YEAR))

    def trade_stats(self) -> dict:
        """Counts, averages and streaks over closed trades.

        A trade with pnl exactly 0 counts toward the total but is neither a
        winner nor a loser. Profit factor is avg win over |avg loss|.
        """
        pnls = self._pnls
        wins = pnls[pnls > 0]
        losses = pnls[pnls < 0]
        total = len(pnls)

        win_rate = len(wins) / total if total else 0.0
        avg_win = float(wins.mean()) if len(wins) else 0.0
        avg_loss = float(losses.mean()) if len(losses) else 0.0

        return {
            "total_trades": total,
            "winning_trades": len(wins),
            "losing_trades": len(losses),
            "win_rate": win_rate,
            "win_rate_percent": win_rate * 100,
            "avg_win": avg_win,
            "avg_loss": avg_loss,
            "profit_factor": avg_win / abs(avg_loss) if avg_loss else 0.0,
            "largest_win": float(wins.max()) if len(wins) else 0.0,
            "largest_loss": float(losses.min()) if len(losses) else 0.0,
            "max_consecutive_wins": longest_streak(pnls > 0),
            "max_consecutive_losses": longest_streak(pnls < 0),
        }

    def print_summary(self, title: str = "Backtest") -> None:
        """Print the summary table to stdout."""
        m = self.calculate_all()
        width = 55

        print(f"\n{'=' * width}\n  {title}\n{'=' * width}")
        for row in SUMMARY_LAYOUT:
            if row is None:
                print("─" * width)
                continue
            label, key, fmt = row
            value = fmt(m[key])
            if key == "win_rate_percent":
                value += f" ({m['winning_trades']}/{m['total_trades']})"
            print(f"  {label:<30} {value:>22}")
        print(f"{'=' * width}\n")
