"""Exception hierarchy for the backtest engine."""


class BacktestError(Exception):
    """Base class for all backtest errors."""


class InsufficientDataError(BacktestError):
    """Raised when a series is too short to be backtested."""

    def __init__(self, instrument: str, points: int, minimum: int):
        self.instrument = instrument
        self.points = points
        self.minimum = minimum
        super().__init__(
            f"Insufficient historical data for {instrument}: "
            f"{points} points (minimum {minimum})"
        )


class DataValidationError(BacktestError):
    """Raised when a historical data payload is malformed."""


class PositionError(BacktestError):
    """Raised on an illegal position transition (e.g. double open)."""
