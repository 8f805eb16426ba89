"""Historical price series as supplied by the data collaborator."""

import logging
from dataclasses import dataclass
from numbers import Number
from typing import Any

import pandas as pd

from signal_backtest.exceptions import DataValidationError

logger = logging.getLogger(__name__)

# Payload key variations to normalize
SERIES_MAP = {
    "closes": "closes", "close": "closes", "Close": "closes",
    "highs": "highs", "high": "highs", "High": "highs",
    "lows": "lows", "low": "lows", "Low": "lows",
    "volumes": "volumes", "volume": "volumes", "Volume": "volumes",
    "timestamps": "timestamps", "timestamp": "timestamps", "times": "timestamps",
    "dates": "timestamps", "date": "timestamps",
}

REQUIRED_SERIES = ["closes", "timestamps"]


@dataclass(frozen=True)
class HistoricalData:
    """Parallel, equal-length OHLCV sequences for one instrument.

    Timestamps are kept exactly as supplied (epoch millis or strings) so
    reports echo them back unchanged.
    """
    closes: tuple
    highs: tuple
    lows: tuple
    volumes: tuple
    timestamps: tuple

    def __len__(self) -> int:
        return len(self.closes)

    @classmethod
    def from_payload(cls, payload: dict) -> "HistoricalData":
        """Build from a collaborator payload.

        Accepts either ``{"history": {...}}`` or the bare history mapping.
        Missing highs/lows default to the closes, missing volumes to zero.
        """
        if not isinstance(payload, dict):
            raise DataValidationError(f"Expected a mapping, got {type(payload).__name__}")

        history = payload.get("history", payload)
        if not isinstance(history, dict):
            raise DataValidationError("'history' must be a mapping of series")

        series: dict[str, list] = {}
        for key, values in history.items():
            name = SERIES_MAP.get(key)
            if name is not None and values is not None:
                series[name] = list(values)

        missing = [name for name in REQUIRED_SERIES if name not in series]
        if missing:
            raise DataValidationError(f"Missing required series: {missing}. "
                                      f"Found: {sorted(history)}")

        closes = [_to_float(v, "closes") for v in series["closes"]]
        n = len(closes)
        timestamps = series["timestamps"]
        if len(timestamps) != n:
            raise DataValidationError(f"Series lengths differ: closes={n}, "
                                      f"timestamps={len(timestamps)}")

        # The engine only trades on closes; a bad optional series is replaced
        defaults = {"highs": closes, "lows": closes, "volumes": [0.0] * n}
        for name, default in defaults.items():
            values = series.get(name)
            if values is not None and len(values) != n:
                logger.warning(f"Ignoring {name}: {len(values)} values for {n} closes")
                series[name] = default
        highs = [_to_float(v, "highs") for v in series.get("highs", closes)]
        lows = [_to_float(v, "lows") for v in series.get("lows", closes)]
        volumes = [_to_float(v, "volumes") for v in series.get("volumes", defaults["volumes"])]

        data = cls(
            closes=tuple(closes),
            highs=tuple(highs),
            lows=tuple(lows),
            volumes=tuple(volumes),
            timestamps=tuple(timestamps),
        )
        for w in data.validate():
            logger.warning(w)
        return data

    def validate(self) -> list:
        """Check series integrity. Returns list of warning messages."""
        warnings = []

        violations = sum(1 for h, l in zip(self.highs, self.lows) if h < l)
        if violations:
            warnings.append(f"Found {violations} points where high < low")

        negative = sum(1 for c in self.closes if c < 0)
        if negative:
            warnings.append(f"Found {negative} negative close prices")

        if len(set(self.timestamps)) != len(self.timestamps):
            warnings.append("Found duplicate timestamps")

        return warnings

    def to_frame(self) -> pd.DataFrame:
        """Return the series as a DataFrame indexed by timestamp."""
        df = pd.DataFrame({
            "close": self.closes,
            "high": self.highs,
            "low": self.lows,
            "volume": self.volumes,
        }, index=_to_index(self.timestamps))
        df.index.name = "date"
        return df


def _to_float(value: Any, series: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise DataValidationError(f"Non-numeric value {value!r} in {series}") from None


def _to_index(timestamps: tuple) -> pd.Index:
    if timestamps and all(isinstance(t, Number) for t in timestamps):
        return pd.to_datetime(list(timestamps), unit="ms")
    return pd.to_datetime(list(timestamps))
