"""Offline data provider reading collaborator payloads from JSON files.

Layout of the data directory:
    BTCUSDT.json              {"history": {...}, "strategies": {...}}
    BTCUSDT.prediction.json   {"predictions": {...}}   (optional)
"""

import json
import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

PREDICTION_SUFFIX = ".prediction"


class FileDataProvider:
    """Serves historical data and predictions from a directory of JSON files."""

    def __init__(self, data_dir: str):
        self.data_dir = Path(data_dir)
        if not self.data_dir.is_dir():
            raise FileNotFoundError(f"Data directory not found: {self.data_dir}")

    def get_historical_data(self, instrument: str) -> dict:
        path = self.data_dir / f"{instrument}.json"
        if not path.exists():
            raise FileNotFoundError(f"No historical data file for {instrument}: {path}")
        with open(path) as f:
            return json.load(f)

    def get_ml_prediction(self, instrument: str) -> Optional[dict]:
        path = self.data_dir / f"{instrument}{PREDICTION_SUFFIX}.json"
        if not path.exists():
            return None
        try:
            with open(path) as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not read ML prediction for {instrument}: {e}")
            return None

    def get_available_instruments(self) -> list:
        return sorted(
            p.stem for p in self.data_dir.glob("*.json")
            if not p.stem.endswith(PREDICTION_SUFFIX)
        )
