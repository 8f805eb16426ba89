"""HTTP client for the upstream data and ML services.

The core service supplies historical series plus per-indicator signals; the
ML service supplies an optional directional prediction. ML failures are never
fatal: they degrade to "no ML signal".
"""

import logging
from typing import Optional

import requests

from runner.settings import RunnerSettings
from signal_backtest.exceptions import BacktestError

logger = logging.getLogger(__name__)


class ServiceError(BacktestError):
    """Raised when a required upstream call fails."""


class ServiceClient:
    """Thin wrapper over the collaborators' JSON APIs."""

    def __init__(self, settings: Optional[RunnerSettings] = None,
                 session: Optional[requests.Session] = None):
        self.settings = settings or RunnerSettings()
        self.core_url = self.settings.core_service_url.rstrip("/")
        self.ml_url = self.settings.ml_service_url.rstrip("/")
        self.timeout = self.settings.request_timeout

        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})

        logger.info(f"ServiceClient initialized (core: {self.core_url}, ml: {self.ml_url})")

    def _get(self, url: str) -> dict:
        response = self.session.get(url, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def get_historical_data(self, instrument: str) -> dict:
        """Fetch ``{"history": {...}, "strategies": {...}}`` for an instrument.

        Raises:
            ServiceError: the request failed or returned no history
        """
        logger.debug(f"Fetching historical data for {instrument}")
        try:
            data = self._get(f"{self.core_url}/api/pair/{instrument}")
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Failed to fetch historical data for {instrument}: {e}")
            raise ServiceError(f"Failed to fetch historical data for {instrument}: {e}") from e

        if not isinstance(data, dict) or not data.get("history"):
            raise ServiceError(f"No historical data available for {instrument}")
        return data

    def get_ml_prediction(self, instrument: str) -> Optional[dict]:
        """Fetch the ML prediction payload, or None if unavailable."""
        logger.debug(f"Fetching ML prediction for {instrument}")
        try:
            return self._get(f"{self.ml_url}/api/predictions/{instrument}")
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Failed to fetch ML prediction for {instrument}: {e}")
            return None

    def get_available_instruments(self) -> list:
        """List instruments the core service has data for."""
        try:
            data = self._get(f"{self.core_url}/api/data")
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Failed to fetch available instruments: {e}")
            raise ServiceError(f"Failed to fetch available instruments: {e}") from e
        return list(data.get("pairs") or [])

    def check_services_health(self) -> dict:
        """Probe both collaborators' health endpoints."""
        health = {}
        for name, base in (("core", self.core_url), ("ml", self.ml_url)):
            try:
                self._get(f"{base}/api/health")
                health[name] = {"status": "healthy", "error": None}
            except (requests.RequestException, ValueError) as e:
                health[name] = {"status": "unhealthy", "error": str(e)}
        return health
