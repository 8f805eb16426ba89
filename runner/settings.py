"""Runner configuration using Pydantic for validation.

Precedence, highest first: environment variables, the TOML file passed with
``--config``, then the defaults below.
"""

import os
import sys
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from signal_backtest.config import BacktestConfig

# Environment variable -> settings field
ENV_VARS = {
    "CORE_SERVICE_URL": "core_service_url",
    "ML_SERVICE_URL": "ml_service_url",
    "BACKTEST_LOG_LEVEL": "log_level",
}


class RunnerSettings(BaseModel):
    """Top-level settings for CLI and batch runs."""

    # Upstream collaborators
    core_service_url: str = "http://localhost:3000"    # Historical data + indicator signals
    ml_service_url: str = "http://localhost:3001"      # Directional predictions
    request_timeout: float = 30.0                      # Seconds per HTTP call

    # Batch runs
    max_workers: int = Field(1, ge=1)                  # 1 = one instrument at a time

    # Engine defaults for every run ([backtest] table)
    backtest: BacktestConfig = Field(default_factory=BacktestConfig)

    log_level: str = "INFO"

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> "RunnerSettings":
        """Load settings from an optional TOML file, then apply ENV_VARS."""
        data = {}
        if config_path and Path(config_path).exists():
            data = _load_toml(config_path)

        data.update({
            field_name: os.environ[var]
            for var, field_name in ENV_VARS.items()
            if var in os.environ
        })

        if "backtest" in data:
            data["backtest"] = BacktestConfig.resolve(data["backtest"])
        return cls(**data)


def _load_toml(path: str) -> dict:
    if sys.version_info >= (3, 11):
        import tomllib
    else:
        import tomli as tomllib

    with open(path, "rb") as f:
        return tomllib.load(f)
