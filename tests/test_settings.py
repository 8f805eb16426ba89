"""Tests for configuration loading."""

import sys
import os
import pytest
from pydantic import ValidationError

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from runner.settings import RunnerSettings
from signal_backtest.config import BacktestConfig


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("CORE_SERVICE_URL", "ML_SERVICE_URL", "BACKTEST_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)


class TestBacktestConfig:
    def test_defaults(self):
        config = BacktestConfig()
        assert config.initial_balance == 10_000
        assert config.commission_rate == 0.001
        assert config.slippage_rate == 0.0005
        assert config.max_position_size == 0.1
        assert config.stop_loss_percent == 0.05
        assert config.take_profit_percent == 0.10
        assert config.min_entry_confidence == 0.6

    def test_resolve_aliases_and_none(self):
        config = BacktestConfig.resolve({"initialBalance": 5000, "commissionRate": None,
                                         "stop_loss_percent": 0.02})
        assert config.initial_balance == 5000
        assert config.commission_rate == 0.001
        assert config.stop_loss_percent == 0.02

    def test_explicit_zero_is_kept(self):
        assert BacktestConfig.resolve({"slippageRate": 0}).slippage_rate == 0

    def test_rejects_invalid(self):
        with pytest.raises(ValidationError):
            BacktestConfig(initial_balance=0)
        with pytest.raises(ValidationError):
            BacktestConfig(commission_rate=-0.1)
        with pytest.raises(ValidationError):
            BacktestConfig.resolve({"leverage": 3})

    def test_frozen(self):
        with pytest.raises(ValidationError):
            BacktestConfig().initial_balance = 1


class TestRunnerSettings:
    def test_defaults_without_file(self):
        settings = RunnerSettings.load(None)
        assert settings.core_service_url == "http://localhost:3000"
        assert settings.max_workers == 1
        assert settings.backtest == BacktestConfig()

    def test_toml_file(self, tmp_path):
        path = tmp_path / "backtest.toml"
        path.write_text(
            'core_service_url = "http://core:9000"\n'
            "max_workers = 4\n"
            "\n"
            "[backtest]\n"
            "initialBalance = 2500\n"
            "stop_loss_percent = 0.03\n"
        )
        settings = RunnerSettings.load(str(path))
        assert settings.core_service_url == "http://core:9000"
        assert settings.max_workers == 4
        assert settings.backtest.initial_balance == 2500
        assert settings.backtest.stop_loss_percent == 0.03
        assert settings.backtest.take_profit_percent == 0.10

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "backtest.toml"
        path.write_text('ml_service_url = "http://from-file"\n')
        monkeypatch.setenv("ML_SERVICE_URL", "http://from-env")
        monkeypatch.setenv("BACKTEST_LOG_LEVEL", "DEBUG")

        settings = RunnerSettings.load(str(path))
        assert settings.ml_service_url == "http://from-env"
        assert settings.log_level == "DEBUG"

    def test_missing_file_uses_defaults(self, tmp_path):
        settings = RunnerSettings.load(str(tmp_path / "absent.toml"))
        assert settings.request_timeout == 30.0
