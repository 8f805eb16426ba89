"""Per-run backtest configuration using Pydantic for validation."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# camelCase names used by the serving layer's request bodies
FIELD_ALIASES = {
    "initialBalance": "initial_balance",
    "commissionRate": "commission_rate",
    "slippageRate": "slippage_rate",
    "maxPositionSize": "max_position_size",
    "stopLossPercent": "stop_loss_percent",
    "takeProfitPercent": "take_profit_percent",
    "minEntryConfidence": "min_entry_confidence",
}


class BacktestConfig(BaseModel):
    """Immutable parameters for a single backtest run.

    All rates are fractions: 0.001 = 0.1%.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    initial_balance: float = Field(10_000.0, gt=0)       # Starting balance (currency units)
    commission_rate: float = Field(0.001, ge=0)          # Fraction of notional per fill
    slippage_rate: float = Field(0.0005, ge=0)           # Fraction of price per fill
    max_position_size: float = Field(0.1, ge=0)          # Fraction of balance per position
    stop_loss_percent: float = Field(0.05, ge=0)         # Fraction of entry price
    take_profit_percent: float = Field(0.10, ge=0)       # Fraction of entry price
    min_entry_confidence: float = Field(0.6, ge=0, le=1)  # Decision confidence needed to open

    @classmethod
    def resolve(cls, overrides: Optional[dict] = None) -> "BacktestConfig":
        """Build a config from a partial mapping.

        Keys may be snake_case or the serving layer's camelCase. Absent or
        None values fall back to the defaults.
        """
        data = {}
        for key, value in (overrides or {}).items():
            if value is None:
                continue
            data[FIELD_ALIASES.get(key, key)] = value
        return cls(**data)
