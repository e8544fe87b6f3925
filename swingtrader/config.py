"""Central configuration — loads .env and exposes typed settings.

Engine parameters (scoring weights, signal thresholds, pipeline knobs) are
grouped into a frozen ``EngineConfig`` that is passed explicitly into the
engines, so a backtest sweep can build as many variants as it likes without
touching module state.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic_settings import BaseSettings

from swingtrader.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Resolve project root (parent of swingtrader/)
PROJECT_ROOT = Path(__file__).resolve().parent.parent
ENV_PATH = PROJECT_ROOT / ".env"


class ScoringWeights(BaseModel):
    """Maximum points per scoring component. Placeholders pending backtest calibration."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    trend: float = 30
    relative_strength: float = 20
    volatility: float = 15
    drawdown_risk: float = 15
    liquidity: float = 10
    catalyst: float = 10

    def total(self) -> float:
        return (
            self.trend + self.relative_strength + self.volatility
            + self.drawdown_risk + self.liquidity + self.catalyst
        )


class SignalThresholds(BaseModel):
    """Asymmetry cutoffs for the sell signal and the rotation base threshold (points)."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    asymmetry_none: float = 2.0
    asymmetry_watch: float = 1.2
    asymmetry_sell: float = 0.8
    rotate_threshold: float = 8.0


class EngineConfig(BaseModel):
    """Everything the pipeline needs to evaluate one date."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    weights: ScoringWeights = Field(default_factory=ScoringWeights)
    thresholds: SignalThresholds = Field(default_factory=SignalThresholds)
    benchmark_symbol: str = "SPY"
    rs_lookback_days: int = 20
    max_workers: int = 8
    symbol_timeout_s: float | None = 30.0
    skip_non_trading_days: bool = False

    @model_validator(mode="after")
    def _check_consistency(self) -> "EngineConfig":
        w = self.weights
        for name, value in w.model_dump().items():
            if value < 0:
                raise ValueError(f"scoring weight '{name}' must be >= 0, got {value}")
        if w.total() > 100:
            raise ValueError(f"scoring weights sum to {w.total():g}, must be <= 100")

        t = self.thresholds
        if not (t.asymmetry_none > t.asymmetry_watch > t.asymmetry_sell > 0):
            raise ValueError(
                "asymmetry cutoffs must be strictly descending and positive "
                f"(none={t.asymmetry_none}, watch={t.asymmetry_watch}, sell={t.asymmetry_sell})"
            )
        if t.rotate_threshold < 0:
            raise ValueError(f"rotate_threshold must be >= 0, got {t.rotate_threshold}")

        if self.rs_lookback_days < 1:
            raise ValueError(f"rs_lookback_days must be >= 1, got {self.rs_lookback_days}")
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")
        if self.symbol_timeout_s is not None and self.symbol_timeout_s <= 0:
            raise ValueError(f"symbol_timeout_s must be > 0, got {self.symbol_timeout_s}")
        return self


# Keys a config mapping must carry: the thresholds the signal engine cannot guess.
REQUIRED_THRESHOLD_KEYS = ("rotate_threshold", "asymmetry_none", "asymmetry_watch", "asymmetry_sell")


def build_engine_config(raw: Mapping[str, Any]) -> EngineConfig:
    """Build an EngineConfig from a flat or nested mapping.

    Accepts either ``{"thresholds": {...}, "weights": {...}}`` or the flat
    recognized options (``rotate_threshold``, ``asymmetry_none`` ...).
    Raises ConfigurationError when a required threshold is missing or the
    values are inconsistent.
    """
    data = dict(raw)
    thresholds = dict(data.pop("thresholds", {}) or {})
    for key in REQUIRED_THRESHOLD_KEYS:
        if key in data:
            thresholds[key] = data.pop(key)

    missing = [k for k in REQUIRED_THRESHOLD_KEYS if thresholds.get(k) is None]
    if missing:
        raise ConfigurationError(
            "Missing required threshold configuration: " + ", ".join(missing)
        )

    try:
        return EngineConfig(thresholds=SignalThresholds(**thresholds), **data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid engine configuration: {exc}") from exc


def validate_engine_config(config: EngineConfig | None) -> EngineConfig:
    """Fail fast before any computation when the config is unusable."""
    if config is None:
        raise ConfigurationError("Engine configuration is required")
    if not isinstance(config, EngineConfig):
        raise ConfigurationError(
            f"Expected EngineConfig, got {type(config).__name__}"
        )
    return config


class Settings(BaseSettings):
    # --- Rotation / sell-signal thresholds ---
    rotate_threshold: float = 8.0
    asymmetry_none: float = 2.0
    asymmetry_watch: float = 1.2
    asymmetry_sell: float = 0.8

    # --- Scoring weights (max points per component) ---
    weight_trend: float = 30
    weight_relative_strength: float = 20
    weight_volatility: float = 15
    weight_drawdown_risk: float = 15
    weight_liquidity: float = 10
    weight_catalyst: float = 10

    # --- Pipeline parameters ---
    benchmark_symbol: str = "SPY"
    rs_lookback_days: int = 20
    max_workers: int = 8
    symbol_timeout_s: float = 30.0
    skip_non_trading_days: bool = False

    # --- Logging ---
    log_level: str = "INFO"
    log_format: str = "text"  # "text" or "json"

    model_config = {
        "env_file": str(ENV_PATH),
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    def engine_config(self) -> EngineConfig:
        """Translate flat env settings into the EngineConfig passed to the engines."""
        return build_engine_config({
            "rotate_threshold": self.rotate_threshold,
            "asymmetry_none": self.asymmetry_none,
            "asymmetry_watch": self.asymmetry_watch,
            "asymmetry_sell": self.asymmetry_sell,
            "weights": ScoringWeights(
                trend=self.weight_trend,
                relative_strength=self.weight_relative_strength,
                volatility=self.weight_volatility,
                drawdown_risk=self.weight_drawdown_risk,
                liquidity=self.weight_liquidity,
                catalyst=self.weight_catalyst,
            ),
            "benchmark_symbol": self.benchmark_symbol,
            "rs_lookback_days": self.rs_lookback_days,
            "max_workers": self.max_workers,
            "symbol_timeout_s": self.symbol_timeout_s,
            "skip_non_trading_days": self.skip_non_trading_days,
        })


# Singleton
_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
