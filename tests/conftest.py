"""Shared test fixtures."""

from __future__ import annotations

from datetime import date, timedelta

import numpy as np
import pandas as pd
import pytest

from swingtrader.contracts import Confidence, FeatureSet, Projection, ScoreResult

AS_OF = date(2025, 6, 2)


def _ohlcv_frame(close: np.ndarray, start: date, seed: int) -> pd.DataFrame:
    rng = np.random.RandomState(seed)
    n = len(close)
    df = pd.DataFrame({
        "date": [start + timedelta(days=i) for i in range(n)],
        "open": close + rng.randn(n) * 0.5,
        "high": close + abs(rng.randn(n)) * 1.0,
        "low": close - abs(rng.randn(n)) * 1.0,
        "close": close,
        "volume": rng.randint(500_000, 5_000_000, n).astype(float),
    })
    # Ensure high >= close >= low
    df["high"] = df[["open", "high", "close"]].max(axis=1)
    df["low"] = df[["open", "low", "close"]].min(axis=1)
    return df


def make_ohlcv(n: int, end: date = AS_OF, seed: int = 42, drift: float = 0.0) -> pd.DataFrame:
    """*n* daily bars ending on *end* with a random walk around 100."""
    rng = np.random.RandomState(seed)
    close = 100 + np.cumsum(rng.randn(n) * 1.5 + drift)
    close = np.maximum(close, 10)  # keep positive
    return _ohlcv_frame(close, end - timedelta(days=n - 1), seed)


def make_features(symbol: str = "TEST", **overrides) -> FeatureSet:
    """A fully populated, neutral-ish FeatureSet; override any field."""
    values = dict(
        symbol=symbol,
        date=AS_OF,
        close=100.0,
        sma20=99.0,
        sma50=98.0,
        sma200=95.0,
        rsi14=50.0,
        atr14=2.0,
        avg_volume20=1_000_000.0,
        rs_ratio=1.1,
        rs_vs_spy=50.0,
        news_sentiment_7d=0.0,
        news_sentiment_30d=0.0,
        tail_risk_score_14d=0.0,
        catalyst_momentum=0.0,
    )
    values.update(overrides)
    return FeatureSet(**values)


def make_score(symbol: str, swing_score: float) -> ScoreResult:
    return ScoreResult(
        symbol=symbol,
        date=AS_OF,
        swing_score=swing_score,
        components={"trend": swing_score},
        projection=Projection(
            horizon_days=20,
            expected_move_pct=0.0,
            expected_range_pct=(0.0, 0.0),
            confidence=Confidence.LOW,
        ),
    )


@pytest.fixture
def sample_ohlcv() -> pd.DataFrame:
    """100 days of synthetic OHLCV data ending on AS_OF."""
    return make_ohlcv(100, seed=42)


@pytest.fixture
def sample_ohlcv_long() -> pd.DataFrame:
    """250 days of synthetic OHLCV data for SMA(200) testing."""
    return make_ohlcv(250, seed=77)


@pytest.fixture
def benchmark_ohlcv() -> pd.DataFrame:
    """250 days of benchmark bars with a mild upward drift."""
    return make_ohlcv(250, seed=7, drift=0.2)


@pytest.fixture
def rising_ohlcv() -> pd.DataFrame:
    """15 strictly rising closes — the shortest history with an RSI."""
    close = np.arange(100.0, 115.0)
    return _ohlcv_frame(close, AS_OF - timedelta(days=14), seed=3)
