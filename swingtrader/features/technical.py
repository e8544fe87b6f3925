"""Technical feature engineering — SMA, RSI, ATR, volume and trailing returns.

All indicators are simple-mean windows over the most recent bars as of the
evaluation date. A window that does not have enough bars yields None (and a
quality flag on the FeatureSet) rather than an error.
"""

from __future__ import annotations

import logging
from datetime import date

import numpy as np
import pandas as pd

from swingtrader.contracts import FeatureSet

logger = logging.getLogger(__name__)

OHLCV_COLUMNS = ("date", "open", "high", "low", "close", "volume")

SMA_WINDOWS = (20, 50, 200)
RSI_PERIOD = 14
ATR_PERIOD = 14
VOLUME_WINDOW = 20
DEFAULT_RS_LOOKBACK = 20


def prepare_history(df: pd.DataFrame | None, as_of: date) -> pd.DataFrame:
    """Normalize a bar history: as-of cut, ascending dates, one bar per date.

    Gaps in the calendar are left alone; the indicators treat the series as
    irregular. Rows without a close are dropped.
    """
    if df is None or df.empty:
        return pd.DataFrame(columns=list(OHLCV_COLUMNS))

    missing = [c for c in ("date", "close") if c not in df.columns]
    if missing:
        raise ValueError(f"bar history missing columns: {', '.join(missing)}")

    df = df.copy()
    df["date"] = pd.to_datetime(df["date"]).dt.date
    df = df[df["date"] <= as_of]
    df = df.dropna(subset=["close"])
    df = df.sort_values("date", kind="stable")
    df = df.drop_duplicates(subset="date", keep="last")
    return df.reset_index(drop=True)


def compute_sma(close: pd.Series, length: int) -> float | None:
    """Arithmetic mean of the last *length* closes."""
    if len(close) < length:
        return None
    return float(close.iloc[-length:].mean())


def compute_rsi(close: pd.Series, length: int = RSI_PERIOD) -> float | None:
    """RSI over the last *length* close-to-close changes (simple averages).

    Needs length + 1 bars. An average loss of zero gives 100.
    """
    if len(close) < length + 1:
        return None

    changes = close.diff().iloc[-length:]
    avg_gain = float(changes.clip(lower=0).sum()) / length
    avg_loss = float(-changes.clip(upper=0).sum()) / length

    if avg_loss == 0:
        return 100.0

    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


def compute_atr(df: pd.DataFrame, length: int = ATR_PERIOD) -> float | None:
    """Mean true range over the last *length* bars. Needs length + 1 bars."""
    if len(df) < length + 1:
        return None

    high = df["high"].astype(float)
    low = df["low"].astype(float)
    prev_close = df["close"].astype(float).shift(1)

    true_range = pd.concat(
        [high - low, (high - prev_close).abs(), (low - prev_close).abs()],
        axis=1,
    ).max(axis=1)
    return float(true_range.iloc[-length:].mean())


def trailing_return(close: pd.Series, lookback: int = DEFAULT_RS_LOOKBACK) -> float | None:
    """Simple return over the last *lookback* bars: close[-1] / close[-(lookback+1)] - 1."""
    if len(close) < lookback + 1:
        return None
    start = float(close.iloc[-(lookback + 1)])
    if start == 0 or not np.isfinite(start):
        return None
    return float(close.iloc[-1]) / start - 1.0


def relative_strength_ratio(
    symbol_return: float | None,
    benchmark_return: float | None,
) -> float | None:
    """Return ratio vs the benchmark; 1.0 when the benchmark did not move."""
    if symbol_return is None or benchmark_return is None:
        return None
    if benchmark_return == 0:
        return 1.0
    return symbol_return / benchmark_return


def compute_features(
    symbol: str,
    history: pd.DataFrame | None,
    benchmark_history: pd.DataFrame | None,
    as_of: date,
    rs_lookback: int = DEFAULT_RS_LOOKBACK,
) -> FeatureSet:
    """Compute the per-symbol technical FeatureSet as of *as_of*.

    ``rs_vs_spy`` stays None here: the percentile is only defined once every
    symbol's ratio is known, see ``rank_relative_strength``.
    """
    df = prepare_history(history, as_of)
    flags: list[str] = []

    close = df["close"].astype(float)
    smas = {n: compute_sma(close, n) for n in SMA_WINDOWS}
    for n, value in smas.items():
        if value is None:
            flags.append(f"insufficient_history_sma{n}")

    rsi = compute_rsi(close)
    if rsi is None:
        flags.append("insufficient_history_rsi14")

    atr = compute_atr(df) if {"high", "low"}.issubset(df.columns) else None
    if atr is None:
        flags.append("insufficient_history_atr14")

    avg_volume = None
    if "volume" in df.columns and len(df) >= VOLUME_WINDOW:
        avg_volume = float(df["volume"].astype(float).iloc[-VOLUME_WINDOW:].mean())
    else:
        flags.append("insufficient_history_volume20")

    bench = prepare_history(benchmark_history, as_of)
    rs_ratio = relative_strength_ratio(
        trailing_return(close, rs_lookback),
        trailing_return(bench["close"].astype(float), rs_lookback),
    )
    if rs_ratio is None:
        flags.append("insufficient_history_rs")

    logger.debug(
        "%s features as of %s: %d bars, %d flags", symbol, as_of, len(df), len(flags),
    )

    return FeatureSet(
        symbol=symbol,
        date=as_of,
        close=float(close.iloc[-1]) if len(close) else None,
        sma20=smas[20],
        sma50=smas[50],
        sma200=smas[200],
        rsi14=rsi,
        atr14=atr,
        avg_volume20=avg_volume,
        rs_ratio=rs_ratio,
        quality_flags=flags,
    )
