"""Composite swing scoring — six capped components summed into a 0-100 score.

Components and their default maxima:
  trend 30, relative strength 20, volatility 15, drawdown risk 15,
  liquidity 10, catalyst 10.

Each component has an explicit neutral branch (half its maximum) for when
its input is missing. Volatility and liquidity are placeholder bands until
a backtest calibrates them.
"""

from __future__ import annotations

import logging

from swingtrader.contracts import Classification, Confidence, FeatureSet, Projection, ScoreResult
from swingtrader.config import ScoringWeights
from swingtrader.signals.filter import assert_not_hard_excluded

logger = logging.getLogger(__name__)

MAX_TOP_REASONS = 3
NEUTRAL = 0.5
INSUFFICIENT_HISTORY_PREFIX = "insufficient_history_"

# Trend
TREND_BULLISH = 0.8
TREND_BEARISH = 0.3

# Drawdown risk bands on RSI(14)
RSI_OVERSOLD = 30
RSI_OVERBOUGHT = 70
RSI_HEALTHY_LOW = 40
RSI_HEALTHY_HIGH = 60
DRAWDOWN_OVERSOLD = 0.3
DRAWDOWN_OVERBOUGHT = 0.4
DRAWDOWN_HEALTHY = 0.9

# Placeholder bands, calibration targets
VOLATILITY_IN_RANGE = 0.7
LIQUIDITY_PASSED = 0.8

CATALYST_POSITIVE = 0.8

# Projection
HIGH_SCORE = 70
MEDIUM_SCORE = 50
ATR_PROJECTION_DAYS = 14
RANGE_DOWN_MULT = 0.5
RANGE_UP_MULT = 1.5


def score_trend(features: FeatureSet, max_score: float, reasons: list, warnings: list) -> float:
    if features.sma50 is None or features.sma200 is None:
        warnings.append("Trend unavailable (insufficient SMA50/SMA200 history) - neutral score")
        return max_score * NEUTRAL

    if features.sma50 > features.sma200:
        reasons.append("SMA50 above SMA200 (bullish trend)")
        return max_score * TREND_BULLISH

    warnings.append("SMA50 below SMA200 (bearish trend)")
    return max_score * TREND_BEARISH


def score_relative_strength(features: FeatureSet, max_score: float, reasons: list) -> float:
    if features.rs_vs_spy is None:
        return max_score * NEUTRAL

    pct = features.rs_vs_spy / 100
    if pct > 0.7:
        reasons.append(f"Strong relative strength vs benchmark ({round(pct * 100)}th pctl)")
    return max_score * pct


def score_volatility(features: FeatureSet, max_score: float, reasons: list) -> float:
    if features.atr14 is None:
        return max_score * NEUTRAL

    # TODO: compare ATR to the symbol's own historical ATR once the backtest optimizer lands
    reasons.append("Volatility within acceptable range")
    return max_score * VOLATILITY_IN_RANGE


def score_drawdown_risk(features: FeatureSet, max_score: float, reasons: list, warnings: list) -> float:
    rsi = features.rsi14
    if rsi is None:
        return max_score * NEUTRAL

    if rsi < RSI_OVERSOLD:
        warnings.append(f"RSI oversold ({round(rsi)}) - high drawdown risk")
        return max_score * DRAWDOWN_OVERSOLD
    if rsi > RSI_OVERBOUGHT:
        warnings.append(f"RSI overbought ({round(rsi)}) - pullback likely")
        return max_score * DRAWDOWN_OVERBOUGHT
    if RSI_HEALTHY_LOW <= rsi <= RSI_HEALTHY_HIGH:
        reasons.append("RSI neutral - healthy setup")
        return max_score * DRAWDOWN_HEALTHY
    return max_score * NEUTRAL


def score_liquidity(features: FeatureSet, max_score: float, reasons: list) -> float:
    if features.avg_volume20 is None:
        return max_score * NEUTRAL

    reasons.append("Passed liquidity screen")
    return max_score * LIQUIDITY_PASSED


def score_catalyst(features: FeatureSet, max_score: float, reasons: list) -> float:
    if features.catalyst_momentum is not None and features.catalyst_momentum > 0:
        reasons.append("Positive news catalyst momentum")
        return max_score * CATALYST_POSITIVE
    return max_score * NEUTRAL


def compute_projection(features: FeatureSet, swing_score: float) -> Projection:
    """ATR-based forward projection; higher scores get a longer horizon."""
    if swing_score > HIGH_SCORE:
        horizon, confidence = 40, Confidence.HIGH
    elif swing_score > MEDIUM_SCORE:
        horizon, confidence = 30, Confidence.MEDIUM
    else:
        horizon, confidence = 20, Confidence.LOW

    notes: list[str] = []
    if features.atr14 is None:
        atr = 0.0
        notes.append("ATR unavailable - expected move defaults to 0")
    else:
        atr = features.atr14

    expected_move = atr * (horizon / ATR_PROJECTION_DAYS)
    return Projection(
        horizon_days=horizon,
        expected_move_pct=round(expected_move, 2),
        # Wider upside bound: momentum bias
        expected_range_pct=(
            round(-expected_move * RANGE_DOWN_MULT, 2),
            round(expected_move * RANGE_UP_MULT, 2),
        ),
        confidence=confidence,
        notes=notes,
    )


def score_candidate(
    features: FeatureSet,
    classification: Classification | str | None = Classification.NON_DEFENSE,
    weights: ScoringWeights | None = None,
) -> ScoreResult:
    """Score one FeatureSet.

    Raises HardExclusionViolation for DEFENSE_PRIMARY symbols; the universe
    filter should already have dropped them, this is the second check.
    """
    assert_not_hard_excluded(features.symbol, classification, stage="scoring")
    weights = weights or ScoringWeights()

    reasons: list[str] = []
    warnings: list[str] = []

    raw = {
        "trend": score_trend(features, weights.trend, reasons, warnings),
        "relative_strength": score_relative_strength(features, weights.relative_strength, reasons),
        "volatility": score_volatility(features, weights.volatility, reasons),
        "drawdown_risk": score_drawdown_risk(features, weights.drawdown_risk, reasons, warnings),
        "liquidity": score_liquidity(features, weights.liquidity, reasons),
        "catalyst": score_catalyst(features, weights.catalyst, reasons),
    }
    short = [
        flag.removeprefix(INSUFFICIENT_HISTORY_PREFIX)
        for flag in features.quality_flags
        if flag.startswith(INSUFFICIENT_HISTORY_PREFIX)
    ]
    if short:
        warnings.append(f"Insufficient history for: {', '.join(short)}")

    components = {name: round(value, 2) for name, value in raw.items()}
    swing_score = round(sum(components.values()), 2)

    return ScoreResult(
        symbol=features.symbol,
        date=features.date,
        swing_score=swing_score,
        components=components,
        top_reasons=reasons[:MAX_TOP_REASONS],
        warnings=warnings,
        projection=compute_projection(features, swing_score),
    )


def build_leaderboard(results: list[ScoreResult]) -> list[ScoreResult]:
    """Sort descending by swing score; ties broken by symbol for a stable board."""
    board = sorted(results, key=lambda r: (-r.swing_score, r.symbol))
    if board:
        logger.info(
            "Leaderboard: %d scored, top %s",
            len(board),
            ", ".join(f"{r.symbol}={r.swing_score:.1f}" for r in board[:5]),
        )
    return board
