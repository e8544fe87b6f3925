"""Rotation decision — hold the current position or switch to the best candidate.

The base rotate threshold (in score points) is raised by the tax cost of
selling, so a short-term winner needs a much larger edge to be replaced.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date

from swingtrader.config import EngineConfig
from swingtrader.contracts import (
    Classification,
    FeatureSet,
    Holding,
    RotateRecommendation,
    ScoreResult,
    SignalExplain,
    SignalResult,
    TaxImpact,
)
from swingtrader.errors import UpstreamDataUnavailable
from swingtrader.portfolio.tax import NEAR_LONG_TERM_DAYS, calculate_tax_drag
from swingtrader.signals.filter import assert_not_hard_excluded, is_hard_excluded
from swingtrader.signals.sell_signal import compute_sell_signal

logger = logging.getLogger(__name__)


@dataclass
class RotationDecision:
    recommendation: RotateRecommendation
    rotate_to_symbol: str | None = None
    score_diff: float | None = None
    effective_threshold: float = 0.0
    reasons: list[str] = field(default_factory=list)


def best_alternative(
    current_symbol: str,
    leaderboard: list[ScoreResult],
    classifications: Mapping[str, Classification] | None = None,
) -> ScoreResult | None:
    """Top leaderboard entry that is neither the holding nor DEFENSE_PRIMARY."""
    classifications = classifications or {}
    for entry in leaderboard:
        if entry.symbol == current_symbol:
            continue
        if is_hard_excluded(classifications.get(entry.symbol)):
            logger.warning("Skipping %s as rotation target: DEFENSE_PRIMARY", entry.symbol)
            continue
        return entry
    return None


def _near_long_term(tax_impact: TaxImpact) -> bool:
    return 0 < tax_impact.days_to_long_term < NEAR_LONG_TERM_DAYS


def compute_rotation(
    current_symbol: str,
    current_score: float,
    leaderboard: list[ScoreResult],
    tax_impact: TaxImpact,
    rotate_threshold: float = 8.0,
    classifications: Mapping[str, Classification] | None = None,
) -> RotationDecision:
    """ROTATE iff the best alternative beats the holding by at least
    ``rotate_threshold + required_edge_to_rotate * 100`` points.
    """
    effective_threshold = round(rotate_threshold + tax_impact.required_edge_to_rotate * 100, 4)
    best = best_alternative(current_symbol, leaderboard, classifications)

    if best is None:
        reasons = [f"No alternative candidate to rotate into - holding {current_symbol}"]
        if _near_long_term(tax_impact):
            reasons.append(f"Holding for long-term status in {tax_impact.days_to_long_term} days")
        return RotationDecision(
            recommendation=RotateRecommendation.HOLD,
            effective_threshold=effective_threshold,
            reasons=reasons,
        )

    score_diff = round(best.swing_score - current_score, 4)
    reasons: list[str] = []

    if score_diff >= effective_threshold:
        reasons.append(f"{best.symbol} scores {score_diff:.1f} points higher")
        if tax_impact.tax_drag_pct > 0:
            reasons.append(f"Tax cost of {tax_impact.tax_drag_pct * 100:.1f}% factored in")
        if _near_long_term(tax_impact):
            reasons.append(f"Note: {tax_impact.days_to_long_term} days until long-term status")

        logger.info(
            "Rotation: %s -> %s (diff=%.2f, threshold=%.2f)",
            current_symbol, best.symbol, score_diff, effective_threshold,
        )
        return RotationDecision(
            recommendation=RotateRecommendation.ROTATE,
            rotate_to_symbol=best.symbol,
            score_diff=score_diff,
            effective_threshold=effective_threshold,
            reasons=reasons,
        )

    if score_diff > 0:
        reasons.append(
            f"{best.symbol} only {score_diff:.1f} points higher (need {effective_threshold:.1f})"
        )
    else:
        reasons.append(f"Current holding {current_symbol} remains top candidate")
    if _near_long_term(tax_impact):
        reasons.append(f"Holding for long-term status in {tax_impact.days_to_long_term} days")

    return RotationDecision(
        recommendation=RotateRecommendation.HOLD,
        score_diff=score_diff,
        effective_threshold=effective_threshold,
        reasons=reasons,
    )


def evaluate_holding(
    holding: Holding,
    features: FeatureSet,
    current_score: float,
    leaderboard: list[ScoreResult],
    as_of: date,
    config: EngineConfig | None = None,
    classification: Classification | str | None = Classification.NON_DEFENSE,
    classifications: Mapping[str, Classification] | None = None,
) -> SignalResult:
    """Sell signal plus rotation for the held position on *as_of*.

    The current price is the last close in *features*. Tax impact is measured
    at *as_of*, not the wall clock, so reruns of a past date reproduce.
    """
    assert_not_hard_excluded(holding.symbol, classification, stage="signal")
    config = config or EngineConfig()

    if features.close is None:
        raise UpstreamDataUnavailable(holding.symbol, "Current price")

    current_price = features.close
    sell = compute_sell_signal(features, current_price, config.thresholds)
    tax_impact = calculate_tax_drag(holding.entry_date, holding.entry_price, current_price, now=as_of)
    rotation = compute_rotation(
        holding.symbol,
        current_score,
        leaderboard,
        tax_impact,
        rotate_threshold=config.thresholds.rotate_threshold,
        classifications=classifications,
    )

    return SignalResult(
        date=as_of,
        current_symbol=holding.symbol,
        sell_signal_level=sell.level,
        rotate_recommendation=rotation.recommendation,
        rotate_to_symbol=rotation.rotate_to_symbol,
        explain=SignalExplain(
            asymmetry=sell.asymmetry,
            upside_remaining_pct=sell.upside_remaining_pct,
            downside_tail_pct=sell.downside_tail_pct,
            reasons=sell.reasons + rotation.reasons,
        ),
        tax_impact=tax_impact,
    )
