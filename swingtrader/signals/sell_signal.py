"""Sell-urgency signal from risk asymmetry.

asymmetry = upside runway / downside tail, both ATR-based. The downside is
widened by semantic tail risk and by upcoming earnings. The level is
recomputed from scratch every evaluation date; yesterday's level is simply
replaced.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from swingtrader.config import SignalThresholds
from swingtrader.contracts import FeatureSet, SellSignalLevel

logger = logging.getLogger(__name__)

DEFAULT_ATR_PCT = 0.02       # ATR proxy when atr14 is missing
UPSIDE_ATR_MULT = 3.0
DOWNSIDE_ATR_MULT = 2.0
TAIL_RISK_STEP = 0.1         # +10% downside per tail-risk point
EARNINGS_5D_MULT = 1.5
EARNINGS_10D_MULT = 1.2
ZERO_DOWNSIDE_ASYMMETRY = 10.0


@dataclass
class SellSignal:
    level: SellSignalLevel
    asymmetry: float
    upside_remaining_pct: float   # percent, 2 dp
    downside_tail_pct: float      # percent, 2 dp
    reasons: list[str] = field(default_factory=list)


def classify_asymmetry(
    asymmetry: float,
    thresholds: SignalThresholds | None = None,
) -> tuple[SellSignalLevel, str]:
    """Map an asymmetry ratio to a level, top-down, first match wins."""
    t = thresholds or SignalThresholds()
    if asymmetry > t.asymmetry_none:
        return SellSignalLevel.NONE, f"Favorable risk/reward ({asymmetry:.2f} asymmetry)"
    if asymmetry > t.asymmetry_watch:
        return SellSignalLevel.WATCH, f"Risk/reward narrowing ({asymmetry:.2f} asymmetry)"
    if asymmetry > t.asymmetry_sell:
        return SellSignalLevel.SELL, f"Unfavorable risk/reward ({asymmetry:.2f} asymmetry)"
    return SellSignalLevel.STRONG_SELL, f"Poor risk/reward ({asymmetry:.2f} asymmetry)"


def compute_sell_signal(
    features: FeatureSet,
    current_price: float,
    thresholds: SignalThresholds | None = None,
) -> SellSignal:
    if current_price <= 0:
        raise ValueError(f"current_price must be > 0, got {current_price}")

    reasons: list[str] = []
    atr = features.atr14 if features.atr14 is not None else current_price * DEFAULT_ATR_PCT

    upside = atr * UPSIDE_ATR_MULT / current_price
    downside = atr * DOWNSIDE_ATR_MULT / current_price

    tail_risk = features.tail_risk_score_14d
    if tail_risk is not None and tail_risk > 0:
        downside *= 1 + tail_risk * TAIL_RISK_STEP
        reasons.append(f"Elevated tail risk from news ({tail_risk:.1f})")

    # Only the tighter earnings window applies
    if features.earnings_within_5d:
        downside *= EARNINGS_5D_MULT
        reasons.append("Earnings within 5 days - elevated gap risk")
    elif features.earnings_within_10d:
        downside *= EARNINGS_10D_MULT
        reasons.append("Earnings within 10 days")

    asymmetry = upside / downside if downside > 0 else ZERO_DOWNSIDE_ASYMMETRY

    level, reason = classify_asymmetry(asymmetry, thresholds)
    reasons.append(reason)

    logger.info(
        "Sell signal for %s: %s (asymmetry=%.2f, upside=%.2f%%, downside=%.2f%%)",
        features.symbol, level.value, asymmetry, upside * 100, downside * 100,
    )

    return SellSignal(
        level=level,
        asymmetry=asymmetry,
        upside_remaining_pct=round(upside * 100, 2),
        downside_tail_pct=round(downside * 100, 2),
        reasons=reasons,
    )
