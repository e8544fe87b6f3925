"""Semantic feature aggregation — labeled news and earnings dates to a snapshot.

Labeling itself (heuristic or LLM) happens upstream; this module only folds
already-labeled items into the per-symbol numbers the scorer and the sell
signal read, and merges a snapshot into a FeatureSet.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone

from swingtrader.contracts import FeatureSet, SemanticSnapshot

DIRECTION_VALUES = {"POSITIVE": 1, "NEUTRAL": 0, "NEGATIVE": -1}

CATALYST_TAGS = {
    "catalyst_positive",
    "regulatory_positive",
    "regulatory_negative",
    "earnings_beat",
    "earnings_miss",
    "upgrade",
    "downgrade",
}

TAIL_RISK_WINDOW_DAYS = 14
CATALYST_WINDOW_DAYS = 14
CATALYST_DECAY_DAYS = 7
CATALYST_NORMALIZER = 5
TAIL_RISK_CAP = 10.0


@dataclass
class LabeledNews:
    published_at: datetime
    direction: str  # POSITIVE / NEUTRAL / NEGATIVE
    severity: int   # 0-3
    tags: list[str] = field(default_factory=list)


def _as_of_datetime(as_of: date) -> datetime:
    return datetime.combine(as_of, time.max, tzinfo=timezone.utc)


def _days_ago(published_at: datetime, as_of_dt: datetime) -> float:
    if published_at.tzinfo is None:
        published_at = published_at.replace(tzinfo=timezone.utc)
    return (as_of_dt - published_at).total_seconds() / 86400


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def compute_sentiment(labels: list[LabeledNews], days: int, as_of: date) -> float:
    """Recency-weighted sentiment over *days*, in [-1, 1].

    Exponential decay with half-life days/2; each item weighs
    (severity + 1) * decay.
    """
    as_of_dt = _as_of_datetime(as_of)
    half_life = days / 2

    weighted_sum = 0.0
    total_weight = 0.0
    for label in labels:
        age = _days_ago(label.published_at, as_of_dt)
        if age < 0 or age > days:
            continue
        weight = (label.severity + 1) * math.exp(-age / half_life)
        weighted_sum += DIRECTION_VALUES.get(label.direction, 0) * weight
        total_weight += weight

    if total_weight == 0:
        return 0.0
    return _clamp(weighted_sum / total_weight, -1.0, 1.0)


def compute_tail_risk(labels: list[LabeledNews], as_of: date) -> float:
    """Sum of squared severities of recent negative items, capped at 10."""
    as_of_dt = _as_of_datetime(as_of)
    risk = sum(
        label.severity ** 2
        for label in labels
        if label.direction == "NEGATIVE"
        and 0 <= _days_ago(label.published_at, as_of_dt) <= TAIL_RISK_WINDOW_DAYS
    )
    return min(TAIL_RISK_CAP, float(risk))


def compute_catalyst_momentum(labels: list[LabeledNews], as_of: date) -> float:
    """Direction x (severity + 1) x recency over catalyst-tagged items, in [-1, 1]."""
    as_of_dt = _as_of_datetime(as_of)
    momentum = 0.0
    for label in labels:
        if not CATALYST_TAGS.intersection(label.tags):
            continue
        age = _days_ago(label.published_at, as_of_dt)
        if age < 0 or age > CATALYST_WINDOW_DAYS:
            continue
        momentum += (
            DIRECTION_VALUES.get(label.direction, 0)
            * (label.severity + 1)
            * math.exp(-age / CATALYST_DECAY_DAYS)
        )
    return _clamp(momentum / CATALYST_NORMALIZER, -1.0, 1.0)


def earnings_proximity(earnings_dates: list[date], as_of: date) -> tuple[bool, bool]:
    """(within 5 days, within 10 days) for upcoming earnings on or after *as_of*."""
    ahead = [(d - as_of).days for d in earnings_dates if d >= as_of]
    return any(n <= 5 for n in ahead), any(n <= 10 for n in ahead)


def aggregate_semantic_features(
    labels: list[LabeledNews],
    as_of: date,
    earnings_dates: list[date] | None = None,
) -> SemanticSnapshot:
    """Build the semantic snapshot for one symbol."""
    within_5d, within_10d = earnings_proximity(earnings_dates or [], as_of)
    return SemanticSnapshot(
        news_sentiment_7d=compute_sentiment(labels, 7, as_of),
        news_sentiment_30d=compute_sentiment(labels, 30, as_of),
        tail_risk_score_14d=compute_tail_risk(labels, as_of),
        catalyst_momentum=compute_catalyst_momentum(labels, as_of),
        earnings_within_5d=within_5d,
        earnings_within_10d=within_10d,
    )


def merge_semantic_features(features: FeatureSet, snapshot: SemanticSnapshot) -> FeatureSet:
    """Return a copy of *features* carrying the semantic fields of *snapshot*."""
    return features.model_copy(update=snapshot.model_dump())
