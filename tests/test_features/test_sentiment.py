"""Tests for semantic feature aggregation."""

from datetime import date, datetime, timedelta, timezone

import pytest

from conftest import AS_OF, make_features
from swingtrader.contracts import SemanticSnapshot
from swingtrader.features.sentiment import (
    LabeledNews,
    aggregate_semantic_features,
    compute_catalyst_momentum,
    compute_sentiment,
    compute_tail_risk,
    earnings_proximity,
    merge_semantic_features,
)


def _news(days_ago: float, direction: str, severity: int = 1, tags=None) -> LabeledNews:
    as_of_dt = datetime(AS_OF.year, AS_OF.month, AS_OF.day, 12, tzinfo=timezone.utc)
    return LabeledNews(
        published_at=as_of_dt - timedelta(days=days_ago),
        direction=direction,
        severity=severity,
        tags=tags or [],
    )


def test_sentiment_no_news_is_zero():
    assert compute_sentiment([], 7, AS_OF) == 0.0


def test_sentiment_all_positive_is_one():
    labels = [_news(1, "POSITIVE"), _news(3, "POSITIVE", severity=3)]
    assert compute_sentiment(labels, 7, AS_OF) == pytest.approx(1.0)


def test_sentiment_mixed_is_bounded_and_recency_weighted():
    labels = [_news(0.5, "POSITIVE"), _news(6, "NEGATIVE")]
    score = compute_sentiment(labels, 7, AS_OF)
    assert 0 < score < 1  # recent positive outweighs older negative


def test_sentiment_ignores_items_outside_window():
    labels = [_news(20, "NEGATIVE", severity=3)]
    assert compute_sentiment(labels, 7, AS_OF) == 0.0
    assert compute_sentiment(labels, 30, AS_OF) == pytest.approx(-1.0)


def test_tail_risk_squares_negative_severity_and_caps():
    assert compute_tail_risk([_news(1, "NEGATIVE", severity=2)], AS_OF) == 4.0
    assert compute_tail_risk([_news(1, "POSITIVE", severity=3)], AS_OF) == 0.0
    heavy = [_news(i, "NEGATIVE", severity=3) for i in range(1, 5)]
    assert compute_tail_risk(heavy, AS_OF) == 10.0


def test_catalyst_momentum_only_counts_tagged_items():
    untagged = [_news(1, "POSITIVE", severity=3)]
    assert compute_catalyst_momentum(untagged, AS_OF) == 0.0

    tagged = [_news(1, "POSITIVE", severity=1, tags=["upgrade"])]
    momentum = compute_catalyst_momentum(tagged, AS_OF)
    assert 0 < momentum <= 1


def test_catalyst_momentum_clamped():
    labels = [_news(0.1, "NEGATIVE", severity=3, tags=["earnings_miss"]) for _ in range(5)]
    assert compute_catalyst_momentum(labels, AS_OF) == -1.0


def test_earnings_proximity():
    assert earnings_proximity([AS_OF + timedelta(days=3)], AS_OF) == (True, True)
    assert earnings_proximity([AS_OF + timedelta(days=8)], AS_OF) == (False, True)
    assert earnings_proximity([AS_OF + timedelta(days=20)], AS_OF) == (False, False)
    assert earnings_proximity([AS_OF - timedelta(days=1)], AS_OF) == (False, False)


def test_aggregate_semantic_features_defaults():
    snap = aggregate_semantic_features([], AS_OF)
    assert snap == SemanticSnapshot()


def test_aggregate_semantic_features_with_earnings():
    snap = aggregate_semantic_features(
        [_news(1, "NEGATIVE", severity=1)],
        AS_OF,
        earnings_dates=[date(2025, 6, 6)],
    )
    assert snap.tail_risk_score_14d == 1.0
    assert snap.news_sentiment_7d == pytest.approx(-1.0)
    assert snap.earnings_within_5d is True


def test_merge_semantic_features_copies_fields():
    fs = make_features("AAA", news_sentiment_7d=None, tail_risk_score_14d=None)
    snap = SemanticSnapshot(news_sentiment_7d=0.4, tail_risk_score_14d=3.0, earnings_within_10d=True)
    merged = merge_semantic_features(fs, snap)

    assert merged.news_sentiment_7d == 0.4
    assert merged.tail_risk_score_14d == 3.0
    assert merged.earnings_within_10d is True
    assert merged.sma50 == fs.sma50
    assert fs.news_sentiment_7d is None
