"""Tests for the asymmetry-based sell signal."""

import pytest

from conftest import make_features
from swingtrader.config import SignalThresholds
from swingtrader.contracts import SellSignalLevel
from swingtrader.signals.sell_signal import classify_asymmetry, compute_sell_signal


@pytest.mark.parametrize(
    "asymmetry, level",
    [
        (2.5, SellSignalLevel.NONE),
        (1.5, SellSignalLevel.WATCH),
        (1.0, SellSignalLevel.SELL),
        (0.5, SellSignalLevel.STRONG_SELL),
        # Cutoffs are exclusive: equal values fall through to the next level
        (2.0, SellSignalLevel.WATCH),
        (1.2, SellSignalLevel.SELL),
        (0.8, SellSignalLevel.STRONG_SELL),
    ],
)
def test_classify_asymmetry_levels(asymmetry, level):
    assert classify_asymmetry(asymmetry)[0] == level


def test_classify_asymmetry_reason_cites_value():
    _, reason = classify_asymmetry(2.5)
    assert reason == "Favorable risk/reward (2.50 asymmetry)"


def test_custom_thresholds():
    t = SignalThresholds(asymmetry_none=1.4, asymmetry_watch=1.0, asymmetry_sell=0.5)
    assert classify_asymmetry(1.5, t)[0] == SellSignalLevel.NONE


def test_plain_atr_setup_is_watch():
    sig = compute_sell_signal(make_features("AAA", atr14=2.0), 100.0)
    assert sig.level == SellSignalLevel.WATCH
    assert sig.asymmetry == pytest.approx(1.5)
    assert sig.upside_remaining_pct == 6.0
    assert sig.downside_tail_pct == 4.0
    assert len(sig.reasons) == 1


def test_missing_atr_uses_two_percent_proxy():
    sig = compute_sell_signal(make_features("AAA", atr14=None), 50.0)
    assert sig.upside_remaining_pct == 6.0
    assert sig.downside_tail_pct == 4.0


def test_tail_risk_widens_downside():
    sig = compute_sell_signal(make_features("AAA", tail_risk_score_14d=5.0), 100.0)
    assert sig.level == SellSignalLevel.SELL
    assert sig.asymmetry == pytest.approx(1.0)
    assert sig.downside_tail_pct == 6.0
    assert sig.reasons[0] == "Elevated tail risk from news (5.0)"


def test_tail_risk_and_earnings_compound():
    fs = make_features("AAA", tail_risk_score_14d=5.0, earnings_within_5d=True, earnings_within_10d=True)
    sig = compute_sell_signal(fs, 100.0)
    assert sig.level == SellSignalLevel.STRONG_SELL
    assert sig.downside_tail_pct == 9.0
    assert "Earnings within 5 days - elevated gap risk" in sig.reasons
    assert "Earnings within 10 days" not in sig.reasons


def test_earnings_within_ten_days_only():
    sig = compute_sell_signal(make_features("AAA", earnings_within_10d=True), 100.0)
    assert sig.downside_tail_pct == 4.8
    assert sig.asymmetry == pytest.approx(1.25)
    assert sig.level == SellSignalLevel.WATCH


def test_zero_atr_gives_sentinel_asymmetry():
    sig = compute_sell_signal(make_features("AAA", atr14=0.0), 100.0)
    assert sig.asymmetry == 10.0
    assert sig.level == SellSignalLevel.NONE


def test_non_positive_price_rejected():
    with pytest.raises(ValueError):
        compute_sell_signal(make_features("AAA"), 0.0)
