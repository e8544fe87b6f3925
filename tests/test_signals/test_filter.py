"""Tests for universe filtering, funnel counters and universe maintenance."""

import pytest

from swingtrader.contracts import Classification, TickerInfo
from swingtrader.errors import HardExclusionViolation
from swingtrader.signals.filter import (
    UniverseFunnel,
    assert_not_hard_excluded,
    classification_of,
    exclude_ticker,
    is_hard_excluded,
    resolve_tickers,
    seed_universe,
    select_universe,
)


def _tickers():
    return [
        TickerInfo(symbol="AAPL"),
        TickerInfo(symbol="LMT", classification=Classification.DEFENSE_PRIMARY),
        TickerInfo(symbol="BA", classification=Classification.DEFENSE_SECONDARY),
        TickerInfo(symbol="OFF", enabled=False),
        TickerInfo(symbol="MSFT"),
    ]


def test_select_universe_basic():
    assert select_universe(_tickers()) == ["AAPL", "BA", "MSFT"]


def test_select_universe_empty():
    assert select_universe([]) == []


def test_select_universe_dedupes_in_input_order():
    tickers = [TickerInfo(symbol="MSFT"), TickerInfo(symbol="AAPL"), TickerInfo(symbol="MSFT")]
    assert select_universe(tickers) == ["MSFT", "AAPL"]


def test_duplicate_defense_primary_entry_wins_in_any_position():
    plain = TickerInfo(symbol="LMT")
    primary = TickerInfo(symbol="LMT", classification=Classification.DEFENSE_PRIMARY)
    assert select_universe([TickerInfo(symbol="AAA"), plain, primary]) == ["AAA"]
    assert select_universe([primary, plain]) == []


def test_resolve_tickers_feeds_filter_and_lookup_the_same_entry():
    tickers = [
        TickerInfo(symbol="LMT"),
        TickerInfo(symbol="AAA"),
        TickerInfo(symbol="LMT", classification=Classification.DEFENSE_PRIMARY),
        TickerInfo(symbol="BA", classification=Classification.DEFENSE_SECONDARY),
        TickerInfo(symbol="BA"),
    ]
    resolved = resolve_tickers(tickers)
    assert list(resolved) == ["LMT", "AAA", "BA"]
    assert classification_of("LMT", resolved) == Classification.DEFENSE_PRIMARY
    assert classification_of("BA", resolved) == Classification.DEFENSE_SECONDARY

    funnel = UniverseFunnel()
    assert select_universe(resolved.values(), funnel) == ["AAA", "BA"]
    assert funnel.total_input == 3
    assert funnel.failed_hard_excluded == 1


def test_manual_override_to_defense_primary_is_excluded():
    tickers = [TickerInfo(symbol="XYZ", classification=Classification.DEFENSE_PRIMARY, manual_override=True)]
    assert select_universe(tickers) == []


def test_universe_funnel_counts():
    funnel = UniverseFunnel()
    select_universe(_tickers(), funnel=funnel)
    assert funnel.total_input == 5
    assert funnel.failed_disabled == 1
    assert funnel.failed_hard_excluded == 1
    assert funnel.passed == 3


def test_universe_funnel_to_dict():
    funnel = UniverseFunnel(total_input=4, failed_disabled=1, failed_hard_excluded=1, passed=2)
    assert funnel.to_dict() == {
        "total_input": 4,
        "failed_disabled": 1,
        "failed_hard_excluded": 1,
        "passed": 2,
    }


def test_is_hard_excluded():
    assert is_hard_excluded(Classification.DEFENSE_PRIMARY)
    assert is_hard_excluded("DEFENSE_PRIMARY")
    assert not is_hard_excluded(Classification.DEFENSE_SECONDARY)
    assert not is_hard_excluded(None)


def test_classification_of_unknown_symbol_is_non_defense():
    tickers = {t.symbol: t for t in _tickers()}
    assert classification_of("LMT", tickers) == Classification.DEFENSE_PRIMARY
    assert classification_of("NOPE", tickers) == Classification.NON_DEFENSE


def test_assert_not_hard_excluded():
    assert_not_hard_excluded("AAPL", Classification.NON_DEFENSE)
    with pytest.raises(HardExclusionViolation) as exc_info:
        assert_not_hard_excluded("LMT", Classification.DEFENSE_PRIMARY, stage="signal")
    assert exc_info.value.symbol == "LMT"
    assert exc_info.value.stage == "signal"


# --- Universe maintenance ---


def test_seed_universe_adds_new_symbols_uppercased():
    result = seed_universe({}, ["aapl", "msft"])
    assert set(result.tickers) == {"AAPL", "MSFT"}
    assert result.added == 2
    assert result.skipped == 0
    assert result.tickers["AAPL"].classification == Classification.NON_DEFENSE


def test_seed_universe_never_touches_defense_primary():
    existing = {"LMT": TickerInfo(symbol="LMT", classification=Classification.DEFENSE_PRIMARY, enabled=False)}
    result = seed_universe(existing, ["LMT"])
    assert result.skipped == 1
    assert result.tickers["LMT"].enabled is False
    assert result.tickers["LMT"].classification == Classification.DEFENSE_PRIMARY


def test_seed_universe_reenables_and_keeps_classification():
    existing = {"BA": TickerInfo(symbol="BA", classification=Classification.DEFENSE_SECONDARY, enabled=False)}
    result = seed_universe(existing, ["BA"])
    assert result.tickers["BA"].enabled is True
    assert result.tickers["BA"].classification == Classification.DEFENSE_SECONDARY
    assert existing["BA"].enabled is False


def test_seed_universe_rejects_defense_primary_default():
    with pytest.raises(ValueError):
        seed_universe({}, ["LMT"], classification=Classification.DEFENSE_PRIMARY)


def test_exclude_ticker_marks_manual_override():
    tickers = exclude_ticker({"XYZ": TickerInfo(symbol="XYZ")}, "xyz")
    info = tickers["XYZ"]
    assert info.classification == Classification.DEFENSE_PRIMARY
    assert info.manual_override is True
    assert select_universe(tickers.values()) == []
