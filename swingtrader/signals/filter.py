"""Universe filtering — gates tickers by enabled flag and defense classification.

The classification map is authoritative: manual overrides have already been
applied upstream, and nothing here re-derives a classification. Includes a
funnel counter that tracks how many tickers are dropped at each gate.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from swingtrader.contracts import Classification, TickerInfo
from swingtrader.errors import HardExclusionViolation

logger = logging.getLogger(__name__)


@dataclass
class UniverseFunnel:
    """Tracks how many tickers are eliminated at each filter stage."""

    total_input: int = 0
    failed_disabled: int = 0
    failed_hard_excluded: int = 0
    passed: int = 0

    def log_summary(self) -> None:
        logger.info(
            "Universe funnel: %d input → %d passed | disabled=%d, defense_primary=%d dropped",
            self.total_input,
            self.passed,
            self.failed_disabled,
            self.failed_hard_excluded,
        )

    def to_dict(self) -> dict:
        return {
            "total_input": self.total_input,
            "failed_disabled": self.failed_disabled,
            "failed_hard_excluded": self.failed_hard_excluded,
            "passed": self.passed,
        }


def is_hard_excluded(classification: Classification | str | None) -> bool:
    return classification is not None and Classification(classification) == Classification.DEFENSE_PRIMARY


def resolve_tickers(tickers: Iterable[TickerInfo]) -> dict[str, TickerInfo]:
    """Collapse duplicate entries into one TickerInfo per symbol.

    A DEFENSE_PRIMARY entry always wins over any other entry for the same
    symbol; otherwise the first entry is kept. Order follows first
    appearance.
    """
    resolved: dict[str, TickerInfo] = {}
    for ticker in tickers:
        current = resolved.get(ticker.symbol)
        if current is None:
            resolved[ticker.symbol] = ticker
            continue
        if current.classification != ticker.classification:
            logger.warning(
                "Conflicting classifications for %s: %s vs %s",
                ticker.symbol, current.classification.value, ticker.classification.value,
            )
        if is_hard_excluded(ticker.classification) and not is_hard_excluded(current.classification):
            resolved[ticker.symbol] = ticker
    return resolved


def select_universe(
    tickers: Iterable[TickerInfo],
    funnel: UniverseFunnel | None = None,
) -> list[str]:
    """Return the eligible symbols: enabled and not DEFENSE_PRIMARY, in input order.

    Duplicates are collapsed with ``resolve_tickers`` first, so a symbol
    listed as DEFENSE_PRIMARY anywhere is dropped.
    """
    if funnel is None:
        funnel = UniverseFunnel()

    passed: list[str] = []

    for ticker in resolve_tickers(tickers).values():
        funnel.total_input += 1

        if not ticker.enabled:
            funnel.failed_disabled += 1
            continue

        if is_hard_excluded(ticker.classification):
            funnel.failed_hard_excluded += 1
            logger.debug("Excluded %s: DEFENSE_PRIMARY", ticker.symbol)
            continue

        passed.append(ticker.symbol)

    funnel.passed = len(passed)
    funnel.log_summary()
    return passed


def classification_of(
    symbol: str,
    tickers: Mapping[str, TickerInfo],
) -> Classification:
    """Look up a symbol's classification; unknown symbols are NON_DEFENSE."""
    info = tickers.get(symbol)
    return info.classification if info is not None else Classification.NON_DEFENSE


def assert_not_hard_excluded(
    symbol: str,
    classification: Classification | str | None,
    stage: str = "scoring",
) -> None:
    """Raise HardExclusionViolation if *symbol* is DEFENSE_PRIMARY."""
    if is_hard_excluded(classification):
        logger.error("Hard exclusion violated: %s reached %s", symbol, stage)
        raise HardExclusionViolation(symbol, stage)


# --- Universe maintenance ---


@dataclass
class SeedResult:
    tickers: dict[str, TickerInfo]
    added: int = 0
    skipped: int = 0


def seed_universe(
    existing: Mapping[str, TickerInfo],
    symbols: Iterable[str],
    classification: Classification = Classification.NON_DEFENSE,
) -> SeedResult:
    """Add or re-enable *symbols*.

    A DEFENSE_PRIMARY entry is never touched, and an existing
    classification is kept over the seed default.
    """
    if classification == Classification.DEFENSE_PRIMARY:
        raise ValueError("Use exclude_ticker() to mark DEFENSE_PRIMARY tickers")

    result = SeedResult(tickers=dict(existing))
    for raw in symbols:
        symbol = raw.upper()
        current = result.tickers.get(symbol)

        if current is not None and is_hard_excluded(current.classification):
            logger.info("Skipping %s - marked as DEFENSE_PRIMARY", symbol)
            result.skipped += 1
            continue

        if current is not None:
            result.tickers[symbol] = current.model_copy(update={"enabled": True})
        else:
            result.tickers[symbol] = TickerInfo(symbol=symbol, classification=classification)
        result.added += 1

    logger.info("Seeded universe: %d added, %d skipped", result.added, result.skipped)
    return result


def exclude_ticker(existing: Mapping[str, TickerInfo], symbol: str) -> dict[str, TickerInfo]:
    """Mark *symbol* DEFENSE_PRIMARY with a manual override."""
    symbol = symbol.upper()
    tickers = dict(existing)
    current = tickers.get(symbol)
    tickers[symbol] = TickerInfo(
        symbol=symbol,
        classification=Classification.DEFENSE_PRIMARY,
        manual_override=True,
        enabled=current.enabled if current is not None else True,
    )
    return tickers
