"""Cross-sectional relative strength — the ranking barrier of the feature stage.

Percentile rank is only meaningful once every symbol's return ratio for the
period is known, so this runs once over the gathered batch after the
per-symbol pass. It takes FeatureSets in and hands new ones back; nothing is
shared with the workers.
"""

from __future__ import annotations

import logging

from swingtrader.contracts import FeatureSet

logger = logging.getLogger(__name__)

SINGLE_SYMBOL_PERCENTILE = 50.0


def percentile_ranks(ratios: list[tuple[str, float]]) -> dict[str, float]:
    """Map symbol -> percentile (0-100) of its ratio within the batch.

    Ascending rank / (count - 1) * 100. The sort is stable, so equal ratios
    keep their input order and receive successive ranks. A batch of one
    sits at the median.
    """
    if not ratios:
        return {}
    if len(ratios) == 1:
        return {ratios[0][0]: SINGLE_SYMBOL_PERCENTILE}

    ordered = sorted(ratios, key=lambda item: item[1])
    denom = len(ordered) - 1
    return {
        symbol: round(rank / denom * 100, 2)
        for rank, (symbol, _) in enumerate(ordered)
    }


def rank_relative_strength(feature_sets: list[FeatureSet]) -> list[FeatureSet]:
    """Assign ``rs_vs_spy`` across the whole universe.

    Symbols without a ratio (short history, missing benchmark) keep None.
    Output preserves input order.
    """
    ratios = [(fs.symbol, fs.rs_ratio) for fs in feature_sets if fs.rs_ratio is not None]
    ranks = percentile_ranks(ratios)

    logger.info(
        "Relative strength ranked: %d/%d symbols had a return ratio",
        len(ranks), len(feature_sets),
    )

    return [
        fs.model_copy(update={"rs_vs_spy": ranks[fs.symbol]}) if fs.symbol in ranks else fs
        for fs in feature_sets
    ]
