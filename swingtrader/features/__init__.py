"""Feature engineering layer."""

from swingtrader.features.relative_strength import rank_relative_strength
from swingtrader.features.sentiment import aggregate_semantic_features, merge_semantic_features
from swingtrader.features.technical import compute_features

__all__ = [
    "aggregate_semantic_features",
    "compute_features",
    "merge_semantic_features",
    "rank_relative_strength",
]
