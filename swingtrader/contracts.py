"""Data contracts — typed records passed between pipeline stages.

Every record forbids unknown fields and serializes deterministically, so
recomputing the same (symbol, date) key from the same inputs produces a
byte-identical ``model_dump_json()``.
"""

from __future__ import annotations

from datetime import date
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class StrictModel(BaseModel):
    """Base for all contract models — unknown fields are forbidden."""

    model_config = ConfigDict(extra="forbid")


# ── Enums ──────────────────────────────────────────────────────────────────

class Classification(str, Enum):
    NON_DEFENSE = "NON_DEFENSE"
    DEFENSE_SECONDARY = "DEFENSE_SECONDARY"
    DEFENSE_PRIMARY = "DEFENSE_PRIMARY"


class Confidence(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class SellSignalLevel(str, Enum):
    NONE = "NONE"
    WATCH = "WATCH"
    SELL = "SELL"
    STRONG_SELL = "STRONG_SELL"


class RotateRecommendation(str, Enum):
    HOLD = "HOLD"
    ROTATE = "ROTATE"


class RunStatus(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"    # some symbols failed, the rest completed
    SKIPPED = "skipped"    # lock held or non-trading day


# ── Universe ───────────────────────────────────────────────────────────────

class TickerInfo(StrictModel):
    symbol: str
    classification: Classification = Classification.NON_DEFENSE
    manual_override: bool = False
    enabled: bool = True


class Holding(StrictModel):
    symbol: str
    entry_date: date
    entry_price: float = Field(gt=0)
    shares: float = Field(gt=0)


# ── Features ───────────────────────────────────────────────────────────────

class SemanticSnapshot(StrictModel):
    """Semantic signals for one symbol/date, produced by the news labeling subsystem."""

    news_sentiment_7d: float = Field(default=0.0, ge=-1, le=1)
    news_sentiment_30d: float = Field(default=0.0, ge=-1, le=1)
    tail_risk_score_14d: float = Field(default=0.0, ge=0, le=10)
    catalyst_momentum: float = Field(default=0.0, ge=-1, le=1)
    earnings_within_5d: bool = False
    earnings_within_10d: bool = False


class FeatureSet(StrictModel):
    symbol: str
    date: date
    close: float | None = None

    # Technical: None means insufficient history
    sma20: float | None = None
    sma50: float | None = None
    sma200: float | None = None
    rsi14: float | None = Field(default=None, ge=0, le=100)
    atr14: float | None = Field(default=None, ge=0)
    avg_volume20: float | None = Field(default=None, ge=0)

    # Relative strength: ratio from the per-symbol pass, percentile from the ranking pass
    rs_ratio: float | None = None
    rs_vs_spy: float | None = Field(default=None, ge=0, le=100)

    # Semantic, merged in by the caller
    news_sentiment_7d: float | None = Field(default=None, ge=-1, le=1)
    news_sentiment_30d: float | None = Field(default=None, ge=-1, le=1)
    tail_risk_score_14d: float | None = Field(default=None, ge=0, le=10)
    catalyst_momentum: float | None = Field(default=None, ge=-1, le=1)
    earnings_within_5d: bool = False
    earnings_within_10d: bool = False

    quality_flags: list[str] = Field(default_factory=list)


# ── Scoring ────────────────────────────────────────────────────────────────

class Projection(StrictModel):
    horizon_days: int
    expected_move_pct: float
    expected_range_pct: tuple[float, float]
    confidence: Confidence
    notes: list[str] = Field(default_factory=list)


class ScoreResult(StrictModel):
    symbol: str
    date: date
    swing_score: float = Field(ge=0, le=100)
    components: dict[str, float]
    top_reasons: list[str] = Field(default_factory=list, max_length=3)
    warnings: list[str] = Field(default_factory=list)
    projection: Projection


# ── Signals ────────────────────────────────────────────────────────────────

class TaxImpact(StrictModel):
    holding_days: int
    is_long_term: bool
    estimated_gain_pct: float
    estimated_tax_rate: float
    tax_drag_pct: float
    days_to_long_term: int
    required_edge_to_rotate: float


class SignalExplain(StrictModel):
    asymmetry: float
    upside_remaining_pct: float
    downside_tail_pct: float
    reasons: list[str] = Field(default_factory=list)


class SignalResult(StrictModel):
    date: date
    current_symbol: str
    sell_signal_level: SellSignalLevel
    rotate_recommendation: RotateRecommendation
    rotate_to_symbol: str | None = None
    explain: SignalExplain
    tax_impact: TaxImpact


# ── Run summary ────────────────────────────────────────────────────────────

class SymbolFailure(StrictModel):
    symbol: str
    stage: str          # features / scoring / signal
    error_type: str
    message: str


class RunSummary(StrictModel):
    run_id: str
    as_of_date: date
    status: RunStatus
    skip_reason: str | None = None
    universe_size: int = 0
    universe_funnel: dict[str, int] = Field(default_factory=dict)  # filter drop counts
    succeeded: int = 0
    failed: int = 0
    failures: list[SymbolFailure] = Field(default_factory=list)
    duration_s: float = 0.0


class PipelineResult(StrictModel):
    summary: RunSummary
    features: list[FeatureSet] = Field(default_factory=list)
    leaderboard: list[ScoreResult] = Field(default_factory=list)
    signal: SignalResult | None = None
