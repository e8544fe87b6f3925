"""JSON input bundle for one evaluation date.

The daily job's upstream stages (bar ingestion, news labeling, universe
maintenance) hand their output over as a single JSON document:

    {
      "as_of": "2026-10-16",
      "bars": {"AAPL": [{"date": "...", "open": ..., "high": ..., "low": ...,
                         "close": ..., "volume": ...}, ...]},
      "benchmark_bars": [...],              # optional if bars[benchmark] exists
      "semantic": {"AAPL": {...SemanticSnapshot fields...}},
      "news": {"AAPL": [{"published_at": "...", "direction": "POSITIVE",
                         "severity": 2, "tags": [...]}]},   # optional
      "earnings": {"AAPL": ["2026-10-28"]},                   # optional
      "tickers": [{"symbol": "AAPL", "classification": "NON_DEFENSE"}],
      "holding": {"symbol": "AAPL", "entry_date": "...", "entry_price": ...,
                  "shares": ...} | null,
      "config": {...}                       # optional, see build_engine_config
    }

Symbols with labeled news but no precomputed semantic snapshot get one
aggregated here.
"""

from __future__ import annotations

import io
import json
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any

import pandas as pd

from swingtrader.contracts import Holding, SemanticSnapshot, TickerInfo
from swingtrader.features.sentiment import LabeledNews, aggregate_semantic_features
from swingtrader.features.technical import OHLCV_COLUMNS

logger = logging.getLogger(__name__)


@dataclass
class PipelineInputs:
    """Everything the pipeline consumes for one date, already in memory."""

    bars: dict[str, pd.DataFrame] = field(default_factory=dict)
    benchmark_bars: pd.DataFrame | None = None
    semantic: dict[str, SemanticSnapshot] = field(default_factory=dict)
    tickers: list[TickerInfo] = field(default_factory=list)
    holding: Holding | None = None


@dataclass
class SnapshotBundle:
    inputs: PipelineInputs
    as_of: date | None = None
    config: dict[str, Any] | None = None


def bars_to_json(df: pd.DataFrame) -> str:
    """Serialize a bar frame to record-oriented JSON, dates as ISO strings."""
    data = df.copy()
    if "date" in data.columns:
        data["date"] = pd.to_datetime(data["date"]).dt.strftime("%Y-%m-%d")
    return data.to_json(orient="records")


def records_to_bars(records: list[dict] | str) -> pd.DataFrame:
    """Build a bar frame from a list of records (or its JSON text).

    Column names are lower-cased; the date column is restored to ``date``
    objects.
    """
    if isinstance(records, str):
        df = pd.read_json(io.StringIO(records), orient="records")
    else:
        df = pd.DataFrame.from_records(records)

    if df.empty:
        return pd.DataFrame(columns=list(OHLCV_COLUMNS))

    df.columns = [str(c).lower() for c in df.columns]
    if "date" in df.columns:
        df["date"] = pd.to_datetime(df["date"]).dt.date
    return df


def _parse_news(items: list[dict]) -> list[LabeledNews]:
    out = []
    for item in items:
        published = item["published_at"]
        if isinstance(published, str):
            published = datetime.fromisoformat(published.replace("Z", "+00:00"))
        out.append(LabeledNews(
            published_at=published,
            direction=str(item.get("direction", "NEUTRAL")).upper(),
            severity=int(item.get("severity", 0)),
            tags=list(item.get("tags", [])),
        ))
    return out


def parse_bundle(raw: dict[str, Any], benchmark_symbol: str = "SPY") -> SnapshotBundle:
    """Turn a decoded bundle into typed pipeline inputs."""
    as_of = date.fromisoformat(raw["as_of"]) if raw.get("as_of") else None

    bars = {sym.upper(): records_to_bars(rows) for sym, rows in (raw.get("bars") or {}).items()}

    benchmark = None
    if raw.get("benchmark_bars") is not None:
        benchmark = records_to_bars(raw["benchmark_bars"])
    elif benchmark_symbol in bars:
        benchmark = bars[benchmark_symbol]

    semantic = {
        sym.upper(): SemanticSnapshot(**values)
        for sym, values in (raw.get("semantic") or {}).items()
    }

    news = raw.get("news") or {}
    earnings = raw.get("earnings") or {}
    if (news or earnings) and as_of is None:
        raise ValueError("bundle with news/earnings needs an as_of date")
    for sym in set(news) | set(earnings):
        key = sym.upper()
        if key in semantic:
            continue
        semantic[key] = aggregate_semantic_features(
            _parse_news(news.get(sym, [])),
            as_of,
            earnings_dates=[date.fromisoformat(d) for d in earnings.get(sym, [])],
        )

    tickers = [TickerInfo(**{**t, "symbol": t["symbol"].upper()}) for t in raw.get("tickers") or []]
    holding = Holding(**raw["holding"]) if raw.get("holding") else None

    logger.info(
        "Loaded bundle: %d tickers, %d bar series, %d semantic snapshots, holding=%s",
        len(tickers), len(bars), len(semantic), holding.symbol if holding else None,
    )

    return SnapshotBundle(
        inputs=PipelineInputs(
            bars=bars,
            benchmark_bars=benchmark,
            semantic=semantic,
            tickers=tickers,
            holding=holding,
        ),
        as_of=as_of,
        config=raw.get("config"),
    )


def load_bundle(path: Path | str, benchmark_symbol: str = "SPY") -> SnapshotBundle:
    with open(path, encoding="utf-8") as fh:
        raw = json.load(fh)
    return parse_bundle(raw, benchmark_symbol=benchmark_symbol)
