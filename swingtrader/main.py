"""Main entry point — daily evaluation pipeline orchestration.

One run per as-of date:
  universe filter -> per-symbol features (parallel) -> relative-strength
  ranking barrier -> scoring (parallel) -> sell/rotation signal for the
  current holding.

Per-symbol failures are recorded and never abort the run.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Callable

from swingtrader.config import (
    EngineConfig,
    build_engine_config,
    get_settings,
    validate_engine_config,
)
from swingtrader.contracts import (
    FeatureSet,
    PipelineResult,
    RunStatus,
    RunSummary,
    ScoreResult,
    SignalResult,
    SymbolFailure,
    TickerInfo,
)
from swingtrader.data.snapshot import PipelineInputs, load_bundle
from swingtrader.errors import ConfigurationError, UpstreamDataUnavailable
from swingtrader.features import compute_features, merge_semantic_features, rank_relative_strength
from swingtrader.signals.filter import (
    UniverseFunnel,
    assert_not_hard_excluded,
    classification_of,
    resolve_tickers,
    select_universe,
)
from swingtrader.signals.rotation import evaluate_holding
from swingtrader.signals.scoring import build_leaderboard, score_candidate
from swingtrader.utils.run_lock import RunLock, get_run_lock
from swingtrader.utils.trading_calendar import closure_reason, last_completed_session

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"

# LogRecord attributes that are not user-supplied extras
_RESERVED_LOG_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime", "taskName"}


class _JsonFormatter(logging.Formatter):
    """One JSON object per line: ts, level, logger, msg plus any extra= fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        for key, val in record.__dict__.items():
            if key not in _RESERVED_LOG_ATTRS and not key.startswith("_"):
                payload[key] = val
        return json.dumps(payload, default=str)


def _setup_logging(level: str | None = None, fmt: str | None = None) -> None:
    """Configure the root logger from settings (text or JSON lines on stderr)."""
    settings = get_settings()
    level = (level or settings.log_level).upper()
    fmt = (fmt or settings.log_format).lower()

    handler = logging.StreamHandler(sys.stderr)
    if fmt == "json":
        handler.setFormatter(_JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level, logging.INFO))


# ── Pipeline stages ────────────────────────────────────────────────────────


def _compute_symbol_features(
    symbol: str,
    inputs: PipelineInputs,
    as_of: date,
    config: EngineConfig,
) -> FeatureSet:
    """Phase 1 for one symbol: technical features plus its semantic snapshot."""
    history = inputs.bars.get(symbol)
    if history is None or history.empty:
        raise UpstreamDataUnavailable(symbol, "Price bars")
    snapshot = inputs.semantic.get(symbol)
    if snapshot is None:
        raise UpstreamDataUnavailable(symbol, "Semantic features")

    features = compute_features(
        symbol, history, inputs.benchmark_bars, as_of, rs_lookback=config.rs_lookback_days,
    )
    return merge_semantic_features(features, snapshot)


def _failure(symbol: str, stage: str, exc: BaseException, timeout: float | None) -> SymbolFailure:
    message = str(exc)
    if isinstance(exc, asyncio.TimeoutError) and not message:
        message = f"timed out after {timeout}s"
    return SymbolFailure(
        symbol=symbol,
        stage=stage,
        error_type=type(exc).__name__,
        message=message,
    )


async def _run_per_symbol(
    stage: str,
    symbols: list[str],
    func: Callable[[str], Any],
    config: EngineConfig,
    executor: ThreadPoolExecutor,
) -> tuple[dict[str, Any], list[SymbolFailure]]:
    """Run the blocking *func* for every symbol on *executor*.

    At most ``max_workers`` run at once, each bounded by ``symbol_timeout_s``.
    A timed-out symbol keeps its slot until its thread returns, so the
    bound holds for threads as well as awaiting tasks.
    Returns (symbol -> result, failures) with results in *symbols* order.
    """
    loop = asyncio.get_running_loop()
    semaphore = asyncio.Semaphore(config.max_workers)
    timeout = config.symbol_timeout_s

    async def _one(symbol: str) -> Any:
        async with semaphore:
            future = loop.run_in_executor(executor, func, symbol)
            if timeout is None:
                return await future
            try:
                return await asyncio.wait_for(asyncio.shield(future), timeout=timeout)
            except asyncio.TimeoutError:
                # threads cannot be interrupted; wait it out before freeing the slot
                await asyncio.wait([future])
                raise

    results = await asyncio.gather(*(_one(s) for s in symbols), return_exceptions=True)

    out: dict[str, Any] = {}
    failures: list[SymbolFailure] = []
    for symbol, result in zip(symbols, results):
        if isinstance(result, Exception):
            logger.warning("%s failed for %s: %s: %s", stage, symbol, type(result).__name__, result)
            failures.append(_failure(symbol, stage, result, timeout))
        else:
            out[symbol] = result
    return out, failures


def _evaluate_signal(
    inputs: PipelineInputs,
    as_of: date,
    config: EngineConfig,
    features: dict[str, FeatureSet],
    scores: dict[str, ScoreResult],
    leaderboard: list[ScoreResult],
    ticker_map: dict[str, TickerInfo],
) -> SignalResult:
    holding = inputs.holding
    classification = classification_of(holding.symbol, ticker_map)
    assert_not_hard_excluded(holding.symbol, classification, stage="signal")

    if holding.symbol not in scores:
        raise UpstreamDataUnavailable(holding.symbol, "Scored features for the current holding")

    return evaluate_holding(
        holding,
        features[holding.symbol],
        scores[holding.symbol].swing_score,
        leaderboard,
        as_of,
        config=config,
        classification=classification,
        classifications={sym: info.classification for sym, info in ticker_map.items()},
    )


def _skipped(run_id: str, as_of: date, reason: str, start: float) -> PipelineResult:
    logger.info("Run %s for %s skipped: %s", run_id, as_of, reason)
    return PipelineResult(
        summary=RunSummary(
            run_id=run_id,
            as_of_date=as_of,
            status=RunStatus.SKIPPED,
            skip_reason=reason,
            duration_s=round(time.monotonic() - start, 3),
        ),
    )


async def run_daily_evaluation(
    as_of: date,
    inputs: PipelineInputs,
    config: EngineConfig | None = None,
    run_lock: RunLock | None = None,
) -> PipelineResult:
    """Evaluate the whole universe for *as_of*.

    Without an explicit *config* the engine config is built from settings.
    Raises ConfigurationError before any computation if it is unusable.
    """
    start = time.monotonic()
    run_id = uuid.uuid4().hex[:12]

    if config is None:
        config = get_settings().engine_config()
    config = validate_engine_config(config)

    lock = run_lock or get_run_lock()
    with lock.hold(as_of) as acquired:
        if not acquired:
            return _skipped(run_id, as_of, f"Evaluation for {as_of} already in progress", start)

        if config.skip_non_trading_days:
            reason = closure_reason(as_of)
            if reason is not None:
                return _skipped(run_id, as_of, f"Market closed on {as_of} ({reason})", start)

        logger.info("=" * 60)
        logger.info("Starting daily evaluation for %s (run_id=%s)", as_of, run_id)
        logger.info("=" * 60)

        ticker_map = resolve_tickers(inputs.tickers)

        # Step 1: universe
        funnel = UniverseFunnel()
        universe = select_universe(ticker_map.values(), funnel)

        with ThreadPoolExecutor(
            max_workers=config.max_workers, thread_name_prefix="swingtrader",
        ) as executor:
            # Step 2: per-symbol features
            raw_features, failures = await _run_per_symbol(
                "features",
                universe,
                lambda sym: _compute_symbol_features(sym, inputs, as_of, config),
                config,
                executor,
            )

            # Step 3: ranking barrier, once over every successful symbol
            ranked = rank_relative_strength(list(raw_features.values()))
            features = {fs.symbol: fs for fs in ranked}

            # Step 4: scoring
            scores, score_failures = await _run_per_symbol(
                "scoring",
                list(features),
                lambda sym: score_candidate(
                    features[sym], classification_of(sym, ticker_map), config.weights,
                ),
                config,
                executor,
            )
        failures.extend(score_failures)
        leaderboard = build_leaderboard(list(scores.values()))

        # Step 5: signal for the current holding
        signal = None
        if inputs.holding is not None:
            try:
                signal = _evaluate_signal(
                    inputs, as_of, config, features, scores, leaderboard, ticker_map,
                )
            except Exception as exc:
                logger.warning("Signal evaluation failed for %s: %s", inputs.holding.symbol, exc)
                failures.append(_failure(inputs.holding.symbol, "signal", exc, None))

        # Counts are per symbol; a symbol with several failure records fails once
        failed_symbols = {f.symbol for f in failures}
        succeeded = sum(1 for sym in universe if sym in scores and sym not in failed_symbols)

        elapsed = round(time.monotonic() - start, 3)
        status = RunStatus.PARTIAL if failures else RunStatus.SUCCESS
        summary = RunSummary(
            run_id=run_id,
            as_of_date=as_of,
            status=status,
            universe_size=len(universe),
            universe_funnel=funnel.to_dict(),
            succeeded=succeeded,
            failed=len(failed_symbols),
            failures=failures,
            duration_s=elapsed,
        )

        logger.info(
            "Run %s complete in %.2fs: status=%s, succeeded=%d/%d, failed=%d, signal=%s",
            run_id, elapsed, status.value, succeeded, len(universe), len(failed_symbols),
            f"{signal.sell_signal_level.value}/{signal.rotate_recommendation.value}" if signal else "none",
        )

        return PipelineResult(
            summary=summary,
            features=[features[s] for s in universe if s in features],
            leaderboard=leaderboard,
            signal=signal,
        )


# ── CLI ────────────────────────────────────────────────────────────────────


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Daily swing-trading evaluation")
    parser.add_argument("--snapshot", type=str, required=True, help="Path to the JSON input bundle")
    parser.add_argument("--date", type=str, help="Evaluation date (YYYY-MM-DD), defaults to the bundle's as_of")
    parser.add_argument("--output", type=str, help="Write the result JSON here instead of stdout")
    args = parser.parse_args(argv)

    _setup_logging()
    settings = get_settings()

    try:
        bundle = load_bundle(args.snapshot, benchmark_symbol=settings.benchmark_symbol)
        config = build_engine_config(bundle.config) if bundle.config else settings.engine_config()
        if args.date:
            as_of = date.fromisoformat(args.date)
        else:
            as_of = bundle.as_of or last_completed_session(date.today())
        result = asyncio.run(run_daily_evaluation(as_of, bundle.inputs, config))
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        return 1

    payload = result.model_dump_json(indent=2)
    if args.output:
        Path(args.output).write_text(payload, encoding="utf-8")
        logger.info("Result written to %s", args.output)
    else:
        print(payload)
    return 0


if __name__ == "__main__":
    sys.exit(main())
