"""Per-date run lock — at most one evaluation per as-of date at a time.

Acquisition never blocks: a second caller for a date that is already being
evaluated gets ``False`` and is expected to report a skipped run.
"""

from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from typing import Iterator

logger = logging.getLogger(__name__)


@dataclass
class _DateState:
    lock: threading.Lock
    held_since: float = 0.0  # monotonic timestamp of the current holder
    total_runs: int = 0
    total_skips: int = 0


class RunLock:
    """Registry of non-blocking locks keyed by evaluation date."""

    def __init__(self) -> None:
        self._registry_lock = threading.Lock()
        self._dates: dict[date, _DateState] = {}

    def _get(self, as_of: date) -> _DateState:
        with self._registry_lock:
            if as_of not in self._dates:
                self._dates[as_of] = _DateState(lock=threading.Lock())
            return self._dates[as_of]

    def try_acquire(self, as_of: date) -> bool:
        """Take the lock for *as_of* without waiting. False if already held."""
        state = self._get(as_of)
        if not state.lock.acquire(blocking=False):
            state.total_skips += 1
            logger.warning(
                "Run for %s already in progress (%.1fs) — skipping",
                as_of, time.monotonic() - state.held_since,
            )
            return False
        state.held_since = time.monotonic()
        state.total_runs += 1
        return True

    def release(self, as_of: date) -> None:
        state = self._get(as_of)
        if state.lock.locked():
            state.lock.release()

    def is_held(self, as_of: date) -> bool:
        return self._get(as_of).lock.locked()

    @contextmanager
    def hold(self, as_of: date) -> Iterator[bool]:
        """Context manager yielding whether the lock was acquired.

        Releases on exit only if this caller took it.
        """
        acquired = self.try_acquire(as_of)
        try:
            yield acquired
        finally:
            if acquired:
                self.release(as_of)

    def get_stats(self) -> dict[str, dict]:
        return {
            d.isoformat(): {
                "held": s.lock.locked(),
                "total_runs": s.total_runs,
                "total_skips": s.total_skips,
            }
            for d, s in self._dates.items()
        }


# Process-wide registry shared by every pipeline invocation
_default_lock: RunLock | None = None


def get_run_lock() -> RunLock:
    global _default_lock
    if _default_lock is None:
        _default_lock = RunLock()
    return _default_lock
