"""Pipeline error taxonomy.

Insufficient history is deliberately absent: it is not a failure, it shows up
as null feature fields plus a quality flag.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base for every error raised by the evaluation pipeline."""


class HardExclusionViolation(PipelineError):
    """A DEFENSE_PRIMARY symbol reached scoring or signaling.

    Fatal for that symbol only; the run carries on with the rest.
    """

    def __init__(self, symbol: str, stage: str = "scoring"):
        self.symbol = symbol
        self.stage = stage
        super().__init__(f"Cannot run {stage} for DEFENSE_PRIMARY ticker: {symbol}")


class UpstreamDataUnavailable(PipelineError):
    """Bars or semantic features for a symbol were not supplied."""

    def __init__(self, symbol: str, what: str):
        self.symbol = symbol
        self.what = what
        super().__init__(f"{what} unavailable for {symbol}")


class ConfigurationError(PipelineError):
    """Missing or inconsistent threshold/weight configuration. Fatal for the run."""
