"""Swing trader — daily ranking, sell-signal and tax-aware rotation pipeline."""
