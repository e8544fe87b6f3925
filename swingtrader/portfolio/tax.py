"""Rotation tax cost — how much edge a new candidate needs to justify selling.

Pure math, no I/O. Rates are approximations (top short-term marginal rate,
typical long-term rate) and the transaction buffer covers slippage plus
commissions.
"""

from __future__ import annotations

from datetime import date

from swingtrader.contracts import TaxImpact

SHORT_TERM_TAX_RATE = 0.37
LONG_TERM_TAX_RATE = 0.15
TRANSACTION_BUFFER = 0.02
LONG_TERM_DAYS = 365

# Near the long-term boundary, holding gets sticky
NEAR_LONG_TERM_DAYS = 30
NEAR_LONG_TERM_MIN_GAIN = 0.10
NEAR_LONG_TERM_SAVINGS_WEIGHT = 0.5

# should_wait_for_long_term windows: (days left, savings multiple)
WAIT_WINDOWS = ((30, 1.5), (60, 2.0))


def _potential_savings(gain_pct: float) -> float:
    return gain_pct * (SHORT_TERM_TAX_RATE - LONG_TERM_TAX_RATE)


def calculate_tax_drag(
    entry_date: date,
    entry_price: float,
    current_price: float,
    now: date | None = None,
) -> TaxImpact:
    """Tax impact of selling the holding at *current_price* on *now*.

    A loss never carries tax drag: the required edge falls back to the
    transaction buffer alone.
    """
    if entry_price <= 0:
        raise ValueError(f"entry_price must be > 0, got {entry_price}")

    now = now or date.today()
    holding_days = (now - entry_date).days
    is_long_term = holding_days >= LONG_TERM_DAYS
    days_to_long_term = max(0, LONG_TERM_DAYS - holding_days)

    gain_pct = (current_price - entry_price) / entry_price

    if gain_pct <= 0:
        return TaxImpact(
            holding_days=holding_days,
            is_long_term=is_long_term,
            estimated_gain_pct=round(gain_pct, 4),
            estimated_tax_rate=0.0,
            tax_drag_pct=0.0,
            days_to_long_term=days_to_long_term,
            required_edge_to_rotate=TRANSACTION_BUFFER,
        )

    tax_rate = LONG_TERM_TAX_RATE if is_long_term else SHORT_TERM_TAX_RATE
    tax_drag = gain_pct * tax_rate
    required_edge = tax_drag + TRANSACTION_BUFFER

    if (
        not is_long_term
        and days_to_long_term <= NEAR_LONG_TERM_DAYS
        and gain_pct > NEAR_LONG_TERM_MIN_GAIN
    ):
        required_edge += _potential_savings(gain_pct) * NEAR_LONG_TERM_SAVINGS_WEIGHT

    return TaxImpact(
        holding_days=holding_days,
        is_long_term=is_long_term,
        estimated_gain_pct=round(gain_pct, 4),
        estimated_tax_rate=tax_rate,
        tax_drag_pct=round(tax_drag, 4),
        days_to_long_term=days_to_long_term,
        required_edge_to_rotate=round(required_edge, 4),
    )


def should_wait_for_long_term(impact: TaxImpact, best_candidate_edge: float) -> bool:
    """True when the candidate's edge does not cover what waiting would save.

    Only short-term gains within 60 days of the boundary qualify.
    """
    if impact.is_long_term or impact.estimated_gain_pct <= 0:
        return False

    savings = _potential_savings(impact.estimated_gain_pct)
    for max_days, multiple in WAIT_WINDOWS:
        if impact.days_to_long_term <= max_days:
            return best_candidate_edge < savings * multiple + TRANSACTION_BUFFER
    return False


def format_tax_impact(impact: TaxImpact) -> str:
    """Multi-line human summary of a TaxImpact."""
    if impact.estimated_gain_pct <= 0:
        return f"Position at {impact.estimated_gain_pct * 100:.1f}% - no tax drag"

    lines = [
        f"Gain: {impact.estimated_gain_pct * 100:.1f}%",
        f"Status: {'Long-term' if impact.is_long_term else 'Short-term'} ({impact.holding_days} days)",
        f"Est. tax rate: {impact.estimated_tax_rate * 100:.0f}%",
        f"Tax drag: {impact.tax_drag_pct * 100:.1f}%",
    ]
    if not impact.is_long_term and impact.days_to_long_term <= 60:
        lines.append(f"Days to long-term: {impact.days_to_long_term}")
    lines.append(f"Min edge to rotate: {impact.required_edge_to_rotate * 100:.1f}%")
    return "\n".join(lines)
