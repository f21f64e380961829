"""Period-over-period delta primitives.

Every card, table and chart derives its deltas through these functions so the
same inputs always produce the same displayed change. They never raise on
numeric input: zero baselines resolve to 0.0, growth from a zero baseline to
``math.inf``, and non-finite intermediate results are returned as-is so the
presentation layer can show a "new" or "N/A" state.
"""

from __future__ import annotations

import math

from weekly_seo_dashboard.models import DeltaCalculations, MetricValues


def percentage_change(current: float, previous: float | None = None) -> float:
    """Return (current - previous) / previous as a ratio (0.25 == +25%)."""
    if previous is None:
        return 0.0
    if previous == 0:
        return math.inf if current > 0 else 0.0
    return (current - previous) / previous


def position_delta(current: float | None = None, previous: float | None = None) -> float:
    """Improvement in average position; lower positions are better."""
    if not previous or current is None:
        return 0.0
    return previous - current


def ctr_points_change(current: float | None = None, previous: float | None = None) -> float:
    """Difference of two decimal CTRs expressed in percentage points."""
    current_pct = (current if current is not None else 0.0) * 100
    previous_pct = (previous if previous is not None else 0.0) * 100
    return current_pct - previous_pct


def previous_from_delta_pct(current: float, delta_pct: float) -> float:
    # A claimed decline of 100% or more has no meaningful baseline.
    if delta_pct <= -1:
        return 0.0
    return current / (1 + delta_pct)


def previous_ctr(
    current_impressions: float,
    current_clicks: float,
    impressions_delta_pct: float | None = None,
    clicks_delta_pct: float | None = None,
) -> float:
    """Rebuild the previous-period CTR from current counts and their deltas."""
    previous_impressions = previous_from_delta_pct(
        current_impressions,
        impressions_delta_pct if impressions_delta_pct is not None else 0.0,
    )
    previous_clicks = previous_from_delta_pct(
        current_clicks,
        clicks_delta_pct if clicks_delta_pct is not None else 0.0,
    )
    if previous_impressions > 0:
        return previous_clicks / previous_impressions
    return 0.0


def calculate_metric_deltas(
    current: MetricValues,
    previous: MetricValues | None = None,
) -> DeltaCalculations:
    has_previous = previous is not None
    return DeltaCalculations(
        impressions_change=percentage_change(
            current.impressions, previous.impressions if has_previous else None
        ),
        clicks_change=percentage_change(current.clicks, previous.clicks if has_previous else None),
        conversions_change=percentage_change(
            current.conversions, previous.conversions if has_previous else None
        ),
        ctr_change=ctr_points_change(current.ctr, previous.ctr if has_previous else None),
        position_change=position_delta(
            current.position, previous.position if has_previous else None
        ),
    )
