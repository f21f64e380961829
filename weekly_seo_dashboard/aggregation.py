from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Union

from weekly_seo_dashboard.models import MetricValues, MetricsWithDelta, WeeklyRow


RowLike = Union[WeeklyRow, Mapping[str, Any]]

ADDITIVE_FIELDS = ("impressions", "clicks", "conversions")


@dataclass(frozen=True)
class WeekSplit:
    early: frozenset[str]
    late: frozenset[str]


def _as_weekly_row(row: RowLike) -> WeeklyRow:
    if isinstance(row, WeeklyRow):
        return row
    return WeeklyRow.from_mapping(row)


def _value(raw: float | None) -> float:
    return raw if raw is not None else 0.0


def _count_total(values: list[float]) -> float:
    # Integral inputs keep an integral total.
    total = math.fsum(values)
    if all(float(value).is_integer() for value in values):
        return int(total)
    return total


def aggregate_metrics(
    rows: Iterable[RowLike],
    week_filter: Iterable[str] | None = None,
) -> MetricValues:
    """Sum counts and build impression-weighted CTR and position.

    When `week_filter` is given only rows whose week is in it are used; rows
    without a week are then skipped. A week with zero impressions adds no weight
    to the average position.
    """
    allowed = frozenset(week_filter) if week_filter is not None else None

    impressions: list[float] = []
    clicks: list[float] = []
    conversions: list[float] = []
    weighted_positions: list[float] = []
    for raw_row in rows:
        row = _as_weekly_row(raw_row)
        if allowed is not None and (not row.time_bucket or row.time_bucket not in allowed):
            continue
        row_impressions = _value(row.impressions)
        impressions.append(row_impressions)
        clicks.append(_value(row.clicks))
        conversions.append(_value(row.conversions))
        weighted_positions.append(_value(row.position) * row_impressions)

    # fsum keeps the totals independent of row order.
    total_impressions = _count_total(impressions)
    total_clicks = _count_total(clicks)
    total_weighted_position = math.fsum(weighted_positions)
    return MetricValues(
        impressions=total_impressions,
        clicks=total_clicks,
        conversions=_count_total(conversions),
        ctr=total_clicks / total_impressions if total_impressions > 0 else 0.0,
        position=total_weighted_position / total_impressions if total_impressions > 0 else 0.0,
    )


def split_week_periods(weeks: Iterable[str]) -> WeekSplit:
    """Split weeks into an early and a late half.

    Week keys sort chronologically as strings (ISO dates). The early half gets
    floor(N / 2) weeks, so with an odd count the extra week lands in the late
    half, and a single week yields an empty early half.
    """
    ordered = sorted(set(weeks))
    mid = len(ordered) // 2
    return WeekSplit(early=frozenset(ordered[:mid]), late=frozenset(ordered[mid:]))


def distinct_weeks(rows: Iterable[RowLike]) -> list[str]:
    weeks = {_as_weekly_row(row).time_bucket for row in rows}
    return sorted(week for week in weeks if week)


def back_solve_previous(
    totals: MetricValues,
    early: MetricValues,
    late: MetricValues,
) -> MetricValues:
    """Baseline that makes percentage_change(totals, baseline) equal late vs early.

    Solving (totals - x) / x == (late - early) / early gives
    x = totals * early / late. When the late half is zero the early total is
    used unscaled. CTR and position are already averages and are taken from
    the early half directly.
    """
    solved: dict[str, float] = {}
    for field_name in ADDITIVE_FIELDS:
        total_value = getattr(totals, field_name)
        early_value = getattr(early, field_name)
        late_value = getattr(late, field_name)
        if late_value > 0:
            solved[field_name] = total_value * early_value / late_value
        else:
            solved[field_name] = early_value
    return MetricValues(
        impressions=solved["impressions"],
        clicks=solved["clicks"],
        conversions=solved["conversions"],
        ctr=early.ctr,
        position=early.position,
    )


def calculate_metrics_with_deltas(
    base_rows: Iterable[RowLike],
    delta_rows: Iterable[RowLike] | None = None,
) -> MetricsWithDelta:
    """Totals for the selected weeks with a comparable previous period.

    `base_rows` cover exactly the selected weeks. `delta_rows` cover the
    comparison window, which is usually the same weeks but includes one extra
    preceding week when a single week is selected. Fewer than two distinct
    weeks in the comparison window means no previous period.
    """
    totals = aggregate_metrics(base_rows)
    if delta_rows is None:
        return MetricsWithDelta.from_totals(totals)

    comparison_rows = [_as_weekly_row(row) for row in delta_rows]
    weeks = distinct_weeks(comparison_rows)
    if len(weeks) < 2:
        return MetricsWithDelta.from_totals(totals)

    split = split_week_periods(weeks)
    early_metrics = aggregate_metrics(comparison_rows, split.early)
    late_metrics = aggregate_metrics(comparison_rows, split.late)
    return MetricsWithDelta.from_totals(
        totals,
        previous_period=back_solve_previous(totals, early_metrics, late_metrics),
    )
