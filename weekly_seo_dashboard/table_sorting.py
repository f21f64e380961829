"""Sort keys for the cluster and URL tables.

Non-numeric, absent and non-finite values all sort as 0.0 so ordering is
stable in both absolute and delta mode.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Any, Callable, Mapping

from weekly_seo_dashboard.deltas import ctr_points_change, previous_ctr


class DeltaUnit(str, Enum):
    PERCENT = "percent"
    ABSOLUTE = "absolute"
    POINTS = "points"


DELTA_FIELD_MAP: dict[str, tuple[str, DeltaUnit]] = {
    "clicks": ("clicks_delta_pct", DeltaUnit.PERCENT),
    "impressions": ("impressions_delta_pct", DeltaUnit.PERCENT),
    "position": ("position_delta", DeltaUnit.ABSOLUTE),
    "position_average": ("position_delta", DeltaUnit.ABSOLUTE),
    "ctr_average": ("ctr_delta", DeltaUnit.POINTS),
    "conversions": ("conversions_delta_pct", DeltaUnit.PERCENT),
}

CTR_FIELDS = frozenset({"ctr", "ctr_average", "gsc_ctr"})

# Row keys used to rebuild the previous CTR, canonical names first.
_IMPRESSIONS_KEYS = ("impressions", "gsc_impressions")
_CLICKS_KEYS = ("clicks", "gsc_clicks")


def delta_field_for(field_id: str) -> tuple[str, DeltaUnit]:
    mapped = DELTA_FIELD_MAP.get(field_id)
    if mapped is not None:
        return mapped
    if field_id in CTR_FIELDS or field_id.endswith("_ctr"):
        return f"{field_id}_delta", DeltaUnit.POINTS
    if "position" in field_id:
        return f"{field_id}_delta", DeltaUnit.ABSOLUTE
    return f"{field_id}_delta_pct", DeltaUnit.PERCENT


def _is_number(raw: Any) -> bool:
    return isinstance(raw, (int, float)) and not isinstance(raw, bool)


def _number(raw: Any) -> float:
    return float(raw) if _is_number(raw) else 0.0


def _finite_or_none(raw: Any) -> float | None:
    if not _is_number(raw) or not math.isfinite(raw):
        return None
    return float(raw)


def _coerce(raw: Any) -> float:
    value = _number(raw)
    return value if math.isfinite(value) else 0.0


def _first_present(row: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if row.get(key) is not None:
            return row[key]
    return None


def _ctr_delta_sort_value(row: Mapping[str, Any], field_id: str) -> float:
    for precomputed_key in (delta_field_for(field_id)[0], "ctr_delta"):
        if _is_number(row.get(precomputed_key)):
            return _coerce(row[precomputed_key])

    rebuilt_previous = previous_ctr(
        _coerce(_first_present(row, _IMPRESSIONS_KEYS)),
        _coerce(_first_present(row, _CLICKS_KEYS)),
        _finite_or_none(_first_present(row, tuple(f"{key}_delta_pct" for key in _IMPRESSIONS_KEYS))),
        _finite_or_none(_first_present(row, tuple(f"{key}_delta_pct" for key in _CLICKS_KEYS))),
    )
    return _coerce(ctr_points_change(_number(row.get(field_id)), rebuilt_previous))


def resolve_sort_value(
    row: Mapping[str, Any],
    field_id: str,
    delta_mode: bool,
    fallback_accessor: Callable[[str], Any] | None = None,
) -> float:
    """Numeric value a table column sorts by.

    In delta mode the stored delta companion (see `DELTA_FIELD_MAP`) is used;
    CTR columns fall back to rebuilding the previous CTR from the impressions
    and clicks deltas. Without a companion the absolute value is used.
    """

    def absolute_value() -> float:
        raw = fallback_accessor(field_id) if fallback_accessor is not None else row.get(field_id)
        return _coerce(raw)

    if not delta_mode:
        return absolute_value()

    if field_id in CTR_FIELDS:
        return _ctr_delta_sort_value(row, field_id)

    delta_field, _unit = delta_field_for(field_id)
    if delta_field not in row or row[delta_field] is None:
        return absolute_value()
    return _coerce(row[delta_field])


def sort_rows(
    rows: list[Mapping[str, Any]],
    field_id: str,
    *,
    delta_mode: bool = False,
    descending: bool = True,
) -> list[Mapping[str, Any]]:
    # sorted() is stable, so rows with equal keys keep their incoming order.
    return sorted(
        rows,
        key=lambda row: resolve_sort_value(row, field_id, delta_mode),
        reverse=descending,
    )
