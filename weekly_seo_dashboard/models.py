from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from datetime import date
from typing import Any, Mapping


# Backend column names accepted next to the canonical field names.
ROW_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "time_bucket": ("time_bucket", "week_ending"),
    "impressions": ("impressions", "gsc_impressions"),
    "clicks": ("clicks", "gsc_clicks"),
    "conversions": ("conversions", "amplitude_conversions"),
    "position": ("position", "gsc_position"),
    "ctr": ("ctr", "gsc_ctr"),
}


def _as_optional_float(raw: Any) -> float | None:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if math.isnan(value):
        return None
    return value


def _pick(record: Mapping[str, Any], field_name: str) -> Any:
    for key in ROW_FIELD_ALIASES[field_name]:
        if key in record and record[key] is not None:
            return record[key]
    return None


@dataclass(frozen=True)
class DateWindow:
    name: str
    start: date
    end: date


@dataclass(frozen=True)
class WeeklyRow:
    """One weekly observation for a site, a cluster or a URL."""

    time_bucket: str | None = None
    impressions: float | None = None
    clicks: float | None = None
    conversions: float | None = None
    position: float | None = None
    ctr: float | None = None

    @classmethod
    def from_mapping(cls, record: Mapping[str, Any]) -> "WeeklyRow":
        bucket_raw = _pick(record, "time_bucket")
        bucket = str(bucket_raw).strip() if bucket_raw is not None else ""
        return cls(
            time_bucket=bucket or None,
            impressions=_as_optional_float(_pick(record, "impressions")),
            clicks=_as_optional_float(_pick(record, "clicks")),
            conversions=_as_optional_float(_pick(record, "conversions")),
            position=_as_optional_float(_pick(record, "position")),
            ctr=_as_optional_float(_pick(record, "ctr")),
        )


@dataclass(frozen=True)
class MetricValues:
    impressions: float = 0.0
    clicks: float = 0.0
    conversions: float = 0.0
    ctr: float = 0.0
    position: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class MetricsWithDelta(MetricValues):
    """Totals for the displayed weeks plus the baseline deltas are computed against.

    `previous_period` is back-solved so that the standard delta formulas applied
    to (self, previous_period) give the change of the comparison window.
    """

    previous_period: MetricValues | None = None

    @classmethod
    def from_totals(
        cls,
        totals: MetricValues,
        previous_period: MetricValues | None = None,
    ) -> "MetricsWithDelta":
        return cls(
            impressions=totals.impressions,
            clicks=totals.clicks,
            conversions=totals.conversions,
            ctr=totals.ctr,
            position=totals.position,
            previous_period=previous_period,
        )

    @property
    def totals(self) -> MetricValues:
        return MetricValues(
            impressions=self.impressions,
            clicks=self.clicks,
            conversions=self.conversions,
            ctr=self.ctr,
            position=self.position,
        )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = self.totals.to_dict()
        if self.previous_period is not None:
            payload["previous_period"] = self.previous_period.to_dict()
        return payload


@dataclass(frozen=True)
class DeltaCalculations:
    impressions_change: float  # ratio
    clicks_change: float  # ratio
    conversions_change: float  # ratio
    ctr_change: float  # percentage points
    position_change: float  # absolute, positive is an improvement

    def to_dict(self) -> dict[str, float]:
        return asdict(self)
