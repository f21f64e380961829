from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable, Sequence

from weekly_seo_dashboard.models import DateWindow


def _clean_weeks(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


def parse_week_selection(
    weeks_param: str | None = None,
    week_param: str | None = None,
    available: Iterable[str] = (),
) -> list[str]:
    """Resolve the selected weeks from request parameters.

    `weeks` is a comma-separated list; `week` is the older single-week form.
    With neither, every available week is selected. Weeks that are not
    available are dropped.
    """
    available_set = set(available)
    if weeks_param:
        requested = _clean_weeks(weeks_param)
    elif week_param:
        requested = _clean_weeks(week_param)[:1]
    else:
        requested = list(available_set)
    return sorted({week for week in requested if week in available_set})


def resolve_delta_weeks(selected: Sequence[str], available: Iterable[str]) -> list[str]:
    """Weeks used for the delta of `selected`.

    A single selected week cannot be split into two halves, so the closest
    older available week is added to give a week-over-week comparison.
    """
    if len(selected) != 1:
        return list(selected)

    week = selected[0]
    newest_first = sorted(set(available), reverse=True)
    if week not in newest_first:
        return list(selected)
    idx = newest_first.index(week)
    if idx + 1 >= len(newest_first):
        return list(selected)
    return [newest_first[idx + 1], week]


def week_range(week_ending: str) -> DateWindow:
    """Monday-Sunday window that closes on `week_ending`."""
    end = date.fromisoformat(week_ending[:10])
    start = end - timedelta(days=end.weekday())
    return DateWindow(f"Week ending {end.isoformat()}", start, end)


def week_query_param(selected: Iterable[str]) -> str:
    return ",".join(sorted(set(selected)))
