from datetime import date

from weekly_seo_dashboard.time_windows import (
    parse_week_selection,
    resolve_delta_weeks,
    week_query_param,
    week_range,
)


AVAILABLE = ["2024-01-21", "2024-01-14", "2024-01-07"]


def test_weeks_param_drops_unknown_weeks() -> None:
    selected = parse_week_selection("2024-01-14, 2024-01-07,2099-01-01", None, AVAILABLE)

    assert selected == ["2024-01-07", "2024-01-14"]


def test_legacy_week_param_selects_one_week() -> None:
    assert parse_week_selection(None, "2024-01-14", AVAILABLE) == ["2024-01-14"]
    assert parse_week_selection("2024-01-21", "2024-01-14", AVAILABLE) == ["2024-01-21"]


def test_no_params_selects_all_available_weeks() -> None:
    assert parse_week_selection(None, None, AVAILABLE) == ["2024-01-07", "2024-01-14", "2024-01-21"]
    assert parse_week_selection("", "", []) == []


def test_single_week_adds_previous_available_week() -> None:
    assert resolve_delta_weeks(["2024-01-14"], AVAILABLE) == ["2024-01-07", "2024-01-14"]
    assert resolve_delta_weeks(["2024-01-21"], reversed(AVAILABLE)) == ["2024-01-14", "2024-01-21"]


def test_delta_weeks_unchanged_when_no_previous_week() -> None:
    assert resolve_delta_weeks(["2024-01-07"], AVAILABLE) == ["2024-01-07"]
    assert resolve_delta_weeks(["2023-12-31"], AVAILABLE) == ["2023-12-31"]


def test_delta_weeks_unchanged_for_multi_week_selection() -> None:
    selected = ["2024-01-07", "2024-01-14"]

    assert resolve_delta_weeks(selected, AVAILABLE) == selected
    assert resolve_delta_weeks([], AVAILABLE) == []


def test_week_range_runs_monday_to_week_ending() -> None:
    window = week_range("2024-01-07")

    assert window.start == date(2024, 1, 1)
    assert window.end == date(2024, 1, 7)
    assert window.start.weekday() == 0


def test_week_query_param_is_sorted_and_unique() -> None:
    assert week_query_param(["2024-01-14", "2024-01-07", "2024-01-14"]) == "2024-01-07,2024-01-14"
