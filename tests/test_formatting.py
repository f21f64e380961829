import math

import pytest

from weekly_seo_dashboard.formatting import (
    delta_tone,
    format_compact_number,
    format_ctr,
    format_delta_badge,
    format_number,
    format_percentage_change,
    format_percentage_points,
    format_position,
    format_position_change,
    format_week_display,
    is_significant_change,
)


def test_format_number_uses_dot_thousands() -> None:
    assert format_number(1234567) == "1.234.567"
    assert format_number(999.5) == "1.000"
    assert format_number(None) == "0"
    assert format_number(math.nan) == "0"


@pytest.mark.parametrize(
    ("value", "expected"),
    [(1234567, "1,2M"), (12345, "12k"), (1500, "1,5k"), (999, "999"), (0, "0")],
)
def test_format_compact_number(value: float, expected: str) -> None:
    assert format_compact_number(value) == expected


def test_format_ctr_and_position() -> None:
    assert format_ctr(0.04523) == "4,52%"
    assert format_ctr(0.05) == "5%"
    assert format_ctr(None) == "0%"
    assert format_position(12.567) == "12,6"
    assert format_position(0) == "0"


def test_format_changes() -> None:
    assert format_percentage_change(15.367) == "+15,4%"
    assert format_percentage_change(-8.723) == "-8,7%"
    assert format_percentage_points(2.34) == "+2,3pp"
    assert format_percentage_points(-1.56) == "-1,6pp"
    assert format_percentage_points(None) == "0pp"


def test_format_position_change_arrows() -> None:
    assert format_position_change(-2.3) == "↑ 2,3"
    assert format_position_change(1.5) == "↓ 1,5"
    assert format_position_change(0.01) == "→ 0"


def test_format_week_display() -> None:
    assert format_week_display("2024-01-07") == "01/01 - 07/01/2024"


def test_delta_badge_percent() -> None:
    assert format_delta_badge(0.25) == "+25%"
    assert format_delta_badge(0.1234) == "+12,3%"
    assert format_delta_badge(-0.05) == "-5%"
    assert format_delta_badge(12.5) == "+1.250%"


def test_delta_badge_absolute_with_suffix() -> None:
    assert format_delta_badge(2.0, "absolute", precision=2, suffix="p.p.") == "+2p.p."
    assert format_delta_badge(1.234, "absolute", precision=2) == "+1,23"
    assert format_delta_badge(-1.5, "absolute") == "-1,5"


def test_delta_badge_hidden_and_special_states() -> None:
    assert format_delta_badge(None) is None
    assert format_delta_badge(0.0001) is None
    assert format_delta_badge(0.0001, hide_if_zero=False) == "0%"
    assert format_delta_badge(math.inf) == "novo"
    assert format_delta_badge(math.nan) == "N/A"


def test_delta_tone() -> None:
    assert delta_tone(0.2) == "positive"
    assert delta_tone(-0.2) == "negative"
    assert delta_tone(-0.2, inverted=True) == "positive"
    assert delta_tone(None) == "neutral"
    assert delta_tone(0) == "neutral"


def test_is_significant_change() -> None:
    assert is_significant_change(5) is True
    assert is_significant_change(-7.5) is True
    assert is_significant_change(4.9) is False
    assert is_significant_change(None) is False


def test_infinite_values_render_as_infinity_symbol() -> None:
    assert format_number(math.inf) == "∞"
    assert format_compact_number(math.inf) == "∞"
    assert format_compact_number(-math.inf) == "-∞"
    assert format_position(math.inf) == "∞"
    assert format_ctr(math.inf) == "∞%"
    assert format_percentage_change(math.inf) == "+∞%"
    assert format_percentage_points(-math.inf) == "-∞pp"
