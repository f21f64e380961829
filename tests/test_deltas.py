import math

import pytest

from weekly_seo_dashboard.deltas import (
    calculate_metric_deltas,
    ctr_points_change,
    percentage_change,
    position_delta,
    previous_ctr,
    previous_from_delta_pct,
)
from weekly_seo_dashboard.models import MetricValues


@pytest.mark.parametrize("value", [1.0, 7.0, 800.0, 123456.0])
def test_percentage_change_is_zero_for_equal_values(value: float) -> None:
    assert percentage_change(value, value) == 0.0


def test_percentage_change_from_zero_baseline() -> None:
    assert percentage_change(5, 0) == math.inf
    assert percentage_change(0, 0) == 0.0
    assert percentage_change(5, None) == 0.0


def test_percentage_change_negative_delta() -> None:
    assert percentage_change(80, 100) == pytest.approx(-0.2)
    assert percentage_change(1000, 800) == pytest.approx(0.25)


def test_position_delta_is_antisymmetric() -> None:
    assert position_delta(8.0, 10.0) == 2.0
    assert position_delta(10.0, 8.0) == -2.0


def test_position_delta_missing_inputs() -> None:
    assert position_delta(3.0, 0) == 0.0
    assert position_delta(3.0, None) == 0.0
    assert position_delta(None, 5.0) == 0.0


def test_ctr_points_change_uses_percentage_points() -> None:
    assert ctr_points_change(0.06, 0.04) == pytest.approx(2.0)
    assert ctr_points_change(None, None) == 0.0
    assert ctr_points_change(0.05, None) == pytest.approx(5.0)


def test_ctr_points_change_keeps_non_finite_values() -> None:
    assert math.isnan(ctr_points_change(math.nan, 0.1))
    assert ctr_points_change(math.inf, 0.1) == math.inf


def test_previous_from_delta_pct() -> None:
    assert previous_from_delta_pct(125, 0.25) == pytest.approx(100.0)
    assert previous_from_delta_pct(125, -1) == 0.0
    assert previous_from_delta_pct(125, -1.5) == 0.0


@pytest.mark.parametrize("current", [1.0, 50.0, 9876.5])
@pytest.mark.parametrize("delta_pct", [-0.99, -0.4, 0.0, 0.25, 3.0])
def test_previous_from_delta_pct_inverts_percentage_change(current: float, delta_pct: float) -> None:
    previous = previous_from_delta_pct(current, delta_pct)
    assert percentage_change(current, previous) == pytest.approx(delta_pct)


def test_previous_ctr_rebuilds_from_deltas() -> None:
    assert previous_ctr(1200, 60, 0.2, 0.5) == pytest.approx(0.04)
    assert previous_ctr(1000, 50) == pytest.approx(0.05)


def test_previous_ctr_without_previous_impressions() -> None:
    assert previous_ctr(0, 0) == 0.0
    assert previous_ctr(100, 5, -1.0, 0.0) == 0.0


def test_calculate_metric_deltas_applies_each_formula() -> None:
    current = MetricValues(impressions=1000, clicks=50, conversions=5, ctr=0.05, position=10)
    previous = MetricValues(impressions=800, clicks=40, conversions=4, ctr=0.04, position=12)

    deltas = calculate_metric_deltas(current, previous)

    assert deltas.impressions_change == pytest.approx(0.25)
    assert deltas.clicks_change == pytest.approx(0.25)
    assert deltas.conversions_change == pytest.approx(0.25)
    assert deltas.ctr_change == pytest.approx(1.0)
    assert deltas.position_change == pytest.approx(2.0)


def test_calculate_metric_deltas_without_previous_period() -> None:
    current = MetricValues(impressions=1000, clicks=50, conversions=5, ctr=0.05, position=10)

    deltas = calculate_metric_deltas(current)

    assert deltas.impressions_change == 0.0
    assert deltas.clicks_change == 0.0
    assert deltas.conversions_change == 0.0
    assert deltas.position_change == 0.0
    assert deltas.ctr_change == pytest.approx(5.0)


def test_calculate_metric_deltas_new_conversions() -> None:
    current = MetricValues(impressions=10, clicks=1, conversions=3, ctr=0.1, position=4)
    previous = MetricValues(impressions=10, clicks=1, conversions=0, ctr=0.1, position=4)

    deltas = calculate_metric_deltas(current, previous)

    assert deltas.conversions_change == math.inf
    assert deltas.impressions_change == 0.0
