"""Tests for time-series metrics and anomaly detection."""

import pytest

from rankscope.metrics import (
    calculate_metrics,
    calculate_percentile,
    calculate_velocity,
    calculate_volatility,
    detect_anomalies,
    determine_trend,
    normalize_score,
)
from rankscope.models import Direction, RankPoint, Trend


def _series(*pairs: tuple[int, int], total: int = 130) -> list[RankPoint]:
    return [RankPoint(year=y, rank=r, total_countries=total) for y, r in pairs]


SCENARIO_A = _series((2018, 50), (2019, 40), (2020, 45))


class TestCalculateVelocity:
    def test_scenario_a(self):
        assert calculate_velocity(SCENARIO_A) == pytest.approx(-2.5)

    def test_empty(self):
        assert calculate_velocity([]) == 0.0

    def test_single_point(self):
        assert calculate_velocity(_series((2020, 10))) == 0.0

    def test_zero_year_span(self):
        # Malformed input, but must not divide by zero
        assert calculate_velocity(_series((2020, 10), (2020, 30))) == 0.0

    def test_declining_is_positive(self):
        assert calculate_velocity(_series((2010, 10), (2020, 30))) == pytest.approx(2.0)

    def test_interior_points_ignored(self):
        endpoints = _series((2018, 50), (2020, 45))
        with_interior = _series((2018, 50), (2019, 1), (2020, 45))
        assert calculate_velocity(endpoints) == calculate_velocity(with_interior)

    def test_uses_actual_year_span_with_gaps(self):
        # 2015 -> 2024 is nine years even with missing years in between
        series = _series((2015, 60), (2018, 52), (2024, 42))
        assert calculate_velocity(series) == pytest.approx(-2.0)


class TestCalculateVolatility:
    def test_scenario_b(self):
        # deltas [-10, +5], population stddev
        assert calculate_volatility(SCENARIO_A) == pytest.approx(7.5)

    def test_population_not_sample(self):
        series = _series((2018, 10), (2019, 12), (2020, 10), (2021, 12))
        # deltas [2, -2, 2], mean 2/3; sample stddev would be ~2.309
        assert calculate_volatility(series) == pytest.approx(1.8856, rel=1e-4)

    def test_fewer_than_two_points(self):
        assert calculate_volatility([]) == 0.0
        assert calculate_volatility(_series((2020, 10))) == 0.0

    def test_single_delta_is_zero(self):
        assert calculate_volatility(_series((2018, 50), (2020, 45))) == 0.0

    def test_interior_point_can_change_volatility(self):
        endpoints = _series((2018, 50), (2020, 45))
        with_interior = _series((2018, 50), (2019, 40), (2020, 45))
        assert calculate_volatility(endpoints) != calculate_volatility(with_interior)

    def test_constant_steps(self):
        series = _series((2018, 40), (2019, 37), (2020, 34), (2021, 31))
        assert calculate_volatility(series) == 0.0


class TestDetermineTrend:
    def test_improving(self):
        assert determine_trend(-2.5) is Trend.IMPROVING

    def test_declining(self):
        assert determine_trend(1.0) is Trend.DECLINING

    def test_stable_within_threshold(self):
        assert determine_trend(0.3) is Trend.STABLE
        assert determine_trend(-0.5) is Trend.STABLE
        assert determine_trend(0.5) is Trend.STABLE

    def test_custom_threshold(self):
        assert determine_trend(-2.5, threshold=3.0) is Trend.STABLE
        assert determine_trend(0.2, threshold=0.1) is Trend.DECLINING


class TestCalculateMetrics:
    def test_empty_series(self):
        m = calculate_metrics([])
        assert m.trend is Trend.STABLE
        assert m.velocity == 0.0
        assert m.volatility == 0.0
        assert m.total_years == 0
        assert m.earliest_year == 0
        assert m.latest_year == 0
        assert m.best_rank == 0
        assert m.worst_rank == 0
        assert m.average_rank == 0.0

    def test_scenario_a(self):
        m = calculate_metrics(SCENARIO_A)
        assert m.velocity == pytest.approx(-2.5)
        assert m.volatility == pytest.approx(7.5)
        assert m.trend is Trend.IMPROVING
        assert m.total_years == 3
        assert m.earliest_year == 2018
        assert m.latest_year == 2020
        assert m.best_rank == 40
        assert m.worst_rank == 50
        assert m.average_rank == pytest.approx(45.0)

    def test_single_point(self):
        m = calculate_metrics(_series((2022, 7)))
        assert m.trend is Trend.STABLE
        assert m.best_rank == m.worst_rank == 7
        assert m.earliest_year == m.latest_year == 2022

    def test_stability_threshold_passed_through(self):
        m = calculate_metrics(SCENARIO_A, stability_threshold=5.0)
        assert m.trend is Trend.STABLE

    def test_idempotent(self):
        assert calculate_metrics(SCENARIO_A) == calculate_metrics(SCENARIO_A)


class TestDetectAnomalies:
    def test_scenario_c(self):
        anomalies = detect_anomalies(SCENARIO_A)
        assert len(anomalies) == 1
        a = anomalies[0]
        assert a.year == 2019
        assert a.previous_year == 2018
        assert a.rank_change == -10
        assert a.previous_rank == 50
        assert a.current_rank == 40
        assert a.is_significant is True
        assert a.direction is Direction.IMPROVEMENT

    def test_decline(self):
        anomalies = detect_anomalies(_series((2019, 3), (2020, 13)))
        assert anomalies[0].direction is Direction.DECLINE
        assert anomalies[0].rank_change == 10

    def test_threshold_is_raw_positions(self):
        small_index = _series((2019, 3), (2020, 13), total=200)
        tail = _series((2019, 190), (2020, 200), total=200)
        assert len(detect_anomalies(small_index)) == len(detect_anomalies(tail)) == 1

    def test_custom_threshold(self):
        assert len(detect_anomalies(SCENARIO_A, threshold=5)) == 2
        assert detect_anomalies(SCENARIO_A, threshold=11) == []

    def test_consecutive_entries_across_missing_years(self):
        anomalies = detect_anomalies(_series((2015, 80), (2019, 60)))
        assert anomalies[0].previous_year == 2015

    def test_idempotent(self):
        assert detect_anomalies(SCENARIO_A) == detect_anomalies(SCENARIO_A)

    def test_fewer_than_two_points(self):
        assert detect_anomalies([]) == []
        assert detect_anomalies(_series((2020, 1))) == []


class TestCalculatePercentile:
    def test_top(self):
        assert calculate_percentile(1, 100) == 100.0

    def test_bottom(self):
        assert calculate_percentile(100, 100) == pytest.approx(1.0)

    def test_middle(self):
        assert calculate_percentile(40, 132) == pytest.approx(70.4545, rel=1e-4)

    def test_single_country(self):
        assert calculate_percentile(1, 1) == 100.0

    def test_invalid(self):
        assert calculate_percentile(0, 10) is None
        assert calculate_percentile(11, 10) is None
        assert calculate_percentile(1, 0) is None


class TestNormalizeScore:
    def test_higher_is_better(self):
        assert normalize_score(62.5, 0, 100) == pytest.approx(62.5)

    def test_lower_is_better(self):
        assert normalize_score(2.0, 1.0, 5.0, higher_is_better=False) == pytest.approx(75.0)

    def test_clamped(self):
        assert normalize_score(120.0, 0, 100) == 100.0
        assert normalize_score(-5.0, 0, 100) == 0.0

    def test_degenerate_range(self):
        assert normalize_score(3.0, 3.0, 3.0) == 50.0

    def test_none(self):
        assert normalize_score(None, 0, 100) is None
