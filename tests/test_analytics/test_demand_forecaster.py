"""Unit tests for the demand forecaster."""

import datetime as dt

import pytest

from revenue_sentry.services.analytics.demand_forecaster import (
    ForecastStats,
    demand_forecaster,
    moving_average,
)


class TestMovingAverage:
    def test_trailing_window(self):
        assert moving_average([1, 2, 3], 2) == pytest.approx([1, 1.5, 2.5])

    def test_window_longer_than_series(self):
        assert moving_average([2, 4], 7) == pytest.approx([3, 3])

    def test_empty(self):
        assert moving_average([], 7) == []


class TestForecast:
    """Projection length, dates, confidence decay and clamping."""

    def test_flat_history_projects_flat(self, june_history):
        points = demand_forecaster.forecast(june_history, 7)

        assert len(points) == 7
        assert points[0].date == june_history[-1].date + dt.timedelta(days=1)
        assert [p.date for p in points] == [
            points[0].date + dt.timedelta(days=i) for i in range(7)
        ]
        assert all(p.predicted_revenue == pytest.approx(1000) for p in points)
        assert all(p.predicted_occupancy == pytest.approx(70) for p in points)

    def test_confidence_decays_to_floor(self, june_history):
        points = demand_forecaster.forecast(june_history, 30)
        confidences = [p.confidence for p in points]
        assert confidences[0] == 1.0
        assert confidences == sorted(confidences, reverse=True)
        assert min(confidences) >= 0.3
        # last step: 1 - 29/30 * 0.7
        assert confidences[-1] == pytest.approx(1 - 29 / 30 * 0.7, abs=1e-4)

    def test_empty_history(self):
        assert demand_forecaster.forecast([], 7) == []

    def test_non_positive_horizon(self, june_history):
        assert demand_forecaster.forecast(june_history, 0) == []
        assert demand_forecaster.forecast(june_history, -3) == []

    def test_occupancy_clamped_and_revenue_floored(self, daily_factory):
        start = dt.date(2024, 6, 3)
        history = daily_factory(start, 7, revenue=5000, occupancy=20)
        history += daily_factory(start + dt.timedelta(days=7), 7, revenue=200, occupancy=100)
        points = demand_forecaster.forecast(history, 30)

        assert all(0 <= p.predicted_occupancy <= 100 for p in points)
        assert all(p.predicted_revenue >= 0 for p in points)
        assert any(p.predicted_revenue == 0 for p in points)

    def test_accepts_unsorted_dict_history(self):
        history = [
            {"date": "2024-06-02", "revenue": 1000, "occupancy": 60},
            {"date": "2024-06-01", "revenue": 1000, "occupancy": 60},
        ]
        points = demand_forecaster.forecast(history, 1)
        assert points[0].date == dt.date(2024, 6, 3)


class TestWeekdayCoefficients:
    def test_monday_peak(self, daily_factory):
        records = daily_factory(dt.date(2024, 1, 1), 14)
        records = [
            r.model_copy(update={"revenue": 2000.0}) if r.day_of_week == 0 else r
            for r in records
        ]
        coefficients = demand_forecaster.weekday_coefficients(records)
        overall = (2 * 2000 + 12 * 1000) / 14
        assert coefficients[0] == pytest.approx(2000 / overall)
        assert coefficients[1] == pytest.approx(1000 / overall)

    def test_defaults_without_history(self):
        assert demand_forecaster.weekday_coefficients([]) == {dow: 1.0 for dow in range(7)}


class TestForecastStats:
    def test_empty_forecast(self):
        stats = demand_forecaster.forecast_stats([])
        assert stats == ForecastStats()
        assert stats.to_dict()["confidence_interval"] == {"low": 0, "high": 0}

    def test_band_around_mean(self, june_history):
        stats = demand_forecaster.forecast_stats(demand_forecaster.forecast(june_history, 7))
        assert stats.total_revenue == pytest.approx(7000)
        assert stats.avg_occupancy == pytest.approx(70)
        assert stats.min_revenue == stats.max_revenue == pytest.approx(1000)
        assert stats.confidence_low == pytest.approx(900)
        assert stats.confidence_high == pytest.approx(1100)
