"""Unit tests for the trend context builder."""

import datetime as dt

import pytest

from revenue_sentry.services.analytics.context_builder import (
    BenchmarkSet,
    TrendMetric,
    compute_trend,
    context_builder,
    run_section,
)
from revenue_sentry.services.analytics.kpi_engine import kpi_engine


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _context(profile, periods, costs, history=None, current_month=None):
    kpis = kpi_engine.compute_kpis(costs, periods, profile)
    return context_builder.build_context(periods, costs, history, kpis, profile, current_month=current_month)


@pytest.fixture
def three_summers(daily_factory):
    """June at 60%, July at 90%, August at 30% occupancy."""
    return (
        daily_factory(dt.date(2024, 6, 1), 30, occupancy=60)
        + daily_factory(dt.date(2024, 7, 1), 31, occupancy=90)
        + daily_factory(dt.date(2024, 8, 1), 31, occupancy=30)
    )


class TestComputeTrend:
    """3 recent vs 3 previous periods."""

    def test_occupancy_rise_is_high_significance(self):
        trend = compute_trend([40, 40, 40, 55, 55, 55])
        assert trend.direction == "up"
        assert trend.significance == "high"
        assert trend.change_percent == pytest.approx(37.5)
        assert trend.absolute_change == pytest.approx(15)
        assert trend.strength == 10

    @pytest.mark.parametrize("values,direction,significance", [
        ([100, 100, 100, 101, 101, 101], "stable", "low"),
        ([100, 100, 100, 95, 95, 95], "down", "low"),
        ([100, 100, 100, 110, 110, 110], "up", "medium"),
        ([100, 100, 100, 80, 80, 80], "down", "high"),
    ])
    def test_tiers(self, values, direction, significance):
        trend = compute_trend(values)
        assert trend.direction == direction
        assert trend.significance == significance

    def test_only_last_six_values_count(self):
        trend = compute_trend([500, 500, 100, 100, 100, 100, 100, 100])
        assert trend.direction == "stable"
        assert trend.change_percent == 0

    def test_fewer_than_six_values_is_neutral(self):
        assert compute_trend([40, 40, 55, 55, 55]) == TrendMetric()

    def test_zero_baseline_is_neutral(self):
        assert compute_trend([0, 0, 0, 10, 10, 10]) == TrendMetric()

    def test_negative_baseline_uses_absolute_value(self):
        # Losses shrinking from -10 to -5 is an improvement
        trend = compute_trend([-10, -10, -10, -5, -5, -5])
        assert trend.direction == "up"
        assert trend.change_percent == pytest.approx(50)


class TestBuildContext:
    """Sections computed from six months of revenue and cost data."""

    def test_trends(self, profile, growing_periods, spiking_costs):
        ctx = _context(profile, growing_periods, spiking_costs)

        assert ctx.trends.occupancy.direction == "up"
        assert ctx.trends.occupancy.significance == "high"
        assert ctx.trends.revenue.change_percent == pytest.approx(20)
        assert ctx.trends.costs.change_percent == pytest.approx(20)
        assert ctx.trends.profitability.direction == "up"
        assert ctx.degraded_sections == []

    def test_cost_per_guest_anomaly(self, profile, growing_periods, spiking_costs):
        ctx = _context(profile, growing_periods, spiking_costs)

        [anomaly] = [a for a in ctx.anomalies if a.metric == "cost_per_guest"]
        # 16000 / 240 guests against (11000 avg cost / 220 avg guests)
        assert anomaly.actual == pytest.approx(66.67)
        assert anomaly.expected == pytest.approx(50)
        assert anomaly.deviation == pytest.approx(33.33)
        assert anomaly.severity == "critical"
        assert anomaly.period == "2024-06"

    def test_no_cost_anomaly_when_flat(self, profile, growing_periods, flat_costs):
        ctx = _context(profile, growing_periods, flat_costs)
        assert [a for a in ctx.anomalies if a.metric == "cost_per_guest"] == []

    def test_revenue_drop_anomaly(self, profile, declining_periods, flat_costs):
        ctx = _context(profile, declining_periods, flat_costs)
        [anomaly] = [a for a in ctx.anomalies if a.type == "revenue"]
        assert anomaly.severity == "critical"
        assert anomaly.deviation == pytest.approx(-33.33)

    def test_short_history_is_neutral(self, profile, periods_factory, costs_factory):
        periods = periods_factory([20000] * 4, [50] * 4)
        ctx = _context(profile, periods, costs_factory([10000] * 4))
        assert ctx.trends.revenue == TrendMetric()
        assert ctx.trends.occupancy == TrendMetric()
        assert ctx.anomalies == []

    def test_benchmarks_default_tier(self, growing_periods, flat_costs):
        from revenue_sentry.schemas.revenue import PropertyProfile

        unrated = PropertyProfile(total_rooms=20)
        ctx = _context(unrated, growing_periods, flat_costs)
        assert ctx.benchmarks.tier == 3
        assert ctx.benchmarks.benchmark("adr") == 90
        assert ctx.benchmarks.gap("adr") == pytest.approx((100 - 90) / 90, abs=1e-4)
        assert ctx.benchmarks.benchmark("occupancy") == 65

    def test_failing_section_falls_back(self, profile, growing_periods, flat_costs, monkeypatch):
        def broken(*args):
            raise RuntimeError("benchmark table unavailable")

        monkeypatch.setattr(context_builder, "_benchmarks", broken)
        ctx = _context(profile, growing_periods, flat_costs)

        assert ctx.degraded_sections == ["benchmarks"]
        assert ctx.benchmarks == BenchmarkSet()
        # Other sections are unaffected
        assert ctx.trends.occupancy.direction == "up"

    def test_run_section_records_error(self):
        result = run_section("demo", lambda: 1 / 0, list)
        assert result.degraded
        assert result.value == []
        assert "division by zero" in result.error

    def test_daily_spike_appended_as_anomaly(self, profile, growing_periods, flat_costs, daily_factory):
        history = daily_factory(dt.date(2024, 6, 1), 10, total_costs=500)
        history.append(daily_factory(dt.date(2024, 6, 11), 1, total_costs=5000)[0])
        ctx = _context(profile, growing_periods, flat_costs, history=history)

        assert len(ctx.cost_anomalies) == 1
        daily = [a for a in ctx.anomalies if a.metric == "daily_cost_per_guest"]
        assert len(daily) == 1
        assert daily[0].period == "2024-06-11"
        assert daily[0].severity == "critical"

    def test_dateless_daily_record_is_skipped(self, profile, growing_periods, flat_costs, daily_factory):
        history = daily_factory(dt.date(2024, 6, 1), 10) + [{"revenue": 900, "occupancy": 60}]
        ctx = _context(profile, growing_periods, flat_costs, history=history)

        assert len(ctx.daily_history) == 10
        assert ctx.degraded_sections == []
        assert ctx.trends.revenue.direction == "up"
        assert ctx.seasonality.current_month == 6

    def test_lookback_limits_daily_scan(self, profile, growing_periods, flat_costs, daily_factory):
        # Spike on the first day, then ten ordinary days
        history = daily_factory(dt.date(2024, 6, 1), 1, total_costs=5000) + daily_factory(dt.date(2024, 6, 2), 10)
        kpis = kpi_engine.compute_kpis(flat_costs, growing_periods, profile)

        full = context_builder.build_context(growing_periods, flat_costs, history, kpis, profile)
        recent = context_builder.build_context(
            growing_periods, flat_costs, history, kpis, profile, anomaly_lookback_days=5
        )

        assert [a.date for a in full.cost_anomalies] == ["2024-06-01"]
        assert recent.cost_anomalies == []


class TestSeasonality:
    def test_next_month_peak(self, profile, growing_periods, flat_costs, three_summers):
        ctx = _context(profile, growing_periods, flat_costs, history=three_summers, current_month=6)
        season = ctx.seasonality
        assert season.current_month == 6
        assert season.current_factor == pytest.approx(1.0)
        assert season.next_factor == pytest.approx(1.5)
        assert not season.is_high_season
        assert [m["month"] for m in season.monthly_pattern] == [6, 7, 8]

    def test_low_season(self, profile, growing_periods, flat_costs, three_summers):
        ctx = _context(profile, growing_periods, flat_costs, history=three_summers, current_month=8)
        assert ctx.seasonality.is_low_season
        # September has no history
        assert ctx.seasonality.next_factor == 1.0

    def test_month_from_period_string(self, profile, growing_periods, flat_costs, three_summers):
        ctx = _context(profile, growing_periods, flat_costs, history=three_summers, current_month="2024-07")
        assert ctx.seasonality.current_month == 7
        assert ctx.seasonality.is_high_season

    def test_month_defaults_to_latest_period(self, profile, growing_periods, flat_costs):
        ctx = _context(profile, growing_periods, flat_costs)
        assert ctx.seasonality.current_month == 6
        assert ctx.seasonality.current_factor == 1.0

    def test_month_from_history_without_periods(self, profile, three_summers):
        ctx = _context(profile, [], None, history=three_summers)
        assert ctx.seasonality.current_month == 8
