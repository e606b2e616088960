"""Unit tests for the recommendation rule catalog and engine."""

from dataclasses import replace

import pytest

from revenue_sentry.schemas.costs import CostRecord, PeriodCosts
from revenue_sentry.services.analytics.cost_aggregator import cost_aggregator
from revenue_sentry.services.analytics.cost_analyzer import cost_analyzer
from revenue_sentry.services.analytics.kpi_engine import KPISet
from revenue_sentry.services.analytics.recommendation_engine import recommendation_engine
from revenue_sentry.services.analytics.recommendation_rules import Recommendation, slugify


@pytest.fixture
def healthy_kpis() -> KPISet:
    """A 3-star snapshot inside every target band."""
    return KPISet(
        revpar=70, adr=100, occupancy=70, gop=9000, gop_margin=30,
        trevpar=80, goppar=30, cppr=10, cpor=10,
        total_revenue=10000, total_costs=1000, rooms_sold=300,
    )


def _costs(period="2024-06", **amounts) -> PeriodCosts:
    return PeriodCosts(
        period=period,
        records=[CostRecord(category=category, label=category, amount=amount) for category, amount in amounts.items()],
    )


def _ids(recommendations) -> list[str]:
    return [r.id for r in recommendations]


def _recommend(kpis, profile, costs=None, revenues=None, analyses=None):
    return recommendation_engine.generate_recommendations(costs, revenues or [], kpis, analyses or [], profile)


class TestProfitabilityRules:
    def test_margin_under_ten_is_critical_and_first(self, healthy_kpis, profile):
        kpis = replace(healthy_kpis, gop_margin=8, total_revenue=100000, total_costs=92000, gop=8000)
        ranked = _recommend(kpis, profile)

        assert ranked[0].id == "gop-margin-low"
        assert ranked[0].priority == "critica"
        assert ranked[0].difficulty == "complessa"
        assert ranked[0].estimated_impact == 5000
        assert [r.priority for r in ranked].count("critica") == 1

    def test_margin_under_twenty_is_high(self, healthy_kpis, profile):
        ranked = _recommend(replace(healthy_kpis, gop_margin=15), profile)
        [margin] = [r for r in ranked if r.id == "gop-margin-low"]
        assert margin.priority == "alta"

    def test_margin_rule_needs_revenue(self, healthy_kpis, profile):
        kpis = replace(healthy_kpis, gop_margin=0, total_revenue=0)
        assert "gop-margin-low" not in _ids(_recommend(kpis, profile))

    def test_goppar_below_benchmark(self, healthy_kpis, profile):
        # 3-star benchmark 25, rule fires under 17.5
        ranked = _recommend(replace(healthy_kpis, goppar=10), profile)
        [goppar] = [r for r in ranked if r.id == "goppar-below-benchmark"]
        # (25 - 10) x 20 rooms x 30 days x 0.30
        assert goppar.estimated_impact == 2700


class TestPricingRules:
    def test_revpar_below_benchmark(self, healthy_kpis, profile):
        kpis = replace(healthy_kpis, revpar=30, trevpar=40)
        [revpar] = [r for r in _recommend(kpis, profile) if r.id == "revpar-below-benchmark"]
        # 3-star RevPAR benchmark: 90 x 65% = 58.5
        assert revpar.estimated_impact == round((58.5 - 30) * 600 * 0.25)
        assert revpar.priority == "alta"

    def test_rate_below_demand(self, healthy_kpis, profile):
        # 60 / 0.9 = 66.7, under the 80 floor
        kpis = replace(healthy_kpis, adr=60, occupancy=90, revpar=54, trevpar=60)
        assert "rate-below-demand" in _ids(_recommend(kpis, profile))

    def test_rate_above_demand(self, healthy_kpis, profile):
        # 150 / 0.5 = 300, over the 200 ceiling
        kpis = replace(healthy_kpis, adr=150, occupancy=50, revpar=75, trevpar=85)
        [rate] = [r for r in _recommend(kpis, profile) if r.id == "rate-above-demand"]
        # 5 points x 600 room-nights x 150
        assert rate.estimated_impact == 4500

    def test_ancillary_revenue_low(self, healthy_kpis, profile):
        kpis = replace(healthy_kpis, trevpar=72)
        [ancillary] = [r for r in _recommend(kpis, profile) if r.id == "ancillary-revenue-low"]
        # (77 - 72) x 600 x 0.5
        assert ancillary.estimated_impact == 1500


class TestAcquisitionCost:
    def test_cac_high(self, healthy_kpis, profile):
        kpis = replace(healthy_kpis, cac=40)
        ranked = _recommend(kpis, profile, costs=_costs(marketing=4000))
        [cac] = [r for r in ranked if r.id == "cac-high"]
        # excess 15 x 100 bookings x 0.5
        assert cac.estimated_impact == 750
        assert cac.category == "marketing"

    def test_cac_low(self, healthy_kpis, profile):
        [cac] = [r for r in _recommend(replace(healthy_kpis, cac=5), profile) if r.id == "cac-low"]
        assert cac.priority == "bassa"
        assert cac.estimated_impact == 500

    def test_cac_in_band(self, healthy_kpis, profile):
        ids = _ids(_recommend(replace(healthy_kpis, cac=15), profile))
        assert "cac-high" not in ids
        assert "cac-low" not in ids


class TestOccupancyRules:
    def test_declining_trend_and_low_latest(self, healthy_kpis, profile, declining_periods):
        ranked = _recommend(healthy_kpis, profile, revenues=declining_periods)
        ids = _ids(ranked)
        assert "occupancy-trend-declining" in ids
        # Latest month at 55% is under the 60% floor
        assert "occupancy-low" in ids
        [trend] = [r for r in ranked if r.id == "occupancy-trend-declining"]
        assert trend.estimated_impact == 9000

    def test_rising_trend(self, healthy_kpis, profile, growing_periods):
        ranked = _recommend(healthy_kpis, profile, revenues=growing_periods)
        [trend] = [r for r in ranked if r.id == "occupancy-trend-rising"]
        assert trend.priority == "media"
        assert "occupancy-trend-declining" not in _ids(ranked)


class TestCostRules:
    def test_category_anomaly_and_benchmark(self, healthy_kpis, profile):
        current = cost_aggregator.aggregate(_costs("2024-06", utilities=6500))
        previous = cost_aggregator.aggregate(_costs("2024-05", utilities=5000))
        analyses = cost_analyzer.analyze_costs(current, previous, profile)
        ranked = _recommend(healthy_kpis, profile, analyses=analyses)

        assert _ids(ranked)[:2] == ["anomaly-utilities", "benchmark-utilities"]
        assert ranked[0].estimated_impact == 975
        assert ranked[1].estimated_impact == 300

    def test_too_many_suppliers(self, healthy_kpis, profile):
        costs = PeriodCosts(period="2024-06", records=[
            CostRecord(category="fnb_suppliers", label=f"Supplier {i}", amount=100) for i in range(11)
        ])
        [suppliers] = [r for r in _recommend(healthy_kpis, profile, costs=costs) if r.id == "too-many-suppliers"]
        assert suppliers.estimated_impact == 88
        assert suppliers.difficulty == "facile"

    def test_ten_suppliers_is_fine(self, healthy_kpis, profile):
        costs = PeriodCosts(period="2024-06", records=[
            CostRecord(category="fnb_suppliers", label=f"Supplier {i}", amount=100) for i in range(10)
        ])
        assert "too-many-suppliers" not in _ids(_recommend(healthy_kpis, profile, costs=costs))

    def test_utilities_excessive(self, healthy_kpis, profile):
        [utilities] = [
            r for r in _recommend(healthy_kpis, profile, costs=_costs(utilities=7000))
            if r.id == "utilities-excessive"
        ]
        assert utilities.estimated_impact == 1400

    def test_utilities_at_threshold_not_flagged(self, healthy_kpis, profile):
        assert "utilities-excessive" not in _ids(_recommend(healthy_kpis, profile, costs=_costs(utilities=6500)))

    def test_rules_read_latest_cost_period(self, healthy_kpis, profile):
        costs = [_costs("2024-05", utilities=9000), _costs("2024-06", utilities=1000)]
        assert "utilities-excessive" not in _ids(_recommend(healthy_kpis, profile, costs=costs))

    def test_cpor_and_cppr_high(self, healthy_kpis, profile):
        ids = _ids(_recommend(replace(healthy_kpis, cpor=50, cppr=50), profile))
        assert "cpor-high" in ids
        assert "cppr-high" in ids


class TestFallbackAndRanking:
    def test_keep_monitoring_when_nothing_fires(self, healthy_kpis, profile):
        ranked = _recommend(healthy_kpis, profile, costs=_costs(payroll=1000))
        assert _ids(ranked) == ["keep-monitoring"]
        assert ranked[0].priority == "bassa"
        assert ranked[0].estimated_impact == 0

    def test_no_data_no_recommendations(self, profile):
        assert _recommend(KPISet.empty(), profile) == []

    def test_rank_by_priority_then_impact(self):
        def rec(rec_id, priority, amount):
            return Recommendation(rec_id, "general", rec_id, "", amount, "facile", priority)

        ranked = recommendation_engine.rank([
            rec("small-high", "alta", 100),
            rec("big-medium", "media", 10000),
            rec("critical", "critica", 1),
            rec("big-high", "alta", 500),
        ])
        assert _ids(ranked) == ["critical", "big-high", "small-high", "big-medium"]

    def test_slugify(self):
        assert slugify("fnb_suppliers") == "fnb-suppliers"
        assert slugify("Food  and Beverage") == "food-and-beverage"


class TestAlerts:
    def test_category_swing_over_thirty_percent(self, healthy_kpis, profile):
        current = cost_aggregator.aggregate(_costs("2024-06", utilities=6600))
        previous = cost_aggregator.aggregate(_costs("2024-05", utilities=5000))
        analyses = cost_analyzer.analyze_costs(current, previous, profile)

        [alert] = recommendation_engine.generate_alerts(analyses, healthy_kpis)
        assert alert.id == "alert-anomaly-utilities"
        assert alert.severity == "critica"
        assert alert.message == "Utilities: change of +32%"

    def test_anomaly_under_thirty_percent_is_quiet(self, healthy_kpis, profile):
        current = cost_aggregator.aggregate(_costs("2024-06", utilities=6400))
        previous = cost_aggregator.aggregate(_costs("2024-05", utilities=5000))
        analyses = cost_analyzer.analyze_costs(current, previous, profile)
        # +28% is an anomaly for utilities but below the alert threshold
        assert analyses[0].anomaly
        assert recommendation_engine.generate_alerts(analyses, healthy_kpis) == []

    def test_negative_gop(self):
        kpis = KPISet(gop=-500, gop_margin=-50, total_revenue=1000, total_costs=1500)
        alerts = recommendation_engine.generate_alerts([], kpis)
        assert [a.id for a in alerts] == ["alert-gop-negative", "alert-gop-margin-critical"]
        assert [a.severity for a in alerts] == ["critica", "alta"]

    def test_no_margin_alert_without_revenue(self):
        assert recommendation_engine.generate_alerts(None, KPISet.empty()) == []
