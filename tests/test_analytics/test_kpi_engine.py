"""Unit tests for the KPI engine."""

import pytest
from pydantic import ValidationError

from revenue_sentry.schemas.costs import CostRecord, PeriodCosts
from revenue_sentry.schemas.revenue import PropertyProfile, RevenuePeriod
from revenue_sentry.services.analytics.kpi_engine import KPISet, kpi_engine


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _april_costs() -> PeriodCosts:
    return PeriodCosts(period="2024-04", records=[
        CostRecord(category="payroll", label="salaries", amount=15000),
        CostRecord(category="utilities", label="energy", amount=3000),
        CostRecord(category="marketing", label="ota_commissions", amount=1800),
    ])


def _april_period(**overrides) -> RevenuePeriod:
    data = {
        "period": "2024-04",
        "room_revenue": 30000,
        "fnb_revenue": 5000,
        "ancillary_revenue": 1000,
        "rooms_sold": 300,
        "guest_nights": 600,
    }
    data.update(overrides)
    return RevenuePeriod(**data)


class TestPrimaryKPIs:
    """Occupancy, ADR and RevPAR for a year-round property."""

    def test_revpar_fallback_without_days(self):
        # No period and no opening days: RevPAR comes from ADR x occupancy
        profile = PropertyProfile(total_rooms=20)
        kpis = kpi_engine.compute_kpis(
            None,
            [{"entrateTotali": 10000, "occupazione": 60, "prezzoMedioCamera": 100}],
            profile,
        )
        assert kpis.adr == 100
        assert kpis.occupancy == 60
        assert kpis.revpar == pytest.approx(60)

    def test_direct_formulas_with_calendar_days(self):
        profile = PropertyProfile(total_rooms=20)
        kpis = kpi_engine.compute_kpis(None, [_april_period()], profile)
        # 300 rooms sold / (20 rooms x 30 days)
        assert kpis.occupancy == pytest.approx(50)
        assert kpis.revpar == pytest.approx(50)
        # ADR derived from revenue / rooms sold when not reported
        assert kpis.adr == pytest.approx(100)

    def test_occupancy_clamped(self):
        profile = PropertyProfile(total_rooms=20)
        kpis = kpi_engine.compute_kpis(None, [_april_period(rooms_sold=1000, guest_nights=0)], profile)
        assert kpis.occupancy == 100

    def test_year_round_uses_latest_month(self, profile):
        periods = [
            RevenuePeriod(period="2024-05", occupancy=80, adr=120, room_revenue=1000),
            RevenuePeriod(period="2024-04", occupancy=50, adr=90, room_revenue=1000),
        ]
        kpis = kpi_engine.compute_kpis(None, periods, profile)
        # Sorted by period, so May is the latest
        assert kpis.occupancy == 80
        assert kpis.adr == 120


class TestProfitability:
    """GOP, margins, per-room figures and ROI."""

    def test_full_month(self):
        profile = PropertyProfile(total_rooms=20)
        kpis = kpi_engine.compute_kpis(_april_costs(), [_april_period()], profile)

        assert kpis.total_costs == 19800
        assert kpis.total_revenue == 36000
        assert kpis.gop == 16200
        assert kpis.gop_margin == pytest.approx(45.0)
        assert kpis.trevpar == pytest.approx(60.0)
        assert kpis.goppar == pytest.approx(27.0)
        assert kpis.cppr == pytest.approx(33.0)
        assert kpis.cpor == pytest.approx(26.4)
        assert kpis.roi == pytest.approx(81.82)
        assert kpis.profit_per_room == pytest.approx(810.0)
        assert kpis.avg_daily_revenue == pytest.approx(1200.0)
        assert kpis.avg_daily_costs == pytest.approx(660.0)
        assert kpis.operating_days == 30

    def test_costs_without_revenue(self, profile):
        kpis = kpi_engine.compute_kpis(_april_costs(), [], profile)
        assert kpis.total_costs == 19800
        assert kpis.gop == -19800
        assert kpis.gop_margin == 0
        assert kpis.goppar == 0

    def test_legacy_cost_map_accepted(self, profile):
        cost_map = {
            "ristorazione": [{"fornitore": "Metro", "importo": 1000}],
            "marketing": {"costiMarketing": 500, "commissioniOTA": 500},
        }
        kpis = kpi_engine.compute_kpis(cost_map, [_april_period()], profile)
        assert kpis.total_costs == 2000
        assert kpis.cac == pytest.approx(1000 / 300, abs=0.01)


class TestSeasonal:
    """Seasonal properties average over the months they were open."""

    def _periods(self):
        return [
            RevenuePeriod(period="2024-06", room_revenue=24000, rooms_sold=240),
            RevenuePeriod(period="2024-07", room_revenue=15500, rooms_sold=155),
        ]

    def test_occupancy_and_revpar_are_monthly_means(self, seasonal_profile):
        kpis = kpi_engine.compute_kpis(None, self._periods(), seasonal_profile)
        # June 240/(10x30) = 80%, July 155/(10x31) = 50%
        assert kpis.occupancy == pytest.approx(65)
        assert kpis.revpar == pytest.approx(65)
        assert kpis.adr == pytest.approx(100)

    def test_year_round_profile_uses_latest(self):
        profile = PropertyProfile(total_rooms=10)
        kpis = kpi_engine.compute_kpis(None, self._periods(), profile)
        assert kpis.occupancy == pytest.approx(50)

    def test_roi_spreads_costs_over_their_own_months(self, seasonal_profile):
        costs = PeriodCosts(period="2024-06", records=[CostRecord(category="payroll", amount=30500)])
        kpis = kpi_engine.compute_kpis(costs, self._periods(), seasonal_profile)
        revenue_per_day = 39500 / 61
        cost_per_day = 30500 / 30  # June only
        expected = (revenue_per_day - cost_per_day) / cost_per_day * 100
        assert kpis.roi == pytest.approx(expected, abs=0.01)
        assert kpis.avg_daily_costs == pytest.approx(1016.67)

    @pytest.mark.parametrize("costs", [
        PeriodCosts(period="2024-07", records=[CostRecord(category="payroll", amount=20000)]),
        {"personale": {"bustePaga": 20000}},
    ])
    def test_single_month_roi_matches_same_window(self, costs):
        # A 120-day season must not dilute one month of costs
        profile = PropertyProfile(total_rooms=10, operating_model="seasonal", operating_days=120)
        july = RevenuePeriod(period="2024-07", room_revenue=30000, rooms_sold=200)
        kpis = kpi_engine.compute_kpis(costs, [july], profile)
        assert kpis.roi == pytest.approx(50.0)
        assert kpis.avg_daily_costs == pytest.approx(645.16)

    def test_season_length_used_without_any_cost_days(self, seasonal_profile):
        kpis = kpi_engine.compute_kpis({"utenze": {"energia": 5000}}, [], seasonal_profile)
        assert kpis.avg_daily_costs == pytest.approx(50.0)


class TestGuestDerived:
    """CAC and ALOS heuristics."""

    def test_cac_none_without_marketing(self, profile):
        kpis = kpi_engine.compute_kpis(None, [_april_period()], profile)
        assert kpis.cac is None

    def test_cac_prefers_bookings(self, profile):
        kpis = kpi_engine.compute_kpis(_april_costs(), [_april_period(bookings=120)], profile)
        assert kpis.cac == pytest.approx(15.0)

    def test_cac_guest_night_fallback(self, profile):
        period = _april_period(rooms_sold=0, guest_nights=600)
        kpis = kpi_engine.compute_kpis(_april_costs(), [period], profile)
        # 600 guest-nights / 2 = 300 estimated bookings
        assert kpis.cac == pytest.approx(6.0)

    def test_alos_from_bookings(self, profile):
        kpis = kpi_engine.compute_kpis(None, [_april_period(bookings=200)], profile)
        assert kpis.alos == pytest.approx(3.0)

    def test_alos_inferred_from_ratio(self, profile):
        # 600 guest-nights / 300 rooms sold = 2.0 -> x3
        kpis = kpi_engine.compute_kpis(None, [_april_period()], profile)
        assert kpis.alos == pytest.approx(6.0)

    @pytest.mark.parametrize("ratio,expected", [
        (4.5, 4.5),
        (1.0, 4.0),
        (2.0, 6.0),
        (2.5, 7.5),
        (3.0, 8.1),
    ])
    def test_alos_tiers(self, ratio, expected):
        assert kpi_engine.infer_alos(ratio) == pytest.approx(expected)

    def test_alos_reported_fallback(self, profile):
        period = RevenuePeriod(period="2024-04", room_revenue=1000, average_stay=3.5)
        kpis = kpi_engine.compute_kpis(None, [period], profile)
        assert kpis.alos == pytest.approx(3.5)

    def test_alos_none_without_signal(self, profile):
        kpis = kpi_engine.compute_kpis(None, [RevenuePeriod(period="2024-04", room_revenue=1000)], profile)
        assert kpis.alos is None

    def test_estimate_guest_count(self):
        assert kpi_engine.estimate_guest_count(5000, 100) == 50
        assert kpi_engine.estimate_guest_count(5000, 0) == 0


class TestEmptyState:
    def test_no_data_returns_all_zero(self, profile):
        kpis = kpi_engine.compute_kpis(None, [], profile)
        assert kpis == KPISet.empty()
        assert kpis.cac == 0
        assert kpis.alos == 0
        assert all(value == 0 for value in kpis.to_dict().values())

    def test_zero_rooms_is_rejected(self):
        with pytest.raises(ValidationError):
            PropertyProfile(total_rooms=0)

    def test_values_rounded_to_two_decimals(self, profile):
        kpis = kpi_engine.compute_kpis(
            PeriodCosts(records=[CostRecord(category="other", amount=1000)]),
            [RevenuePeriod(period="2024-04", room_revenue=3000, rooms_sold=7, guest_nights=7)],
            profile,
        )
        for value in kpis.to_dict().values():
            if isinstance(value, float):
                assert round(value, 2) == value
