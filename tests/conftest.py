"""Shared test fixtures.

All fixtures describe one 20-room property with six months of data
(2024-01 .. 2024-06) and four weeks of daily history in June.
"""

import datetime as dt

import pytest

from revenue_sentry.schemas.costs import CostRecord, PeriodCosts
from revenue_sentry.schemas.revenue import DailyRecord, PropertyProfile, RevenuePeriod

MONTHS = ["2024-01", "2024-02", "2024-03", "2024-04", "2024-05", "2024-06"]


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def make_periods(revenues: list[float], occupancies: list[float], adr: float = 100.0) -> list[RevenuePeriod]:
    """Monthly periods with reported occupancy only (no room counts)."""
    return [
        RevenuePeriod(period=month, room_revenue=revenue, occupancy=occupancy, adr=adr)
        for month, revenue, occupancy in zip(MONTHS, revenues, occupancies)
    ]


def make_costs(totals: list[float], category: str = "payroll") -> list[PeriodCosts]:
    """One single-record cost period per month."""
    return [
        PeriodCosts(period=month, records=[CostRecord(category=category, label="monthly", amount=amount)])
        for month, amount in zip(MONTHS, totals)
    ]


def make_daily(
    start: dt.date,
    days: int,
    revenue: float = 1000.0,
    occupancy: float = 70.0,
    adr: float = 100.0,
    total_costs: float = 500.0,
    competitor_avg_price: float | None = None,
) -> list[DailyRecord]:
    return [
        DailyRecord(
            date=start + dt.timedelta(days=i),
            revenue=revenue,
            occupancy=occupancy,
            adr=adr,
            total_costs=total_costs,
            competitor_avg_price=competitor_avg_price,
        )
        for i in range(days)
    ]


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------


@pytest.fixture
def profile() -> PropertyProfile:
    return PropertyProfile(name="Hotel Aurora", total_rooms=20, star_rating=3)


@pytest.fixture
def seasonal_profile() -> PropertyProfile:
    return PropertyProfile(
        name="Lido Mare", total_rooms=10, star_rating=4, operating_model="stagionale", operating_days=100
    )


# ---------------------------------------------------------------------------
# Six months of data
# ---------------------------------------------------------------------------


@pytest.fixture
def growing_periods() -> list[RevenuePeriod]:
    """Occupancy 40% -> 55% and revenue 20k -> 24k between the two quarters."""
    return make_periods(
        revenues=[20000, 20000, 20000, 24000, 24000, 24000],
        occupancies=[40, 40, 40, 55, 55, 55],
    )


@pytest.fixture
def declining_periods() -> list[RevenuePeriod]:
    """Revenue down a third and occupancy down 15 points between the two quarters."""
    return make_periods(
        revenues=[30000, 30000, 30000, 20000, 20000, 20000],
        occupancies=[70, 70, 70, 55, 55, 55],
    )


@pytest.fixture
def flat_costs() -> list[PeriodCosts]:
    return make_costs([10000] * 6)


@pytest.fixture
def spiking_costs() -> list[PeriodCosts]:
    """Flat 10k a month, then 16k in the latest month."""
    return make_costs([10000, 10000, 10000, 10000, 10000, 16000])


@pytest.fixture
def june_history() -> list[DailyRecord]:
    """28 steady days from Monday 3 June 2024."""
    return make_daily(dt.date(2024, 6, 3), 28)


# ---------------------------------------------------------------------------
# Factories for tests that need custom series
# ---------------------------------------------------------------------------


@pytest.fixture
def periods_factory():
    return make_periods


@pytest.fixture
def costs_factory():
    return make_costs


@pytest.fixture
def daily_factory():
    return make_daily
