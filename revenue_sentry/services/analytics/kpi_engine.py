"""KPI engine — derives the canonical hospitality KPI set from monthly inputs.

Formulas branch on the property's operating model:
- year-round: occupancy, RevPAR and ADR describe the most recent month
- seasonal:   occupancy and RevPAR are computed per month open, then averaged,
              and ROI is taken on a per-operating-day basis

CPOR's room-cost share, CAC's booking fallback and the ALOS tiers are heuristic
allocations kept in analytics_config.kpi; they approximate quantities the
inputs never measure directly.
"""

import logging
from collections.abc import Iterable
from dataclasses import asdict, dataclass
from statistics import fmean

from revenue_sentry.schemas.common import days_in_period
from revenue_sentry.schemas.costs import PeriodCosts
from revenue_sentry.schemas.revenue import PropertyProfile, RevenuePeriod
from revenue_sentry.services.analytics.config import analytics_config
from revenue_sentry.services.analytics.cost_aggregator import (
    CostInput,
    CostTotals,
    cost_aggregator,
)

logger = logging.getLogger(__name__)

cfg = analytics_config.kpi


@dataclass(frozen=True)
class KPISet:
    """Immutable KPI snapshot for one evaluation window (values rounded to 2dp)."""
    # Primary
    revpar: float = 0.0
    adr: float = 0.0
    occupancy: float = 0.0        # percent, 0-100
    gop: float = 0.0
    gop_margin: float = 0.0       # percent of total revenue
    # Secondary
    trevpar: float = 0.0
    goppar: float = 0.0
    cppr: float = 0.0             # cost per guest-night
    cpor: float = 0.0             # cost per occupied room (allocated)
    roi: float = 0.0              # percent
    cac: float | None = None      # None without marketing spend
    alos: float | None = None     # None without guest-nights
    # Totals
    profit_per_room: float = 0.0
    total_costs: float = 0.0
    total_revenue: float = 0.0
    room_revenue: float = 0.0
    avg_daily_revenue: float = 0.0
    avg_daily_costs: float = 0.0
    rooms_sold: float = 0.0
    guest_nights: float = 0.0
    operating_days: int = 0

    @classmethod
    def empty(cls) -> "KPISet":
        """All-zero snapshot returned when there is nothing to measure."""
        return cls(cac=0.0, alos=0.0)

    def to_dict(self) -> dict:
        return asdict(self)


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else 0.0


def _clamp_pct(value: float) -> float:
    return max(0.0, min(100.0, value))


def _r(value: float) -> float:
    return round(value, 2)


class KPIEngine:
    """Computes KPISet snapshots; stateless."""

    def compute_kpis(
        self,
        costs: CostInput,
        revenue_periods: Iterable[RevenuePeriod | dict] | None,
        profile: PropertyProfile,
    ) -> KPISet:
        """Compute the KPI set for the supplied window.

        Args:
            costs: PeriodCosts, a list of PeriodCosts, or a single-period cost map
            revenue_periods: monthly RevenuePeriod records (dicts are validated)
            profile: property metadata; total_rooms is guaranteed > 0

        Returns:
            KPISet, all-zero when there are no revenue periods and no costs.
        """
        cost_periods = cost_aggregator.normalize(costs)
        cost_totals = cost_aggregator.combine(cost_periods)
        periods = self.normalize_periods(revenue_periods)

        if not periods and cost_totals.is_empty:
            return KPISet.empty()

        rooms = profile.total_rooms
        total_cost = cost_totals.total
        room_revenue = sum(p.room_revenue for p in periods)
        total_revenue = sum(p.total_revenue for p in periods)
        rooms_sold = sum(p.rooms_sold for p in periods)
        guest_nights = sum(p.guest_nights for p in periods)
        operating_days = sum(p.days_open for p in periods)
        room_nights_available = rooms * operating_days

        occupancy = self._occupancy(periods, rooms, profile)
        adr = self._adr(periods, profile)
        revpar = self._revpar(periods, rooms, profile)
        if revpar == 0:
            revpar = adr * occupancy / 100

        gop = total_revenue - total_cost
        cost_days = self._cost_days(cost_periods, periods, operating_days, profile)

        kpis = KPISet(
            revpar=_r(revpar),
            adr=_r(adr),
            occupancy=_r(_clamp_pct(occupancy)),
            gop=_r(gop),
            gop_margin=_r(_ratio(gop, total_revenue) * 100),
            trevpar=_r(_ratio(total_revenue, room_nights_available)),
            goppar=_r(_ratio(gop, room_nights_available)),
            cppr=_r(_ratio(total_cost, guest_nights)),
            cpor=_r(_ratio(cfg.room_cost_share * total_cost, rooms_sold)),
            roi=_r(self._roi(total_revenue, total_cost, operating_days, cost_days, profile)),
            cac=self._optional(self._cac(cost_totals, periods)),
            alos=self._optional(self._alos(periods)),
            profit_per_room=_r(_ratio(gop, rooms)),
            total_costs=_r(total_cost),
            total_revenue=_r(total_revenue),
            room_revenue=_r(room_revenue),
            avg_daily_revenue=_r(_ratio(total_revenue, operating_days)),
            avg_daily_costs=_r(_ratio(total_cost, cost_days)),
            rooms_sold=_r(rooms_sold),
            guest_nights=_r(guest_nights),
            operating_days=operating_days,
        )
        logger.debug(
            f"KPIs for {profile.name or 'property'} ({profile.operating_model}, "
            f"{len(periods)} periods): occ={kpis.occupancy} adr={kpis.adr} revpar={kpis.revpar}"
        )
        return kpis

    # ---------- Inputs ----------

    @staticmethod
    def normalize_periods(revenue_periods) -> list[RevenuePeriod]:
        """Validate dict input and order by period when every period is labelled."""
        periods = [
            p if isinstance(p, RevenuePeriod) else RevenuePeriod.model_validate(p)
            for p in (revenue_periods or [])
        ]
        if periods and all(p.period for p in periods):
            periods.sort(key=lambda p: p.period)
        return periods

    @staticmethod
    def _cost_days(
        cost_periods: list[PeriodCosts],
        periods: list[RevenuePeriod],
        revenue_days: int,
        profile: PropertyProfile,
    ) -> int:
        """Days covered by the cost window, so costs and revenue are spread per day alike.

        Labelled cost months count the opening days of the matching revenue month,
        or the calendar month when no revenue month matches. Unlabelled costs are
        taken to cover the revenue window. The profile's season length is the
        fallback when neither yields any days.
        """
        labels = {p.period for p in cost_periods if p.period}
        if cost_periods and all(p.period for p in cost_periods):
            open_days = {p.period: p.days_open for p in periods if p.period}
            days = sum(open_days.get(label) or days_in_period(label) for label in labels)
        else:
            days = revenue_days
        return days or profile.operating_days or 0

    # ---------- Occupancy / rate ----------

    @staticmethod
    def month_occupancy(period: RevenuePeriod, rooms: int) -> float | None:
        """Occupancy % for one month; None when the month carries no signal."""
        sold = period.rooms_sold or period.guest_nights
        days = period.days_open
        if sold > 0 and days > 0:
            return _clamp_pct(sold / (rooms * days) * 100)
        if period.occupancy > 0:
            return period.occupancy
        return None

    @staticmethod
    def month_revpar(period: RevenuePeriod, rooms: int) -> float | None:
        days = period.days_open
        if days <= 0 or period.room_revenue <= 0:
            return None
        return period.room_revenue / (rooms * days)

    def _occupancy(self, periods: list[RevenuePeriod], rooms: int, profile: PropertyProfile) -> float:
        if not periods:
            return 0.0
        if profile.is_seasonal:
            monthly = [v for v in (self.month_occupancy(p, rooms) for p in periods) if v is not None]
            return fmean(monthly) if monthly else 0.0
        return self.month_occupancy(periods[-1], rooms) or 0.0

    def _revpar(self, periods: list[RevenuePeriod], rooms: int, profile: PropertyProfile) -> float:
        if not periods:
            return 0.0
        if profile.is_seasonal:
            monthly = [v for v in (self.month_revpar(p, rooms) for p in periods) if v is not None]
            return fmean(monthly) if monthly else 0.0
        return self.month_revpar(periods[-1], rooms) or 0.0

    @staticmethod
    def _adr(periods: list[RevenuePeriod], profile: PropertyProfile) -> float:
        if not periods:
            return 0.0
        if not profile.is_seasonal:
            latest = periods[-1]
            return latest.adr or _ratio(latest.room_revenue, latest.rooms_sold)
        rooms_sold = sum(p.rooms_sold for p in periods)
        if rooms_sold > 0:
            return sum(p.room_revenue for p in periods) / rooms_sold
        reported = [p.adr for p in periods if p.adr > 0]
        return fmean(reported) if reported else 0.0

    # ---------- Profitability ----------

    @staticmethod
    def _roi(
        total_revenue: float,
        total_cost: float,
        revenue_days: int,
        cost_days: int,
        profile: PropertyProfile,
    ) -> float:
        if total_cost <= 0:
            return 0.0
        if profile.is_seasonal:
            revenue_per_day = _ratio(total_revenue, revenue_days)
            cost_per_day = _ratio(total_cost, cost_days)
            return _ratio(revenue_per_day - cost_per_day, cost_per_day) * 100
        return (total_revenue - total_cost) / total_cost * 100

    # ---------- Guest-derived ----------

    @staticmethod
    def _cac(cost_totals: CostTotals, periods: list[RevenuePeriod]) -> float | None:
        marketing = cost_totals.category("marketing")
        if marketing <= 0:
            return None
        bookings = sum(p.bookings or 0 for p in periods)
        rooms_sold = sum(p.rooms_sold for p in periods)
        guest_nights = sum(p.guest_nights for p in periods)
        if bookings > 0:
            estimate = bookings
        elif rooms_sold > 0:
            estimate = rooms_sold
        else:
            estimate = guest_nights / cfg.guest_nights_per_booking
        return marketing / estimate if estimate > 0 else None

    def _alos(self, periods: list[RevenuePeriod]) -> float | None:
        guest_nights = sum(p.guest_nights for p in periods)
        bookings = sum(p.bookings or 0 for p in periods)
        rooms_sold = sum(p.rooms_sold for p in periods)
        if guest_nights > 0 and bookings > 0:
            return guest_nights / bookings
        if guest_nights > 0 and rooms_sold > 0:
            return self.infer_alos(guest_nights / rooms_sold)
        reported = [p.average_stay for p in periods if p.average_stay]
        return fmean(reported) if reported else None

    @staticmethod
    def infer_alos(ratio: float) -> float:
        """Length of stay from a guest-nights / rooms-sold ratio.

        A ratio of 4+ already reads as nights per stay. Below that the rooms-sold
        figure may be bookings or room-nights, so the ratio is scaled by a tiered
        multiplier: 4.0x under 1.5, 3.0x between 1.5 and 2.5, 0.9 x 3.0 above.
        """
        if ratio >= cfg.alos_direct_ratio:
            return ratio
        if ratio < cfg.alos_low_ratio:
            return ratio * cfg.alos_low_multiplier
        if ratio <= cfg.alos_mid_ratio:
            return ratio * cfg.alos_base_multiplier
        return ratio * cfg.alos_base_multiplier * cfg.alos_high_factor

    @staticmethod
    def estimate_guest_count(room_revenue: float, adr: float) -> float:
        """Occupied room-nights implied by revenue at the going rate."""
        return room_revenue / adr if adr > 0 and room_revenue > 0 else 0.0

    @staticmethod
    def _optional(value: float | None) -> float | None:
        return None if value is None else _r(value)


# Singleton
kpi_engine = KPIEngine()
