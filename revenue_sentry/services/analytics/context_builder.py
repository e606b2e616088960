"""Trend context builder — gathers everything the rule engines reason over.

Sections are computed independently. A section that raises falls back to its
neutral value and is listed in ``PropertyContext.degraded_sections``:

    trends        revenue / occupancy / costs / profitability, 3 vs 3 periods
    anomalies     period-level cost-per-guest and revenue-drop anomalies
    benchmarks    star-tier market comparison
    seasonality   calendar-month occupancy pattern from daily history
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from statistics import fmean
from typing import Generic, TypeVar

from revenue_sentry.schemas.common import normalize_period, period_month
from revenue_sentry.schemas.revenue import DailyRecord, PropertyProfile, RevenuePeriod, parse_daily_history
from revenue_sentry.services.analytics.config import analytics_config
from revenue_sentry.services.analytics.cost_aggregator import CostInput, CostTotals, cost_aggregator
from revenue_sentry.services.analytics.cost_anomaly_detector import CostAnomaly, cost_anomaly_detector
from revenue_sentry.services.analytics.kpi_engine import KPISet, kpi_engine

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ---------- Data structures ----------

@dataclass
class TrendMetric:
    direction: str = "stable"      # "up" | "down" | "stable"
    strength: float = 0.0          # 0-10
    change_percent: float = 0.0
    absolute_change: float = 0.0   # recent avg - previous avg, in the metric's units
    recent_average: float = 0.0
    previous_average: float = 0.0
    timeframe: str = analytics_config.trends.timeframe
    significance: str = "low"      # "high" | "medium" | "low"

    def to_dict(self) -> dict:
        return {
            "direction": self.direction,
            "strength": self.strength,
            "change_percent": self.change_percent,
            "absolute_change": self.absolute_change,
            "recent_average": self.recent_average,
            "previous_average": self.previous_average,
            "timeframe": self.timeframe,
            "significance": self.significance,
        }


@dataclass
class TrendSet:
    revenue: TrendMetric = field(default_factory=TrendMetric)
    occupancy: TrendMetric = field(default_factory=TrendMetric)
    costs: TrendMetric = field(default_factory=TrendMetric)
    profitability: TrendMetric = field(default_factory=TrendMetric)

    def to_dict(self) -> dict:
        return {
            "revenue": self.revenue.to_dict(),
            "occupancy": self.occupancy.to_dict(),
            "costs": self.costs.to_dict(),
            "profitability": self.profitability.to_dict(),
        }


@dataclass
class ContextAnomaly:
    type: str                 # "cost" | "revenue"
    severity: str             # "critical" | "warning" | "info"
    metric: str
    actual: float
    expected: float
    deviation: float          # percent vs expected
    period: str
    possible_causes: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "severity": self.severity,
            "metric": self.metric,
            "actual": self.actual,
            "expected": self.expected,
            "deviation": self.deviation,
            "period": self.period,
            "possible_causes": list(self.possible_causes),
        }


@dataclass
class BenchmarkComparison:
    metric: str
    actual: float
    benchmark: float
    gap: float                # (actual - benchmark) / benchmark

    def to_dict(self) -> dict:
        return {
            "metric": self.metric,
            "actual": self.actual,
            "benchmark": self.benchmark,
            "gap": self.gap,
        }


@dataclass
class BenchmarkSet:
    tier: int = analytics_config.benchmarks.default_tier
    comparisons: dict[str, BenchmarkComparison] = field(default_factory=dict)

    def gap(self, metric: str) -> float:
        comparison = self.comparisons.get(metric)
        return comparison.gap if comparison else 0.0

    def benchmark(self, metric: str) -> float:
        comparison = self.comparisons.get(metric)
        return comparison.benchmark if comparison else 0.0

    def to_dict(self) -> dict:
        return {
            "tier": self.tier,
            "comparisons": {k: v.to_dict() for k, v in self.comparisons.items()},
        }


@dataclass
class SeasonalityPattern:
    current_month: int | None = None
    current_factor: float = 1.0
    next_factor: float = 1.0
    is_low_season: bool = False
    is_high_season: bool = False
    monthly_pattern: list[dict] = field(default_factory=list)  # [{month, avg_occupancy, factor}]

    def to_dict(self) -> dict:
        return {
            "current_month": self.current_month,
            "current_factor": self.current_factor,
            "next_factor": self.next_factor,
            "is_low_season": self.is_low_season,
            "is_high_season": self.is_high_season,
            "monthly_pattern": list(self.monthly_pattern),
        }


@dataclass
class SectionResult(Generic[T]):
    """Outcome of one context section: the computed value or its neutral stand-in."""
    value: T
    degraded: bool = False
    error: str | None = None


@dataclass
class PropertyContext:
    """Everything the recommendation and reasoning engines need for one property."""
    profile: PropertyProfile
    kpis: KPISet
    revenue_periods: list[RevenuePeriod]
    cost_periods: list[CostTotals]
    daily_history: list[DailyRecord]
    trends: TrendSet
    anomalies: list[ContextAnomaly]
    cost_anomalies: list[CostAnomaly]
    benchmarks: BenchmarkSet
    seasonality: SeasonalityPattern
    degraded_sections: list[str] = field(default_factory=list)

    @property
    def average_monthly_revenue(self) -> float:
        recent = self.revenue_periods[-3:]
        return fmean(p.total_revenue for p in recent) if recent else 0.0

    @property
    def average_monthly_costs(self) -> float:
        recent = self.cost_periods[-3:]
        return fmean(c.total for c in recent) if recent else 0.0

    @property
    def rooms_sold_per_day(self) -> float:
        return self.profile.total_rooms * self.kpis.occupancy / 100

    def to_dict(self) -> dict:
        return {
            "property": self.profile.name,
            "kpis": self.kpis.to_dict(),
            "trends": self.trends.to_dict(),
            "anomalies": [a.to_dict() for a in self.anomalies],
            "cost_anomalies": [a.to_dict() for a in self.cost_anomalies],
            "benchmarks": self.benchmarks.to_dict(),
            "seasonality": self.seasonality.to_dict(),
            "degraded_sections": list(self.degraded_sections),
        }


# ---------- Trend math ----------

def compute_trend(values: list[float]) -> TrendMetric:
    """Compare the mean of the last 3 values with the mean of the 3 before them.

    Fewer than 6 values, or a zero baseline, yields the neutral stable trend.
    """
    cfg = analytics_config.trends
    window = cfg.window
    if len(values) < 2 * window:
        return TrendMetric()

    recent_avg = fmean(values[-window:])
    previous_avg = fmean(values[-2 * window:-window])
    if previous_avg == 0:
        return TrendMetric()

    change = (recent_avg - previous_avg) / abs(previous_avg) * 100
    if change > cfg.direction_pct:
        direction = "up"
    elif change < -cfg.direction_pct:
        direction = "down"
    else:
        direction = "stable"

    magnitude = abs(change)
    if magnitude > cfg.high_pct:
        significance = "high"
    elif magnitude > cfg.medium_pct:
        significance = "medium"
    else:
        significance = "low"

    return TrendMetric(
        direction=direction,
        strength=round(min(cfg.max_strength, magnitude / cfg.strength_divisor), 2),
        change_percent=round(change, 2),
        absolute_change=round(recent_avg - previous_avg, 2),
        recent_average=round(recent_avg, 2),
        previous_average=round(previous_avg, 2),
        significance=significance,
    )


def monthly_occupancy_series(periods: list[RevenuePeriod], rooms: int) -> list[float]:
    values = (kpi_engine.month_occupancy(p, rooms) for p in periods)
    return [v for v in values if v is not None]


def run_section(name: str, compute: Callable[[], T], neutral: Callable[[], T]) -> SectionResult[T]:
    """Run one context section, substituting its neutral value on failure."""
    try:
        return SectionResult(value=compute())
    except Exception as e:
        logger.warning(f"Context section '{name}' failed, using neutral value: {e}")
        return SectionResult(value=neutral(), degraded=True, error=str(e))


# ---------- Builder ----------

class TrendContextBuilder:
    """Builds a PropertyContext from revenue, cost, daily history and KPIs."""

    def build_context(
        self,
        periods: Iterable[RevenuePeriod | dict] | None,
        costs: CostInput,
        daily_history: Iterable[DailyRecord | dict] | None,
        kpis: KPISet,
        profile: PropertyProfile,
        current_month: int | str | None = None,
        anomaly_lookback_days: int | None = None,
    ) -> PropertyContext:
        """Assemble the context; ``anomaly_lookback_days`` limits the daily anomaly scan (None scans all)."""
        revenue_periods = kpi_engine.normalize_periods(periods)
        cost_periods = cost_aggregator.aggregate_many(costs)
        history = parse_daily_history(daily_history)
        month = self._resolve_month(current_month, revenue_periods, history)

        sections = {
            "trends": run_section(
                "trends",
                lambda: self._trends(revenue_periods, cost_periods, profile),
                TrendSet,
            ),
            "anomalies": run_section(
                "anomalies",
                lambda: self._period_anomalies(revenue_periods, cost_periods),
                list,
            ),
            "cost_anomalies": run_section(
                "cost_anomalies",
                lambda: self._daily_cost_anomalies(history, anomaly_lookback_days),
                list,
            ),
            "benchmarks": run_section(
                "benchmarks",
                lambda: self._benchmarks(kpis, profile),
                BenchmarkSet,
            ),
            "seasonality": run_section(
                "seasonality",
                lambda: self._seasonality(history, month),
                lambda: SeasonalityPattern(current_month=month),
            ),
        }

        cost_anomalies = sections["cost_anomalies"].value
        anomalies = list(sections["anomalies"].value)
        if cost_anomalies:
            anomalies.append(self._worst_daily_anomaly(cost_anomalies[0]))

        degraded = [name for name, result in sections.items() if result.degraded]
        if degraded:
            logger.info(f"Context for {profile.name or 'property'} built with neutral sections: {degraded}")

        return PropertyContext(
            profile=profile,
            kpis=kpis,
            revenue_periods=revenue_periods,
            cost_periods=cost_periods,
            daily_history=history,
            trends=sections["trends"].value,
            anomalies=anomalies,
            cost_anomalies=cost_anomalies,
            benchmarks=sections["benchmarks"].value,
            seasonality=sections["seasonality"].value,
            degraded_sections=degraded,
        )

    # ---------- Trends ----------

    def _trends(
        self,
        revenue_periods: list[RevenuePeriod],
        cost_periods: list[CostTotals],
        profile: PropertyProfile,
    ) -> TrendSet:
        return TrendSet(
            revenue=compute_trend([p.total_revenue for p in revenue_periods]),
            occupancy=compute_trend(monthly_occupancy_series(revenue_periods, profile.total_rooms)),
            costs=compute_trend([c.total for c in cost_periods]),
            profitability=compute_trend(
                [revenue - cost for _, revenue, cost in self._aligned(revenue_periods, cost_periods)]
            ),
        )

    @staticmethod
    def _aligned(
        revenue_periods: list[RevenuePeriod],
        cost_periods: list[CostTotals],
    ) -> list[tuple[RevenuePeriod, float, float]]:
        """(period, revenue, cost) triples, matched by period id when available."""
        cost_by_period = {c.period: c.total for c in cost_periods if c.period}
        if cost_by_period and all(p.period for p in revenue_periods):
            return [
                (p, p.total_revenue, cost_by_period[p.period])
                for p in revenue_periods
                if p.period in cost_by_period
            ]
        n = min(len(revenue_periods), len(cost_periods))
        if n == 0:
            return []
        return [
            (p, p.total_revenue, c.total)
            for p, c in zip(revenue_periods[-n:], cost_periods[-n:])
        ]

    # ---------- Anomalies ----------

    def _period_anomalies(
        self,
        revenue_periods: list[RevenuePeriod],
        cost_periods: list[CostTotals],
    ) -> list[ContextAnomaly]:
        anomalies = []
        cost_anomaly = self._cost_per_guest_anomaly(revenue_periods, cost_periods)
        if cost_anomaly:
            anomalies.append(cost_anomaly)
        revenue_anomaly = self._revenue_drop_anomaly(revenue_periods)
        if revenue_anomaly:
            anomalies.append(revenue_anomaly)
        return anomalies

    def _cost_per_guest_anomaly(
        self,
        revenue_periods: list[RevenuePeriod],
        cost_periods: list[CostTotals],
    ) -> ContextAnomaly | None:
        cfg = analytics_config.context_anomalies
        window: list[tuple[str, float, float]] = []  # (period, cost, guests)
        for period, _, cost in self._aligned(revenue_periods, cost_periods):
            guests = kpi_engine.estimate_guest_count(period.room_revenue, period.adr) or period.rooms_sold
            if guests > 0 and cost > 0:
                window.append((period.period or "latest", cost, guests))
        window = window[-cfg.expected_cost_window:]
        if len(window) < cfg.expected_cost_min_periods:
            return None

        label, latest_cost, latest_guests = window[-1]
        actual = latest_cost / latest_guests
        expected = fmean(c for _, c, _ in window) / fmean(g for _, _, g in window)
        if expected <= 0:
            return None
        deviation = (actual - expected) / expected * 100
        if deviation <= cfg.cost_per_guest_warning_pct:
            return None

        return ContextAnomaly(
            type="cost",
            severity="critical" if deviation > cfg.cost_per_guest_critical_pct else "warning",
            metric="cost_per_guest",
            actual=round(actual, 2),
            expected=round(expected, 2),
            deviation=round(deviation, 2),
            period=label,
            possible_causes=[
                "Supplier price increases not passed on to rates",
                "Lower occupancy spreading fixed costs over fewer guests",
                "Over-ordering or waste in food and beverage",
                "Energy consumption out of line with occupancy",
            ],
        )

    @staticmethod
    def _revenue_drop_anomaly(revenue_periods: list[RevenuePeriod]) -> ContextAnomaly | None:
        cfg = analytics_config.context_anomalies
        trend = compute_trend([p.total_revenue for p in revenue_periods])
        if trend.change_percent >= cfg.revenue_drop_warning_pct:
            return None
        return ContextAnomaly(
            type="revenue",
            severity="critical" if trend.change_percent < cfg.revenue_drop_critical_pct else "warning",
            metric="monthly_revenue",
            actual=trend.recent_average,
            expected=trend.previous_average,
            deviation=trend.change_percent,
            period=f"last {trend.timeframe}",
            possible_causes=[
                "Falling demand in the local market",
                "Rates out of line with competitors",
                "Reduced visibility on booking channels",
                "Cancellations or lost group business",
            ],
        )

    @staticmethod
    def _daily_cost_anomalies(history: list[DailyRecord], lookback_days: int | None) -> list[CostAnomaly]:
        recent = history[-lookback_days:] if lookback_days and lookback_days > 0 else history
        return cost_anomaly_detector.detect_anomalies(cost_anomaly_detector.build_series(recent))

    @staticmethod
    def _worst_daily_anomaly(anomaly: CostAnomaly) -> ContextAnomaly:
        return ContextAnomaly(
            type="cost",
            severity="critical" if anomaly.severity == "high" else "warning",
            metric="daily_cost_per_guest",
            actual=anomaly.cost_per_guest,
            expected=anomaly.expected_cost_per_guest,
            deviation=anomaly.deviation_percent,
            period=anomaly.date,
            possible_causes=[
                "One-off purchase or maintenance booked on a low-occupancy day",
                "Staffing not adjusted to occupancy",
            ],
        )

    # ---------- Benchmarks ----------

    @staticmethod
    def _benchmarks(kpis: KPISet, profile: PropertyProfile) -> BenchmarkSet:
        table = analytics_config.benchmarks
        reference = table.for_stars(profile.star_rating)
        cost_ratio = (
            kpis.total_costs / kpis.total_revenue
            if kpis.total_revenue > 0
            else reference["cost_ratio"]
        )
        actuals = {
            "adr": kpis.adr,
            "occupancy": kpis.occupancy,
            "revpar": kpis.revpar,
            "goppar": kpis.goppar,
            "cost_ratio": cost_ratio,
        }
        comparisons = {}
        for metric, actual in actuals.items():
            benchmark = reference[metric]
            comparisons[metric] = BenchmarkComparison(
                metric=metric,
                actual=round(actual, 4),
                benchmark=round(benchmark, 4),
                gap=round((actual - benchmark) / benchmark, 4) if benchmark else 0.0,
            )
        return BenchmarkSet(tier=table.tier(profile.star_rating), comparisons=comparisons)

    # ---------- Seasonality ----------

    @staticmethod
    def _seasonality(history: list[DailyRecord], current_month: int | None) -> SeasonalityPattern:
        cfg = analytics_config.seasonality
        by_month: dict[int, list[float]] = {}
        for record in history:
            by_month.setdefault(record.date.month, []).append(record.occupancy)
        if not by_month:
            return SeasonalityPattern(current_month=current_month)

        monthly = {month: fmean(values) for month, values in by_month.items()}
        overall = fmean(monthly.values())
        if overall == 0:
            return SeasonalityPattern(current_month=current_month)

        def factor(month: int | None) -> float:
            if month is None or month not in monthly:
                return 1.0
            return monthly[month] / overall

        current_factor = factor(current_month)
        next_month = current_month % 12 + 1 if current_month else None
        return SeasonalityPattern(
            current_month=current_month,
            current_factor=round(current_factor, 4),
            next_factor=round(factor(next_month), 4),
            is_low_season=current_factor < cfg.low_season,
            is_high_season=current_factor > cfg.high_season,
            monthly_pattern=[
                {
                    "month": month,
                    "avg_occupancy": round(monthly[month], 2),
                    "factor": round(monthly[month] / overall, 4),
                }
                for month in sorted(monthly)
            ],
        )

    @staticmethod
    def _resolve_month(
        current_month: int | str | None,
        revenue_periods: list[RevenuePeriod],
        history: list[DailyRecord],
    ) -> int | None:
        if isinstance(current_month, int):
            return current_month if 1 <= current_month <= 12 else None
        if isinstance(current_month, str):
            return period_month(normalize_period(current_month))
        labelled = [p.period for p in revenue_periods if p.period]
        if labelled:
            return period_month(labelled[-1])
        if history:
            return history[-1].date.month
        return None


# Singleton
context_builder = TrendContextBuilder()
