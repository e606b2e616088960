"""Cost analyzer — period-over-period and sector-benchmark review per cost category."""

import logging
from dataclasses import dataclass

from revenue_sentry.schemas.costs import COST_CATEGORIES
from revenue_sentry.schemas.revenue import PropertyProfile
from revenue_sentry.services.analytics.config import analytics_config
from revenue_sentry.services.analytics.cost_aggregator import CostTotals

logger = logging.getLogger(__name__)

cfg = analytics_config.category_analysis


@dataclass
class CostAnalysis:
    """One category's movement against the previous period and the sector."""
    category: str
    current: float
    previous: float | None
    variation_pct: float | None       # None without a usable previous amount
    benchmark: float | None           # sector figure scaled to the periods covered
    benchmark_gap: float | None       # current - benchmark
    trend: str                        # "increase" | "decrease" | "stable"
    anomaly: bool
    priority: str                     # "alta" | "media" | "bassa"

    @property
    def benchmark_gap_pct(self) -> float | None:
        if not self.benchmark or self.benchmark_gap is None:
            return None
        return self.benchmark_gap / self.benchmark * 100

    def to_dict(self) -> dict:
        return {
            "category": self.category,
            "current": round(self.current, 2),
            "previous": round(self.previous, 2) if self.previous is not None else None,
            "variation_pct": round(self.variation_pct, 2) if self.variation_pct is not None else None,
            "benchmark": round(self.benchmark, 2) if self.benchmark is not None else None,
            "benchmark_gap": round(self.benchmark_gap, 2) if self.benchmark_gap is not None else None,
            "trend": self.trend,
            "anomaly": self.anomaly,
            "priority": self.priority,
        }


class CostAnalyzer:
    """Compares current category totals with the previous period and sector benchmarks."""

    def analyze_costs(
        self,
        current: CostTotals,
        previous: CostTotals | None = None,
        profile: PropertyProfile | None = None,
    ) -> list[CostAnalysis]:
        """Analyze every category with spend in the current period."""
        benchmarks = self.benchmarks_for(profile, current.period_count) if profile else {}
        analyses = []
        for category in COST_CATEGORIES:
            amount = current.category(category)
            if amount <= 0:
                continue
            prev_amount = previous.category(category) if previous is not None else None
            variation = (
                (amount - prev_amount) / prev_amount * 100
                if prev_amount else None
            )
            benchmark = benchmarks.get(category)

            analyses.append(CostAnalysis(
                category=category,
                current=amount,
                previous=prev_amount,
                variation_pct=variation,
                benchmark=benchmark,
                benchmark_gap=amount - benchmark if benchmark else None,
                trend=self._trend(category, variation),
                anomaly=bool(variation) and abs(variation) > cfg.anomaly_pct[category],
                priority=self._priority(category, variation),
            ))
        return analyses

    @staticmethod
    def benchmarks_for(profile: PropertyProfile, period_count: int = 1) -> dict[str, float]:
        """Sector benchmarks for the profile's segment, scaled to ``period_count`` months."""
        months = max(1, period_count)
        monthly = analytics_config.category_benchmarks.monthly(profile.market_segment)
        return {category: amount * months for category, amount in monthly.items()}

    @staticmethod
    def _trend(category: str, variation: float | None) -> str:
        if not variation:
            return "stable"
        threshold = cfg.trend_pct[category]
        if variation > threshold:
            return "increase"
        if variation < -threshold:
            return "decrease"
        return "stable"

    @staticmethod
    def _priority(category: str, variation: float | None) -> str:
        if not variation:
            return "bassa"
        if abs(variation) > cfg.high_priority_pct[category]:
            return "alta"
        return "media"


# Singleton
cost_analyzer = CostAnalyzer()
