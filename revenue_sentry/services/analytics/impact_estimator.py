"""Closed-form monthly revenue, cost and profit deltas attached to insights."""

import logging
from dataclasses import dataclass

from revenue_sentry.services.analytics.config import analytics_config
from revenue_sentry.services.analytics.context_builder import PropertyContext

logger = logging.getLogger(__name__)

cfg = analytics_config.impact


@dataclass
class ImpactEstimate:
    revenue_change: float = 0.0
    cost_change: float = 0.0
    profit_change: float = 0.0
    occupancy_change: float = 0.0   # percentage points
    confidence: float = 0.7
    timeframe: str = "1 month"

    def to_dict(self) -> dict:
        return {
            "revenue_change": round(self.revenue_change, 2),
            "cost_change": round(self.cost_change, 2),
            "profit_change": round(self.profit_change, 2),
            "occupancy_change": round(self.occupancy_change, 2),
            "confidence": self.confidence,
            "timeframe": self.timeframe,
        }


class ImpactEstimator:
    """Heuristic monthly impact of acting on an insight."""

    def revenue_per_occupancy_point(self, context: PropertyContext) -> float:
        """Monthly room revenue carried by one point of occupancy at the current ADR."""
        return context.profile.total_rooms * 0.01 * context.kpis.adr * cfg.operating_days_per_month

    def upsell_potential(self, context: PropertyContext) -> float:
        guests = context.rooms_sold_per_day * cfg.guests_per_room * cfg.operating_days_per_month
        return guests * cfg.upsell_conversion * cfg.upsell_ticket

    def dynamic_pricing_gain(self, context: PropertyContext) -> float:
        """Extra revenue from lifting rates on peak-demand days."""
        return cfg.peak_days * context.kpis.adr * cfg.peak_rate_lift * context.rooms_sold_per_day

    def seasonal_pricing_gain(self, context: PropertyContext) -> float:
        return (
            cfg.seasonal_days * context.kpis.adr * cfg.seasonal_rate_lift
            * context.profile.total_rooms * cfg.seasonal_occupancy
        )

    def average_monthly_profit(self, context: PropertyContext) -> float:
        return context.average_monthly_revenue - context.average_monthly_costs

    def estimate(
        self,
        kind: str,
        baseline: float,
        target_change: float,
        context: PropertyContext | None = None,
        confidence: float = 0.7,
        timeframe: str = "1 month",
    ) -> ImpactEstimate:
        """Impact of moving ``baseline`` by ``target_change`` percent (points for occupancy).

        kind: "revenue_recovery" | "cost_reduction" | "occupancy_improvement"
              | "profitability_recovery"
        """
        impact = ImpactEstimate(confidence=confidence, timeframe=timeframe)
        if kind == "revenue_recovery":
            impact.revenue_change = baseline * target_change / 100
            impact.profit_change = impact.revenue_change * cfg.revenue_recovery_profit_share
        elif kind == "cost_reduction":
            impact.cost_change = baseline * target_change / 100
            impact.profit_change = abs(impact.cost_change)
        elif kind == "occupancy_improvement":
            impact.occupancy_change = target_change
            per_point = self.revenue_per_occupancy_point(context) if context else 0.0
            impact.revenue_change = per_point * target_change
            impact.profit_change = impact.revenue_change * cfg.occupancy_profit_share
        elif kind == "profitability_recovery":
            impact.profit_change = abs(baseline) * target_change / 100
            impact.revenue_change = impact.profit_change * cfg.recovery_revenue_multiplier
            impact.cost_change = -impact.profit_change * cfg.recovery_cost_share
        else:
            logger.warning(f"Unknown impact kind '{kind}', returning zero impact")
        return impact


# Singleton
impact_estimator = ImpactEstimator()
