"""Recommendation engine — runs the rule catalog and ranks what it finds."""

import logging
from collections.abc import Iterable

from revenue_sentry.formatting import format_pct
from revenue_sentry.schemas.revenue import PropertyProfile, RevenuePeriod
from revenue_sentry.services.analytics.config import PRIORITY_RANK, analytics_config
from revenue_sentry.services.analytics.context_builder import (
    PropertyContext,
    compute_trend,
    monthly_occupancy_series,
)
from revenue_sentry.services.analytics.cost_aggregator import CostInput, CostTotals, cost_aggregator
from revenue_sentry.services.analytics.cost_analyzer import CostAnalysis
from revenue_sentry.services.analytics.kpi_engine import KPISet, kpi_engine
from revenue_sentry.services.analytics.recommendation_rules import (
    RULES,
    Alert,
    Recommendation,
    RuleInputs,
    slugify,
)

logger = logging.getLogger(__name__)

cfg = analytics_config.recommendations


class RecommendationEngine:
    """Evaluates every rule in order and returns one ranked list."""

    def generate_recommendations(
        self,
        costs: CostInput,
        revenues: Iterable[RevenuePeriod | dict] | None,
        kpis: KPISet,
        cost_analyses: list[CostAnalysis] | None,
        profile: PropertyProfile,
        context: PropertyContext | None = None,
    ) -> list[Recommendation]:
        """Ranked recommendations: priority tier first, then estimated impact.

        With a PropertyContext the occupancy trend comes from it; otherwise it is
        computed from the revenue periods.
        """
        revenue_periods = kpi_engine.normalize_periods(revenues)
        inputs = RuleInputs(
            kpis=kpis,
            cost_totals=self._current_totals(costs),
            cost_analyses=list(cost_analyses or []),
            revenue_periods=revenue_periods,
            profile=profile,
            benchmarks=analytics_config.benchmarks.for_stars(profile.star_rating),
            occupancy_trend=(
                context.trends.occupancy if context is not None
                else compute_trend(monthly_occupancy_series(revenue_periods, profile.total_rooms))
            ),
        )

        recommendations: list[Recommendation] = []
        for rule in RULES:
            result = rule(inputs)
            if result is None:
                continue
            if isinstance(result, list):
                recommendations.extend(result)
            else:
                recommendations.append(result)

        if not recommendations and (not inputs.cost_totals.is_empty or kpis.total_costs > 0):
            recommendations.append(self._keep_monitoring(kpis))

        ranked = self.rank(recommendations)
        logger.info(
            f"{len(ranked)} recommendations for {profile.name or 'property'}"
            + (f", top: {ranked[0].id} ({ranked[0].priority})" if ranked else "")
        )
        return ranked

    @staticmethod
    def rank(recommendations: list[Recommendation]) -> list[Recommendation]:
        return sorted(
            recommendations,
            key=lambda r: (PRIORITY_RANK.get(r.priority, 0), r.estimated_impact),
            reverse=True,
        )

    def generate_alerts(self, cost_analyses: list[CostAnalysis] | None, kpis: KPISet) -> list[Alert]:
        """Threshold alerts: large category swings, negative GOP, critical margin."""
        alerts = []
        for analysis in cost_analyses or []:
            variation = analysis.variation_pct
            if analysis.anomaly and variation is not None and abs(variation) > cfg.alert_variation_pct:
                label = analysis.category.replace("_", " ")
                alerts.append(Alert(
                    id=f"alert-anomaly-{slugify(analysis.category)}",
                    kind="anomaly",
                    category=analysis.category,
                    message=f"{label.capitalize()}: change of {format_pct(variation, 0, signed=True)}",
                    severity="critica",
                ))

        if kpis.gop < 0:
            alerts.append(Alert(
                id="alert-gop-negative",
                kind="threshold",
                category="profitability",
                message="Negative GOP: the hotel is operating at a loss",
                severity="critica",
            ))

        if kpis.total_revenue > 0 and kpis.gop_margin < cfg.alert_gop_margin:
            alerts.append(Alert(
                id="alert-gop-margin-critical",
                kind="threshold",
                category="profitability",
                message=f"Critical GOP margin: {format_pct(kpis.gop_margin)}",
                severity="alta",
            ))

        if alerts:
            logger.warning(f"{len(alerts)} threshold alerts raised")
        return alerts

    @staticmethod
    def _current_totals(costs: CostInput) -> CostTotals:
        """Totals of the most recent cost period."""
        periods = cost_aggregator.aggregate_many(costs)
        return periods[-1] if periods else cost_aggregator.combine(None)

    @staticmethod
    def _keep_monitoring(kpis: KPISet) -> Recommendation:
        return Recommendation(
            id="keep-monitoring",
            category="general",
            title="Performance in line: keep monitoring",
            description=(
                "No KPI is outside its target range. Keep recording costs and revenue monthly "
                "so drifts are caught early."
            ),
            estimated_impact=0,
            difficulty="facile",
            priority="bassa",
            actions=[
                "Upload cost and revenue data every month",
                "Review the KPI dashboard weekly",
                "Compare each month with the same month last year",
            ],
            evidence=[
                f"GOP margin: {format_pct(kpis.gop_margin)}",
                f"Occupancy: {format_pct(kpis.occupancy)}",
            ],
        )


# Singleton
recommendation_engine = RecommendationEngine()
