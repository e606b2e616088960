"""One call from raw property data to the full analysis report."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from revenue_sentry.config import settings
from revenue_sentry.schemas.revenue import DailyRecord, PropertyProfile, RevenuePeriod, parse_daily_history
from revenue_sentry.services.analytics.context_builder import PropertyContext, context_builder
from revenue_sentry.services.analytics.cost_aggregator import CostInput, CostTotals, cost_aggregator
from revenue_sentry.services.analytics.cost_analyzer import CostAnalysis, cost_analyzer
from revenue_sentry.services.analytics.cost_anomaly_detector import CostAnomaly, cost_anomaly_detector
from revenue_sentry.services.analytics.data_source import PropertyDataSource
from revenue_sentry.services.analytics.demand_forecaster import (
    ForecastPoint,
    ForecastStats,
    demand_forecaster,
)
from revenue_sentry.services.analytics.kpi_engine import KPISet, kpi_engine
from revenue_sentry.services.analytics.reasoning_engine import Insight, reasoning_engine
from revenue_sentry.services.analytics.recommendation_engine import recommendation_engine
from revenue_sentry.services.analytics.recommendation_rules import Alert, Recommendation

logger = logging.getLogger(__name__)


@dataclass
class AnalysisReport:
    """Everything produced for one property in one run."""
    profile: PropertyProfile
    kpis: KPISet
    current_costs: CostTotals
    cost_analyses: list[CostAnalysis]
    cost_anomalies: list[CostAnomaly]
    forecast: list[ForecastPoint]
    forecast_stats: ForecastStats
    context: PropertyContext
    recommendations: list[Recommendation]
    alerts: list[Alert]
    anomaly_alerts: list[dict] = field(default_factory=list)
    insights: list[Insight] = field(default_factory=list)
    insight_summary: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "property": {
                "name": self.profile.name,
                "total_rooms": self.profile.total_rooms,
                "star_rating": self.profile.star_rating,
                "operating_model": self.profile.operating_model,
            },
            "kpis": self.kpis.to_dict(),
            "current_costs": self.current_costs.to_dict(),
            "cost_analyses": [a.to_dict() for a in self.cost_analyses],
            "cost_anomalies": [a.to_dict() for a in self.cost_anomalies],
            "forecast": [p.to_dict() for p in self.forecast],
            "forecast_stats": self.forecast_stats.to_dict(),
            "context": self.context.to_dict(),
            "recommendations": [r.to_dict() for r in self.recommendations],
            "alerts": [a.to_dict() for a in self.alerts],
            "anomaly_alerts": list(self.anomaly_alerts),
            "insights": [i.to_dict() for i in self.insights],
            "insight_summary": dict(self.insight_summary),
        }


class AnalyticsPipeline:
    """Runs every analytics stage in dependency order for one property.

    KPIs -> category analysis -> daily anomalies -> forecast -> context
    -> recommendations/alerts -> insights
    """

    def run(
        self,
        profile: PropertyProfile,
        revenue_periods: Iterable[RevenuePeriod | dict] | None,
        period_costs: CostInput,
        daily_history: Iterable[DailyRecord | dict] | None = None,
        current_month: int | str | None = None,
        forecast_days: int | None = None,
        anomaly_lookback_days: int | None = None,
    ) -> AnalysisReport:
        """Run every stage; unset horizons fall back to the runtime settings."""
        name = profile.name or "property"
        periods = kpi_engine.normalize_periods(revenue_periods)
        cost_periods = cost_aggregator.normalize(period_costs)
        history = parse_daily_history(daily_history)
        logger.info(
            f"Analyzing {name}: {len(periods)} revenue periods, "
            f"{len(cost_periods)} cost periods, {len(history)} days"
        )

        kpis = kpi_engine.compute_kpis(cost_periods, periods, profile)

        totals = cost_aggregator.aggregate_many(cost_periods)
        current = totals[-1] if totals else cost_aggregator.combine(None)
        previous = totals[-2] if len(totals) > 1 else None
        analyses = cost_analyzer.analyze_costs(current, previous, profile)

        anomalies = cost_anomaly_detector.detect_anomalies(cost_anomaly_detector.build_series(history))

        horizon = settings.forecast_days if forecast_days is None else forecast_days
        forecast = demand_forecaster.forecast(history, horizon)
        stats = demand_forecaster.forecast_stats(forecast)

        lookback = settings.anomaly_lookback_days if anomaly_lookback_days is None else anomaly_lookback_days
        context = context_builder.build_context(
            periods, cost_periods, history, kpis, profile,
            current_month=current_month,
            anomaly_lookback_days=lookback,
        )

        recommendations = recommendation_engine.generate_recommendations(
            cost_periods, periods, kpis, analyses, profile, context=context
        )
        alerts = recommendation_engine.generate_alerts(analyses, kpis)

        insights = reasoning_engine.generate_insights(context)

        logger.info(
            f"Finished {name}: {len(recommendations)} recommendations, {len(alerts)} alerts, "
            f"{len(anomalies)} cost anomalies, {len(insights)} insights"
        )
        return AnalysisReport(
            profile=profile,
            kpis=kpis,
            current_costs=current,
            cost_analyses=analyses,
            cost_anomalies=anomalies,
            forecast=forecast,
            forecast_stats=stats,
            context=context,
            recommendations=recommendations,
            alerts=alerts,
            anomaly_alerts=cost_anomaly_detector.generate_alerts(anomalies),
            insights=insights,
            insight_summary=reasoning_engine.summarize(insights),
        )

    def run_for_source(
        self,
        source: PropertyDataSource,
        property_id: str,
        current_month: int | str | None = None,
        forecast_days: int | None = None,
        anomaly_lookback_days: int | None = None,
    ) -> AnalysisReport:
        """Load one property from ``source`` and run the full analysis."""
        return self.run(
            profile=source.get_profile(property_id),
            revenue_periods=source.get_revenue_periods(property_id),
            period_costs=source.get_period_costs(property_id),
            daily_history=source.get_daily_history(property_id),
            current_month=current_month,
            forecast_days=forecast_days,
            anomaly_lookback_days=anomaly_lookback_days,
        )


# Singleton
analytics_pipeline = AnalyticsPipeline()
