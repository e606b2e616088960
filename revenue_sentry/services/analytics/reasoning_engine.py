"""Reasoning engine — turns a PropertyContext into prioritized, explained insights.

Each analyzer looks at one family of signals (trends, anomalies, benchmarks,
seasonality, opportunities, risks, achievements) and emits Insight objects with
a reasoning chain, concrete actions and an impact estimate. Priority and
urgency come from the signal itself: trend significance/strength, anomaly
severity/deviation, or benchmark gap size.

Final order: priority x confidence x urgency weight, highest first.
"""

import logging
from dataclasses import dataclass, field
from statistics import fmean

from revenue_sentry.formatting import format_money
from revenue_sentry.services.analytics.config import analytics_config
from revenue_sentry.services.analytics.context_builder import (
    ContextAnomaly,
    PropertyContext,
    TrendMetric,
)
from revenue_sentry.services.analytics.impact_estimator import ImpactEstimate, impact_estimator

logger = logging.getLogger(__name__)

cfg = analytics_config.insights
heuristics = analytics_config.impact

INSIGHT_CATEGORIES = ("problem", "opportunity", "risk", "achievement")


# ---------- Data structures ----------

@dataclass
class ReasoningChain:
    observation: str
    analysis: str
    causes: list[str] = field(default_factory=list)
    consequences: list[str] = field(default_factory=list)
    logic: str = ""

    def to_dict(self) -> dict:
        return {
            "observation": self.observation,
            "analysis": self.analysis,
            "causes": list(self.causes),
            "consequences": list(self.consequences),
            "logic": self.logic,
        }


@dataclass
class ActionableRecommendation:
    action: str
    why: str
    how: str
    expected_outcome: str
    effort: str                  # "low" | "medium" | "high"
    time_to_impact: str
    dependencies: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "action": self.action,
            "why": self.why,
            "how": self.how,
            "expected_outcome": self.expected_outcome,
            "effort": self.effort,
            "time_to_impact": self.time_to_impact,
            "dependencies": list(self.dependencies),
        }


@dataclass
class Insight:
    id: str
    category: str                # "problem" | "opportunity" | "risk" | "achievement"
    priority: float              # 0-10
    title: str
    description: str
    reasoning: ReasoningChain
    recommendations: list[ActionableRecommendation]
    impact: ImpactEstimate
    confidence: float            # 0-1
    urgency: str                 # "immediate" | "short-term" | "long-term"

    @property
    def score(self) -> float:
        return self.priority * self.confidence * cfg.urgency_weight.get(self.urgency, 1.0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "category": self.category,
            "priority": self.priority,
            "title": self.title,
            "description": self.description,
            "reasoning": self.reasoning.to_dict(),
            "recommendations": [r.to_dict() for r in self.recommendations],
            "impact": self.impact.to_dict(),
            "confidence": self.confidence,
            "urgency": self.urgency,
        }


# ---------- Engine ----------

class ReasoningEngine:
    """Generates insights from a PropertyContext; stateless."""

    def generate_insights(self, context: PropertyContext) -> list[Insight]:
        insights: list[Insight] = []
        for analyzer in (
            self._trend_insights,
            self._anomaly_insights,
            self._benchmark_insights,
            self._seasonality_insights,
            self._opportunity_insights,
            self._risk_insights,
            self._achievement_insights,
        ):
            insights.extend(analyzer(context))

        ranked = self.prioritize(insights)
        logger.info(
            f"Generated {len(ranked)} insights for {context.profile.name or 'property'}"
        )
        return ranked

    @staticmethod
    def prioritize(insights: list[Insight]) -> list[Insight]:
        return sorted(insights, key=lambda i: i.score, reverse=True)

    @staticmethod
    def summarize(insights: list[Insight]) -> dict:
        counts = {category: 0 for category in INSIGHT_CATEGORIES}
        for insight in insights:
            counts[insight.category] = counts.get(insight.category, 0) + 1
        return {
            "total": len(insights),
            "by_category": counts,
            "immediate": sum(1 for i in insights if i.urgency == "immediate"),
            "top_insight": insights[0].id if insights else None,
        }

    # ---------- Priority derivation ----------

    @staticmethod
    def _trend_priority(base: float, trend: TrendMetric) -> float:
        weight = cfg.significance_weight.get(trend.significance, 0.6)
        return round(min(10.0, base * weight + trend.strength * cfg.strength_bonus), 1)

    @staticmethod
    def _trend_urgency(trend: TrendMetric) -> str:
        return cfg.significance_urgency.get(trend.significance, "long-term")

    @staticmethod
    def _anomaly_priority(anomaly: ContextAnomaly) -> float:
        base = cfg.severity_priority.get(anomaly.severity, 3.0)
        return round(min(10.0, base + abs(anomaly.deviation) / 100), 1)

    @staticmethod
    def _gap_priority(base: float, gap: float, threshold: float) -> float:
        excess = max(0.0, abs(gap) - abs(threshold))
        return round(min(10.0, base + excess * 10), 1)

    # ---------- Trends ----------

    def _trend_insights(self, context: PropertyContext) -> list[Insight]:
        insights = []
        trends = context.trends

        if trends.revenue.direction == "down" and trends.revenue.significance == "high":
            trend = trends.revenue
            insights.append(Insight(
                id="trend-revenue-declining",
                category="problem",
                priority=self._trend_priority(cfg.revenue_priority, trend),
                title="Revenue declining sharply",
                description=(
                    f"Revenue fell {abs(trend.change_percent):.1f}% over the last {trend.timeframe}."
                ),
                reasoning=self._revenue_decline_chain(context),
                recommendations=self._revenue_actions(context),
                impact=impact_estimator.estimate(
                    "revenue_recovery",
                    baseline=context.average_monthly_revenue,
                    target_change=abs(trend.change_percent) * 0.5,
                ),
                confidence=cfg.revenue_confidence,
                urgency=self._trend_urgency(trend),
            ))

        if trends.costs.direction == "up" and trends.costs.significance == "high":
            trend = trends.costs
            insights.append(Insight(
                id="trend-costs-rising",
                category="problem",
                priority=self._trend_priority(cfg.cost_priority, trend),
                title="Costs rising faster than the business",
                description=(
                    f"Costs rose {trend.change_percent:.1f}% over the last {trend.timeframe} "
                    "without a matching rise in occupancy."
                ),
                reasoning=self._cost_increase_chain(context),
                recommendations=self._cost_actions(context),
                impact=impact_estimator.estimate(
                    "cost_reduction",
                    baseline=context.average_monthly_costs,
                    target_change=-trend.change_percent * 0.3,
                ),
                confidence=cfg.cost_confidence,
                urgency=self._trend_urgency(trend),
            ))

        if trends.occupancy.direction == "down" and trends.occupancy.significance in ("medium", "high"):
            trend = trends.occupancy
            recover_points = abs(trend.absolute_change) * 0.6
            insights.append(Insight(
                id="trend-occupancy-declining",
                category="problem",
                priority=self._trend_priority(cfg.occupancy_priority, trend),
                title="Occupancy slipping",
                description=(
                    f"Occupancy dropped {abs(trend.change_percent):.1f}% "
                    f"({abs(trend.absolute_change):.1f} points) over the last {trend.timeframe}."
                ),
                reasoning=self._occupancy_decline_chain(context, recover_points),
                recommendations=self._occupancy_actions(context),
                impact=impact_estimator.estimate(
                    "occupancy_improvement",
                    baseline=context.kpis.occupancy,
                    target_change=recover_points,
                    context=context,
                ),
                confidence=cfg.occupancy_confidence,
                urgency=self._trend_urgency(trend),
            ))

        if trends.profitability.direction == "down" and trends.profitability.significance == "high":
            trend = trends.profitability
            insights.append(Insight(
                id="trend-profitability-declining",
                category="problem",
                priority=self._trend_priority(cfg.profitability_priority, trend),
                title="Profitability in critical decline",
                description=(
                    f"Operating profit fell {abs(trend.change_percent):.1f}% over the last "
                    f"{trend.timeframe}."
                ),
                reasoning=self._profitability_decline_chain(context),
                recommendations=self._profitability_actions(context),
                impact=impact_estimator.estimate(
                    "profitability_recovery",
                    baseline=impact_estimator.average_monthly_profit(context),
                    target_change=abs(trend.change_percent) * 0.4,
                ),
                confidence=cfg.profitability_confidence,
                urgency=self._trend_urgency(trend),
            ))

        return insights

    # ---------- Anomalies ----------

    def _anomaly_insights(self, context: PropertyContext) -> list[Insight]:
        insights = []
        for anomaly in context.anomalies:
            if anomaly.severity not in ("critical", "warning"):
                continue
            critical = anomaly.severity == "critical"
            direction = "above" if anomaly.actual > anomaly.expected else "below"
            metric = anomaly.metric.replace("_", " ")

            revenue_change = (
                anomaly.deviation * context.average_monthly_revenue / 100
                if anomaly.type == "revenue" else 0.0
            )
            cost_change = (
                anomaly.deviation * context.average_monthly_costs / 100
                if anomaly.type == "cost" else 0.0
            )
            insights.append(Insight(
                id=f"anomaly-{anomaly.type}-{anomaly.metric}-{anomaly.period}".replace(" ", "-"),
                category="problem" if critical else "risk",
                priority=self._anomaly_priority(anomaly),
                title=f"{anomaly.type.capitalize()} anomaly: {metric}",
                description=(
                    f"{metric.capitalize()} is {abs(anomaly.deviation):.1f}% {direction} the expected "
                    f"value ({anomaly.actual:,.2f} vs {anomaly.expected:,.2f}) in {anomaly.period}."
                ),
                reasoning=ReasoningChain(
                    observation=f"{metric.capitalize()} deviates {abs(anomaly.deviation):.1f}% from expectation",
                    analysis=(
                        "The deviation is critical and needs attention this week."
                        if critical else
                        "The deviation is significant; watch it before it becomes structural."
                    ),
                    causes=list(anomaly.possible_causes),
                    consequences=self._anomaly_consequences(anomaly),
                    logic=(
                        f"Expected {metric} was {anomaly.expected:,.2f} and the observed value is "
                        f"{anomaly.actual:,.2f}. A gap of {abs(anomaly.deviation):.1f}% is beyond "
                        "normal month-to-month variation for this property."
                    ),
                ),
                recommendations=self._anomaly_actions(anomaly),
                impact=ImpactEstimate(
                    revenue_change=revenue_change,
                    cost_change=cost_change,
                    confidence=0.7,
                ),
                confidence=cfg.severity_confidence[anomaly.severity],
                urgency=cfg.severity_urgency[anomaly.severity],
            ))
        return insights

    @staticmethod
    def _anomaly_consequences(anomaly: ContextAnomaly) -> list[str]:
        if anomaly.type == "cost":
            return [
                "Profit margin erosion",
                "Pressure to raise rates and lose price competitiveness",
            ]
        if anomaly.type == "revenue":
            return [
                "Lost revenue that cannot be recovered later",
                "Lower profitability",
                "Cash-flow strain",
            ]
        return ["Negative effect on overall performance"]

    @staticmethod
    def _anomaly_actions(anomaly: ContextAnomaly) -> list[ActionableRecommendation]:
        if anomaly.type == "cost":
            return [ActionableRecommendation(
                action=f"Audit the invoices behind {anomaly.period}",
                why="An unexplained cost spike is usually one supplier, one meter or one rota",
                how="Compare supplier invoices, utility readings and staff hours line by line with the previous month",
                expected_outcome="Root cause identified and the recurring part removed",
                effort="low",
                time_to_impact="1 week",
            )]
        return [ActionableRecommendation(
            action="Review pickup, rates and channel mix for the last three months",
            why="A revenue drop this size points to a demand, price or visibility problem",
            how="Compare booking pace and ADR with the same months last year and with the competitive set",
            expected_outcome="Clear split between demand loss and pricing loss",
            effort="medium",
            time_to_impact="2 weeks",
        )]

    # ---------- Benchmarks ----------

    def _benchmark_insights(self, context: PropertyContext) -> list[Insight]:
        insights = []
        benchmarks = context.benchmarks
        kpis = context.kpis
        if kpis.total_revenue <= 0:
            return insights

        adr = benchmarks.comparisons.get("adr")
        if adr and adr.actual > 0 and adr.gap < cfg.adr_gap:
            monthly_gain = (adr.benchmark - adr.actual) * context.rooms_sold_per_day * heuristics.operating_days_per_month
            insights.append(Insight(
                id="benchmark-adr-low",
                category="opportunity",
                priority=self._gap_priority(8.0, adr.gap, cfg.adr_gap),
                title="ADR below market benchmark",
                description=(
                    f"ADR of {format_money(adr.actual)} is {abs(adr.gap) * 100:.1f}% below the "
                    f"{benchmarks.tier}-star benchmark of {format_money(adr.benchmark)}."
                ),
                reasoning=ReasoningChain(
                    observation=f"ADR gap: {adr.gap * 100:.1f}% vs benchmark",
                    analysis="Rates sit well under the market, so revenue is being left on the table.",
                    causes=["Rates not optimized", "Conservative pricing strategy", "No dynamic pricing"],
                    consequences=[
                        "Significant lost revenue",
                        "Thin margins leave no room to invest in service",
                    ],
                    logic=(
                        f"Closing the gap to {format_money(adr.benchmark)} at current volume is worth about "
                        f"{format_money(monthly_gain)} per month."
                    ),
                ),
                recommendations=[
                    ActionableRecommendation(
                        action="Raise rates in 5% steps on high-demand dates",
                        why="Demand on peak dates absorbs increases with little occupancy loss",
                        how="Start with weekends and event dates, check pickup weekly before the next step",
                        expected_outcome=f"+{format_money(impact_estimator.dynamic_pricing_gain(context))}/month",
                        effort="low",
                        time_to_impact="2 weeks",
                    ),
                ],
                impact=ImpactEstimate(
                    revenue_change=monthly_gain,
                    profit_change=monthly_gain,
                    confidence=0.8,
                ),
                confidence=0.85,
                urgency="short-term",
            ))

        occupancy = benchmarks.comparisons.get("occupancy")
        if occupancy and occupancy.actual > 0 and occupancy.gap < cfg.occupancy_gap:
            points = occupancy.benchmark - occupancy.actual
            revenue = impact_estimator.revenue_per_occupancy_point(context) * points
            insights.append(Insight(
                id="benchmark-occupancy-low",
                category="opportunity",
                priority=self._gap_priority(7.0, occupancy.gap, cfg.occupancy_gap),
                title="Occupancy below market benchmark",
                description=(
                    f"Occupancy of {occupancy.actual:.1f}% is {abs(occupancy.gap) * 100:.1f}% below "
                    f"the benchmark of {occupancy.benchmark:.1f}%."
                ),
                reasoning=ReasoningChain(
                    observation=f"Occupancy gap: {occupancy.gap * 100:.1f}%",
                    analysis="Occupancy trails the market, pointing to a demand or visibility problem.",
                    causes=["Too little marketing", "Weak reviews", "Uncompetitive rates", "Low online visibility"],
                    consequences=["Empty rooms", "Fixed costs spread over fewer guests", "Lost market share"],
                    logic=(
                        f"At {occupancy.actual:.1f}% against {occupancy.benchmark:.1f}%, the property is "
                        f"missing about {points:.1f} points of occupancy."
                    ),
                ),
                recommendations=self._occupancy_actions(context),
                impact=ImpactEstimate(
                    revenue_change=revenue,
                    profit_change=revenue,
                    occupancy_change=points,
                    confidence=0.75,
                    timeframe="2-3 months",
                ),
                confidence=0.8,
                urgency="short-term",
            ))

        cost_ratio = benchmarks.comparisons.get("cost_ratio")
        if cost_ratio and cost_ratio.gap > cfg.cost_ratio_gap:
            excess = (cost_ratio.actual - cost_ratio.benchmark) * context.average_monthly_revenue
            insights.append(Insight(
                id="benchmark-cost-ratio-high",
                category="problem",
                priority=self._gap_priority(7.0, cost_ratio.gap, cfg.cost_ratio_gap),
                title="Cost ratio above benchmark",
                description=(
                    f"Costs absorb {cost_ratio.actual * 100:.1f}% of revenue against a benchmark of "
                    f"{cost_ratio.benchmark * 100:.1f}%."
                ),
                reasoning=ReasoningChain(
                    observation=f"Cost ratio gap: +{cost_ratio.gap * 100:.1f}%",
                    analysis="The property spends too much for the revenue it generates.",
                    causes=["Costs too high", "Revenue too low", "No cost control routine"],
                    consequences=["Eroded margins", "Lower profitability", "Weaker competitive position"],
                    logic=(
                        f"Bringing the ratio back to {cost_ratio.benchmark * 100:.0f}% frees about "
                        f"{format_money(excess)} per month."
                    ),
                ),
                recommendations=self._cost_actions(context),
                impact=ImpactEstimate(
                    cost_change=-excess,
                    profit_change=excess,
                    timeframe="2-3 months",
                ),
                confidence=0.75,
                urgency="short-term",
            ))

        return insights

    # ---------- Seasonality ----------

    def _seasonality_insights(self, context: PropertyContext) -> list[Insight]:
        insights = []
        season = context.seasonality
        avg_costs = context.average_monthly_costs
        avg_revenue = context.average_monthly_revenue

        if season.next_factor > cfg.peak_factor and not season.is_high_season:
            gain = impact_estimator.seasonal_pricing_gain(context)
            extra_cost = avg_costs * heuristics.peak_cost_increase
            insights.append(Insight(
                id="seasonality-high-season-coming",
                category="opportunity",
                priority=6.0,
                title="High season next month",
                description=(
                    f"Next month's seasonal factor is {season.next_factor:.2f}x. "
                    "Prepare rates and staffing for stronger demand."
                ),
                reasoning=ReasoningChain(
                    observation=f"Next month seasonal factor: {season.next_factor:.2f}x",
                    analysis="History shows higher occupancy next month, a window to lift rates.",
                    causes=["Tourist season", "Local events", "Favourable weather"],
                    consequences=["Revenue left on the table if rates stay flat"],
                    logic=(
                        f"Next month typically runs {(season.next_factor - 1) * 100:.0f}% above average "
                        "occupancy; rates should be set before the pickup starts."
                    ),
                ),
                recommendations=[
                    ActionableRecommendation(
                        action="Raise next month's rates by 15-25%",
                        why="Demand will be high, rates can rise without losing occupancy",
                        how="Load a seasonal rate plan now and close discounted rates on peak dates",
                        expected_outcome=f"+{format_money(gain)} revenue",
                        effort="low",
                        time_to_impact="Immediate",
                    ),
                    ActionableRecommendation(
                        action="Plan staffing and supplies for the peak",
                        why="High occupancy needs more housekeeping and service capacity",
                        how="Confirm seasonal staff and supplier volumes two weeks ahead",
                        expected_outcome="Service quality held through the peak",
                        effort="medium",
                        time_to_impact="1 week",
                        dependencies=["Team coordination"],
                    ),
                ],
                impact=ImpactEstimate(
                    revenue_change=gain,
                    cost_change=extra_cost,
                    profit_change=gain - extra_cost,
                    occupancy_change=(season.next_factor - 1) * heuristics.peak_occupancy_scale,
                    confidence=0.8,
                    timeframe="next month",
                ),
                confidence=0.8,
                urgency="short-term",
            ))

        if season.next_factor < cfg.trough_factor and not season.is_low_season:
            lost_revenue = avg_revenue * (1 - season.next_factor)
            saving = avg_costs * heuristics.trough_cost_saving
            insights.append(Insight(
                id="seasonality-low-season-coming",
                category="risk",
                priority=5.0,
                title="Low season next month",
                description=(
                    f"Next month's seasonal factor is {season.next_factor:.2f}x. "
                    "Plan promotions and trim variable costs."
                ),
                reasoning=ReasoningChain(
                    observation=f"Next month seasonal factor: {season.next_factor:.2f}x",
                    analysis="History shows lower occupancy next month; act before the dip.",
                    causes=["Low tourist season", "Less favourable weather"],
                    consequences=["Lower revenue", "Empty rooms", "Fixed costs over fewer guests"],
                    logic=(
                        f"Next month typically runs {(1 - season.next_factor) * 100:.0f}% below average "
                        "occupancy; promotions and cost trims protect the margin."
                    ),
                ),
                recommendations=[
                    ActionableRecommendation(
                        action="Launch last-minute offers and packages",
                        why="Low season needs price-led demand",
                        how="20-30% last-minute discounts, weekend packages, tie-ins with local events",
                        expected_outcome=f"Occupancy held near {season.next_factor * 100:.0f}% of average",
                        effort="medium",
                        time_to_impact="2-3 weeks",
                        dependencies=["Marketing budget"],
                    ),
                    ActionableRecommendation(
                        action="Trim variable costs for lower occupancy",
                        why="Some costs can fall with guest numbers without hurting quality",
                        how="Reduce non-essential services, adjust shifts, renegotiate supplier volumes",
                        expected_outcome=f"{format_money(saving)}/month saved",
                        effort="medium",
                        time_to_impact="1 month",
                    ),
                ],
                impact=ImpactEstimate(
                    revenue_change=-lost_revenue,
                    cost_change=-saving,
                    profit_change=-lost_revenue + saving,
                    occupancy_change=-(1 - season.next_factor) * heuristics.trough_occupancy_scale,
                    confidence=0.75,
                    timeframe="next month",
                ),
                confidence=0.75,
                urgency="short-term",
            ))

        return insights

    # ---------- Opportunities ----------

    def _opportunity_insights(self, context: PropertyContext) -> list[Insight]:
        insights = []
        occupancy = context.kpis.occupancy
        if occupancy <= 0:
            return insights

        if occupancy > cfg.upsell_occupancy:
            upsell = impact_estimator.upsell_potential(context)
            insights.append(Insight(
                id="opportunity-upselling",
                category="opportunity",
                priority=5.0,
                title="Upselling potential at high occupancy",
                description=(
                    f"With occupancy at {occupancy:.1f}%, extra services can lift revenue per guest."
                ),
                reasoning=ReasoningChain(
                    observation=f"High occupancy: {occupancy:.1f}%",
                    analysis="Every guest is a chance for high-margin extra revenue.",
                    causes=["More guests in house", "High margins on extras"],
                    consequences=["Incremental revenue", "Better guest experience"],
                    logic=(
                        f"Selling a {format_money(heuristics.upsell_ticket)} extra to "
                        f"{heuristics.upsell_conversion * 100:.0f}% of guests adds about "
                        f"{format_money(upsell)} per month."
                    ),
                ),
                recommendations=[ActionableRecommendation(
                    action="Run a structured upselling program",
                    why="High-margin revenue with little extra cost",
                    how="Reception training, check-in offers, pre-arrival emails with breakfast, late checkout and upgrades",
                    expected_outcome=f"+{format_money(upsell)}/month",
                    effort="low",
                    time_to_impact="1 week",
                    dependencies=["Two hours of staff training"],
                )],
                impact=ImpactEstimate(
                    revenue_change=upsell,
                    cost_change=upsell * heuristics.upsell_cost_share,
                    profit_change=upsell * (1 - heuristics.upsell_cost_share),
                ),
                confidence=0.7,
                urgency="long-term",
            ))

        if occupancy < cfg.reviews_occupancy:
            points = heuristics.review_occupancy_points
            revenue = impact_estimator.revenue_per_occupancy_point(context) * points
            insights.append(Insight(
                id="opportunity-reviews",
                category="opportunity",
                priority=6.0,
                title="Better reviews to lift occupancy",
                description="Stronger online reviews raise occupancy and support higher rates.",
                reasoning=ReasoningChain(
                    observation=f"Occupancy below potential: {occupancy:.1f}%",
                    analysis="Online reviews are a leading factor in booking decisions.",
                    causes=["Few or negative reviews", "No review management routine"],
                    consequences=["Lost bookings", "No room to raise rates"],
                    logic="Moving the review score from 4.0 to 4.5 typically adds 10-15% occupancy.",
                ),
                recommendations=[ActionableRecommendation(
                    action="Start proactive review management",
                    why="Better reviews bring more bookings at higher rates",
                    how="Post-checkout review emails, reply to every review, fix recurring complaints fast",
                    expected_outcome=f"+{format_money(revenue)}/month",
                    effort="medium",
                    time_to_impact="2-3 months",
                    dependencies=["Automated email"],
                )],
                impact=ImpactEstimate(
                    revenue_change=revenue,
                    profit_change=revenue * heuristics.occupancy_profit_share,
                    occupancy_change=points,
                    timeframe="2-3 months",
                ),
                confidence=0.65,
                urgency="long-term",
            ))

        return insights

    # ---------- Risks ----------

    def _risk_insights(self, context: PropertyContext) -> list[Insight]:
        insights = []
        kpis = context.kpis
        if kpis.total_revenue <= 0 and kpis.total_costs <= 0:
            return insights

        profit_falling = context.trends.profitability.direction == "down"
        if kpis.goppar < 0 or (profit_falling and kpis.goppar < cfg.cash_flow_goppar):
            insights.append(Insight(
                id="risk-cash-flow",
                category="risk",
                priority=10.0,
                title="Cash-flow risk",
                description=(
                    f"GOPPAR of {format_money(kpis.goppar)} "
                    f"{'means the property is losing money' if kpis.goppar < 0 else 'leaves almost no buffer'}."
                ),
                reasoning=ReasoningChain(
                    observation=f"GOPPAR {format_money(kpis.goppar)}, profitability trend {context.trends.profitability.direction}",
                    analysis="Operating profit per room is too thin to absorb a weak month.",
                    causes=["Revenue below break-even", "Fixed costs too high for current volume"],
                    consequences=["Difficulty paying suppliers and staff", "No capacity to invest"],
                    logic="Negative or shrinking GOPPAR turns into a cash shortfall within one or two weak months.",
                ),
                recommendations=self._profitability_actions(context),
                impact=ImpactEstimate(
                    profit_change=abs(kpis.gop) * 0.2,
                    confidence=0.6,
                    timeframe="1-2 months",
                ),
                confidence=0.9,
                urgency="immediate",
            ))

        pressure = self.competitor_pressure(context)
        if pressure > cfg.competitor_pressure and kpis.occupancy < cfg.competitor_occupancy:
            insights.append(Insight(
                id="risk-competitor-pressure",
                category="risk",
                priority=7.0,
                title="Competitive pressure on rates",
                description="Competitors are undercutting the property while occupancy trails the market.",
                reasoning=ReasoningChain(
                    observation=f"Competitor pressure index {pressure:.2f} with occupancy {kpis.occupancy:.1f}%",
                    analysis="Guests comparing prices find cheaper alternatives nearby.",
                    causes=["Competitors pricing below the property", "Weak differentiation"],
                    consequences=["Lost bookings to the competitive set", "Pressure to discount"],
                    logic="When most recent days show competitors cheaper and occupancy is soft, price is the likely cause.",
                ),
                recommendations=[ActionableRecommendation(
                    action="Reposition against the competitive set",
                    why="Matching on value is cheaper than matching on price",
                    how="Check the rate gap daily, add value (breakfast, flexible cancellation) on dates where you are dearer",
                    expected_outcome="Occupancy recovered without a blanket rate cut",
                    effort="medium",
                    time_to_impact="2-4 weeks",
                )],
                impact=impact_estimator.estimate(
                    "occupancy_improvement",
                    baseline=kpis.occupancy,
                    target_change=max(0.0, cfg.competitor_occupancy - kpis.occupancy) * 0.5,
                    context=context,
                    confidence=0.6,
                ),
                confidence=0.65,
                urgency="short-term",
            ))

        return insights

    @staticmethod
    def competitor_pressure(context: PropertyContext) -> float:
        """Share of recent days where our rate sat above competitors (0-1).

        Without competitor prices, falls back to an occupancy proxy.
        """
        recent = [
            r for r in context.daily_history[-30:]
            if r.competitor_avg_price and r.adr > 0
        ]
        if recent:
            above = sum(1 for r in recent if r.adr > r.competitor_avg_price * cfg.competitor_price_margin)
            return above / len(recent)
        occupancy = context.kpis.occupancy
        if occupancy <= 0:
            return 0.0
        if occupancy < 70:
            return 0.7
        if occupancy < 80:
            return 0.5
        return 0.3

    # ---------- Achievements ----------

    def _achievement_insights(self, context: PropertyContext) -> list[Insight]:
        insights = []
        trend = context.trends.revenue
        if trend.direction == "up" and trend.significance == "high":
            insights.append(Insight(
                id="achievement-revenue-growth",
                category="achievement",
                priority=self._trend_priority(cfg.growth_priority, trend),
                title="Strong revenue growth",
                description=f"Revenue grew {trend.change_percent:.1f}% over the last {trend.timeframe}.",
                reasoning=ReasoningChain(
                    observation=f"Revenue trend +{trend.change_percent:.1f}%",
                    analysis="Recent months clearly outperform the three before them.",
                    causes=["Pricing and demand moving in the right direction"],
                    consequences=["Room to invest in service and marketing"],
                    logic="Lock in what worked: keep the rate strategy and channel mix that drove the growth.",
                ),
                recommendations=[ActionableRecommendation(
                    action="Document and keep the actions behind the growth",
                    why="Growth that is understood can be repeated",
                    how="Review which rates, channels and segments grew most and keep them in next season's plan",
                    expected_outcome="Growth sustained into next season",
                    effort="low",
                    time_to_impact="1 month",
                )],
                impact=ImpactEstimate(
                    revenue_change=trend.absolute_change,
                    confidence=0.6,
                ),
                confidence=cfg.growth_confidence,
                urgency="long-term",
            ))

        margin = context.kpis.gop_margin
        if margin >= cfg.strong_gop_margin and context.kpis.total_revenue > 0:
            insights.append(Insight(
                id="achievement-strong-margin",
                category="achievement",
                priority=4.0,
                title="Healthy operating margin",
                description=f"GOP margin of {margin:.1f}% is above the 25-35% hotel target range.",
                reasoning=ReasoningChain(
                    observation=f"GOP margin {margin:.1f}%",
                    analysis="Costs are well controlled relative to revenue.",
                    consequences=["Capacity to reinvest in the property"],
                    logic="A margin at this level leaves room for renovation or marketing investment.",
                ),
                recommendations=[],
                impact=ImpactEstimate(confidence=0.8),
                confidence=0.8,
                urgency="long-term",
            ))

        return insights

    # ---------- Reasoning chains ----------

    def _revenue_decline_chain(self, context: PropertyContext) -> ReasoningChain:
        kpis, trends = context.kpis, context.trends
        benchmark_adr = context.benchmarks.benchmark("adr")

        if trends.occupancy.direction == "down":
            analysis = (
                f"The drop is mainly driven by lower occupancy ({trends.occupancy.change_percent:.1f}%), "
                "which points to a demand or competitiveness problem."
            )
        elif benchmark_adr and kpis.adr < benchmark_adr * 0.9:
            analysis = (
                f"The drop is tied to rates: ADR of {format_money(kpis.adr)} sits well under the "
                f"benchmark of {format_money(benchmark_adr)}."
            )
        else:
            analysis = "The drop needs a closer look at booking pace and channel mix."

        causes = []
        if benchmark_adr and kpis.adr < benchmark_adr * 0.9:
            causes.append("Rates below market")
        if kpis.occupancy < 70:
            causes.append("Low occupancy: marketing or online visibility issues")
        if context.seasonality.is_low_season:
            causes.append("Low season for the property")
        if self.competitor_pressure(context) > cfg.competitor_pressure:
            causes.append("Competitors pricing more aggressively")
        causes.append("Sustained three-month decline suggests a structural issue")

        projected_loss = context.average_monthly_revenue * abs(trends.revenue.change_percent) / 100 * 3
        logic = f"Revenue fell {abs(trends.revenue.change_percent):.1f}% over the last {trends.revenue.timeframe}. "
        if trends.occupancy.direction == "down":
            logic += f"Occupancy is down to {kpis.occupancy:.1f}%. "
        logic += (
            f"Left unaddressed the decline costs roughly {format_money(projected_loss)} over the next three months."
        )

        return ReasoningChain(
            observation=f"Revenue trend {trends.revenue.change_percent:.1f}% over {trends.revenue.timeframe}",
            analysis=analysis,
            causes=causes,
            consequences=[
                "Lower overall profitability",
                "Harder to cover fixed costs",
                "Loss of competitiveness",
                "Risk of negative cash flow",
            ],
            logic=logic,
        )

    def _cost_increase_chain(self, context: PropertyContext) -> ReasoningChain:
        trends = context.trends
        categories = self._rising_cost_categories(context)
        occupancy_note = (
            f"occupancy rose only {trends.occupancy.change_percent:.1f}%"
            if trends.occupancy.direction == "up" else "occupancy did not rise"
        )
        logic = f"Costs rose {trends.costs.change_percent:.1f}% while {occupancy_note}. "
        if categories:
            logic += f"The biggest movers are: {', '.join(categories)}. "
        logic += "On this path the margin drops below a sustainable level."

        return ReasoningChain(
            observation=f"Cost trend +{trends.costs.change_percent:.1f}%",
            analysis="Costs are outgrowing activity, so each guest costs more to serve.",
            causes=[f"Rising {c} costs" for c in categories] or ["Broad-based cost inflation"],
            consequences=[
                "Profit margin erosion",
                "Rate increases that risk losing guests",
                "Unsustainable economics if it continues",
            ],
            logic=logic,
        )

    def _occupancy_decline_chain(self, context: PropertyContext, recover_points: float) -> ReasoningChain:
        kpis, trends = context.kpis, context.trends
        benchmark_adr = context.benchmarks.benchmark("adr")
        logic = (
            f"Occupancy is at {kpis.occupancy:.1f}%, down {abs(trends.occupancy.change_percent):.1f}%. "
            "Every empty room-night is revenue that cannot be recovered. "
        )
        if benchmark_adr and kpis.adr > benchmark_adr * 1.1:
            logic += (
                f"ADR of {format_money(kpis.adr)} is well above the market ({format_money(benchmark_adr)}), "
                "so price may be limiting demand. "
            )
        else:
            logic += "Rates are in line with the market, which points to visibility or reviews. "
        logic += (
            f"Each occupancy point is worth about "
            f"{format_money(impact_estimator.revenue_per_occupancy_point(context))}/month; "
            f"the actions below target {recover_points:.1f} points."
        )

        causes = ["Weaker online visibility", "Review score slipping"]
        if benchmark_adr and kpis.adr > benchmark_adr * 1.1:
            causes.insert(0, "Rates above market")
        if context.seasonality.is_low_season:
            causes.append("Seasonal dip")

        return ReasoningChain(
            observation=f"Occupancy trend {trends.occupancy.change_percent:.1f}%",
            analysis="Fewer rooms sold while the cost base stays fixed.",
            causes=causes,
            consequences=[
                "Lost revenue per empty room",
                "Fixed costs spread over fewer rooms",
                "Possible competitive or market problem",
            ],
            logic=logic,
        )

    def _profitability_decline_chain(self, context: PropertyContext) -> ReasoningChain:
        kpis, trends = context.kpis, context.trends
        state = "running at a loss" if kpis.goppar < 0 else "earning a minimal profit"
        logic = (
            f"Profitability fell {abs(trends.profitability.change_percent):.1f}%. With GOPPAR at "
            f"{format_money(kpis.goppar)} the property is {state}. "
        )
        if trends.revenue.direction == "down" and trends.costs.direction == "up":
            logic += "The problem is twofold: revenue falling and costs rising; both need action."
        elif trends.revenue.direction == "down":
            logic += "The main driver is falling revenue; focus on occupancy and pricing."
        else:
            logic += "The main driver is rising costs; focus on cost control."

        return ReasoningChain(
            observation=f"Profitability trend {trends.profitability.change_percent:.1f}%",
            analysis="Profit is falling fast, a sign of structural problems in the operating model.",
            causes=["Falling revenue", "Rising costs", "Insufficient occupancy"],
            consequences=["Negative cash-flow risk", "No capacity to invest", "Business sustainability at risk"],
            logic=logic,
        )

    @staticmethod
    def _rising_cost_categories(context: PropertyContext) -> list[str]:
        """Categories whose latest 3-period average rose more than 10% on the 3 before."""
        periods = context.cost_periods
        if len(periods) < 6:
            return []
        rising = []
        for category in periods[-1].by_category:
            recent = fmean(p.category(category) for p in periods[-3:])
            previous = fmean(p.category(category) for p in periods[-6:-3])
            if previous > 0 and (recent - previous) / previous > 0.10:
                rising.append(category.replace("_", " "))
        return rising

    # ---------- Action catalogs ----------

    def _revenue_actions(self, context: PropertyContext) -> list[ActionableRecommendation]:
        actions = []
        benchmark_adr = context.benchmarks.benchmark("adr")
        if benchmark_adr and context.kpis.adr < benchmark_adr * 0.95:
            actions.append(ActionableRecommendation(
                action="Introduce dynamic pricing",
                why="Rates below market leave money on high-demand dates",
                how="Lift rates 10-20% on weekends and event dates, review weekly",
                expected_outcome=f"+{format_money(impact_estimator.dynamic_pricing_gain(context))}/month",
                effort="low",
                time_to_impact="1-2 weeks",
            ))
        actions.append(ActionableRecommendation(
            action="Push direct and OTA visibility",
            why="Falling revenue usually starts with falling booking pace",
            how="Refresh listing photos, run a limited promotion on the main OTA, retarget past guests",
            expected_outcome="Booking pace back to last year's level",
            effort="medium",
            time_to_impact="2-4 weeks",
            dependencies=["Marketing budget"],
        ))
        return actions

    def _cost_actions(self, context: PropertyContext) -> list[ActionableRecommendation]:
        saving = context.average_monthly_costs * heuristics.cost_reduction_share
        return [
            ActionableRecommendation(
                action="Renegotiate the three largest supplier contracts",
                why="Supplier spend is the fastest cost line to move",
                how="Request competing quotes and consolidate orders for volume pricing",
                expected_outcome=f"Up to {format_money(saving)}/month saved",
                effort="medium",
                time_to_impact="1 month",
            ),
            ActionableRecommendation(
                action="Match staffing and energy use to occupancy",
                why="Variable costs should follow guest numbers",
                how="Build rotas from the occupancy forecast; set heating and lighting schedules for empty floors",
                expected_outcome="Cost per guest back in line with prior months",
                effort="medium",
                time_to_impact="2-4 weeks",
            ),
        ]

    def _occupancy_actions(self, context: PropertyContext) -> list[ActionableRecommendation]:
        per_point = impact_estimator.revenue_per_occupancy_point(context)
        return [
            ActionableRecommendation(
                action="Open more distribution and promotions for need periods",
                why="Unsold rooms have no value after the night passes",
                how="Targeted OTA promotions, mobile rates and packages on low-pickup dates",
                expected_outcome=f"Each extra point of occupancy is worth {format_money(per_point)}/month",
                effort="medium",
                time_to_impact="2-3 weeks",
            ),
            ActionableRecommendation(
                action="Improve review score and listing content",
                why="Reviews and photos drive conversion on booking sites",
                how="Reply to every review, fix recurring complaints, refresh photos",
                expected_outcome="Higher conversion from the same traffic",
                effort="medium",
                time_to_impact="1-3 months",
            ),
        ]

    def _profitability_actions(self, context: PropertyContext) -> list[ActionableRecommendation]:
        return [
            ActionableRecommendation(
                action="Run a full cost and pricing review this month",
                why="Profit decline needs action on both revenue and cost",
                how="Line-by-line cost review plus a rate check against the competitive set",
                expected_outcome="A recovery plan with owners and deadlines",
                effort="high",
                time_to_impact="1 month",
            ),
            *self._cost_actions(context)[:1],
        ]


# Singleton
reasoning_engine = ReasoningEngine()
