"""Recommendation rule catalog.

Every rule is a pure function ``RuleInputs -> Recommendation | list | None``.
RULES lists them in evaluation order:

    revpar_below_benchmark      RevPAR under 70% of the star-tier benchmark
    rate_occupancy_mismatch     ADR per occupancy fraction outside 80-200
    ancillary_revenue_low       TRevPAR under 1.1x RevPAR
    goppar_below_benchmark      GOPPAR under 70% of the star-tier benchmark
    cpor_high                   cost per occupied room above 35% of ADR
    cac_out_of_band             acquisition cost outside 8-25% of ADR
    gop_margin_low              GOP margin under 20% (critica under 10%)
    occupancy_trend_shift       3-month occupancy move beyond 10 points
    category_cost_anomalies     category spend up more than 20% on last period
    category_above_benchmark    category spend more than 15% over the sector
    too_many_fnb_suppliers      more than 10 active F&B suppliers
    cppr_high                   cost per guest-night above 40% of ADR
    latest_occupancy_low        latest month occupancy under 60%
    utilities_excessive         utilities above 130% of the sector benchmark

Impact estimates are monthly and proportional to the gap each rule measures.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from revenue_sentry.formatting import format_money, format_pct
from revenue_sentry.schemas.revenue import PropertyProfile, RevenuePeriod
from revenue_sentry.services.analytics.config import analytics_config
from revenue_sentry.services.analytics.context_builder import TrendMetric
from revenue_sentry.services.analytics.cost_aggregator import CostTotals
from revenue_sentry.services.analytics.cost_analyzer import CostAnalysis, CostAnalyzer
from revenue_sentry.services.analytics.kpi_engine import KPISet, kpi_engine

logger = logging.getLogger(__name__)

cfg = analytics_config.recommendations
impact = analytics_config.recommendation_impact


# ---------- Data structures ----------

@dataclass
class Recommendation:
    id: str
    category: str
    title: str
    description: str
    estimated_impact: float       # monthly, currency units
    difficulty: str               # "facile" | "media" | "complessa"
    priority: str                 # "critica" | "alta" | "media" | "bassa"
    actions: list[str] = field(default_factory=list)
    evidence: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "category": self.category,
            "title": self.title,
            "description": self.description,
            "estimated_impact": self.estimated_impact,
            "difficulty": self.difficulty,
            "priority": self.priority,
            "actions": list(self.actions),
            "evidence": list(self.evidence),
        }


@dataclass
class Alert:
    id: str
    kind: str                     # "anomaly" | "threshold" | "trend"
    category: str
    message: str
    severity: str                 # "critica" | "alta" | "media" | "bassa"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": self.kind,
            "category": self.category,
            "message": self.message,
            "severity": self.severity,
        }


@dataclass
class RuleInputs:
    """Everything a rule may look at; built once per evaluation."""
    kpis: KPISet
    cost_totals: CostTotals                # latest period (or span) under review
    cost_analyses: list[CostAnalysis]
    revenue_periods: list[RevenuePeriod]
    profile: PropertyProfile
    benchmarks: dict[str, float]           # star-tier adr/occupancy/revpar/goppar/cost_ratio
    occupancy_trend: TrendMetric

    @property
    def rooms(self) -> int:
        return self.profile.total_rooms

    @property
    def monthly_room_nights(self) -> float:
        return self.rooms * impact.days_per_month


def slugify(text: str) -> str:
    return "-".join(text.lower().replace("_", " ").split())


# ---------- KPI rules ----------

def revpar_below_benchmark(inputs: RuleInputs) -> Recommendation | None:
    kpis = inputs.kpis
    benchmark = inputs.benchmarks["revpar"]
    if kpis.revpar <= 0 or kpis.revpar >= benchmark * cfg.revpar_benchmark_ratio:
        return None
    gap = benchmark - kpis.revpar
    return Recommendation(
        id="revpar-below-benchmark",
        category="revenue",
        title=f"RevPAR {format_pct(gap / benchmark * 100, 0)} below the market",
        description=(
            f"RevPAR of {format_money(kpis.revpar, 2)} is under 70% of the "
            f"{format_money(benchmark, 2)} benchmark for this category of hotel."
        ),
        estimated_impact=round(gap * inputs.monthly_room_nights * impact.revpar_gap_capture),
        difficulty="media",
        priority="alta",
        actions=[
            "Review the rate calendar against the competitive set",
            "Open more distribution channels on low-pickup dates",
            "Introduce minimum-stay rules on peak dates",
        ],
        evidence=[
            f"RevPAR: {format_money(kpis.revpar, 2)}",
            f"Benchmark: {format_money(benchmark, 2)}",
        ],
    )


def rate_occupancy_mismatch(inputs: RuleInputs) -> Recommendation | None:
    kpis = inputs.kpis
    if kpis.adr <= 0 or kpis.occupancy <= 0:
        return None
    ratio = kpis.adr / (kpis.occupancy / 100)
    low, high = cfg.adr_occupancy_band
    evidence = [
        f"ADR: {format_money(kpis.adr, 2)}",
        f"Occupancy: {format_pct(kpis.occupancy)}",
        f"ADR per occupancy point ratio: {ratio:.0f}",
    ]

    if ratio < low:
        rooms_per_day = inputs.rooms * kpis.occupancy / 100
        return Recommendation(
            id="rate-below-demand",
            category="pricing",
            title="Rates low for the demand the hotel attracts",
            description=(
                f"Occupancy of {format_pct(kpis.occupancy)} at an ADR of {format_money(kpis.adr, 2)} "
                "suggests rooms are underpriced."
            ),
            estimated_impact=round(kpis.adr * impact.rate_lift * rooms_per_day * impact.days_per_month),
            difficulty="facile",
            priority="media",
            actions=[
                "Raise rates by 5-10% on high-occupancy dates",
                "Close discounted rate plans when occupancy passes 80%",
                "Review the rate again after two weeks of pickup",
            ],
            evidence=evidence,
        )
    if ratio > high:
        return Recommendation(
            id="rate-above-demand",
            category="pricing",
            title="Rates high for the demand the hotel attracts",
            description=(
                f"An ADR of {format_money(kpis.adr, 2)} with occupancy at "
                f"{format_pct(kpis.occupancy)} suggests price is holding back bookings."
            ),
            estimated_impact=round(
                impact.occupancy_lift_points / 100 * inputs.monthly_room_nights * kpis.adr
            ),
            difficulty="media",
            priority="media",
            actions=[
                "Test lower rates on need periods",
                "Add value packages instead of cutting the headline rate",
                "Compare rates with direct competitors weekly",
            ],
            evidence=evidence,
        )
    return None


def ancillary_revenue_low(inputs: RuleInputs) -> Recommendation | None:
    kpis = inputs.kpis
    if kpis.revpar <= 0 or kpis.trevpar <= 0:
        return None
    ratio = kpis.trevpar / kpis.revpar
    if ratio >= cfg.trevpar_revpar_min:
        return None
    gap = cfg.trevpar_revpar_min * kpis.revpar - kpis.trevpar
    return Recommendation(
        id="ancillary-revenue-low",
        category="revenue",
        title="Little revenue beyond the room",
        description=(
            f"TRevPAR is only {ratio:.2f}x RevPAR. Food, beverage and extra services "
            "add almost nothing on top of room sales."
        ),
        estimated_impact=round(max(0.0, gap) * inputs.monthly_room_nights * impact.ancillary_gap_capture),
        difficulty="media",
        priority="media",
        actions=[
            "Sell breakfast and half-board at booking",
            "Offer late checkout, parking and transfers as paid extras",
            "Promote the bar and restaurant to in-house guests",
        ],
        evidence=[
            f"TRevPAR: {format_money(kpis.trevpar, 2)}",
            f"RevPAR: {format_money(kpis.revpar, 2)}",
        ],
    )


def goppar_below_benchmark(inputs: RuleInputs) -> Recommendation | None:
    kpis = inputs.kpis
    benchmark = inputs.benchmarks["goppar"]
    if kpis.total_revenue <= 0 or kpis.goppar >= benchmark * cfg.goppar_benchmark_ratio:
        return None
    gap = benchmark - kpis.goppar
    return Recommendation(
        id="goppar-below-benchmark",
        category="profitability",
        title="Operating profit per room below the market",
        description=(
            f"GOPPAR of {format_money(kpis.goppar, 2)} is under 70% of the "
            f"{format_money(benchmark, 2)} benchmark."
        ),
        estimated_impact=round(gap * inputs.monthly_room_nights * impact.goppar_gap_capture),
        difficulty="complessa",
        priority="alta",
        actions=[
            "Identify the three cost lines that grew fastest",
            "Shift the sales mix toward higher-margin segments",
            "Align staffing with forecast occupancy",
        ],
        evidence=[
            f"GOPPAR: {format_money(kpis.goppar, 2)}",
            f"Benchmark: {format_money(benchmark, 2)}",
        ],
    )


def cpor_high(inputs: RuleInputs) -> Recommendation | None:
    kpis = inputs.kpis
    if kpis.adr <= 0 or kpis.cpor <= kpis.adr * cfg.cpor_adr_max:
        return None
    excess = kpis.cpor - kpis.adr * cfg.cpor_adr_max
    months = max(1, inputs.cost_totals.period_count)
    return Recommendation(
        id="cpor-high",
        category="operations",
        title="Cost per occupied room too high",
        description=(
            f"Each occupied room costs {format_money(kpis.cpor, 2)}, "
            f"{format_pct(kpis.cpor / kpis.adr * 100)} of ADR. Target: under 35%."
        ),
        estimated_impact=round(excess * kpis.rooms_sold / months * impact.cpor_excess_capture),
        difficulty="media",
        priority="alta",
        actions=[
            "Review housekeeping productivity per room",
            "Check amenity and linen costs per stay",
            "Renegotiate laundry and cleaning contracts",
        ],
        evidence=[
            f"CPOR: {format_money(kpis.cpor, 2)}",
            f"ADR: {format_money(kpis.adr, 2)}",
        ],
    )


def cac_out_of_band(inputs: RuleInputs) -> Recommendation | None:
    kpis = inputs.kpis
    if kpis.cac is None or kpis.cac <= 0 or kpis.adr <= 0:
        return None
    share = kpis.cac / kpis.adr
    low, high = cfg.cac_adr_band
    evidence = [
        f"CAC: {format_money(kpis.cac, 2)}",
        f"CAC / ADR: {format_pct(share * 100)}",
    ]
    months = max(1, inputs.cost_totals.period_count)

    if share > high:
        bookings = inputs.cost_totals.category("marketing") / kpis.cac
        excess = kpis.cac - kpis.adr * high
        return Recommendation(
            id="cac-high",
            category="marketing",
            title="Guest acquisition too expensive",
            description=(
                f"Each booking costs {format_money(kpis.cac, 2)} in marketing and commissions, "
                f"{format_pct(share * 100)} of ADR."
            ),
            estimated_impact=round(excess * bookings / months * impact.cac_excess_capture),
            difficulty="media",
            priority="media",
            actions=[
                "Move repeat guests to the direct booking channel",
                "Renegotiate OTA commission levels",
                "Cut campaigns without measurable bookings",
            ],
            evidence=evidence,
        )
    if share < low:
        return Recommendation(
            id="cac-low",
            category="marketing",
            title="Room to invest more in acquisition",
            description=(
                f"Acquisition cost is only {format_pct(share * 100)} of ADR; a larger "
                "marketing budget could fill empty rooms profitably."
            ),
            estimated_impact=round(kpis.total_revenue / months * impact.marketing_reinvest_share),
            difficulty="media",
            priority="bassa",
            actions=[
                "Test a targeted campaign on low-season dates",
                "Measure the cost per booking of each channel",
            ],
            evidence=evidence,
        )
    return None


def gop_margin_low(inputs: RuleInputs) -> Recommendation | None:
    kpis = inputs.kpis
    if kpis.total_revenue <= 0 or kpis.gop_margin >= cfg.gop_margin_low:
        return None
    months = max(1, len(inputs.revenue_periods))
    return Recommendation(
        id="gop-margin-low",
        category="profitability",
        title="GOP margin below the recommended target",
        description=(
            f"GOP margin is {format_pct(kpis.gop_margin)}. Successful hotels run above 25%."
        ),
        estimated_impact=round(kpis.total_revenue / months * impact.gop_margin_revenue_share),
        difficulty="complessa",
        priority="critica" if kpis.gop_margin < cfg.gop_margin_critical else "alta",
        actions=[
            "Review the pricing strategy",
            "Optimize operating costs",
            "Raise average occupancy",
            "Improve the mix of services offered",
        ],
        evidence=[
            f"Current GOP margin: {format_pct(kpis.gop_margin)}",
            "Sector target: 25-35%",
        ],
    )


def occupancy_trend_shift(inputs: RuleInputs) -> Recommendation | None:
    trend = inputs.occupancy_trend
    points = trend.absolute_change
    if abs(points) <= cfg.occupancy_trend_points:
        return None
    kpis = inputs.kpis
    evidence = [
        f"Occupancy {trend.previous_average:.1f}% -> {trend.recent_average:.1f}% over {trend.timeframe}",
        f"Change: {points:+.1f} points",
    ]

    if points < 0:
        return Recommendation(
            id="occupancy-trend-declining",
            category="revenue",
            title=f"Occupancy down {abs(points):.1f} points in {trend.timeframe}",
            description=(
                "Occupancy is falling quickly. Act on visibility and pricing before the "
                "decline becomes structural."
            ),
            estimated_impact=round(
                abs(points) / 100 * inputs.monthly_room_nights * kpis.adr
            ),
            difficulty="media",
            priority="alta",
            actions=[
                "Check review scores and reply to recent complaints",
                "Compare rates with competitors for the coming weeks",
                "Launch promotions on the weakest dates",
            ],
            evidence=evidence,
        )
    return Recommendation(
        id="occupancy-trend-rising",
        category="pricing",
        title=f"Occupancy up {points:.1f} points in {trend.timeframe}",
        description="Demand is growing quickly; rates can rise while occupancy holds.",
        estimated_impact=round(
            kpis.total_revenue / max(1, len(inputs.revenue_periods)) * impact.rate_increase_share
        ),
        difficulty="facile",
        priority="media",
        actions=[
            "Raise rates gradually on dates with strong pickup",
            "Reduce discounts and last-minute offers",
        ],
        evidence=evidence,
    )


# ---------- Cost rules ----------

def category_cost_anomalies(inputs: RuleInputs) -> list[Recommendation]:
    recommendations = []
    for analysis in inputs.cost_analyses:
        variation = analysis.variation_pct
        if not analysis.anomaly or analysis.trend != "increase" or variation is None:
            continue
        if variation <= cfg.category_increase_pct:
            continue
        label = analysis.category.replace("_", " ")
        recommendations.append(Recommendation(
            id=f"anomaly-{slugify(analysis.category)}",
            category=analysis.category,
            title=f"{label.capitalize()} spend up {variation:.0f}%",
            description=(
                f"Significant increase in {label}. Look into the causes and compare alternatives."
            ),
            estimated_impact=round(analysis.current * impact.category_anomaly_saving),
            difficulty="media",
            priority="alta",
            actions=[
                "Check contracts with current suppliers",
                "Request quotes from alternative suppliers",
                "Compare consumption with the previous period",
                "Consider renegotiating contracts",
            ],
            evidence=[
                f"Change: {format_pct(variation, 0, signed=True)} on the previous period",
                f"Current amount: {format_money(analysis.current)}",
            ],
        ))
    return recommendations


def category_above_benchmark(inputs: RuleInputs) -> list[Recommendation]:
    recommendations = []
    for analysis in inputs.cost_analyses:
        gap_pct = analysis.benchmark_gap_pct
        if gap_pct is None or gap_pct <= cfg.category_benchmark_excess_pct:
            continue
        label = analysis.category.replace("_", " ")
        recommendations.append(Recommendation(
            id=f"benchmark-{slugify(analysis.category)}",
            category=analysis.category,
            title=f"{label.capitalize()} {gap_pct:.0f}% above the sector benchmark",
            description=f"Spending on {label} is well above the sector average.",
            estimated_impact=round(abs(analysis.benchmark_gap) * impact.category_benchmark_gap_saving),
            difficulty="media",
            priority="alta",
            actions=[
                "Compare with sector benchmarks line by line",
                "Identify areas of inefficiency",
                "Review processes for savings",
                "Consider investing in more efficient equipment",
            ],
            evidence=[
                f"Sector benchmark: {format_money(analysis.benchmark)}",
                f"Your spend: {format_money(analysis.current)}",
            ],
        ))
    return recommendations


def too_many_fnb_suppliers(inputs: RuleInputs) -> Recommendation | None:
    totals = inputs.cost_totals
    count = totals.fnb_supplier_count
    if count <= cfg.max_fnb_suppliers:
        return None
    return Recommendation(
        id="too-many-suppliers",
        category="fnb_suppliers",
        title="Too many food and beverage suppliers",
        description=(
            f"{count} active suppliers. Consolidating into 5-8 main suppliers can cut costs "
            "and simplify purchasing."
        ),
        estimated_impact=round(totals.category("fnb_suppliers") * impact.supplier_consolidation_saving),
        difficulty="facile",
        priority="media",
        actions=[
            "Identify the suppliers covering 80% of spend",
            "Consolidate orders with key suppliers",
            "Renegotiate contracts on higher volumes",
            "Drop marginal suppliers",
        ],
        evidence=[f"Active suppliers: {count}"],
    )


def cppr_high(inputs: RuleInputs) -> Recommendation | None:
    kpis = inputs.kpis
    if kpis.adr <= 0 or kpis.cppr <= kpis.adr * cfg.cppr_adr_max:
        return None
    months = max(1, inputs.cost_totals.period_count)
    return Recommendation(
        id="cppr-high",
        category="operations",
        title="Cost per guest-night too high",
        description=(
            f"CPPR of {format_money(kpis.cppr, 2)} is too high relative to ADR. Target: under 40% of ADR."
        ),
        estimated_impact=round(kpis.total_costs / months * impact.cppr_saving),
        difficulty="complessa",
        priority="alta",
        actions=[
            "Reduce fixed costs",
            "Improve energy efficiency",
            "Optimize staff scheduling",
            "Automate repetitive processes",
        ],
        evidence=[
            f"CPPR: {format_money(kpis.cppr, 2)}",
            f"ADR: {format_money(kpis.adr, 2)}",
            f"Ratio: {format_pct(kpis.cppr / kpis.adr * 100)}",
        ],
    )


def latest_occupancy_low(inputs: RuleInputs) -> Recommendation | None:
    if not inputs.revenue_periods:
        return None
    latest = inputs.revenue_periods[-1]
    occupancy = kpi_engine.month_occupancy(latest, inputs.rooms)
    if occupancy is None or occupancy >= cfg.low_occupancy:
        return None
    return Recommendation(
        id="occupancy-low",
        category="revenue",
        title="Occupancy below the optimal target",
        description=f"Occupancy of {format_pct(occupancy)} is below the 70%+ target.",
        estimated_impact=round(latest.total_revenue * impact.low_occupancy_revenue),
        difficulty="media",
        priority="alta",
        actions=[
            "Improve the dynamic pricing strategy",
            "Optimize distribution channels",
            "Invest in targeted marketing",
            "Review offers and packages",
        ],
        evidence=[
            f"Current occupancy: {format_pct(occupancy)}",
            "Sector target: 70-80%",
        ],
    )


def utilities_excessive(inputs: RuleInputs) -> Recommendation | None:
    totals = inputs.cost_totals
    utilities = totals.category("utilities")
    if utilities <= 0:
        return None
    benchmark = CostAnalyzer.benchmarks_for(inputs.profile, totals.period_count)["utilities"]
    if utilities <= benchmark * cfg.utilities_benchmark_ratio:
        return None
    return Recommendation(
        id="utilities-excessive",
        category="utilities",
        title="Utility consumption above normal",
        description="Utilities are a significant expense. Consider energy efficiency work.",
        estimated_impact=round(utilities * impact.utilities_saving),
        difficulty="media",
        priority="media",
        actions=[
            "Commission an energy audit",
            "Install automatic controls for heating and lighting",
            "Replace obsolete appliances",
            "Train staff on energy-saving practices",
        ],
        evidence=[
            f"Utility spend: {format_money(utilities)}",
            f"Benchmark: {format_money(benchmark)}",
        ],
    )


Rule = Callable[[RuleInputs], Recommendation | list[Recommendation] | None]

RULES: list[Rule] = [
    revpar_below_benchmark,
    rate_occupancy_mismatch,
    ancillary_revenue_low,
    goppar_below_benchmark,
    cpor_high,
    cac_out_of_band,
    gop_margin_low,
    occupancy_trend_shift,
    category_cost_anomalies,
    category_above_benchmark,
    too_many_fnb_suppliers,
    cppr_high,
    latest_occupancy_low,
    utilities_excessive,
]
