"""Analytics configuration — single source for thresholds, benchmark tiers and heuristics."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class KPIHeuristics:
    """Documented allocation and disambiguation constants for derived KPIs."""
    room_cost_share: float = 0.40        # CPOR: share of total cost charged to rooms
    guest_nights_per_booking: float = 2.0  # CAC fallback when rooms sold is unknown
    alos_direct_ratio: float = 4.0       # guest-nights/rooms-sold at or above this is already a stay length
    alos_low_ratio: float = 1.5
    alos_mid_ratio: float = 2.5
    alos_low_multiplier: float = 4.0     # ratio < 1.5
    alos_base_multiplier: float = 3.0    # 1.5 <= ratio <= 2.5
    alos_high_factor: float = 0.9        # ratio > 2.5 uses 0.9 x base


@dataclass(frozen=True)
class AnomalyThresholds:
    """Cost-per-guest z-score tiers."""
    medium_z: float = 2.0
    high_z: float = 3.0
    severe_deviation_pct: float = 50.0   # suggestion tier: energy and waste
    elevated_deviation_pct: float = 30.0  # suggestion tier: supplies and staffing


@dataclass(frozen=True)
class ForecastSettings:
    moving_average_window: int = 7
    trend_window: int = 7
    confidence_floor: float = 0.3
    confidence_decay: float = 0.7
    stats_band_pct: float = 0.10         # ±10% of mean predicted revenue


@dataclass(frozen=True)
class TrendThresholds:
    """3-recent vs 3-previous period comparison."""
    window: int = 3
    direction_pct: float = 2.0
    medium_pct: float = 8.0
    high_pct: float = 15.0
    strength_divisor: float = 2.0
    max_strength: float = 10.0
    timeframe: str = "3 months"


@dataclass(frozen=True)
class ContextAnomalyThresholds:
    """Period-level anomalies surfaced in the trend context."""
    cost_per_guest_warning_pct: float = 20.0
    cost_per_guest_critical_pct: float = 30.0
    expected_cost_window: int = 6        # periods averaged for the expected cost per guest
    expected_cost_min_periods: int = 3
    revenue_drop_warning_pct: float = -20.0
    revenue_drop_critical_pct: float = -30.0


@dataclass(frozen=True)
class SeasonalityThresholds:
    low_season: float = 0.85
    high_season: float = 1.15


@dataclass(frozen=True)
class BenchmarkTable:
    """Star-tier market benchmarks (occupancy in percent)."""
    default_tier: int = 3
    adr: dict[int, float] = field(default_factory=lambda: {3: 90.0, 4: 140.0, 5: 220.0})
    occupancy: dict[int, float] = field(default_factory=lambda: {3: 65.0, 4: 75.0, 5: 80.0})
    goppar: dict[int, float] = field(default_factory=lambda: {3: 25.0, 4: 45.0, 5: 80.0})
    cost_ratio: float = 0.65

    def tier(self, star_rating: int | None) -> int:
        return star_rating if star_rating in self.adr else self.default_tier

    def for_stars(self, star_rating: int | None) -> dict[str, float]:
        tier = self.tier(star_rating)
        adr = self.adr[tier]
        occupancy = self.occupancy[tier]
        return {
            "adr": adr,
            "occupancy": occupancy,
            "revpar": adr * occupancy / 100,
            "goppar": self.goppar[tier],
            "cost_ratio": self.cost_ratio,
        }


@dataclass(frozen=True)
class CategoryBenchmarks:
    """Monthly sector cost benchmarks per category, scaled by market segment."""
    base: dict[str, float] = field(default_factory=lambda: {
        "fnb_suppliers": 15000.0,
        "utilities": 5000.0,
        "payroll": 35000.0,
    })
    segment_multipliers: dict[str, dict[str, float]] = field(default_factory=lambda: {
        "luxury": {"fnb_suppliers": 1.5, "utilities": 1.2, "payroll": 1.3},
        "economy": {"fnb_suppliers": 0.7, "utilities": 0.8, "payroll": 0.8},
    })

    def monthly(self, segment: str) -> dict[str, float]:
        multipliers = self.segment_multipliers.get(segment, {})
        return {
            category: amount * multipliers.get(category, 1.0)
            for category, amount in self.base.items()
        }


@dataclass(frozen=True)
class CategoryAnalysisThresholds:
    """Per-category (trend, anomaly, priority) percentage thresholds."""
    trend_pct: dict[str, float] = field(default_factory=lambda: {
        "fnb_suppliers": 5.0, "utilities": 10.0, "payroll": 3.0, "marketing": 10.0, "other": 10.0,
    })
    anomaly_pct: dict[str, float] = field(default_factory=lambda: {
        "fnb_suppliers": 20.0, "utilities": 25.0, "payroll": 10.0, "marketing": 30.0, "other": 30.0,
    })
    high_priority_pct: dict[str, float] = field(default_factory=lambda: {
        "fnb_suppliers": 15.0, "utilities": 20.0, "payroll": 8.0, "marketing": 25.0, "other": 25.0,
    })


@dataclass(frozen=True)
class RecommendationThresholds:
    """Rule catalog trigger points."""
    revpar_benchmark_ratio: float = 0.70
    adr_occupancy_band: tuple[float, float] = (80.0, 200.0)   # ADR per occupancy fraction
    trevpar_revpar_min: float = 1.1
    goppar_benchmark_ratio: float = 0.70
    cpor_adr_max: float = 0.35
    cac_adr_band: tuple[float, float] = (0.08, 0.25)
    gop_margin_low: float = 20.0
    gop_margin_critical: float = 10.0
    occupancy_trend_points: float = 10.0
    category_increase_pct: float = 20.0
    category_benchmark_excess_pct: float = 15.0
    max_fnb_suppliers: int = 10
    cppr_adr_max: float = 0.40
    low_occupancy: float = 60.0
    utilities_benchmark_ratio: float = 1.3
    # Threshold alerts
    alert_variation_pct: float = 30.0
    alert_gop_margin: float = 5.0


@dataclass(frozen=True)
class RecommendationImpact:
    """Proportional impact formulas (monthly, currency units)."""
    days_per_month: int = 30
    revpar_gap_capture: float = 0.25
    goppar_gap_capture: float = 0.30
    ancillary_gap_capture: float = 0.50
    rate_lift: float = 0.10              # ADR uplift when underpriced for demand
    occupancy_lift_points: float = 5.0   # when overpriced for demand
    cpor_excess_capture: float = 0.50
    cac_excess_capture: float = 0.50
    marketing_reinvest_share: float = 0.05
    gop_margin_revenue_share: float = 0.05
    category_anomaly_saving: float = 0.15
    category_benchmark_gap_saving: float = 0.20
    supplier_consolidation_saving: float = 0.08
    cppr_saving: float = 0.10
    low_occupancy_revenue: float = 0.15
    utilities_saving: float = 0.20
    occupancy_trend_months: int = 3
    rate_increase_share: float = 0.05


@dataclass(frozen=True)
class InsightRules:
    """Reasoning engine trigger points and base weights."""
    revenue_priority: float = 9.0
    revenue_confidence: float = 0.85
    cost_priority: float = 8.0
    cost_confidence: float = 0.8
    occupancy_priority: float = 7.0
    occupancy_confidence: float = 0.75
    profitability_priority: float = 10.0
    profitability_confidence: float = 0.9
    growth_priority: float = 6.0
    growth_confidence: float = 0.8
    significance_weight: dict[str, float] = field(default_factory=lambda: {
        "high": 1.0, "medium": 0.8, "low": 0.6,
    })
    strength_bonus: float = 0.1          # priority points per strength unit
    significance_urgency: dict[str, str] = field(default_factory=lambda: {
        "high": "immediate", "medium": "short-term", "low": "long-term",
    })
    severity_priority: dict[str, float] = field(default_factory=lambda: {
        "critical": 9.0, "warning": 6.0, "info": 3.0,
    })
    severity_confidence: dict[str, float] = field(default_factory=lambda: {
        "critical": 0.9, "warning": 0.7, "info": 0.5,
    })
    severity_urgency: dict[str, str] = field(default_factory=lambda: {
        "critical": "immediate", "warning": "short-term", "info": "long-term",
    })
    adr_gap: float = -0.15
    occupancy_gap: float = -0.10
    cost_ratio_gap: float = 0.10
    peak_factor: float = 1.1
    trough_factor: float = 0.85
    upsell_occupancy: float = 70.0
    reviews_occupancy: float = 80.0
    cash_flow_goppar: float = 20.0
    competitor_pressure: float = 0.7
    competitor_occupancy: float = 75.0
    competitor_price_margin: float = 1.05  # our ADR above competitors by 5%+
    strong_gop_margin: float = 35.0
    urgency_weight: dict[str, float] = field(default_factory=lambda: {
        "immediate": 1.5, "short-term": 1.0, "long-term": 0.7,
    })


@dataclass(frozen=True)
class ImpactHeuristics:
    """Closed-form impact estimators used by insights."""
    operating_days_per_month: int = 25
    guests_per_room: float = 1.5
    upsell_conversion: float = 0.3
    upsell_ticket: float = 10.0
    peak_days: int = 8
    peak_rate_lift: float = 0.15
    seasonal_days: int = 15
    seasonal_rate_lift: float = 0.2
    seasonal_occupancy: float = 0.85
    peak_cost_increase: float = 0.10     # extra running cost in high season
    peak_occupancy_scale: float = 20.0   # points per unit of seasonal factor above 1
    trough_cost_saving: float = 0.125    # variable-cost trim in low season
    trough_occupancy_scale: float = 30.0
    upsell_cost_share: float = 0.3
    review_occupancy_points: float = 12.0
    revenue_recovery_profit_share: float = 0.7
    occupancy_profit_share: float = 0.6
    cost_reduction_share: float = 0.15
    recovery_revenue_multiplier: float = 1.2
    recovery_cost_share: float = 0.2


@dataclass(frozen=True)
class AnalyticsConfig:
    """Top-level analytics configuration."""
    kpi: KPIHeuristics = field(default_factory=KPIHeuristics)
    anomalies: AnomalyThresholds = field(default_factory=AnomalyThresholds)
    forecast: ForecastSettings = field(default_factory=ForecastSettings)
    trends: TrendThresholds = field(default_factory=TrendThresholds)
    context_anomalies: ContextAnomalyThresholds = field(default_factory=ContextAnomalyThresholds)
    seasonality: SeasonalityThresholds = field(default_factory=SeasonalityThresholds)
    benchmarks: BenchmarkTable = field(default_factory=BenchmarkTable)
    category_benchmarks: CategoryBenchmarks = field(default_factory=CategoryBenchmarks)
    category_analysis: CategoryAnalysisThresholds = field(default_factory=CategoryAnalysisThresholds)
    recommendations: RecommendationThresholds = field(default_factory=RecommendationThresholds)
    recommendation_impact: RecommendationImpact = field(default_factory=RecommendationImpact)
    insights: InsightRules = field(default_factory=InsightRules)
    impact: ImpactHeuristics = field(default_factory=ImpactHeuristics)


# Priority tier ordering for recommendations
PRIORITY_RANK = {"critica": 4, "alta": 3, "media": 2, "bassa": 1}

# Singleton
analytics_config = AnalyticsConfig()
