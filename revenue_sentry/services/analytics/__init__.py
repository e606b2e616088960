"""Analytics engine — KPI derivation, anomaly detection, forecasting and reasoning.

Modules:
    config                 Centralized thresholds, benchmark tiers and heuristics
    cost_aggregator        Category totals per period or across periods
    kpi_engine             Canonical hospitality KPI set from monthly inputs
    cost_analyzer          Period-over-period and sector-benchmark category review
    cost_anomaly_detector  Z-score outliers in daily cost per guest
    demand_forecaster      Moving-average + weekday-seasonality projection
    context_builder        Trends, anomalies, benchmarks and seasonality per property
    recommendation_rules   Rule catalog (one pure function per rule)
    recommendation_engine  Runs the catalog, ranks results, raises threshold alerts
    impact_estimator       Closed-form monthly impact of acting on an insight
    reasoning_engine       Insights with reasoning chains and actions
    data_source            Read contract for property data + in-memory implementation
    pipeline               End-to-end orchestration and the AnalysisReport

Pipeline:
    KPIEngine → CostAnalyzer → CostAnomalyDetector → DemandForecaster
    → TrendContextBuilder → RecommendationEngine + ReasoningEngine → AnalysisReport
"""
