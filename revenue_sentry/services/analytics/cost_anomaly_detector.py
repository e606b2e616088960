"""Cost anomaly detector — flags days whose cost per guest runs well above the norm."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from statistics import fmean, pstdev

from revenue_sentry.formatting import format_money
from revenue_sentry.schemas.revenue import CostPerGuestPoint, DailyRecord, parse_daily_history
from revenue_sentry.services.analytics.config import analytics_config
from revenue_sentry.services.analytics.kpi_engine import kpi_engine

logger = logging.getLogger(__name__)

cfg = analytics_config.anomalies

SEVERITY_RANK = {"high": 0, "medium": 1, "low": 2}


@dataclass
class CostAnomaly:
    date: str
    cost_per_guest: float
    expected_cost_per_guest: float   # series mean
    z_score: float
    deviation_percent: float         # % above the mean
    severity: str                    # "high" | "medium"
    suggestion: str

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "cost_per_guest": self.cost_per_guest,
            "expected_cost_per_guest": self.expected_cost_per_guest,
            "z_score": self.z_score,
            "deviation_percent": self.deviation_percent,
            "severity": self.severity,
            "suggestion": self.suggestion,
        }


class CostAnomalyDetector:
    """Population z-score detector over a cost-per-guest series."""

    def detect_anomalies(self, series: Iterable[CostPerGuestPoint | dict]) -> list[CostAnomaly]:
        """Flag points with z >= 2 above the series mean, most severe first."""
        points = [
            p if isinstance(p, CostPerGuestPoint) else CostPerGuestPoint.model_validate(p)
            for p in series
        ]
        if not points:
            return []

        values = [p.cost_per_guest for p in points]
        mean = fmean(values)
        std_dev = pstdev(values)
        if std_dev == 0:
            return []

        anomalies: list[CostAnomaly] = []
        for point in points:
            z = (point.cost_per_guest - mean) / std_dev
            if z < cfg.medium_z:
                continue
            severity = "high" if z >= cfg.high_z else "medium"
            deviation_pct = (point.cost_per_guest - mean) / mean * 100 if mean else 0.0
            anomalies.append(CostAnomaly(
                date=point.date,
                cost_per_guest=round(point.cost_per_guest, 2),
                expected_cost_per_guest=round(mean, 2),
                z_score=round(z, 2),
                deviation_percent=round(deviation_pct, 2),
                severity=severity,
                suggestion=self._suggestion(deviation_pct),
            ))

        anomalies.sort(key=lambda a: (SEVERITY_RANK[a.severity], -a.z_score))
        if anomalies:
            logger.info(
                f"{len(anomalies)} cost-per-guest anomalies in {len(points)} points "
                f"(mean={mean:.2f}, std={std_dev:.2f})"
            )
        return anomalies

    def build_series(self, daily_history: Iterable[DailyRecord | dict]) -> list[CostPerGuestPoint]:
        """Daily cost per estimated guest; days without costs or guests are skipped."""
        series: list[CostPerGuestPoint] = []
        for record in parse_daily_history(daily_history):
            guests = kpi_engine.estimate_guest_count(record.revenue, record.adr)
            if record.total_costs <= 0 or guests <= 0:
                continue
            series.append(CostPerGuestPoint(
                date=record.date.isoformat(),
                cost_per_guest=record.total_costs / guests,
            ))
        return series

    def generate_alerts(self, anomalies: list[CostAnomaly]) -> list[dict]:
        """Render anomalies as dashboard alerts."""
        return [
            {
                "type": "cost_anomaly",
                "severity": a.severity,
                "date": a.date,
                "message": (
                    f"Day {a.date}: cost/guest {format_money(a.cost_per_guest, 2)} "
                    f"(+{a.deviation_percent:.0f}% vs avg)"
                ),
                "suggestion": a.suggestion,
            }
            for a in anomalies
        ]

    @staticmethod
    def _suggestion(deviation_pct: float) -> str:
        if deviation_pct > cfg.severe_deviation_pct:
            return (
                f"Cost per guest {deviation_pct:.0f}% above average: check energy "
                "consumption and food waste for this day"
            )
        if deviation_pct > cfg.elevated_deviation_pct:
            return (
                f"Cost per guest {deviation_pct:.0f}% above average: review supply "
                "orders and staffing levels against occupancy"
            )
        return (
            f"Cost per guest {deviation_pct:.0f}% above average: compare with the same "
            "period last year to rule out seasonal effects"
        )


# Singleton
cost_anomaly_detector = CostAnomalyDetector()
