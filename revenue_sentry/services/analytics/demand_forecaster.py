"""Demand forecaster — short-horizon revenue and occupancy projection.

Uses a layered closed-form approach, no fitted parameters:
1. 7-day trailing moving average as the demand level
2. Linear trend — mean of the last 7 MA values vs the 7 before them
3. Day-of-week multiplier — weekday mean revenue over the overall mean
4. Confidence decaying linearly with horizon down to a floor

The first forecast day is the day after the last historical date, so output
depends only on the supplied history.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, timedelta
from statistics import fmean

from revenue_sentry.schemas.revenue import DailyRecord, parse_daily_history
from revenue_sentry.services.analytics.config import analytics_config

logger = logging.getLogger(__name__)

cfg = analytics_config.forecast


@dataclass
class ForecastPoint:
    date: date
    predicted_revenue: float
    predicted_occupancy: float
    confidence: float             # 1.0 at the first day, decays to the floor

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "predicted_revenue": self.predicted_revenue,
            "predicted_occupancy": self.predicted_occupancy,
            "confidence": self.confidence,
        }


@dataclass
class ForecastStats:
    total_revenue: float = 0.0
    avg_occupancy: float = 0.0
    min_revenue: float = 0.0
    max_revenue: float = 0.0
    confidence_low: float = 0.0
    confidence_high: float = 0.0

    def to_dict(self) -> dict:
        return {
            "total_revenue": self.total_revenue,
            "avg_occupancy": self.avg_occupancy,
            "min_revenue": self.min_revenue,
            "max_revenue": self.max_revenue,
            "confidence_interval": {
                "low": self.confidence_low,
                "high": self.confidence_high,
            },
        }


def moving_average(values: list[float], window: int) -> list[float]:
    """Trailing moving average; partial windows at the start of the series.

    If the window is invalid or longer than the series, every point gets the
    overall mean.
    """
    if not values:
        return []
    if window <= 0 or window > len(values):
        mean = fmean(values)
        return [mean] * len(values)
    out = []
    for i in range(len(values)):
        chunk = values[max(0, i - window + 1):i + 1]
        out.append(fmean(chunk))
    return out


class DemandForecaster:
    """Moving-average + trend + weekday seasonality forecaster."""

    def forecast(self, history: Iterable[DailyRecord | dict], days_ahead: int) -> list[ForecastPoint]:
        """Project revenue and occupancy for each of the next ``days_ahead`` days."""
        records = self._prepare(history)
        if not records or days_ahead <= 0:
            return []

        revenue_ma = moving_average([r.revenue for r in records], cfg.moving_average_window)
        occupancy_ma = moving_average([r.occupancy for r in records], cfg.moving_average_window)
        revenue_trend = self.trend(revenue_ma)
        occupancy_trend = self.trend(occupancy_ma)
        coefficients = self.weekday_coefficients(records)

        last_date = records[-1].date
        points = []
        for i in range(days_ahead):
            day = last_date + timedelta(days=i + 1)
            coefficient = coefficients[day.weekday()]
            step = i / cfg.trend_window

            revenue = (revenue_ma[-1] + revenue_trend * step) * coefficient
            occupancy = (occupancy_ma[-1] + occupancy_trend * step) * coefficient
            confidence = max(cfg.confidence_floor, 1 - (i / days_ahead) * cfg.confidence_decay)

            points.append(ForecastPoint(
                date=day,
                predicted_revenue=round(max(0.0, revenue), 2),
                predicted_occupancy=round(max(0.0, min(100.0, occupancy)), 2),
                confidence=round(confidence, 4),
            ))

        logger.debug(
            f"Forecast {days_ahead}d from {len(records)} days of history "
            f"(revenue trend {revenue_trend:+.2f}/wk)"
        )
        return points

    def forecast_stats(self, points: list[ForecastPoint]) -> ForecastStats:
        """Aggregate a forecast; all zeros for an empty forecast."""
        if not points:
            return ForecastStats()
        revenues = [p.predicted_revenue for p in points]
        mean_revenue = fmean(revenues)
        return ForecastStats(
            total_revenue=round(sum(revenues), 2),
            avg_occupancy=round(fmean(p.predicted_occupancy for p in points), 2),
            min_revenue=round(min(revenues), 2),
            max_revenue=round(max(revenues), 2),
            confidence_low=round(mean_revenue * (1 - cfg.stats_band_pct), 2),
            confidence_high=round(mean_revenue * (1 + cfg.stats_band_pct), 2),
        )

    @staticmethod
    def trend(ma_values: list[float]) -> float:
        """Mean of the last window of MA values minus the mean of the window before."""
        window = cfg.trend_window
        recent = ma_values[-window:]
        previous = ma_values[-2 * window:-window]
        if not recent or not previous:
            return 0.0
        return fmean(recent) - fmean(previous)

    @staticmethod
    def weekday_coefficients(records: list[DailyRecord]) -> dict[int, float]:
        """Weekday mean revenue over overall mean revenue (1.0 with no history)."""
        coefficients = {dow: 1.0 for dow in range(7)}
        if not records:
            return coefficients
        overall = fmean(r.revenue for r in records)
        if overall == 0:
            return coefficients

        by_weekday: dict[int, list[float]] = {}
        for r in records:
            by_weekday.setdefault(r.day_of_week, []).append(r.revenue)
        for dow, values in by_weekday.items():
            coefficients[dow] = fmean(values) / overall
        return coefficients

    @staticmethod
    def _prepare(history: Iterable[DailyRecord | dict] | None) -> list[DailyRecord]:
        return parse_daily_history(history)


# Singleton
demand_forecaster = DemandForecaster()
