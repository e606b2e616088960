"""Property data source contract.

PropertyDataSource is the interface the analytics pipeline reads from; storage,
spreadsheet import and accounting sync live behind it. InMemoryDataSource backs
tests and one-off scripts.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable

from revenue_sentry.schemas.costs import PeriodCosts
from revenue_sentry.schemas.revenue import DailyRecord, PropertyProfile, RevenuePeriod, parse_daily_history
from revenue_sentry.services.analytics.cost_aggregator import cost_aggregator

logger = logging.getLogger(__name__)


class PropertyDataSource(ABC):
    """Abstract read interface for one property's operating data."""

    @abstractmethod
    def get_profile(self, property_id: str) -> PropertyProfile:
        """Property metadata. Raises KeyError for an unknown property."""
        ...

    @abstractmethod
    def get_revenue_periods(self, property_id: str) -> list[RevenuePeriod]:
        """Monthly revenue records, oldest first."""
        ...

    @abstractmethod
    def get_period_costs(self, property_id: str) -> list[PeriodCosts]:
        """Itemized costs grouped by month, oldest first."""
        ...

    @abstractmethod
    def get_daily_history(self, property_id: str) -> list[DailyRecord]:
        """Daily operating records, oldest first."""
        ...


class InMemoryDataSource(PropertyDataSource):
    """Dict-backed data source; accepts models, raw dicts or legacy cost maps."""

    def __init__(self):
        self._profiles: dict[str, PropertyProfile] = {}
        self._revenue: dict[str, list[RevenuePeriod]] = {}
        self._costs: dict[str, list[PeriodCosts]] = {}
        self._daily: dict[str, list[DailyRecord]] = {}

    def add_property(
        self,
        property_id: str,
        profile: PropertyProfile | dict,
        revenue_periods: Iterable[RevenuePeriod | dict] = (),
        period_costs: Iterable[PeriodCosts | dict] = (),
        daily_history: Iterable[DailyRecord | dict] = (),
    ) -> None:
        self._profiles[property_id] = (
            profile if isinstance(profile, PropertyProfile) else PropertyProfile.model_validate(profile)
        )
        self._revenue[property_id] = [
            p if isinstance(p, RevenuePeriod) else RevenuePeriod.model_validate(p)
            for p in revenue_periods
        ]
        self._costs[property_id] = cost_aggregator.normalize(list(period_costs))
        self._daily[property_id] = parse_daily_history(daily_history)
        logger.debug(
            f"Registered {property_id}: {len(self._revenue[property_id])} revenue periods, "
            f"{len(self._costs[property_id])} cost periods, {len(self._daily[property_id])} days"
        )

    def get_profile(self, property_id: str) -> PropertyProfile:
        if property_id not in self._profiles:
            raise KeyError(f"Unknown property: {property_id}")
        return self._profiles[property_id]

    def get_revenue_periods(self, property_id: str) -> list[RevenuePeriod]:
        return list(self._revenue.get(property_id, []))

    def get_period_costs(self, property_id: str) -> list[PeriodCosts]:
        return list(self._costs.get(property_id, []))

    def get_daily_history(self, property_id: str) -> list[DailyRecord]:
        return list(self._daily.get(property_id, []))
