"""Cost aggregator — reduces itemized cost records to per-period category totals."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from revenue_sentry.schemas.costs import COST_CATEGORIES, PeriodCosts

logger = logging.getLogger(__name__)

# A PeriodCosts, a legacy single-period cost map, or a sequence of either
CostInput = PeriodCosts | dict | Iterable | None


@dataclass(frozen=True)
class CostTotals:
    """Category totals for one period or a span of periods."""
    period: str | None            # "YYYY-MM", "YYYY-MM..YYYY-MM" for spans, None if unknown
    by_category: dict[str, float]
    period_count: int
    fnb_supplier_count: int       # distinct F&B suppliers with a positive amount

    @property
    def total(self) -> float:
        return sum(self.by_category.values())

    def category(self, name: str) -> float:
        return self.by_category.get(name, 0.0)

    @property
    def is_empty(self) -> bool:
        return self.total <= 0

    def to_dict(self) -> dict:
        return {
            "period": self.period,
            "by_category": {k: round(v, 2) for k, v in self.by_category.items()},
            "total": round(self.total, 2),
            "period_count": self.period_count,
            "fnb_supplier_count": self.fnb_supplier_count,
        }


class CostAggregator:
    """Sums cost records category-wise, per period or across periods."""

    def normalize(self, costs: CostInput) -> list[PeriodCosts]:
        """Coerce any accepted cost input into a period-ordered list of PeriodCosts."""
        if costs is None:
            return []
        if isinstance(costs, PeriodCosts):
            return [costs]
        if isinstance(costs, dict):
            if "records" in costs:
                return [PeriodCosts.model_validate(costs)]
            return [PeriodCosts.from_cost_map(costs)]
        periods: list[PeriodCosts] = []
        for item in costs:
            periods.extend(self.normalize(item))
        periods.sort(key=lambda p: (p.period is None, p.period or ""))
        return periods

    def aggregate(self, period_costs: PeriodCosts) -> CostTotals:
        """Totals for a single period."""
        return self._reduce([period_costs])

    def aggregate_many(self, costs: CostInput) -> list[CostTotals]:
        """One CostTotals per period, ordered by period."""
        return [self.aggregate(p) for p in self.normalize(costs)]

    def combine(self, costs: CostInput) -> CostTotals:
        """Category-wise sum across every supplied period."""
        return self._reduce(self.normalize(costs))

    def _reduce(self, periods: list[PeriodCosts]) -> CostTotals:
        by_category = {category: 0.0 for category in COST_CATEGORIES}
        suppliers: set[str] = set()
        unlabeled_suppliers = 0

        for period_costs in periods:
            for category, amount in period_costs.by_category().items():
                by_category[category] += amount
            for record in period_costs.records:
                if record.category != "fnb_suppliers" or record.amount <= 0:
                    continue
                if record.label:
                    suppliers.add(record.label.lower())
                else:
                    unlabeled_suppliers += 1

        labels = sorted({p.period for p in periods if p.period})
        if not labels:
            span = None
        elif len(labels) == 1:
            span = labels[0]
        else:
            span = f"{labels[0]}..{labels[-1]}"

        return CostTotals(
            period=span,
            by_category=by_category,
            period_count=len(periods),
            fnb_supplier_count=len(suppliers) + unlabeled_suppliers,
        )


# Singleton
cost_aggregator = CostAggregator()
