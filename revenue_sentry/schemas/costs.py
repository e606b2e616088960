"""Itemized cost records grouped into YYYY-MM periods."""

import datetime as dt
import logging

from pydantic import AliasChoices, BaseModel, Field, field_validator

from revenue_sentry.schemas.common import coerce_amount, normalize_period

logger = logging.getLogger(__name__)

COST_CATEGORIES = ("utilities", "payroll", "fnb_suppliers", "marketing", "other")

# Category keys used by the accounting exports and the legacy cost map
CATEGORY_ALIASES = {
    "fnb": "fnb_suppliers",
    "f&b": "fnb_suppliers",
    "food_beverage": "fnb_suppliers",
    "ristorazione": "fnb_suppliers",
    "utenze": "utilities",
    "personale": "payroll",
    "staff": "payroll",
    "altricosti": "other",
    "altri_costi": "other",
}

# Nested keys of the legacy single-period cost map
_COST_MAP_LABELS = {
    "energia": "energy",
    "acqua": "water",
    "bustepaga": "salaries",
    "sicurezza": "security",
    "contributiinps": "social_contributions",
    "costimarketing": "marketing_spend",
    "commissioniota": "ota_commissions",
}


def normalize_category(value) -> str:
    if value is None or value == "":
        return "other"
    key = str(value).strip().lower()
    if key in COST_CATEGORIES:
        return key
    if key in CATEGORY_ALIASES:
        return CATEGORY_ALIASES[key]
    logger.warning(f"Unknown cost category {value!r}, filing under 'other'")
    return "other"


class CostRecord(BaseModel):
    category: str = "other"  # "utilities" | "payroll" | "fnb_suppliers" | "marketing" | "other"
    label: str = Field(
        default="",
        validation_alias=AliasChoices("label", "supplier", "fornitore", "voce"),
    )
    amount: float = Field(default=0.0, validation_alias=AliasChoices("amount", "importo"))
    date: dt.date | None = Field(default=None, validation_alias=AliasChoices("date", "data"))

    model_config = {"extra": "ignore"}

    @field_validator("category", mode="before")
    @classmethod
    def _category(cls, v):
        return normalize_category(v)

    @field_validator("label", mode="before")
    @classmethod
    def _label(cls, v):
        return "" if v is None else str(v).strip()

    @field_validator("amount", mode="before")
    @classmethod
    def _amount(cls, v):
        return coerce_amount(v, "amount")


class PeriodCosts(BaseModel):
    period: str | None = Field(default=None, validation_alias=AliasChoices("period", "mese"))
    records: list[CostRecord] = Field(default_factory=list)

    model_config = {"extra": "ignore"}

    @field_validator("period", mode="before")
    @classmethod
    def _period(cls, v):
        return normalize_period(v)

    def by_category(self) -> dict[str, float]:
        totals = {category: 0.0 for category in COST_CATEGORIES}
        for record in self.records:
            totals[record.category] += record.amount
        return totals

    def total(self) -> float:
        return sum(record.amount for record in self.records)

    @classmethod
    def from_cost_map(cls, cost_map: dict, period: str | None = None) -> "PeriodCosts":
        """Flatten the legacy nested cost map into itemized records.

        Accepted shape (every section optional)::

            {
                "ristorazione": [{"fornitore": str, "importo": float}, ...],
                "utenze": {"energia": {"importo": float}, "gas": {...}, "acqua": {...}},
                "personale": {"bustePaga": float, "sicurezza": float, "contributiINPS": float},
                "marketing": {"costiMarketing": float, "commissioniOTA": float},
                "altriCosti": {"<label>": float, ...},
            }

        English category names are accepted for the top-level keys too.
        """
        records: list[CostRecord] = []
        for key, section in (cost_map or {}).items():
            if key in ("period", "mese"):
                period = period or section
                continue
            category = normalize_category(key)
            records.extend(_flatten_section(category, key, section))
        return cls(period=period, records=records)


def _flatten_section(category: str, key: str, section) -> list[CostRecord]:
    if section is None:
        return []
    if isinstance(section, list):
        out = []
        for item in section:
            if isinstance(item, CostRecord):
                out.append(item.model_copy(update={"category": category}))
            elif isinstance(item, dict):
                out.append(CostRecord.model_validate({**item, "category": category}))
            else:
                out.append(CostRecord(category=category, label=key, amount=item))
        return out
    if isinstance(section, dict):
        out = []
        for label, value in section.items():
            label_name = _COST_MAP_LABELS.get(str(label).lower(), str(label))
            if isinstance(value, dict):
                amount = value.get("importo", value.get("amount"))
            else:
                amount = value
            out.append(CostRecord(category=category, label=label_name, amount=amount))
        return out
    return [CostRecord(category=category, label=key, amount=section)]
