"""Revenue, property and daily-history input records."""

import datetime as dt
import logging

from pydantic import AliasChoices, BaseModel, Field, ValidationError, ValidationInfo, field_validator

from revenue_sentry.schemas.common import (
    coerce_amount,
    coerce_optional_amount,
    coerce_optional_count,
    days_in_period,
    normalize_period,
)

logger = logging.getLogger(__name__)

OPERATING_MODELS = ("year-round", "seasonal")

_OPERATING_MODEL_ALIASES = {
    "year_round": "year-round",
    "yearround": "year-round",
    "annual": "year-round",
    "annuale": "year-round",
    "stagionale": "seasonal",
}


class RevenuePeriod(BaseModel):
    """One month of room-division performance."""
    period: str | None = Field(default=None, validation_alias=AliasChoices("period", "mese"))
    room_revenue: float = Field(
        default=0.0, validation_alias=AliasChoices("room_revenue", "revenue", "entrateTotali")
    )
    occupancy: float = Field(default=0.0, validation_alias=AliasChoices("occupancy", "occupazione"))
    adr: float = Field(default=0.0, validation_alias=AliasChoices("adr", "prezzoMedioCamera"))
    rooms_sold: float = Field(default=0.0, validation_alias=AliasChoices("rooms_sold", "camereVendute"))
    guest_nights: float = Field(default=0.0, validation_alias=AliasChoices("guest_nights", "nottiTotali"))
    fnb_revenue: float = Field(default=0.0, validation_alias=AliasChoices("fnb_revenue", "ricaviRistorazione"))
    ancillary_revenue: float = Field(
        default=0.0, validation_alias=AliasChoices("ancillary_revenue", "ricaviServiziAggiuntivi")
    )
    bookings: int | None = Field(default=None, validation_alias=AliasChoices("bookings", "numeroPrenotazioni"))
    opening_days: int | None = Field(
        default=None, validation_alias=AliasChoices("opening_days", "giorniAperturaMese")
    )
    average_stay: float | None = Field(
        default=None, validation_alias=AliasChoices("average_stay", "permanenzaMedia")
    )

    model_config = {"extra": "ignore"}

    @field_validator("period", mode="before")
    @classmethod
    def _period(cls, v):
        return normalize_period(v)

    @field_validator(
        "room_revenue", "occupancy", "adr", "rooms_sold", "guest_nights",
        "fnb_revenue", "ancillary_revenue",
        mode="before",
    )
    @classmethod
    def _amounts(cls, v, info: ValidationInfo):
        return coerce_amount(v, info.field_name)

    @field_validator("bookings", "opening_days", mode="before")
    @classmethod
    def _counts(cls, v, info: ValidationInfo):
        return coerce_optional_count(v, info.field_name)

    @field_validator("average_stay", mode="before")
    @classmethod
    def _average_stay(cls, v):
        return coerce_optional_amount(v, "average_stay")

    @field_validator("occupancy")
    @classmethod
    def _clamp_occupancy(cls, v: float) -> float:
        if v > 100:
            logger.warning(f"Occupancy {v} above 100%, clamping")
            return 100.0
        return v

    @property
    def days_open(self) -> int:
        """Days the property was open this month (0 when unknown)."""
        calendar_days = days_in_period(self.period)
        if self.opening_days:
            return min(self.opening_days, calendar_days) if calendar_days else self.opening_days
        return calendar_days

    @property
    def total_revenue(self) -> float:
        return self.room_revenue + self.fnb_revenue + self.ancillary_revenue


class PropertyProfile(BaseModel):
    name: str = Field(default="", validation_alias=AliasChoices("name", "nome"))
    total_rooms: int = Field(gt=0, validation_alias=AliasChoices("total_rooms", "camereTotali"))
    star_rating: int | None = Field(default=None, validation_alias=AliasChoices("star_rating", "stelle"))
    operating_model: str = Field(
        default="year-round", validation_alias=AliasChoices("operating_model", "tipoHotel")
    )
    operating_days: int | None = Field(
        default=None, validation_alias=AliasChoices("operating_days", "giorniApertura")
    )

    model_config = {"extra": "ignore"}

    @field_validator("star_rating", mode="before")
    @classmethod
    def _stars(cls, v):
        if v is None or v == "":
            return None
        try:
            stars = int(float(v))
        except (TypeError, ValueError):
            logger.warning(f"Invalid star rating {v!r}, ignoring")
            return None
        return stars if 1 <= stars <= 5 else None

    @field_validator("operating_model", mode="before")
    @classmethod
    def _operating_model(cls, v):
        if v is None or v == "":
            return "year-round"
        key = str(v).strip().lower()
        key = _OPERATING_MODEL_ALIASES.get(key, key)
        if key not in OPERATING_MODELS:
            logger.warning(f"Unknown operating model {v!r}, assuming year-round")
            return "year-round"
        return key

    @field_validator("operating_days", mode="before")
    @classmethod
    def _operating_days(cls, v):
        return coerce_optional_count(v, "operating_days")

    @property
    def is_seasonal(self) -> bool:
        return self.operating_model == "seasonal"

    @property
    def market_segment(self) -> str:
        """Market segment ("luxury" | "standard" | "economy") from the star rating."""
        if self.star_rating is None:
            return "standard"
        if self.star_rating >= 5:
            return "luxury"
        if self.star_rating <= 2:
            return "economy"
        return "standard"


class DailyRecord(BaseModel):
    """One day of operating history."""
    date: dt.date
    revenue: float = Field(default=0.0, validation_alias=AliasChoices("revenue", "total_revenue"))
    occupancy: float = Field(default=0.0, validation_alias=AliasChoices("occupancy", "occupancy_rate"))
    adr: float = 0.0
    total_costs: float = 0.0
    competitor_avg_price: float | None = None

    model_config = {"extra": "ignore"}

    @field_validator("revenue", "occupancy", "adr", "total_costs", mode="before")
    @classmethod
    def _amounts(cls, v, info: ValidationInfo):
        return coerce_amount(v, info.field_name)

    @field_validator("competitor_avg_price", mode="before")
    @classmethod
    def _competitor(cls, v):
        return coerce_optional_amount(v, "competitor_avg_price")

    @field_validator("occupancy")
    @classmethod
    def _clamp_occupancy(cls, v: float) -> float:
        return min(v, 100.0)

    @property
    def day_of_week(self) -> int:
        """Monday = 0 ... Sunday = 6."""
        return self.date.weekday()

    @property
    def month_key(self) -> str:
        return f"{self.date.year:04d}-{self.date.month:02d}"


class CostPerGuestPoint(BaseModel):
    date: str
    cost_per_guest: float = Field(
        default=0.0, validation_alias=AliasChoices("cost_per_guest", "costPerGuest")
    )

    model_config = {"extra": "ignore"}

    @field_validator("date", mode="before")
    @classmethod
    def _date(cls, v):
        if isinstance(v, (dt.date, dt.datetime)):
            return v.isoformat()
        return "" if v is None else str(v)

    @field_validator("cost_per_guest", mode="before")
    @classmethod
    def _cost(cls, v):
        return coerce_amount(v, "cost_per_guest")


def parse_daily_history(records) -> list[DailyRecord]:
    """Validate daily records, dropping malformed ones, ordered by date.

    A record that fails validation (typically a missing or unparseable date)
    is skipped with a warning; the rest of the batch is kept.
    """
    history: list[DailyRecord] = []
    for index, record in enumerate(records or []):
        if isinstance(record, DailyRecord):
            history.append(record)
            continue
        try:
            history.append(DailyRecord.model_validate(record))
        except ValidationError as e:
            logger.warning(f"Skipping daily record #{index}: {e.error_count()} validation error(s)")
    history.sort(key=lambda r: r.date)
    return history
