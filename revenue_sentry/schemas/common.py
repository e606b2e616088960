"""Field coercion shared by the input schemas.

Records arrive from spreadsheets, accounting exports and hand-typed forms, so
numeric fields are frequently missing, blank or garbled. A bad field becomes 0
(or None for optional counts) with a warning; the record itself is kept.
"""

import calendar
import logging
import math
import re
from datetime import date, datetime

logger = logging.getLogger(__name__)

_PERIOD_RE = re.compile(r"^(\d{4})-(\d{1,2})")


def coerce_amount(value, field_name: str = "value") -> float:
    """Coerce a currency/count field to a non-negative float (0 when unusable)."""
    if value is None or value == "":
        return 0.0
    if isinstance(value, bool):
        return float(value)
    try:
        amount = float(value)
    except (TypeError, ValueError):
        logger.warning(f"Non-numeric {field_name}={value!r}, treating as 0")
        return 0.0
    if math.isnan(amount) or math.isinf(amount):
        logger.warning(f"Non-finite {field_name}={value!r}, treating as 0")
        return 0.0
    if amount < 0:
        logger.warning(f"Negative {field_name}={value!r}, treating as 0")
        return 0.0
    return amount


def coerce_optional_count(value, field_name: str = "value") -> int | None:
    """Optional positive integer; absent, zero or garbled values become None."""
    if value is None or value == "":
        return None
    amount = coerce_amount(value, field_name)
    if amount <= 0:
        return None
    return int(round(amount))


def coerce_optional_amount(value, field_name: str = "value") -> float | None:
    if value is None or value == "":
        return None
    amount = coerce_amount(value, field_name)
    return amount if amount > 0 else None


def normalize_period(value) -> str | None:
    """Normalize a period identifier to ``YYYY-MM`` (None when unparseable)."""
    if value is None or value == "":
        return None
    if isinstance(value, (date, datetime)):
        return f"{value.year:04d}-{value.month:02d}"
    match = _PERIOD_RE.match(str(value).strip())
    if not match:
        logger.warning(f"Unrecognized period {value!r}, expected YYYY-MM")
        return None
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        logger.warning(f"Invalid month in period {value!r}")
        return None
    return f"{year:04d}-{month:02d}"


def days_in_period(period: str | None) -> int:
    """Calendar length of a ``YYYY-MM`` period, 0 when unknown."""
    if not period:
        return 0
    year, month = (int(part) for part in period.split("-"))
    return calendar.monthrange(year, month)[1]


def period_month(period: str | None) -> int | None:
    """Month number (1-12) of a ``YYYY-MM`` period."""
    if not period:
        return None
    return int(period.split("-")[1])
