"""Display helpers for evidence and insight text."""

from revenue_sentry.config import settings


def format_money(amount: float, decimals: int = 0) -> str:
    """Format an amount with the configured currency symbol for display."""
    return f"{settings.currency_symbol}{amount:,.{decimals}f}"


def format_pct(value: float, decimals: int = 1, signed: bool = False) -> str:
    sign = "+" if signed and value > 0 else ""
    return f"{sign}{value:.{decimals}f}%"
