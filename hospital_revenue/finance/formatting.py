"""Money and date presentation helpers shared by every report surface."""
from __future__ import annotations

from datetime import date, datetime, timezone, tzinfo
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional

from hospital_revenue.finance.engine import safe_decimal


def quantize_money(value: Any, places: int = 2) -> Decimal:
    """Round ``value`` half-up to ``places`` fraction digits."""

    exponent = Decimal(1).scaleb(-places) if places else Decimal(1)
    return safe_decimal(value).quantize(exponent, rounding=ROUND_HALF_UP)


def format_money(amount: Any, currency: str = "PKR", places: int = 2) -> str:
    """Render ``amount`` as ``"PKR 1,234.50"``."""

    value = quantize_money(amount, places)
    sign = "-" if value < 0 else ""
    return f"{sign}{currency} {abs(value):,.{places}f}"


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse database timestamps; naive values are taken to be UTC."""

    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def iso_date_only(value: date | datetime | str, tz: Optional[tzinfo] = None) -> str:
    """Return the ``YYYY-MM-DD`` calendar date of ``value`` in ``tz``.

    Plain ``date`` values (and date-only strings) are already calendar days
    and are returned unchanged.
    """

    if isinstance(value, date) and not isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, str) and len(value.strip()) == 10:
        return date.fromisoformat(value.strip()).isoformat()
    moment = parse_timestamp(value)
    if moment is None:
        raise ValueError("A date or timestamp is required")
    return moment.astimezone(tz or timezone.utc).date().isoformat()


__all__ = [
    "format_money",
    "iso_date_only",
    "parse_timestamp",
    "quantize_money",
]
