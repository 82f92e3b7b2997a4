"""Date and price formatting helpers.

Dates are shown as dd/mm/yyyy everywhere in the client. Every helper here
is fail-soft: absent or unparseable input gives back an empty value instead
of raising.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime
from typing import NamedTuple, Optional, Union

DateLike = Union[date, datetime, str, None]

MONTH_ABBRS = (
    "ЯНВ", "ФЕВ", "МАР", "АПР", "МАЙ", "ИЮН",
    "ИЮЛ", "АВГ", "СЕН", "ОКТ", "НОЯ", "ДЕК",
)

CURRENCY = "UZS"


class DayMonth(NamedTuple):
    day_month: str
    month: str


def _to_datetime(value: DateLike) -> Optional[datetime]:
    """Coerce a date, datetime or ISO string to a datetime, or None."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    return None


def format_date_ddmmyyyy(value: DateLike) -> str:
    """Format to dd/mm/yyyy."""
    moment = _to_datetime(value)
    if moment is None:
        return ""
    return f"{moment.day:02d}/{moment.month:02d}/{moment.year}"


def parse_date_ddmmyyyy(text: Optional[str]) -> Optional[date]:
    """Parse dd/mm/yyyy into a date.

    Returns None for absent input, a wrong shape, or a day that does not
    exist in the calendar (31/02/2024).
    """
    if not text or not isinstance(text, str):
        return None

    parts = text.strip().split("/")
    if len(parts) != 3 or not all(part.isdigit() for part in parts):
        return None

    day, month, year = (int(part) for part in parts)
    try:
        return date(year, month, day)
    except ValueError:
        return None


def format_date_for_input(value: DateLike) -> str:
    """Format for a date input control (yyyy-mm-dd)."""
    moment = _to_datetime(value)
    if moment is None:
        return ""
    return f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}"


def get_month_abbr(value: Union[int, date, None]) -> str:
    """Month abbreviation for a 0-based month index or a date."""
    if isinstance(value, date):
        return MONTH_ABBRS[value.month - 1]
    # bool is an int subclass
    if isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= 11:
        return MONTH_ABBRS[value]
    return ""


def format_date_with_month(value: DateLike) -> DayMonth:
    """Split a date into "15.12" and "ДЕК"."""
    moment = _to_datetime(value)
    if moment is None:
        return DayMonth("", "")
    return DayMonth(
        day_month=f"{moment.day:02d}.{moment.month:02d}",
        month=get_month_abbr(moment),
    )


def format_datetime(value: DateLike) -> str:
    """Format a timestamp as dd.mm.yyyy HH:mm."""
    moment = _to_datetime(value)
    if moment is None:
        return ""
    return moment.strftime("%d.%m.%Y %H:%M")


def format_price(value: Union[int, float, str, None]) -> str:
    """Format a price with space thousand separators: 18000 -> "18 000 UZS"."""
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return f"0 {CURRENCY}"

    if isinstance(value, str):
        match = re.match(r"\s*[-+]?\d*\.?\d+", value)
        if not match:
            return f"0 {CURRENCY}"
        value = float(match.group())

    if not math.isfinite(value):
        return f"0 {CURRENCY}"

    formatted = f"{math.floor(value + 0.5):,}".replace(",", " ")
    return f"{formatted} {CURRENCY}"
