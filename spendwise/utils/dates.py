from datetime import date, datetime
from typing import Optional, Union


def month_key(value: Union[str, date, datetime]) -> str:
    """Return the ``YYYY-MM`` key of an ISO date string or a date."""
    if isinstance(value, (date, datetime)):
        return value.strftime("%Y-%m")
    return str(value)[:7]


def add_months(year: int, month: int, n: int):
    """
    Add n months to given (year, month)
    Returns new (year, month)
    """
    new_month = month + n
    new_year = year + (new_month - 1) // 12
    new_month = ((new_month - 1) % 12) + 1
    return new_year, new_month


def shift_month(key: str, n: int) -> str:
    """Shift a ``YYYY-MM`` key by n calendar months (negative goes back)."""
    year, month = int(key[:4]), int(key[5:7])
    new_year, new_month = add_months(year, month, n)
    return f"{new_year:04d}-{new_month:02d}"


def resolve_today(now: Optional[Union[date, datetime]] = None) -> date:
    if now is None:
        return date.today()
    if isinstance(now, datetime):
        return now.date()
    return now
