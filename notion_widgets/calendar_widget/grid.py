"""Month grid generation.

Months are 0-based throughout (0 = January, 11 = December), the way the
calendar widget addresses them.
"""

import calendar
from datetime import date
from typing import Optional

from ..dates import format_date
from .models import CalendarDay

MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]

WEEKDAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]

# Weeks start on Sunday
_CALENDAR = calendar.Calendar(firstweekday=calendar.SUNDAY)


def _check_month(month: int):
    if not 0 <= month <= 11:
        raise ValueError(f"month must be 0-11, got {month}")


def generate_calendar_days(year: int, month: int, today: Optional[date] = None) -> list[CalendarDay]:
    """
    Generate every cell of the displayed month grid.

    Leading days of the previous month align the 1st onto its weekday
    column; trailing days of the next month complete the last week.

    Args:
        year: Year (e.g. 2024)
        month: Month, 0-based
        today: Date to flag as today (default: current date)

    Returns:
        List of CalendarDay, length a multiple of 7
    """
    _check_month(month)
    if today is None:
        today = date.today()

    days = []
    for week in _CALENDAR.monthdatescalendar(year, month + 1):
        for day in week:
            days.append(
                CalendarDay(
                    date=day,
                    date_string=format_date(day),
                    is_current_month=day.month == month + 1,
                    is_weekend=day.weekday() >= 5,  # Saturday, Sunday
                    is_today=day == today,
                )
            )
    return days


def navigate_month(year: int, month: int, direction: str) -> tuple[int, int]:
    """
    Move to the previous or next month, wrapping across years.

    Args:
        year: Current year
        month: Current month, 0-based
        direction: "prev" or "next"

    Returns:
        Tuple of (year, month)
    """
    _check_month(month)
    if direction == "prev":
        return (year - 1, 11) if month == 0 else (year, month - 1)
    if direction == "next":
        return (year + 1, 0) if month == 11 else (year, month + 1)
    raise ValueError(f"direction must be 'prev' or 'next', got {direction!r}")


def month_range(year: int, month: int) -> tuple[str, str]:
    """First and last date of a month as YYYY-MM-DD strings."""
    _check_month(month)
    last_day = calendar.monthrange(year, month + 1)[1]
    return format_date(date(year, month + 1, 1)), format_date(date(year, month + 1, last_day))


def get_month_name(month: int) -> str:
    _check_month(month)
    return MONTH_NAMES[month]


def get_weekday_names(short: bool = True) -> list[str]:
    """Weekday column headers, Sunday first."""
    if short:
        return [name[:3] for name in WEEKDAY_NAMES]
    return list(WEEKDAY_NAMES)
