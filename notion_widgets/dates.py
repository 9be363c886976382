"""Date helpers shared by every "today" lookup."""

from datetime import date, datetime, timedelta
from typing import Optional, Union

import pytz

DEFAULT_CUTOFF_HOUR = 4


def get_timezone(tz: Union[str, pytz.BaseTzInfo]) -> pytz.BaseTzInfo:
    """Resolve a timezone name (e.g. "Asia/Seoul") to a tzinfo."""
    if isinstance(tz, str):
        return pytz.timezone(tz)
    return tz


def to_local(moment: datetime, tz: Union[str, pytz.BaseTzInfo]) -> datetime:
    """
    Convert a datetime to local time in the given timezone.

    Naive datetimes are taken to already be local time.
    """
    zone = get_timezone(tz)
    if moment.tzinfo is None:
        return zone.localize(moment)
    return moment.astimezone(zone)


def routine_date(
    moment: Optional[datetime],
    tz: Union[str, pytz.BaseTzInfo],
    cutoff_hour: int = DEFAULT_CUTOFF_HOUR,
) -> date:
    """
    Get the calendar date a moment belongs to under the night-owl rule.

    A day starts at `cutoff_hour` local time, so anything earlier is
    attributed to the previous calendar date.

    Args:
        moment: Point in time (None means now)
        tz: Timezone name or tzinfo
        cutoff_hour: Local hour at which a new day starts

    Returns:
        The attributed calendar date

    Example:
        03:59 on Mar 2 -> Mar 1, 04:00 on Mar 2 -> Mar 2
    """
    if moment is None:
        moment = datetime.now(pytz.UTC)

    local = to_local(moment, tz)
    day = local.date()
    if local.hour < cutoff_hour:
        day -= timedelta(days=1)
    return day


def format_date(day: date) -> str:
    """Format a date as YYYY-MM-DD."""
    return day.strftime("%Y-%m-%d")


def parse_timestamp(value: Optional[str]) -> datetime:
    """
    Parse an ISO 8601 timestamp as sent by browsers.

    Accepts a trailing "Z". Empty values mean now (UTC).
    """
    if not value:
        return datetime.now(pytz.UTC)
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def day_filter(date_property: str, day: date) -> dict:
    """
    Build a Notion filter matching pages whose date property falls on `day`.

    Args:
        date_property: Name of the date property (e.g. "Date")
        day: Target date

    Returns:
        Notion compound filter dictionary
    """
    next_day = day + timedelta(days=1)
    return {
        "and": [
            {"property": date_property, "date": {"on_or_after": format_date(day)}},
            {"property": date_property, "date": {"before": format_date(next_day)}},
        ]
    }
