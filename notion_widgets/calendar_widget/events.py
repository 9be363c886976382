"""Calendar events from Notion and the month view built around them."""

import logging
from collections import defaultdict
from datetime import date
from typing import Optional

from ..dates import format_date
from ..errors import EventFetchError, NotionAPIError
from ..notion.client import NotionClient
from ..notion.properties import checkbox, date_start, plain_text
from .grid import generate_calendar_days, get_month_name, get_weekday_names, navigate_month
from .models import CalendarEvent, EventSourceConfig

logger = logging.getLogger(__name__)

PREVIEW_CONFIG_ID = "preview"


class NotionEventSource:
    """Reads calendar events from a Notion database."""

    def __init__(self, client: NotionClient):
        """Initialize with a connected Notion client."""
        self.client = client

    async def fetch_events(
        self, config: EventSourceConfig, start_date: str, end_date: str
    ) -> list[CalendarEvent]:
        """
        Fetch events whose date falls within [start_date, end_date].

        Args:
            config: Database and property names
            start_date: First day, YYYY-MM-DD
            end_date: Last day, YYYY-MM-DD

        Returns:
            Events ordered by date

        Raises:
            EventFetchError: If Notion could not be queried
        """
        logger.info(f"Fetching events {start_date} to {end_date} from {config.database_id}")

        date_filter = {
            "and": [
                {"property": config.date_property, "date": {"on_or_after": start_date}},
                {"property": config.date_property, "date": {"on_or_before": end_date}},
            ]
        }
        sorts = [{"property": config.date_property, "direction": "ascending"}]

        try:
            pages = await self.client.query_all(config.database_id, filter=date_filter, sorts=sorts)
        except NotionAPIError as e:
            raise EventFetchError(f"Failed to fetch events: {e}") from e

        events = []
        for page in pages:
            events.extend(self._page_events(page, config))

        logger.info(f"Loaded {len(events)} events from {len(pages)} pages")
        return events

    def _page_events(self, page: dict, config: EventSourceConfig) -> list[CalendarEvent]:
        """
        Turn one database page into events.

        Each non-empty schedule property becomes its own event; without
        schedule properties the page title is the event.
        """
        properties = page.get("properties", {})
        event_date = date_start(properties.get(config.date_property))
        if not event_date:
            logger.debug(f"Page {page.get('id')} has no {config.date_property}, skipping")
            return []

        is_important = False
        if config.important_property:
            is_important = checkbox(properties.get(config.important_property))

        if config.schedule_properties:
            titles = [plain_text(properties.get(name)).strip() for name in config.schedule_properties]
            titles = [title for title in titles if title]
        else:
            titles = [plain_text(properties.get(config.title_property)).strip() or "Untitled"]

        page_id = page.get("id", "")
        events = []
        for index, title in enumerate(titles):
            events.append(
                CalendarEvent(
                    id=page_id if len(titles) == 1 else f"{page_id}:{index}",
                    date=event_date,
                    title=title,
                    is_important=is_important,
                    page_url=page.get("url"),
                )
            )
        return events


def group_events_by_date(events: list[CalendarEvent]) -> dict[str, list[CalendarEvent]]:
    """Group events by date string, keeping their order within each day."""
    grouped = defaultdict(list)
    for event in events:
        grouped[event.date].append(event)
    return dict(grouped)


def sample_events(today: Optional[date] = None) -> list[CalendarEvent]:
    """Events shown by the preview widget, placed in the current month."""
    if today is None:
        today = date.today()

    def on(day: int) -> str:
        return format_date(today.replace(day=day))

    return [
        CalendarEvent("sample-1", format_date(today), "팀 미팅", True, "#"),
        CalendarEvent("sample-2", format_date(today), "프로젝트 발표", True, "#"),
        CalendarEvent("sample-3", on(2), "중요 회의", True, "#"),
        CalendarEvent("sample-4", on(2), "고객 미팅", True, "#"),
        CalendarEvent("sample-5", on(15), "마감일", True, "#"),
        CalendarEvent("sample-6", on(23), "발표 준비", True, "#"),
        CalendarEvent("sample-7", on(5), "보고서 제출", False, "#"),
        CalendarEvent("sample-8", on(10), "회식", False, "#"),
        CalendarEvent("sample-9", on(18), "스터디", False, "#"),
    ]


def build_month_view(
    year: int,
    month: int,
    events: list[CalendarEvent],
    error: Optional[str] = None,
    today: Optional[date] = None,
) -> dict:
    """
    Build the payload the calendar widget renders.

    Args:
        year: Year
        month: Month, 0-based
        events: Events to place on the grid
        error: Fetch error message; days then carry no events
        today: Date to flag as today

    Returns:
        Dictionary with header, weekdays, days (each with its events),
        prev/next month links and error
    """
    grouped = {} if error else group_events_by_date(events)
    prev_year, prev_month = navigate_month(year, month, "prev")
    next_year, next_month = navigate_month(year, month, "next")

    days = []
    for day in generate_calendar_days(year, month, today=today):
        day_events = grouped.get(day.date_string, [])
        days.append(
            {
                "date": day.date_string,
                "day": day.date.day,
                "isCurrentMonth": day.is_current_month,
                "isWeekend": day.is_weekend,
                "isToday": day.is_today,
                "hasImportant": any(event.is_important for event in day_events),
                "events": [event.to_dict() for event in day_events],
            }
        )

    return {
        "year": year,
        "month": month,
        "title": f"{get_month_name(month)} {year}",
        "weekdays": get_weekday_names(short=True),
        "days": days,
        "prev": {"year": prev_year, "month": prev_month},
        "next": {"year": next_year, "month": next_month},
        "error": error,
    }
