"""Tests for the calendar grid and month view."""

import asyncio
from datetime import date

import pytest

from notion_widgets.calendar_widget.events import (
    NotionEventSource,
    build_month_view,
    group_events_by_date,
    sample_events,
)
from notion_widgets.calendar_widget.grid import (
    generate_calendar_days,
    get_month_name,
    get_weekday_names,
    month_range,
    navigate_month,
)
from notion_widgets.calendar_widget.models import CalendarEvent, EventSourceConfig
from notion_widgets.errors import EventFetchError


class TestGrid:
    def test_february_leap_year(self):
        days = generate_calendar_days(2024, 1, today=date(2024, 2, 10))

        assert len(days) % 7 == 0
        current = [d for d in days if d.is_current_month]
        assert [d.date.day for d in current] == list(range(1, 30))
        feb29 = next(d for d in days if d.date_string == "2024-02-29")
        assert feb29.is_current_month

    def test_leading_days_align_first_to_weekday(self):
        # 2024-02-01 is a Thursday: Sunday-first grid has four leading days
        days = generate_calendar_days(2024, 1, today=date(2024, 2, 10))

        assert [d.date_string for d in days[:5]] == [
            "2024-01-28", "2024-01-29", "2024-01-30", "2024-01-31", "2024-02-01",
        ]
        assert not days[0].is_current_month
        assert days[-1].date_string == "2024-03-02"

    def test_weekend_and_today_flags(self):
        days = generate_calendar_days(2024, 1, today=date(2024, 2, 10))
        by_date = {d.date_string: d for d in days}

        assert by_date["2024-02-10"].is_today  # Saturday
        assert by_date["2024-02-10"].is_weekend
        assert by_date["2024-02-11"].is_weekend  # Sunday
        assert not by_date["2024-02-12"].is_weekend
        assert sum(d.is_today for d in days) == 1

    @pytest.mark.parametrize("year,month", [(2023, 0), (2024, 1), (2026, 1), (2025, 11)])
    def test_full_weeks(self, year, month):
        days = generate_calendar_days(year, month)
        assert len(days) % 7 == 0
        assert days[0].date.weekday() == 6  # Sunday

    def test_month_out_of_range(self):
        with pytest.raises(ValueError):
            generate_calendar_days(2024, 12)

    def test_navigate_wraps_years(self):
        assert navigate_month(2024, 0, "prev") == (2023, 11)
        assert navigate_month(2024, 11, "next") == (2025, 0)
        assert navigate_month(2024, 5, "prev") == (2024, 4)
        assert navigate_month(2024, 5, "next") == (2024, 6)

    def test_month_range(self):
        assert month_range(2024, 1) == ("2024-02-01", "2024-02-29")
        assert month_range(2023, 1) == ("2023-02-01", "2023-02-28")

    def test_names(self):
        assert get_month_name(1) == "February"
        assert get_weekday_names() == ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]


class TestMonthView:
    def test_events_grouped_in_order(self):
        events = [
            CalendarEvent("1", "2024-02-05", "First"),
            CalendarEvent("2", "2024-02-06", "Other"),
            CalendarEvent("3", "2024-02-05", "Second", is_important=True),
        ]
        grouped = group_events_by_date(events)

        assert [e.title for e in grouped["2024-02-05"]] == ["First", "Second"]
        assert list(grouped) == ["2024-02-05", "2024-02-06"]

    def test_view_places_events(self):
        events = [CalendarEvent("1", "2024-02-05", "Meeting", True, "https://notion.so/x")]
        view = build_month_view(2024, 1, events, today=date(2024, 2, 1))

        day = next(d for d in view["days"] if d["date"] == "2024-02-05")
        assert day["hasImportant"]
        assert day["events"] == [
            {"id": "1", "date": "2024-02-05", "title": "Meeting", "isImportant": True, "pageUrl": "https://notion.so/x"}
        ]
        assert view["title"] == "February 2024"
        assert view["error"] is None

    def test_view_with_error_has_grid_without_events(self):
        events = [CalendarEvent("1", "2024-02-05", "Meeting")]
        view = build_month_view(2024, 1, events, error="failed")

        assert view["error"] == "failed"
        assert len(view["days"]) % 7 == 0
        assert all(d["events"] == [] for d in view["days"])

    def test_view_links_adjacent_months(self):
        january = build_month_view(2024, 0, [])
        december = build_month_view(2024, 11, [])

        assert january["prev"] == {"year": 2023, "month": 11}
        assert january["next"] == {"year": 2024, "month": 1}
        assert december["next"] == {"year": 2025, "month": 0}

    def test_sample_events_in_current_month(self):
        today = date(2024, 2, 20)
        events = sample_events(today)

        assert len(events) == 9
        assert all(e.date.startswith("2024-02") for e in events)
        assert sum(e.date == "2024-02-20" for e in events) == 2


def page(page_id, day, title="", schedules=None, important=None):
    properties = {
        "Date": {"type": "date", "date": {"start": day}},
        "Name": {"type": "title", "title": [{"plain_text": title}] if title else []},
    }
    for name, text in (schedules or {}).items():
        properties[name] = {"type": "rich_text", "rich_text": [{"plain_text": text}] if text else []}
    if important is not None:
        properties["Important"] = {"type": "checkbox", "checkbox": important}
    return {"id": page_id, "url": f"https://notion.so/{page_id}", "properties": properties}


class TestNotionEventSource:
    def fetch(self, fake_notion, config):
        async def run():
            async with fake_notion.client() as client:
                return await NotionEventSource(client).fetch_events(config, "2024-02-01", "2024-02-29")

        return asyncio.run(run())

    def test_title_events_and_pagination(self, fake_notion):
        responses = iter(
            [
                {"results": [page("p1", "2024-02-05", "Dentist", important=True)], "has_more": True, "next_cursor": "c1"},
                {"results": [page("p2", "2024-02-06T09:00:00.000+09:00", "")], "has_more": False, "next_cursor": None},
            ]
        )
        fake_notion.on("POST", "/databases/db1/query", lambda body: next(responses))
        config = EventSourceConfig(token="t", database_id="db1", important_property="Important")

        events = self.fetch(fake_notion, config)

        assert [(e.id, e.date, e.title, e.is_important) for e in events] == [
            ("p1", "2024-02-05", "Dentist", True),
            ("p2", "2024-02-06", "Untitled", False),
        ]
        bodies = fake_notion.calls("POST", "/databases/db1/query")
        assert bodies[0]["filter"]["and"][0] == {"property": "Date", "date": {"on_or_after": "2024-02-01"}}
        assert bodies[1]["start_cursor"] == "c1"

    def test_schedule_properties_become_events(self, fake_notion):
        fake_notion.on(
            "POST",
            "/databases/db1/query",
            {"results": [page("p1", "2024-02-05", "Day", schedules={"AM": "Gym", "PM": ""})], "has_more": False},
        )
        config = EventSourceConfig(token="t", database_id="db1", schedule_properties=["AM", "PM"])

        events = self.fetch(fake_notion, config)

        assert [(e.id, e.title) for e in events] == [("p1", "Gym")]

    def test_failure_raises_event_fetch_error(self, fake_notion):
        fake_notion.on("POST", "/databases/db1/query", (401, {"code": "unauthorized", "message": "bad token"}))
        config = EventSourceConfig(token="t", database_id="db1")

        with pytest.raises(EventFetchError):
            self.fetch(fake_notion, config)
