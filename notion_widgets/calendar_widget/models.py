"""Data models for the calendar widget."""

from dataclasses import dataclass, field
from datetime import date
from typing import Optional


@dataclass(frozen=True)
class CalendarDay:
    """One cell of the month grid."""

    date: date
    date_string: str  # YYYY-MM-DD
    is_current_month: bool
    is_weekend: bool
    is_today: bool


@dataclass
class CalendarEvent:
    """An event shown on a calendar day."""

    id: str
    date: str  # YYYY-MM-DD
    title: str
    is_important: bool = False
    page_url: Optional[str] = None

    def to_dict(self) -> dict:
        """Serialize in the widget's camelCase shape."""
        return {
            "id": self.id,
            "date": self.date,
            "title": self.title,
            "isImportant": self.is_important,
            "pageUrl": self.page_url,
        }


@dataclass
class EventSourceConfig:
    """Where and how to read events from a Notion database."""

    token: str
    database_id: str
    date_property: str = "Date"
    title_property: str = "Name"
    schedule_properties: list[str] = field(default_factory=list)
    important_property: Optional[str] = None
