"""HTTP request and response models."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..calendar_widget.models import EventSourceConfig


class SaveRoutineRequest(BaseModel):
    """Body of /api/notion/save-routine."""

    model_config = ConfigDict(populate_by_name=True)

    token: str = ""
    database_id: str = Field("", alias="databaseId")
    completed_count: int = Field(0, alias="completedCount")
    total_count: int = Field(0, alias="totalCount")
    mood: str = ""
    date: Optional[str] = None
    routine_emojis: str = Field("", alias="routineEmojis")
    is_second_routine: bool = Field(False, alias="isSecondRoutine")


class WidgetDataRequest(BaseModel):
    """Body of /api/notion/widget-data."""

    model_config = ConfigDict(populate_by_name=True)

    token: str = ""
    database_id: str = Field("", alias="databaseId")


class NotionEventsConfig(BaseModel):
    """Notion source of calendar events, as sent by the calendar widget."""

    model_config = ConfigDict(populate_by_name=True)

    token: str
    database_id: str = Field(..., alias="dbId")
    date_property: str = Field("Date", alias="dateProp")
    title_property: str = Field("Name", alias="titleProp")
    schedule_properties: list[str] = Field(default_factory=list, alias="scheduleProps")
    important_property: Optional[str] = Field(None, alias="importantProp")

    def to_source(self) -> EventSourceConfig:
        return EventSourceConfig(
            token=self.token,
            database_id=self.database_id,
            date_property=self.date_property,
            title_property=self.title_property,
            schedule_properties=list(self.schedule_properties),
            important_property=self.important_property,
        )


class EventsRequest(BaseModel):
    """Body of /api/events."""

    model_config = ConfigDict(populate_by_name=True)

    config: NotionEventsConfig
    start_date: str = Field(..., alias="startDate")
    end_date: str = Field(..., alias="endDate")


class CalendarConfigCreate(BaseModel):
    """Body of /api/calendar/configs."""

    name: str = "Calendar"
    config: NotionEventsConfig


class CalendarConfigResponse(BaseModel):
    """A stored calendar config (token not included)."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    database_id: str = Field(..., alias="dbId")
    date_property: str = Field(..., alias="dateProp")
    title_property: str = Field(..., alias="titleProp")
    schedule_properties: list[str] = Field(..., alias="scheduleProps")
    important_property: Optional[str] = Field(None, alias="importantProp")
    created_at: str = Field(..., alias="createdAt")


class SessionCreateRequest(BaseModel):
    """Body of /api/routine/sessions."""

    config: Optional[str] = None


class MoodRequest(BaseModel):
    """Body of /api/routine/sessions/{id}/mood."""

    rating: int
