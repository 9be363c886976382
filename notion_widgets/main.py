"""Main FastAPI application."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path as FilePath
from typing import Callable, Optional

from fastapi import Depends, FastAPI, HTTPException, Path, Query
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles

from .api.models import (
    CalendarConfigCreate,
    CalendarConfigResponse,
    EventsRequest,
    MoodRequest,
    SaveRoutineRequest,
    SessionCreateRequest,
    WidgetDataRequest,
)
from .calendar_widget.events import (
    PREVIEW_CONFIG_ID,
    NotionEventSource,
    build_month_view,
    sample_events,
)
from .calendar_widget.grid import month_range
from .calendar_widget.models import CalendarEvent, EventSourceConfig
from .config import settings
from .dashboard.renderer import WidgetRenderer
from .dates import parse_timestamp
from .errors import ConfigError, EventFetchError, NotionAPIError, PageNotFoundError
from .notion.client import NotionClient
from .notion.profile import ProfileLoader
from .routine.models import GameState, RoutineConfig, RoutineVariant, SessionSummary, decode_config
from .routine.player import RoutinePlayer
from .routine.sessions import SessionRegistry
from .routine.store import RoutineReportStore
from .storage.database import CalendarWidgetRecord, WidgetConfigDatabase

VERSION = "1.0.0"

EVENTS_ERROR_MESSAGE = "일정을 불러올 수 없습니다."

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Stop every ticker before the loop goes away
    sessions.close_all()


# Initialize FastAPI app
app = FastAPI(
    title="Notion Widgets",
    description="Routine player and calendar widgets backed by Notion",
    version=VERSION,
    lifespan=lifespan,
)

# Initialize components
db = WidgetConfigDatabase(settings.config_db_path)
renderer = WidgetRenderer(settings.image_dir)
sessions = SessionRegistry(ttl=settings.session_ttl, on_close=renderer.discard_report)

# Mount static files
FilePath(settings.static_dir).mkdir(parents=True, exist_ok=True)
app.mount("/static", StaticFiles(directory=settings.static_dir), name="static")


def make_notion_client(token: str) -> NotionClient:
    """Create a Notion client with the configured API settings."""
    return NotionClient(
        token,
        api_url=settings.notion_api_url,
        notion_version=settings.notion_version,
        timeout=settings.notion_timeout,
    )


def get_notion_factory() -> Callable[[str], NotionClient]:
    """Dependency providing the Notion client factory."""
    return make_notion_client


def error_response(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


# --- Routine report persistence ---


def build_report_saver(notion_factory: Callable[[str], NotionClient]):
    """Build the save callback a routine player uses for its report."""

    async def save_report(summary: SessionSummary, config: RoutineConfig):
        token = config.token or settings.notion_token
        if not token or not config.database_id:
            raise ConfigError("Missing Notion token or database ID")

        async with notion_factory(token) as client:
            store = RoutineReportStore(client, settings.timezone, settings.day_cutoff_hour)
            return await store.save(summary, config.database_id)

    return save_report


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Notion Widgets",
        "version": VERSION,
        "endpoints": {
            "save_routine": "/api/notion/save-routine",
            "widget_data": "/api/notion/widget-data",
            "events": "/api/events",
            "calendar": "/api/calendar/{config_id}/{year}/{month}",
            "routine_sessions": "/api/routine/sessions",
            "status": "/status",
        },
    }


@app.get("/status")
async def status():
    """Server status endpoint."""
    return {
        "status": "running",
        "version": VERSION,
        "timestamp": datetime.utcnow().isoformat(),
        "timezone": settings.timezone,
        "day_cutoff_hour": settings.day_cutoff_hour,
        "live_sessions": len(sessions),
    }


@app.post("/api/notion/save-routine")
async def save_routine_endpoint(
    body: SaveRoutineRequest,
    notion_factory: Callable[[str], NotionClient] = Depends(get_notion_factory),
):
    """
    Save a finished routine into today's daily page.

    "Today" follows the 04:00 day boundary, so a night routine finished
    after midnight lands on the previous day's page.
    """
    token = body.token or settings.notion_token
    if not token or not body.database_id:
        return error_response("Missing required parameters", 400)

    try:
        timestamp = parse_timestamp(body.date)
    except ValueError:
        return error_response(f"Invalid date: {body.date}", 400)

    summary = SessionSummary(
        completed_count=body.completed_count,
        total_count=body.total_count,
        mood=body.mood,
        timestamp=timestamp,
        completed_emojis=body.routine_emojis,
        routine_variant=RoutineVariant.SECONDARY if body.is_second_routine else RoutineVariant.PRIMARY,
    )

    try:
        async with notion_factory(token) as client:
            store = RoutineReportStore(client, settings.timezone, settings.day_cutoff_hour)
            await store.save(summary, body.database_id)
    except PageNotFoundError as e:
        return error_response(str(e), 404)
    except NotionAPIError as e:
        logger.error(f"Save routine error: {e}")
        return error_response(f"Failed to save routine: {e.message}", 500)

    return {"success": True}


@app.post("/api/notion/widget-data")
async def widget_data_endpoint(
    body: WidgetDataRequest,
    notion_factory: Callable[[str], NotionClient] = Depends(get_notion_factory),
):
    """Profile widget data (name, image, sleep, energy, texts)."""
    token = body.token or settings.notion_token
    if not token or not body.database_id:
        return error_response("Missing required parameters", 400)

    try:
        async with notion_factory(token) as client:
            loader = ProfileLoader(client, settings.timezone, settings.day_cutoff_hour)
            data = await loader.load(body.database_id)
    except NotionAPIError as e:
        logger.error(f"Widget data error: {e}")
        return error_response(f"Failed to fetch widget data: {e.message}", 500)

    return JSONResponse(data.to_dict(), headers={"Cache-Control": "no-store, max-age=0"})


# --- Calendar ---


async def fetch_calendar_events(
    source: EventSourceConfig,
    start_date: str,
    end_date: str,
    notion_factory: Callable[[str], NotionClient],
) -> list[CalendarEvent]:
    """Fetch events for a date range from a Notion source."""
    async with notion_factory(source.token) as client:
        return await NotionEventSource(client).fetch_events(source, start_date, end_date)


def get_calendar_record(config_id: str) -> CalendarWidgetRecord:
    record = db.get_config(config_id)
    if not record:
        raise HTTPException(status_code=404, detail=f"Unknown calendar config: {config_id}")
    return record


def record_response(record: CalendarWidgetRecord) -> CalendarConfigResponse:
    return CalendarConfigResponse(
        id=record.config_id,
        name=record.name,
        database_id=record.source.database_id,
        date_property=record.source.date_property,
        title_property=record.source.title_property,
        schedule_properties=record.source.schedule_properties,
        important_property=record.source.important_property,
        created_at=record.created_at.isoformat(),
    )


@app.post("/api/events")
async def events_endpoint(
    body: EventsRequest,
    notion_factory: Callable[[str], NotionClient] = Depends(get_notion_factory),
):
    """Events for a date range, with the Notion source given inline."""
    try:
        events = await fetch_calendar_events(
            body.config.to_source(), body.start_date, body.end_date, notion_factory
        )
    except EventFetchError as e:
        logger.error(f"Error fetching events: {e}")
        return JSONResponse({"success": False, "error": str(e)}, status_code=500)

    return {"success": True, "data": [event.to_dict() for event in events]}


@app.get("/api/events/{config_id}")
async def stored_events_endpoint(
    config_id: str,
    start_date: str = Query(..., alias="startDate"),
    end_date: str = Query(..., alias="endDate"),
    notion_factory: Callable[[str], NotionClient] = Depends(get_notion_factory),
):
    """Events for a date range from a stored calendar config."""
    if config_id == PREVIEW_CONFIG_ID:
        return {"success": True, "data": [event.to_dict() for event in sample_events()]}

    record = get_calendar_record(config_id)
    try:
        events = await fetch_calendar_events(record.source, start_date, end_date, notion_factory)
    except EventFetchError as e:
        logger.error(f"Error fetching events: {e}")
        return JSONResponse({"success": False, "error": str(e)}, status_code=500)

    return {"success": True, "data": [event.to_dict() for event in events]}


@app.post("/api/calendar/configs", response_model=CalendarConfigResponse)
async def create_calendar_config(body: CalendarConfigCreate):
    """Store a calendar widget configuration."""
    record = db.create_config(body.name, body.config.to_source())
    return record_response(record)


@app.get("/api/calendar/configs", response_model=list[CalendarConfigResponse])
async def list_calendar_configs():
    """Stored calendar widget configurations, newest first."""
    return [record_response(record) for record in db.list_configs()]


@app.get("/api/calendar/configs/{config_id}", response_model=CalendarConfigResponse)
async def get_calendar_config(config_id: str):
    return record_response(get_calendar_record(config_id))


@app.delete("/api/calendar/configs/{config_id}")
async def delete_calendar_config(config_id: str):
    if not db.delete_config(config_id):
        raise HTTPException(status_code=404, detail=f"Unknown calendar config: {config_id}")
    return {"status": "success"}


async def load_month_view(
    config_id: str,
    year: int,
    month: int,
    notion_factory: Callable[[str], NotionClient],
) -> dict:
    """
    Build a month view; a failed fetch still yields a grid without events.
    """
    if config_id == PREVIEW_CONFIG_ID:
        return build_month_view(year, month, sample_events())

    record = get_calendar_record(config_id)
    start_date, end_date = month_range(year, month)

    try:
        events = await fetch_calendar_events(record.source, start_date, end_date, notion_factory)
    except EventFetchError as e:
        logger.error(f"Error fetching events: {e}")
        return build_month_view(year, month, [], error=EVENTS_ERROR_MESSAGE)

    return build_month_view(year, month, events)


@app.get("/api/calendar/{config_id}/{year}/{month}")
async def calendar_month_endpoint(
    config_id: str,
    year: int = Path(..., ge=1, le=9999),
    month: int = Path(..., ge=0, le=11, description="0-based month"),
    notion_factory: Callable[[str], NotionClient] = Depends(get_notion_factory),
):
    """Month grid with events for the calendar widget."""
    return await load_month_view(config_id, year, month, notion_factory)


@app.get("/api/calendar/{config_id}/{year}/{month}/image")
async def calendar_image_endpoint(
    config_id: str,
    year: int = Path(..., ge=1, le=9999),
    month: int = Path(..., ge=0, le=11),
    theme: str = "pink",
    notion_factory: Callable[[str], NotionClient] = Depends(get_notion_factory),
):
    """Month grid rendered as PNG."""
    view = await load_month_view(config_id, year, month, notion_factory)
    _, file_path = renderer.render_calendar(view, theme=theme, key=config_id)
    return FileResponse(file_path, media_type="image/png")


# --- Routine player sessions ---


def get_player(session_id: str) -> RoutinePlayer:
    player = sessions.get(session_id)
    if not player:
        raise HTTPException(status_code=404, detail=f"Unknown session: {session_id}")
    return player


def session_response(session_id: str, player: RoutinePlayer, applied: Optional[bool] = None) -> dict:
    data = {"session_id": session_id, **player.snapshot()}
    if applied is not None:
        data["applied"] = applied
    return data


@app.post("/api/routine/sessions")
async def create_session(
    body: SessionCreateRequest,
    notion_factory: Callable[[str], NotionClient] = Depends(get_notion_factory),
):
    """
    Open a routine player for an encoded widget config.

    A missing or malformed config still opens a session; it stays idle.
    """
    config = decode_config(body.config)
    player = RoutinePlayer(
        config,
        save_report=build_report_saver(notion_factory),
        tick_interval=settings.tick_interval,
        mood_delay=settings.mood_delay,
    )
    session_id = sessions.add(player)
    return session_response(session_id, player)


@app.get("/api/routine/sessions/{session_id}")
async def get_session(session_id: str):
    return session_response(session_id, get_player(session_id))


@app.delete("/api/routine/sessions/{session_id}")
async def close_session(session_id: str):
    if not sessions.close(session_id):
        raise HTTPException(status_code=404, detail=f"Unknown session: {session_id}")
    return {"status": "success"}


@app.post("/api/routine/sessions/{session_id}/mood")
async def select_mood(session_id: str, body: MoodRequest):
    player = get_player(session_id)
    applied = await player.select_mood(body.rating)
    return session_response(session_id, player, applied)


@app.post("/api/routine/sessions/{session_id}/save")
async def save_session(session_id: str):
    """Save the report to Notion (once per report)."""
    player = get_player(session_id)

    if player.state != GameState.REPORT:
        raise HTTPException(status_code=409, detail="Routine is not finished")
    if player.is_saved or player.is_saving:
        raise HTTPException(status_code=409, detail="Report already saved")

    if not await player.save():
        return JSONResponse(
            {"error": player.last_error or "Save failed", **session_response(session_id, player)},
            status_code=502,
        )

    return session_response(session_id, player, True)


@app.get("/api/routine/sessions/{session_id}/report/image")
async def report_image(session_id: str):
    player = get_player(session_id)
    _, file_path = renderer.render_report(player.snapshot(), key=session_id)
    return FileResponse(file_path, media_type="image/png")


SESSION_ACTIONS = {
    "start": RoutinePlayer.start,
    "pause": RoutinePlayer.pause,
    "resume": RoutinePlayer.resume,
    "skip": RoutinePlayer.skip,
    "complete": RoutinePlayer.complete,
    "restart": RoutinePlayer.restart,
}


@app.post("/api/routine/sessions/{session_id}/{action}")
async def session_action(session_id: str, action: str):
    """
    Apply a player action.

    Actions not allowed in the current state are ignored ("applied": false).
    """
    player = get_player(session_id)

    if action == "theme":
        player.toggle_theme()
        return session_response(session_id, player, True)
    if action == "variant":
        player.toggle_variant()
        return session_response(session_id, player, True)

    handler = SESSION_ACTIONS.get(action)
    if not handler:
        raise HTTPException(status_code=404, detail=f"Unknown action: {action}")

    applied = handler(player)
    logger.debug(f"Session {session_id}: {action} -> {player.state.value} (applied={applied})")
    return session_response(session_id, player, applied)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=settings.server_host,
        port=settings.server_port,
        log_level=settings.log_level.lower(),
    )
