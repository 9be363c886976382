"""Routine player host: timer lifetime, theme and saving around the engine."""

import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable, Optional

from ..errors import WidgetError
from .engine import RoutineEngine, format_time
from .models import (
    DEFAULT_THEME,
    THEME_COLORS,
    THEMES,
    GameState,
    RoutineConfig,
    RoutineVariant,
    SessionSummary,
)

logger = logging.getLogger(__name__)

SaveReport = Callable[[SessionSummary, RoutineConfig], Awaitable[object]]


class RoutinePlayer:
    """
    Hosts one routine engine for a widget.

    The player owns the once-a-second ticker task. It exists exactly while
    the engine is PLAYING and is cancelled on every other transition.
    """

    def __init__(
        self,
        config: Optional[RoutineConfig],
        save_report: Optional[SaveReport] = None,
        tick_interval: float = 1.0,
        mood_delay: float = 0.3,
    ):
        """
        Initialize player.

        Args:
            config: Decoded widget config (None leaves the player idle)
            save_report: Coroutine function persisting a summary
            tick_interval: Seconds between ticks
            mood_delay: Pause between picking a mood and showing the report
        """
        self.config = config
        self.engine = RoutineEngine(config.routines if config else [])
        self.save_report = save_report
        self.tick_interval = tick_interval
        self.mood_delay = mood_delay

        self.theme = config.theme if config else DEFAULT_THEME
        self.variant = config.variant if config else RoutineVariant.PRIMARY

        self.is_saved = False
        self.is_saving = False
        self.last_error: Optional[str] = None
        self._ticker: Optional[asyncio.Task] = None
        # Monotonic time of the last request touching this player
        self.last_seen = 0.0

    @property
    def configured(self) -> bool:
        return self.config is not None

    @property
    def state(self) -> GameState:
        return self.engine.state

    @property
    def ticking(self) -> bool:
        return self._ticker is not None and not self._ticker.done()

    # --- transitions ---

    def start(self) -> bool:
        if not self.configured:
            logger.error("No config or routines found")
            return False
        applied = self.engine.start()
        if applied:
            self.is_saved = False
            self.last_error = None
        self._sync_ticker()
        return applied

    def pause(self) -> bool:
        applied = self.engine.pause()
        self._sync_ticker()
        return applied

    def resume(self) -> bool:
        applied = self.engine.resume()
        self._sync_ticker()
        return applied

    def skip(self) -> bool:
        applied = self.engine.skip()
        self._sync_ticker()
        return applied

    def complete(self) -> bool:
        applied = self.engine.complete_current()
        self._sync_ticker()
        return applied

    async def select_mood(self, rating: int) -> bool:
        """Record the mood, then show the report after the mood delay."""
        if not self.engine.select_mood(rating, advance=False):
            return False

        if self.mood_delay > 0:
            await asyncio.sleep(self.mood_delay)

        if self.engine.show_report():
            self._enter_report()
        return True

    def restart(self) -> bool:
        applied = self.engine.restart()
        if applied:
            self.is_saved = False
            self.last_error = None
        self._sync_ticker()
        return applied

    def toggle_theme(self) -> str:
        """Cycle pink -> blue -> purple -> mono."""
        index = THEMES.index(self.theme) if self.theme in THEMES else -1
        self.theme = THEMES[(index + 1) % len(THEMES)]
        return self.theme

    def toggle_variant(self) -> RoutineVariant:
        """Switch between the primary (morning) and secondary (night) routine."""
        if self.variant == RoutineVariant.PRIMARY:
            self.variant = RoutineVariant.SECONDARY
        else:
            self.variant = RoutineVariant.PRIMARY
        return self.variant

    # --- persistence ---

    async def save(self) -> bool:
        """
        Save the report once.

        Returns:
            True if saved now, False if saving is not possible (wrong state,
            already saved, a save in flight) or it failed. On failure
            last_error is set and the report stays open for a retry.
        """
        if self.state != GameState.REPORT:
            logger.debug(f"Ignoring save in state {self.state.value}")
            return False
        if self.is_saved or self.is_saving:
            logger.debug("Report already saved or being saved")
            return False
        if not self.save_report:
            self.last_error = "No persistence configured"
            return False

        summary = self.engine.summary(timestamp=datetime.now().astimezone(), variant=self.variant)

        self.is_saving = True
        self.last_error = None
        try:
            await self.save_report(summary, self.config)
        except WidgetError as e:
            logger.error(f"Save error: {e}")
            self.last_error = str(e)
            return False
        finally:
            self.is_saving = False

        self.is_saved = True
        return True

    # --- ticker ---

    def _enter_report(self):
        # Each visit to the report allows one save
        self.is_saved = False
        self.last_error = None

    def _sync_ticker(self):
        """Start or stop the ticker to match the engine state."""
        if self.state == GameState.PLAYING:
            if not self.ticking:
                self._ticker = asyncio.get_running_loop().create_task(self._run_ticker())
        else:
            self._stop_ticker()

    def _stop_ticker(self):
        if self._ticker is not None:
            if not self._ticker.done() and self._ticker is not asyncio.current_task():
                self._ticker.cancel()
            self._ticker = None

    async def _run_ticker(self):
        while self.state == GameState.PLAYING:
            await asyncio.sleep(self.tick_interval)
            if self.state != GameState.PLAYING:
                break
            self.engine.tick()
        # Left PLAYING through a tick (last routine finished)
        if self._ticker is asyncio.current_task():
            self._ticker = None

    def close(self):
        """Tear down the session; cancels the ticker."""
        self._stop_ticker()

    def snapshot(self) -> dict:
        """JSON-able view of the player for the widget."""
        engine = self.engine
        session = engine.session
        current = engine.current_routine
        next_routine = engine.next_routine

        return {
            "configured": self.configured,
            "state": self.state.value,
            "theme": self.theme,
            "colors": THEME_COLORS[self.theme],
            "variant": self.variant.value,
            "routines": [
                {"name": r.name, "duration": r.duration_seconds // 60, "emoji": r.emoji}
                for r in engine.routines
            ],
            "current_index": session.current_index if session else 0,
            "current_routine": (
                {"name": current.name, "emoji": current.emoji} if current else None
            ),
            "next_routine": (
                {"name": next_routine.name, "emoji": next_routine.emoji} if next_routine else None
            ),
            "remaining_seconds": session.remaining_seconds if session else 0,
            "remaining_time": format_time(session.remaining_seconds if session else 0),
            "progress": round(engine.progress, 1),
            "completed_count": session.completed_count if session else 0,
            "total_count": engine.total_count,
            "completed_routines": [
                {"name": r.name, "emoji": r.emoji}
                for r in (session.completed_routines if session else [])
            ],
            "mood": session.mood if session else None,
            "is_saved": self.is_saved,
            "is_saving": self.is_saving,
            "error": self.last_error,
        }
