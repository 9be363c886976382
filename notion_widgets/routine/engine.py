"""Routine progression state machine."""

import logging
from datetime import datetime
from enum import Enum
from typing import Optional, Sequence

from .models import (
    MOOD_SUFFIX,
    CompletedRoutine,
    GameState,
    RoutineDefinition,
    RoutineSession,
    RoutineVariant,
    SessionSummary,
)

logger = logging.getLogger(__name__)


class Action(str, Enum):
    """Inputs accepted by the engine."""

    START = "start"
    TICK = "tick"
    PAUSE = "pause"
    RESUME = "resume"
    SKIP = "skip"
    COMPLETE = "complete"
    SELECT_MOOD = "select_mood"
    SHOW_REPORT = "show_report"
    RESTART = "restart"


# Action -> states it may be applied in
TRANSITIONS: dict[Action, frozenset[GameState]] = {
    Action.START: frozenset({GameState.IDLE}),
    Action.TICK: frozenset({GameState.PLAYING}),
    Action.PAUSE: frozenset({GameState.PLAYING}),
    Action.RESUME: frozenset({GameState.PAUSED}),
    Action.SKIP: frozenset({GameState.PLAYING, GameState.PAUSED}),
    Action.COMPLETE: frozenset({GameState.PLAYING, GameState.PAUSED}),
    Action.SELECT_MOOD: frozenset({GameState.MOOD}),
    Action.SHOW_REPORT: frozenset({GameState.MOOD}),
    Action.RESTART: frozenset({GameState.REPORT}),
}


def format_time(seconds: int) -> str:
    """Format seconds as MM:SS."""
    minutes, secs = divmod(max(0, seconds), 60)
    return f"{minutes:02d}:{secs:02d}"


class RoutineEngine:
    """
    Drives a sequence of timed routines from start to report.

    The engine does no I/O and owns no timer: the host calls tick() once a
    second while the state is PLAYING. Every operation returns True if it
    was applied and False if the current state does not allow it.
    """

    def __init__(self, routines: Optional[Sequence[RoutineDefinition]] = None):
        self.routines: list[RoutineDefinition] = list(routines or [])
        self.state = GameState.IDLE
        self.session: Optional[RoutineSession] = None

    def _allowed(self, action: Action) -> bool:
        """Check the transition table; log and reject illegal transitions."""
        if self.state in TRANSITIONS[action]:
            return True
        logger.debug(f"Ignoring {action.value} in state {self.state.value}")
        return False

    @property
    def total_count(self) -> int:
        return len(self.routines)

    @property
    def current_routine(self) -> Optional[RoutineDefinition]:
        if not self.session:
            return None
        return self.routines[self.session.current_index]

    @property
    def next_routine(self) -> Optional[RoutineDefinition]:
        if not self.session:
            return None
        next_index = self.session.current_index + 1
        if next_index < len(self.routines):
            return self.routines[next_index]
        return None

    @property
    def progress(self) -> float:
        """Percent of the current routine elapsed (0-100)."""
        routine = self.current_routine
        if not routine:
            return 0.0
        total = routine.duration_seconds
        elapsed = max(0, total - self.session.remaining_seconds)
        return min(100.0, elapsed / total * 100)

    def start(self) -> bool:
        """Begin a fresh session at the first routine."""
        if not self._allowed(Action.START):
            return False

        if not self.routines:
            logger.error("No routines configured, cannot start")
            return False

        first = self.routines[0]
        self.session = RoutineSession(
            routines=self.routines,
            current_index=0,
            remaining_seconds=first.duration_seconds,
        )
        self.state = GameState.PLAYING
        logger.info(f"Starting routine: {first.name} ({first.duration_seconds}s)")
        return True

    def tick(self) -> bool:
        """Count down one second; roll over when the countdown hits zero."""
        if not self._allowed(Action.TICK):
            return False

        self.session.remaining_seconds = max(0, self.session.remaining_seconds - 1)
        if self.session.remaining_seconds == 0:
            self._finish_current(completed=True)
        return True

    def pause(self) -> bool:
        if not self._allowed(Action.PAUSE):
            return False
        self.state = GameState.PAUSED
        return True

    def resume(self) -> bool:
        if not self._allowed(Action.RESUME):
            return False
        self.state = GameState.PLAYING
        return True

    def skip(self) -> bool:
        """Move on without counting the current routine as completed."""
        if not self._allowed(Action.SKIP):
            return False
        self._finish_current(completed=False)
        return True

    def complete_current(self) -> bool:
        """Mark the current routine done and move on."""
        if not self._allowed(Action.COMPLETE):
            return False
        self._finish_current(completed=True)
        # Finishing a routine from pause starts the next one running
        if self.state == GameState.PAUSED:
            self.state = GameState.PLAYING
        return True

    def select_mood(self, rating: int, advance: bool = True) -> bool:
        """
        Record the satisfaction rating for this session.

        Args:
            rating: 1-5
            advance: Go straight to the report. Hosts that show the rating
                for a moment first pass False and call show_report() later.
        """
        if not self._allowed(Action.SELECT_MOOD):
            return False

        if self.session.mood is not None:
            logger.debug("Mood already selected for this session")
            return False

        if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
            logger.warning(f"Invalid mood rating: {rating!r}")
            return False

        self.session.mood = f"{rating}{MOOD_SUFFIX}"
        if advance:
            self.state = GameState.REPORT
        return True

    def show_report(self) -> bool:
        """Leave the mood screen once a mood has been recorded."""
        if not self._allowed(Action.SHOW_REPORT):
            return False
        if self.session.mood is None:
            return False
        self.state = GameState.REPORT
        return True

    def restart(self) -> bool:
        """Discard the session and return to idle."""
        if not self._allowed(Action.RESTART):
            return False
        self.session = None
        self.state = GameState.IDLE
        return True

    def summary(
        self,
        timestamp: Optional[datetime] = None,
        variant: RoutineVariant = RoutineVariant.PRIMARY,
    ) -> Optional[SessionSummary]:
        """
        Build the persisted summary of a finished session.

        Total counts every configured routine, skipped ones included.

        Returns:
            SessionSummary, or None outside the report state
        """
        if self.state != GameState.REPORT:
            return None

        return SessionSummary(
            completed_count=self.session.completed_count,
            total_count=self.total_count,
            mood=self.session.mood or "",
            timestamp=timestamp or datetime.now().astimezone(),
            completed_emojis=" ".join(r.emoji for r in self.session.completed_routines),
            routine_variant=variant,
        )

    def _finish_current(self, completed: bool):
        """Leave the current routine, recording it if it was completed."""
        session = self.session
        routine = self.routines[session.current_index]

        if completed:
            session.completed_routines.append(CompletedRoutine(name=routine.name, emoji=routine.emoji))
            session.completed_count += 1

        if session.current_index < len(self.routines) - 1:
            session.current_index += 1
            next_routine = self.routines[session.current_index]
            session.remaining_seconds = next_routine.duration_seconds
            logger.info(
                f"Moving to next routine: {session.current_index} "
                f"({next_routine.name}, {next_routine.duration_seconds}s)"
            )
        else:
            session.remaining_seconds = 0
            self.state = GameState.MOOD
            logger.info(f"All routines done: {session.completed_count}/{len(self.routines)} completed")
