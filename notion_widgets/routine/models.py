"""Data models for the routine player."""

import base64
import binascii
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class GameState(str, Enum):
    """Routine player states."""

    IDLE = "idle"
    PLAYING = "playing"
    PAUSED = "paused"
    MOOD = "mood"
    REPORT = "report"


class RoutineVariant(str, Enum):
    """Which daily routine a report belongs to."""

    PRIMARY = "primary"  # morning
    SECONDARY = "secondary"  # night


THEMES = ["pink", "blue", "purple", "mono"]
DEFAULT_THEME = "pink"

THEME_COLORS = {
    "pink": {"primary": "#FFB9D9", "bg": "#FFE5F0", "text": "#2C2C2C"},
    "purple": {"primary": "#D4B5FF", "bg": "#F0E5FF", "text": "#2C2C2C"},
    "blue": {"primary": "#B5D4FF", "bg": "#E5F0FF", "text": "#2C2C2C"},
    "mono": {"primary": "#808080", "bg": "#F0F0F0", "text": "#000000"},
}

MOOD_SUFFIX = "점"


@dataclass(frozen=True)
class RoutineDefinition:
    """A single timed routine."""

    name: str
    duration_minutes: int = 1
    emoji: str = ""

    @property
    def duration_seconds(self) -> int:
        """Countdown length; non-positive durations count as one minute."""
        minutes = self.duration_minutes if self.duration_minutes and self.duration_minutes > 0 else 1
        return minutes * 60


@dataclass(frozen=True)
class CompletedRoutine:
    """A routine that was finished (not skipped)."""

    name: str
    emoji: str


@dataclass
class RoutineSession:
    """State of one play-through, owned by a single engine."""

    routines: list[RoutineDefinition]
    current_index: int = 0
    remaining_seconds: int = 0
    completed_count: int = 0
    completed_routines: list[CompletedRoutine] = field(default_factory=list)
    mood: Optional[str] = None


@dataclass
class SessionSummary:
    """What gets persisted when a report is saved."""

    completed_count: int
    total_count: int
    mood: str
    timestamp: datetime
    completed_emojis: str
    routine_variant: RoutineVariant = RoutineVariant.PRIMARY

    @property
    def mood_score(self) -> str:
        """Mood without the "점" suffix (e.g. "4점" -> "4")."""
        return self.mood.replace(MOOD_SUFFIX, "")


@dataclass
class RoutineConfig:
    """Decoded widget configuration."""

    routines: list[RoutineDefinition]
    theme: str = DEFAULT_THEME
    token: str = ""
    database_id: str = ""
    variant: RoutineVariant = RoutineVariant.PRIMARY


def parse_config(data: dict) -> Optional[RoutineConfig]:
    """
    Build a RoutineConfig from decoded JSON.

    Args:
        data: Dictionary with routines, theme, token, databaseId

    Returns:
        RoutineConfig, or None if the routines list is unusable
    """
    if not isinstance(data, dict):
        logger.warning("Routine config is not an object")
        return None

    raw_routines = data.get("routines")
    if not isinstance(raw_routines, list):
        logger.warning("Routine config has no routines list")
        return None

    routines = []
    for item in raw_routines:
        if not isinstance(item, dict) or not item.get("name"):
            logger.warning(f"Skipping invalid routine entry: {item!r}")
            continue

        try:
            duration = int(item.get("duration") or 0)
        except (TypeError, ValueError):
            logger.warning(f"Routine {item.get('name')} has invalid duration, using 1 minute")
            duration = 0

        routines.append(
            RoutineDefinition(
                name=str(item["name"]),
                duration_minutes=duration,
                emoji=str(item.get("emoji") or ""),
            )
        )

    theme = data.get("theme") or DEFAULT_THEME
    if theme not in THEME_COLORS:
        logger.warning(f"Unknown theme {theme!r}, using {DEFAULT_THEME}")
        theme = DEFAULT_THEME

    variant = RoutineVariant.SECONDARY if data.get("isSecondRoutine") else RoutineVariant.PRIMARY

    return RoutineConfig(
        routines=routines,
        theme=theme,
        token=data.get("token") or "",
        database_id=data.get("databaseId") or "",
        variant=variant,
    )


def decode_config(encoded: Optional[str]) -> Optional[RoutineConfig]:
    """
    Decode a widget config from its URL form.

    The config is UTF-8 JSON in URL-safe base64; padding may be stripped.

    Returns:
        RoutineConfig, or None if absent or malformed
    """
    if not encoded:
        return None

    padded = encoded.strip() + "=" * (-len(encoded.strip()) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded.encode("ascii"))
        data = json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeError, ValueError) as e:
        logger.error(f"Config decode error: {e}")
        return None

    return parse_config(data)


def encode_config(data: dict) -> str:
    """Encode a config dictionary into its URL form (unpadded base64url)."""
    raw = json.dumps(data, ensure_ascii=False).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")
