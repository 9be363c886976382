"""In-memory registry of live routine players."""

import logging
import secrets
import time
from typing import Callable, Optional

from .player import RoutinePlayer

logger = logging.getLogger(__name__)


def generate_session_id() -> str:
    """Generate an unguessable session ID."""
    return secrets.token_urlsafe(12)


class SessionRegistry:
    """
    Keeps players alive between widget requests.

    A widget that is closed never says goodbye, so sessions not seen for
    longer than ``ttl`` seconds are closed on the next add or lookup.
    """

    def __init__(
        self,
        ttl: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        on_close: Optional[Callable[[str], None]] = None,
    ):
        """
        Initialize registry.

        Args:
            ttl: Idle seconds before a session expires (None keeps sessions forever)
            clock: Monotonic time source
            on_close: Called with the session ID after a session is closed
        """
        self.ttl = ttl
        self.clock = clock
        self.on_close = on_close
        self._players: dict[str, RoutinePlayer] = {}

    def __len__(self) -> int:
        return len(self._players)

    def add(self, player: RoutinePlayer) -> str:
        """Register a player and return its session ID."""
        self.evict_expired()

        session_id = generate_session_id()
        player.last_seen = self.clock()
        self._players[session_id] = player
        logger.info(f"Created routine session {session_id} ({len(self._players)} live)")
        return session_id

    def get(self, session_id: str) -> Optional[RoutinePlayer]:
        """Look up a session and mark it as seen."""
        self.evict_expired()

        player = self._players.get(session_id)
        if player:
            player.last_seen = self.clock()
        return player

    def close(self, session_id: str) -> bool:
        """Close and forget a session. Returns False if it did not exist."""
        player = self._players.pop(session_id, None)
        if not player:
            return False
        player.close()
        if self.on_close:
            self.on_close(session_id)
        logger.info(f"Closed routine session {session_id}")
        return True

    def evict_expired(self) -> int:
        """Close sessions idle for longer than the TTL. Returns how many."""
        if self.ttl is None:
            return 0

        cutoff = self.clock() - self.ttl
        expired = [sid for sid, player in self._players.items() if player.last_seen < cutoff]
        for session_id in expired:
            logger.info(f"Routine session {session_id} expired")
            self.close(session_id)
        return len(expired)

    def close_all(self):
        """Close every session (application shutdown)."""
        for session_id in list(self._players):
            self.close(session_id)
