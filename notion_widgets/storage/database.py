"""Simple SQLite database for stored widget configurations."""

import json
import logging
import secrets
import sqlite3
import string
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..calendar_widget.models import EventSourceConfig

logger = logging.getLogger(__name__)


@dataclass
class CalendarWidgetRecord:
    """A stored calendar widget configuration."""

    config_id: str
    name: str
    source: EventSourceConfig
    created_at: datetime


class WidgetConfigDatabase:
    """Simple SQLite database for calendar widget configs."""

    def __init__(self, db_path: str = "data/widgets.db"):
        """Initialize database."""
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self):
        """Create database tables if they don't exist."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS calendar_configs (
                    config_id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    source TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)
            conn.commit()
        logger.info(f"Database initialized at {self.db_path}")

    def _row_to_record(self, row: sqlite3.Row) -> CalendarWidgetRecord:
        return CalendarWidgetRecord(
            config_id=row["config_id"],
            name=row["name"],
            source=EventSourceConfig(**json.loads(row["source"])),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def get_config(self, config_id: str) -> Optional[CalendarWidgetRecord]:
        """Get a calendar config by ID."""
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            cursor = conn.execute(
                "SELECT * FROM calendar_configs WHERE config_id = ?", (config_id,)
            )
            row = cursor.fetchone()

            if not row:
                return None

            return self._row_to_record(row)

    def create_config(self, name: str, source: EventSourceConfig) -> CalendarWidgetRecord:
        """Store a new calendar config under a fresh ID."""
        record = CalendarWidgetRecord(
            config_id=generate_config_id(),
            name=name,
            source=source,
            created_at=datetime.utcnow(),
        )

        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO calendar_configs (config_id, name, source, created_at)
                VALUES (?, ?, ?, ?)
                """,
                (
                    record.config_id,
                    record.name,
                    json.dumps(asdict(record.source)),
                    record.created_at.isoformat(),
                ),
            )
            conn.commit()
        logger.info(f"Created calendar config: {record.config_id} ({name})")
        return record

    def list_configs(self) -> list[CalendarWidgetRecord]:
        """List all stored configs, newest first."""
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            rows = conn.execute(
                "SELECT * FROM calendar_configs ORDER BY created_at DESC"
            ).fetchall()
        return [self._row_to_record(row) for row in rows]

    def delete_config(self, config_id: str) -> bool:
        """Delete a config. Returns False if it did not exist."""
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute(
                "DELETE FROM calendar_configs WHERE config_id = ?", (config_id,)
            )
            conn.commit()
            deleted = cursor.rowcount > 0

        if deleted:
            logger.info(f"Deleted calendar config: {config_id}")
        return deleted


def generate_config_id() -> str:
    """Generate short config ID."""
    return "".join(
        secrets.choice(string.ascii_lowercase + string.digits) for _ in range(10)
    )
