"""Profile widget data read from the daily Notion database."""

import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Optional

from ..dates import DEFAULT_CUTOFF_HOUR, day_filter, routine_date
from .client import NotionClient
from .properties import file_url, first_text, formula_value, number

logger = logging.getLogger(__name__)

DATE_PROPERTY = "Date"
RECENT_PAGE_COUNT = 10

DEFAULT_NAME = "Anonymous"
DEFAULT_MAIN_TEXT = "오늘도 좋은 하루!"
DEFAULT_PRAISE = "오늘도 화이팅!"
DEFAULT_SLEEP = "기록하기"


@dataclass
class ProfileData:
    """Values shown by the profile widget."""

    profile_image: Optional[str] = None
    sleep: str = DEFAULT_SLEEP
    energy: float = 0
    name: str = DEFAULT_NAME
    main_text: str = DEFAULT_MAIN_TEXT
    praise: str = DEFAULT_PRAISE

    def to_dict(self) -> dict:
        data = asdict(self)
        return {
            "profileImage": data["profile_image"],
            "sleep": data["sleep"],
            "energy": data["energy"],
            "name": data["name"],
            "mainText": data["main_text"],
            "praise": data["praise"],
        }


def _sleep_text(properties: dict) -> Optional[str]:
    """Sleep comes from a formula: text as-is, numbers as "7.5H"."""
    value = formula_value(properties.get("sleep"))
    if isinstance(value, str) and value:
        return value
    if isinstance(value, (int, float)) and value:
        return f"{value}H"
    return None


class ProfileLoader:
    """Collects profile widget values from today's and recent pages."""

    def __init__(
        self,
        client: NotionClient,
        timezone: str = "Asia/Seoul",
        cutoff_hour: int = DEFAULT_CUTOFF_HOUR,
    ):
        self.client = client
        self.timezone = timezone
        self.cutoff_hour = cutoff_hour

    async def load(self, database_id: str, now: Optional[datetime] = None) -> ProfileData:
        """
        Load profile data.

        Sleep and energy prefer today's page; everything else comes from the
        most recent page that has it.

        Args:
            database_id: Daily database ID
            now: Current time (default: now)

        Returns:
            ProfileData with defaults for anything not found
        """
        database = await self.client.retrieve_database(database_id)

        if DATE_PROPERTY not in database.get("properties", {}):
            logger.info("Database has no Date property, reading latest page only")
            response = await self.client.query_database(database_id, page_size=1)
            results = response.get("results", [])
            data = ProfileData()
            if results:
                self._fill_from_page(data, results[0].get("properties", {}), found=set())
            return data

        day = routine_date(now, self.timezone, self.cutoff_hour)
        today_response = await self.client.query_database(
            database_id, filter=day_filter(DATE_PROPERTY, day), page_size=1
        )
        recent_response = await self.client.query_database(
            database_id,
            sorts=[{"property": DATE_PROPERTY, "direction": "descending"}],
            page_size=RECENT_PAGE_COUNT,
        )

        data = ProfileData()
        found: set[str] = set()

        today_pages = today_response.get("results", [])
        if today_pages:
            properties = today_pages[0].get("properties", {})
            self._fill_sleep_energy(data, properties, found)

        for page in recent_response.get("results", []):
            self._fill_from_page(data, page.get("properties", {}), found)
            if len(found) == 6:
                break

        return data

    def _fill_sleep_energy(self, data: ProfileData, properties: dict, found: set[str]):
        if "sleep" not in found:
            sleep = _sleep_text(properties)
            if sleep is not None:
                data.sleep = sleep
                found.add("sleep")

        if "energy" not in found:
            energy = number(properties.get("energy"))
            if energy is not None:
                data.energy = energy
                found.add("energy")

    def _fill_from_page(self, data: ProfileData, properties: dict, found: set[str]):
        """Fill fields still missing from one page's properties."""
        if "profile_image" not in found:
            image = file_url(properties.get("profile image"))
            if image:
                data.profile_image = image
                found.add("profile_image")

        for field_name, prop_name in (("name", "name"), ("main_text", "main text"), ("praise", "칭찬")):
            if field_name in found:
                continue
            text = first_text(properties.get(prop_name))
            if text:
                setattr(data, field_name, text)
                found.add(field_name)

        self._fill_sleep_energy(data, properties, found)
