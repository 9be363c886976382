"""Saving routine reports into the daily Notion page."""

import logging

from ..dates import DEFAULT_CUTOFF_HOUR, day_filter, format_date, routine_date
from ..errors import NotionAPIError, PageNotFoundError
from ..notion.client import NotionClient
from ..notion.properties import rich_text_value, text_block
from .models import RoutineVariant, SessionSummary

logger = logging.getLogger(__name__)

DATE_PROPERTY = "Date"

ROUTINE_PROPERTIES = {
    RoutineVariant.PRIMARY: "ROUTINE",
    RoutineVariant.SECONDARY: "ROUTINE (2)",
}

REPORT_TITLES = {
    RoutineVariant.PRIMARY: "MORNING ROUTINE REPORT",
    RoutineVariant.SECONDARY: "NIGHT ROUTINE REPORT",
}

REPORT_ICONS = {
    RoutineVariant.PRIMARY: "☀️",
    RoutineVariant.SECONDARY: "🌙",
}

# Heading plus the three paragraphs written under it
REPORT_BLOCK_COUNT = 4


class RoutineReportStore:
    """Writes routine reports to a Notion database of daily pages."""

    def __init__(
        self,
        client: NotionClient,
        timezone: str = "Asia/Seoul",
        cutoff_hour: int = DEFAULT_CUTOFF_HOUR,
    ):
        """
        Initialize with a connected Notion client.

        Args:
            client: Notion client
            timezone: Timezone used to decide which day a report belongs to
            cutoff_hour: Local hour at which a new day starts
        """
        self.client = client
        self.timezone = timezone
        self.cutoff_hour = cutoff_hour

    async def save(self, summary: SessionSummary, database_id: str) -> str:
        """
        Save a session summary into today's page.

        Args:
            summary: Finished session summary
            database_id: Database holding one page per day

        Returns:
            ID of the updated page

        Raises:
            PageNotFoundError: No page exists for the routine date
            NotionAPIError: Notion rejected a request
        """
        day = routine_date(summary.timestamp, self.timezone, self.cutoff_hour)
        date_string = format_date(day)
        logger.info(f"Saving {summary.routine_variant.value} routine report for {date_string}")

        response = await self.client.query_database(
            database_id, filter=day_filter(DATE_PROPERTY, day), page_size=1
        )
        results = response.get("results", [])
        if not results:
            logger.warning(f"No daily page for {date_string}")
            raise PageNotFoundError(date_string)

        page_id = results[0]["id"]

        if summary.completed_emojis:
            await self.client.update_page(
                page_id,
                {ROUTINE_PROPERTIES[summary.routine_variant]: rich_text_value(summary.completed_emojis)},
            )

        await self._remove_previous_report(page_id, summary.routine_variant)
        await self.client.append_block_children(page_id, self._report_blocks(summary))

        logger.info(
            f"✓ Saved report to page {page_id}: "
            f"{summary.completed_count}/{summary.total_count}, mood {summary.mood_score}"
        )
        return page_id

    async def _remove_previous_report(self, page_id: str, variant: RoutineVariant):
        """Delete an earlier report of the same variant, if the page has one."""
        blocks = await self.client.list_block_children(page_id)
        title = REPORT_TITLES[variant]

        start = None
        for index, block in enumerate(blocks):
            if block.get("type") != "heading_3":
                continue
            texts = (block.get("heading_3") or {}).get("rich_text") or []
            if texts and title in texts[0].get("plain_text", ""):
                start = index
                break

        if start is None:
            return

        logger.info(f"Replacing existing {title}")
        for block in blocks[start : start + REPORT_BLOCK_COUNT]:
            try:
                await self.client.delete_block(block["id"])
            except NotionAPIError as e:
                # Block may already be gone
                logger.warning(f"Could not delete block {block['id']}: {e}")

    def _report_blocks(self, summary: SessionSummary) -> list[dict]:
        """Build the report blocks appended to the page."""
        variant = summary.routine_variant
        return [
            text_block("heading_3", f"{REPORT_ICONS[variant]} {REPORT_TITLES[variant]}"),
            text_block("paragraph", ""),
            text_block("paragraph", f"🎉 총 {summary.completed_count}개의 루틴을 완료했어요!"),
            text_block("paragraph", f"💕 오늘의 루틴 만족도 : {summary.mood_score}점"),
        ]
