"""Tests for the Notion-backed report store and profile loader."""

import asyncio
from datetime import datetime

import pytest
import pytz

from notion_widgets.errors import NotionAPIError, PageNotFoundError
from notion_widgets.notion.profile import ProfileLoader
from notion_widgets.routine.models import RoutineVariant, SessionSummary
from notion_widgets.routine.store import RoutineReportStore

SEOUL = pytz.timezone("Asia/Seoul")


def summary(**overrides) -> SessionSummary:
    values = dict(
        completed_count=2,
        total_count=3,
        mood="4점",
        timestamp=SEOUL.localize(datetime(2024, 3, 2, 8, 0)),
        completed_emojis="🧘 💧",
        routine_variant=RoutineVariant.PRIMARY,
    )
    values.update(overrides)
    return SessionSummary(**values)


def heading(block_id, text):
    return {"id": block_id, "type": "heading_3", "heading_3": {"rich_text": [{"plain_text": text}]}}


def paragraph(block_id):
    return {"id": block_id, "type": "paragraph", "paragraph": {"rich_text": []}}


def save(fake_notion, data: SessionSummary):
    async def run():
        async with fake_notion.client() as client:
            return await RoutineReportStore(client, "Asia/Seoul").save(data, "db1")

    return asyncio.run(run())


class TestRoutineReportStore:
    def setup_pages(self, fake_notion, blocks=None):
        fake_notion.on("POST", "/databases/db1/query", {"results": [{"id": "page1"}]})
        fake_notion.on("PATCH", "/pages/page1", {"id": "page1"})
        fake_notion.on("GET", "/blocks/page1/children", {"results": blocks or []})
        fake_notion.on("PATCH", "/blocks/page1/children", {"results": []})
        fake_notion.on("DELETE", "/blocks/", {})

    def test_writes_emojis_and_report_blocks(self, fake_notion):
        self.setup_pages(fake_notion)

        assert save(fake_notion, summary()) == "page1"

        query = fake_notion.calls("POST", "/databases/db1/query")[0]
        assert query["page_size"] == 1
        assert query["filter"]["and"][0]["date"] == {"on_or_after": "2024-03-02"}

        update = fake_notion.calls("PATCH", "/pages/page1")[0]
        assert update["properties"]["ROUTINE"]["rich_text"][0]["text"]["content"] == "🧘 💧"

        children = fake_notion.calls("PATCH", "/blocks/page1/children")[0]["children"]
        texts = [block[block["type"]]["rich_text"][0]["text"]["content"] for block in children]
        assert texts == [
            "☀️ MORNING ROUTINE REPORT",
            "",
            "🎉 총 2개의 루틴을 완료했어요!",
            "💕 오늘의 루틴 만족도 : 4점",
        ]

    def test_before_four_am_uses_previous_day(self, fake_notion):
        self.setup_pages(fake_notion)

        save(fake_notion, summary(timestamp=SEOUL.localize(datetime(2024, 3, 2, 3, 59))))

        query = fake_notion.calls("POST", "/databases/db1/query")[0]
        assert query["filter"]["and"][0]["date"] == {"on_or_after": "2024-03-01"}
        assert query["filter"]["and"][1]["date"] == {"before": "2024-03-02"}

    def test_night_routine_replaces_previous_report(self, fake_notion):
        blocks = [
            heading("m1", "☀️ MORNING ROUTINE REPORT"),
            paragraph("m2"),
            paragraph("m3"),
            paragraph("m4"),
            heading("n1", "🌙 NIGHT ROUTINE REPORT"),
            paragraph("n2"),
            paragraph("n3"),
            paragraph("n4"),
            paragraph("other"),
        ]
        self.setup_pages(fake_notion, blocks)

        save(fake_notion, summary(routine_variant=RoutineVariant.SECONDARY))

        deleted = [path for method, path, _ in fake_notion.requests if method == "DELETE"]
        assert deleted == ["/blocks/n1", "/blocks/n2", "/blocks/n3", "/blocks/n4"]
        update = fake_notion.calls("PATCH", "/pages/page1")[0]
        assert "ROUTINE (2)" in update["properties"]
        children = fake_notion.calls("PATCH", "/blocks/page1/children")[0]["children"]
        assert children[0]["heading_3"]["rich_text"][0]["text"]["content"] == "🌙 NIGHT ROUTINE REPORT"

    def test_no_emojis_skips_property_update(self, fake_notion):
        self.setup_pages(fake_notion)

        save(fake_notion, summary(completed_count=0, completed_emojis=""))

        assert fake_notion.calls("PATCH", "/pages/") == []

    def test_missing_page(self, fake_notion):
        fake_notion.on("POST", "/databases/db1/query", {"results": []})

        with pytest.raises(PageNotFoundError) as exc_info:
            save(fake_notion, summary())

        assert exc_info.value.date_string == "2024-03-02"

    def test_notion_error_propagates(self, fake_notion):
        fake_notion.on("POST", "/databases/db1/query", (400, {"code": "validation_error", "message": "bad filter"}))

        with pytest.raises(NotionAPIError) as exc_info:
            save(fake_notion, summary())

        assert exc_info.value.status == 400
        assert exc_info.value.code == "validation_error"


class TestProfileLoader:
    def load(self, fake_notion, now=None):
        async def run():
            async with fake_notion.client() as client:
                return await ProfileLoader(client, "Asia/Seoul").load("db1", now=now)

        return asyncio.run(run())

    def test_defaults_without_pages(self, fake_notion):
        fake_notion.on("GET", "/databases/db1", {"properties": {"Date": {}}})
        fake_notion.on("POST", "/databases/db1/query", {"results": []})

        data = self.load(fake_notion).to_dict()

        assert data == {
            "profileImage": None,
            "sleep": "기록하기",
            "energy": 0,
            "name": "Anonymous",
            "mainText": "오늘도 좋은 하루!",
            "praise": "오늘도 화이팅!",
        }

    def test_today_first_then_recent(self, fake_notion):
        today_page = {
            "properties": {
                "sleep": {"type": "formula", "formula": {"type": "number", "number": 7.5}},
                "energy": {"type": "number", "number": None},
            }
        }
        recent_pages = [
            {
                "properties": {
                    "energy": {"type": "number", "number": 80},
                    "name": {"type": "rich_text", "rich_text": [{"plain_text": "Mina"}]},
                    "sleep": {"type": "formula", "formula": {"type": "string", "string": "5H"}},
                }
            },
            {
                "properties": {
                    "profile image": {"type": "files", "files": [{"external": {"url": "https://img/x.png"}}]},
                    "main text": {"type": "rich_text", "rich_text": [{"plain_text": "Keep going"}]},
                    "칭찬": {"type": "rich_text", "rich_text": [{"plain_text": "Nice"}]},
                }
            },
        ]

        def query(body):
            if "filter" in body:
                return {"results": [today_page]}
            return {"results": recent_pages}

        fake_notion.on("GET", "/databases/db1", {"properties": {"Date": {}}})
        fake_notion.on("POST", "/databases/db1/query", query)

        data = self.load(fake_notion, now=SEOUL.localize(datetime(2024, 3, 2, 2, 0)))

        assert data.sleep == "7.5H"
        assert data.energy == 80
        assert data.name == "Mina"
        assert data.main_text == "Keep going"
        assert data.praise == "Nice"
        assert data.profile_image == "https://img/x.png"

        today_query = fake_notion.calls("POST", "/databases/db1/query")[0]
        assert today_query["filter"]["and"][0]["date"] == {"on_or_after": "2024-03-01"}

    def test_database_without_date_reads_latest_page(self, fake_notion):
        fake_notion.on("GET", "/databases/db1", {"properties": {"name": {}}})
        fake_notion.on(
            "POST",
            "/databases/db1/query",
            {"results": [{"properties": {"name": {"type": "rich_text", "rich_text": [{"plain_text": "Solo"}]}}}]},
        )

        data = self.load(fake_notion)

        assert data.name == "Solo"
        assert "filter" not in fake_notion.calls("POST", "/databases/db1/query")[0]
