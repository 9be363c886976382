"""Tests for the routine player host (ticker lifetime and saving)."""

import asyncio

from notion_widgets.errors import NotionAPIError
from notion_widgets.routine.models import (
    GameState,
    RoutineConfig,
    RoutineDefinition,
    RoutineVariant,
)
from notion_widgets.routine.player import RoutinePlayer

TICK = 0.001


def make_config(*durations: int) -> RoutineConfig:
    routines = [RoutineDefinition(f"R{i}", d, "⭐") for i, d in enumerate(durations or (1, 1))]
    return RoutineConfig(routines=routines, token="t", database_id="db1")


class RecordingSaver:
    def __init__(self, fail_times: int = 0):
        self.summaries = []
        self.fail_times = fail_times

    async def __call__(self, summary, config):
        if self.fail_times:
            self.fail_times -= 1
            raise NotionAPIError("Notion is down", status=503)
        self.summaries.append(summary)


async def wait_for(predicate, timeout: float = 2.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(TICK)


async def finish(player: RoutinePlayer):
    player.start()
    while player.state in (GameState.PLAYING, GameState.PAUSED):
        player.complete()
    await player.select_mood(4)


def test_unconfigured_player_stays_idle():
    async def run():
        player = RoutinePlayer(None)
        assert not player.start()
        assert player.state == GameState.IDLE
        assert not player.ticking
        assert player.snapshot()["configured"] is False

    asyncio.run(run())


def test_ticker_runs_only_while_playing():
    async def run():
        player = RoutinePlayer(make_config(1, 1), tick_interval=TICK, mood_delay=0)

        player.start()
        assert player.ticking
        await wait_for(lambda: player.engine.session.remaining_seconds < 60)

        player.pause()
        assert not player.ticking
        remaining = player.engine.session.remaining_seconds
        await asyncio.sleep(TICK * 20)
        assert player.engine.session.remaining_seconds == remaining

        player.resume()
        assert player.ticking
        player.close()
        assert not player.ticking

    asyncio.run(run())


def test_ticker_drives_session_to_mood_and_stops():
    async def run():
        player = RoutinePlayer(make_config(1, 1), tick_interval=TICK, mood_delay=0)

        player.start()
        await wait_for(lambda: player.state == GameState.MOOD)

        assert player.engine.session.completed_count == 2
        await wait_for(lambda: not player.ticking)

    asyncio.run(run())


def test_skip_to_mood_stops_ticker():
    async def run():
        player = RoutinePlayer(make_config(1), tick_interval=TICK, mood_delay=0)
        player.start()

        player.skip()

        assert player.state == GameState.MOOD
        assert not player.ticking
        assert player.engine.session.completed_count == 0

    asyncio.run(run())


def test_select_mood_waits_before_report():
    async def run():
        player = RoutinePlayer(make_config(1), mood_delay=0.01)
        player.start()
        player.complete()

        pending = asyncio.ensure_future(player.select_mood(5))
        await asyncio.sleep(0)
        assert player.state == GameState.MOOD
        assert player.engine.session.mood == "5점"

        assert await pending
        assert player.state == GameState.REPORT

    asyncio.run(run())


def test_save_once_per_report():
    async def run():
        saver = RecordingSaver()
        player = RoutinePlayer(make_config(1, 2), save_report=saver, mood_delay=0)
        player.toggle_variant()
        await finish(player)

        assert await player.save()
        assert player.is_saved
        assert not await player.save()
        assert len(saver.summaries) == 1

        summary = saver.summaries[0]
        assert summary.completed_count == 2
        assert summary.total_count == 2
        assert summary.mood == "4점"
        assert summary.completed_emojis == "⭐ ⭐"
        assert summary.routine_variant == RoutineVariant.SECONDARY

    asyncio.run(run())


def test_failed_save_can_be_retried():
    async def run():
        saver = RecordingSaver(fail_times=1)
        player = RoutinePlayer(make_config(1), save_report=saver, mood_delay=0)
        await finish(player)

        assert not await player.save()
        assert not player.is_saved
        assert player.state == GameState.REPORT
        assert "Notion is down" in player.last_error

        assert await player.save()
        assert player.is_saved
        assert player.last_error is None

    asyncio.run(run())


def test_save_outside_report_is_rejected():
    async def run():
        saver = RecordingSaver()
        player = RoutinePlayer(make_config(1), save_report=saver)
        player.start()

        assert not await player.save()
        assert saver.summaries == []
        player.close()

    asyncio.run(run())


def test_new_session_resets_saved_flag():
    async def run():
        player = RoutinePlayer(make_config(1), save_report=RecordingSaver(), mood_delay=0)
        await finish(player)
        await player.save()

        player.restart()
        assert player.state == GameState.IDLE
        assert not player.is_saved

        await finish(player)
        assert await player.save()

    asyncio.run(run())


def test_theme_cycles():
    player = RoutinePlayer(make_config(1))

    assert [player.toggle_theme() for _ in range(4)] == ["blue", "purple", "mono", "pink"]


def test_snapshot():
    async def run():
        player = RoutinePlayer(make_config(2, 1), tick_interval=10)
        player.start()
        snapshot = player.snapshot()
        player.close()
        return snapshot

    snapshot = asyncio.run(run())

    assert snapshot["state"] == "playing"
    assert snapshot["remaining_seconds"] == 120
    assert snapshot["remaining_time"] == "02:00"
    assert snapshot["current_routine"] == {"name": "R0", "emoji": "⭐"}
    assert snapshot["next_routine"] == {"name": "R1", "emoji": "⭐"}
    assert snapshot["total_count"] == 2
    assert snapshot["colors"]["primary"] == "#FFB9D9"


def test_snapshot_reports_effective_duration():
    player = RoutinePlayer(make_config(0, 3))

    durations = [r["duration"] for r in player.snapshot()["routines"]]

    assert durations == [1, 3]
