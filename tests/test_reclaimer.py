from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from story_relay.accounts.service import register_user, seed_catalog
from story_relay.checkout.reclaimer import ExpiryReclaimer
from story_relay.checkout.service import CheckoutService
from story_relay.config.schema import AppConfigRoot
from story_relay.content.store import VersionToken
from story_relay.stories.service import create_story, get_story
from story_relay.storage.db import init_db_service, session_scope, shutdown_db_service
from story_relay.storage.repo import SQLAlchemyRepo


class _CreateOnlyStore:
    async def create(self, container: str, path: str, content: str, message: str) -> VersionToken:
        return VersionToken("1")


class _Clock:
    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now


async def _setup(tmp_path: Path, story_count: int) -> tuple[int, list[int]]:
    await init_db_service(tmp_path / "relay.db")
    await seed_catalog(AppConfigRoot())
    author = await register_user("author", "author@example.com", "author")
    story_ids = []
    for idx in range(story_count):
        story = await create_story(
            _CreateOnlyStore(),
            title=f"Story {idx}",
            theme="Theme",
            language_id=1,
            genre_id=1,
            creator_id=author.id,
        )
        story_ids.append(story.id)
    return author.id, story_ids


def _reclaimer(clock: _Clock, **kwargs) -> ExpiryReclaimer:
    return ExpiryReclaimer(checkout_duration=timedelta(days=7), interval_seconds=60, clock=clock, **kwargs)


def test_reclaims_only_expired_checkouts(tmp_path: Path) -> None:
    async def _run() -> None:
        author_id, (old_story, fresh_story) = await _setup(tmp_path, 2)
        clock = _Clock()
        service = CheckoutService(AppConfigRoot(), clock=clock)
        try:
            await service.checkout(old_story, author_id)
            clock.now += timedelta(days=3)
            await service.checkout(fresh_story, author_id)

            # Old checkout is now past its deadline by one second; the fresh one is not.
            clock.now += timedelta(days=4, seconds=1)
            stats = await _reclaimer(clock).run_once()

            assert stats.scanned == 1
            assert stats.reclaimed == 1
            assert stats.failed == 0
            assert (await get_story(old_story)).status == "available"
            assert (await get_story(fresh_story)).status == "checked_out"

            async with session_scope() as session:
                entries = await SQLAlchemyRepo(session).list_checkouts(old_story)
            assert entries[0].auto_checkin is True
            assert entries[0].words_added == 0
            assert entries[0].checked_in_at == clock.now

            again = await _reclaimer(clock).run_once()
            assert again.scanned == 0
        finally:
            await shutdown_db_service()

    asyncio.run(_run())


def test_checkout_exactly_at_deadline_is_not_reclaimed(tmp_path: Path) -> None:
    async def _run() -> None:
        author_id, (story_id,) = await _setup(tmp_path, 1)
        clock = _Clock()
        service = CheckoutService(AppConfigRoot(), clock=clock)
        try:
            await service.checkout(story_id, author_id)
            clock.now += timedelta(days=7)

            stats = await _reclaimer(clock).run_once()

            assert stats.scanned == 0
            assert (await get_story(story_id)).status == "checked_out"
        finally:
            await shutdown_db_service()

    asyncio.run(_run())


def test_reclaim_failure_is_isolated_per_entry(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    async def _run() -> None:
        author_id, story_ids = await _setup(tmp_path, 3)
        clock = _Clock()
        service = CheckoutService(AppConfigRoot(), clock=clock)
        try:
            for story_id in story_ids:
                await service.checkout(story_id, author_id)
            clock.now += timedelta(days=8)

            original_close = SQLAlchemyRepo.close_checkout
            broken_story = story_ids[1]

            async def _flaky_close(self, checkout_id: int, **kwargs) -> bool:
                entry = await self.get_checkout(checkout_id)
                if entry is not None and entry.story_id == broken_story:
                    raise RuntimeError("disk on fire")
                return await original_close(self, checkout_id, **kwargs)

            monkeypatch.setattr(SQLAlchemyRepo, "close_checkout", _flaky_close)

            stats = await _reclaimer(clock).run_once()

            assert stats.scanned == 3
            assert stats.reclaimed == 2
            assert stats.failed == 1
            assert (await get_story(story_ids[0])).status == "available"
            assert (await get_story(broken_story)).status == "checked_out"
            assert (await get_story(story_ids[2])).status == "available"
        finally:
            await shutdown_db_service()

    asyncio.run(_run())


def test_run_forever_sweeps_until_stopped(tmp_path: Path) -> None:
    async def _run() -> None:
        await _setup(tmp_path, 0)
        stop_event = asyncio.Event()
        sleeps: list[float] = []

        async def _sleep(seconds: float) -> None:
            sleeps.append(seconds)
            if len(sleeps) == 2:
                stop_event.set()

        try:
            reclaimer = _reclaimer(_Clock(), sleep=_sleep)
            await reclaimer.run_forever(stop_event)
        finally:
            await shutdown_db_service()

        assert sleeps == [60, 60]

    asyncio.run(_run())


def test_from_config_uses_checkout_duration_and_interval() -> None:
    config = AppConfigRoot.model_validate({"checkout": {"duration_days": 2}, "reclaimer": {"interval_seconds": 30}})

    reclaimer = ExpiryReclaimer.from_config(config)

    assert reclaimer.checkout_duration == timedelta(days=2)
    assert reclaimer.interval_seconds == 30
