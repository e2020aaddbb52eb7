from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from sqlalchemy.exc import IntegrityError

from story_relay.accounts.service import register_user, seed_catalog
from story_relay.config.schema import AppConfigRoot
from story_relay.content.store import VersionToken
from story_relay.stories.service import create_story
from story_relay.storage.db import init_db_service, session_scope, shutdown_db_service
from story_relay.storage.repo import SQLAlchemyRepo


class _CreateOnlyStore:
    async def create(self, container: str, path: str, content: str, message: str) -> VersionToken:
        return VersionToken("1")


def test_contributors_are_unique_and_sum_words(tmp_path: Path) -> None:
    async def _run() -> None:
        await init_db_service(tmp_path / "relay.db")
        try:
            await seed_catalog(AppConfigRoot())
            alice = await register_user("alice", "alice@example.com", "author", pen_name="A. Writer")
            bob = await register_user("bob", "bob@example.com", "author")
            story = await create_story(
                _CreateOnlyStore(),
                title="Shared",
                theme="Theme",
                language_id=1,
                genre_id=1,
                creator_id=alice.id,
            )
            t0 = datetime(2024, 5, 1, tzinfo=timezone.utc)

            async with session_scope() as session:
                repo = SQLAlchemyRepo(session)
                # alice: two manual check-ins and one reclaimed checkout; bob: one check-in.
                for offset, user_id, words, auto in (
                    (0, alice.id, 100, False),
                    (1, bob.id, 70, False),
                    (2, alice.id, 0, True),
                    (3, alice.id, 55, False),
                ):
                    at = t0 + timedelta(days=offset)
                    checkout_id = await repo.open_checkout(story_id=story.id, user_id=user_id, checked_out_at=at)
                    await repo.close_checkout(checkout_id, checked_in_at=at, words_added=words, auto_checkin=auto)
                    if not auto:
                        await repo.add_contributor(story_id=story.id, user_id=user_id, contributed_at=at)

            async with session_scope() as session:
                repo = SQLAlchemyRepo(session)
                assert await repo.add_contributor(story_id=story.id, user_id=bob.id, contributed_at=t0) is False
                contributors = await repo.list_contributors(story.id)

            assert [row.username for row in contributors] == ["alice", "bob"]
            assert contributors[0].pen_name == "A. Writer"
            assert contributors[0].total_words == 155
            assert contributors[0].contributed_at == t0
            assert contributors[1].total_words == 70
            assert contributors[1].contributed_at == t0 + timedelta(days=1)
        finally:
            await shutdown_db_service()

    asyncio.run(_run())


def test_only_one_open_checkout_per_story(tmp_path: Path) -> None:
    async def _run() -> None:
        await init_db_service(tmp_path / "relay.db")
        try:
            await seed_catalog(AppConfigRoot())
            user = await register_user("solo", "solo@example.com", "author")
            story = await create_story(
                _CreateOnlyStore(),
                title="Solo",
                theme="Theme",
                language_id=1,
                genre_id=1,
                creator_id=user.id,
            )
            at = datetime(2024, 5, 1, tzinfo=timezone.utc)

            async with session_scope() as session:
                await SQLAlchemyRepo(session).open_checkout(story_id=story.id, user_id=user.id, checked_out_at=at)

            with pytest.raises(IntegrityError):
                async with session_scope() as session:
                    await SQLAlchemyRepo(session).open_checkout(story_id=story.id, user_id=user.id, checked_out_at=at)

            async with session_scope() as session:
                assert await SQLAlchemyRepo(session).count_open_checkouts(story.id) == 1
        finally:
            await shutdown_db_service()

    asyncio.run(_run())
