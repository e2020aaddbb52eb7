from __future__ import annotations

from datetime import datetime

from sqlalchemy import and_, func, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from story_relay.domain.clock import as_utc, to_storage
from story_relay.storage.checkouts.base import CheckoutEntry
from story_relay.storage.contributors.base import StoryContributor
from story_relay.storage.types import ContributorRow
from story_relay.storage.users.base import User


async def add_contributor(
    session: AsyncSession,
    *,
    story_id: int,
    user_id: int,
    contributed_at: datetime,
) -> bool:
    stmt = (
        sqlite_insert(StoryContributor)
        .values(story_id=story_id, user_id=user_id, contributed_at=to_storage(contributed_at))
        .on_conflict_do_nothing(index_elements=[StoryContributor.story_id, StoryContributor.user_id])
    )
    result = await session.execute(stmt)
    return result.rowcount == 1


async def list_contributors(session: AsyncSession, story_id: int) -> list[ContributorRow]:
    result = await session.execute(
        select(
            User.id,
            User.username,
            User.pen_name,
            StoryContributor.contributed_at,
            func.coalesce(func.sum(CheckoutEntry.words_added), 0),
        )
        .select_from(StoryContributor)
        .join(User, StoryContributor.user_id == User.id)
        .outerjoin(
            CheckoutEntry,
            and_(
                CheckoutEntry.story_id == StoryContributor.story_id,
                CheckoutEntry.user_id == StoryContributor.user_id,
            ),
        )
        .where(StoryContributor.story_id == story_id)
        .group_by(User.id, User.username, User.pen_name, StoryContributor.contributed_at)
        .order_by(StoryContributor.contributed_at, User.id)
    )
    return [
        ContributorRow(
            user_id=int(row[0]),
            username=str(row[1]),
            pen_name=row[2],
            contributed_at=as_utc(row[3]),
            total_words=int(row[4]),
        )
        for row in result.all()
    ]
