from __future__ import annotations

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from story_relay.domain.clock import as_utc
from story_relay.storage.genres.base import Genre
from story_relay.storage.languages.base import Language
from story_relay.storage.stories.base import STATUS_AVAILABLE, Story
from story_relay.storage.types import StoryDetailRow, StoryRow
from story_relay.storage.users.base import User


def _to_row(story: Story) -> StoryRow:
    return StoryRow(
        id=int(story.id),
        title=str(story.title),
        theme=str(story.theme),
        initial_plot=story.initial_plot,
        language_id=int(story.language_id),
        genre_id=int(story.genre_id),
        creator_id=int(story.creator_id),
        file_path=story.file_path,
        status=str(story.status),
        word_count=int(story.word_count),
        created_at=as_utc(story.created_at),
    )


def _detail_query():
    return (
        select(
            Story.id,
            Story.title,
            Story.theme,
            Story.initial_plot,
            Story.status,
            Story.word_count,
            Story.file_path,
            Language.name,
            Language.container,
            Genre.name,
            User.id,
            User.username,
            User.pen_name,
            Story.created_at,
        )
        .select_from(Story)
        .join(Language, Story.language_id == Language.id)
        .join(Genre, Story.genre_id == Genre.id)
        .join(User, Story.creator_id == User.id)
    )


def _to_detail_row(row: tuple) -> StoryDetailRow:
    return StoryDetailRow(
        id=int(row[0]),
        title=str(row[1]),
        theme=str(row[2]),
        initial_plot=row[3],
        status=str(row[4]),
        word_count=int(row[5]),
        file_path=row[6],
        language_name=str(row[7]),
        container=row[8],
        genre_name=str(row[9]),
        creator_id=int(row[10]),
        creator_name=str(row[11]),
        creator_pen_name=row[12],
        created_at=as_utc(row[13]),
    )


async def create_story(
    session: AsyncSession,
    *,
    title: str,
    theme: str,
    initial_plot: str | None,
    language_id: int,
    genre_id: int,
    creator_id: int,
) -> int:
    story = Story(
        title=title,
        theme=theme,
        initial_plot=initial_plot,
        language_id=language_id,
        genre_id=genre_id,
        creator_id=creator_id,
        status=STATUS_AVAILABLE,
        word_count=0,
    )
    session.add(story)
    await session.flush()
    return int(story.id)


async def get_story(session: AsyncSession, story_id: int) -> StoryRow | None:
    result = await session.execute(select(Story).where(Story.id == story_id))
    story = result.scalar_one_or_none()
    return _to_row(story) if story else None


async def get_story_detail(session: AsyncSession, story_id: int) -> StoryDetailRow | None:
    result = await session.execute(_detail_query().where(Story.id == story_id))
    row = result.first()
    return _to_detail_row(tuple(row)) if row else None


async def list_story_details(session: AsyncSession, status: str | None = None) -> list[StoryDetailRow]:
    query = _detail_query()
    if status is not None:
        query = query.where(Story.status == status)
    result = await session.execute(query.order_by(Story.id))
    return [_to_detail_row(tuple(row)) for row in result.all()]


async def set_file_path(session: AsyncSession, story_id: int, file_path: str) -> None:
    await session.execute(update(Story).where(Story.id == story_id).values(file_path=file_path))


async def delete_story(session: AsyncSession, story_id: int) -> None:
    await session.execute(delete(Story).where(Story.id == story_id))


async def transition_status(
    session: AsyncSession,
    story_id: int,
    *,
    from_status: str,
    to_status: str,
    add_words: int = 0,
) -> bool:
    """Compare-and-set on the status column.

    Returns False when the story is missing or not in ``from_status``; nothing
    is written in that case.
    """

    values: dict = {"status": to_status}
    if add_words:
        values["word_count"] = Story.word_count + add_words
    result = await session.execute(
        update(Story).where(Story.id == story_id, Story.status == from_status).values(**values)
    )
    return result.rowcount == 1
