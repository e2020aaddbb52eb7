from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from story_relay.storage.genres.base import Genre
from story_relay.storage.types import GenreRow, InsertResult


async def get_or_create_genre(session: AsyncSession, name: str) -> InsertResult:
    stmt = sqlite_insert(Genre).values(name=name).on_conflict_do_nothing(index_elements=[Genre.name])
    result = await session.execute(stmt)
    inserted = result.rowcount == 1
    if inserted and result.lastrowid is not None:
        genre_id = result.lastrowid
    else:
        id_result = await session.execute(select(Genre.id).where(Genre.name == name))
        genre_id = id_result.scalar_one()
    return InsertResult(id=int(genre_id), inserted=inserted)


async def get_genre(session: AsyncSession, genre_id: int) -> GenreRow | None:
    result = await session.execute(select(Genre.id, Genre.name).where(Genre.id == genre_id))
    row = result.first()
    return GenreRow(id=int(row[0]), name=str(row[1])) if row else None


async def list_genres(session: AsyncSession) -> list[GenreRow]:
    result = await session.execute(select(Genre.id, Genre.name).order_by(Genre.id))
    return [GenreRow(id=int(row[0]), name=str(row[1])) for row in result.all()]
