from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from story_relay.storage.languages.base import Language
from story_relay.storage.types import InsertResult, LanguageRow


async def upsert_language(session: AsyncSession, *, name: str, code: str, container: str) -> InsertResult:
    existing = await session.execute(select(Language.id).where(Language.code == code))
    existing_id = existing.scalar_one_or_none()

    stmt = (
        sqlite_insert(Language)
        .values(name=name, code=code, container=container)
        .on_conflict_do_update(index_elements=[Language.code], set_={"name": name, "container": container})
    )
    await session.execute(stmt)

    lookup = await session.execute(select(Language.id).where(Language.code == code))
    return InsertResult(id=int(lookup.scalar_one()), inserted=(existing_id is None))


async def get_language(session: AsyncSession, language_id: int) -> LanguageRow | None:
    result = await session.execute(
        select(Language.id, Language.name, Language.code, Language.container).where(Language.id == language_id)
    )
    row = result.first()
    if row is None:
        return None
    return LanguageRow(id=int(row[0]), name=str(row[1]), code=str(row[2]), container=row[3])


async def list_languages(session: AsyncSession) -> list[LanguageRow]:
    result = await session.execute(
        select(Language.id, Language.name, Language.code, Language.container).order_by(Language.id)
    )
    return [
        LanguageRow(id=int(row[0]), name=str(row[1]), code=str(row[2]), container=row[3])
        for row in result.all()
    ]
