from __future__ import annotations

from sqlalchemy import or_, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from story_relay.storage.types import InsertResult, UserRow
from story_relay.storage.users.base import User


def _to_row(row: tuple) -> UserRow:
    return UserRow(
        id=int(row[0]),
        username=str(row[1]),
        email=str(row[2]),
        role=str(row[3]),
        pen_name=row[4],
    )


async def create_user(
    session: AsyncSession,
    *,
    username: str,
    email: str,
    role: str,
    pen_name: str | None,
) -> InsertResult:
    stmt = (
        sqlite_insert(User)
        .values(username=username, email=email, role=role, pen_name=pen_name)
        .on_conflict_do_nothing()
    )
    result = await session.execute(stmt)
    inserted = result.rowcount == 1
    if inserted and result.lastrowid is not None:
        return InsertResult(id=int(result.lastrowid), inserted=True)

    id_result = await session.execute(
        select(User.id).where(or_(User.username == username, User.email == email)).limit(1)
    )
    return InsertResult(id=int(id_result.scalar_one()), inserted=False)


async def get_user(session: AsyncSession, user_id: int) -> UserRow | None:
    result = await session.execute(
        select(User.id, User.username, User.email, User.role, User.pen_name).where(User.id == user_id)
    )
    row = result.first()
    return _to_row(tuple(row)) if row else None

