from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from story_relay.domain.clock import as_utc, to_storage
from story_relay.storage.checkouts.base import CheckoutEntry
from story_relay.storage.types import CheckoutRow


_COLUMNS = (
    CheckoutEntry.id,
    CheckoutEntry.story_id,
    CheckoutEntry.user_id,
    CheckoutEntry.checked_out_at,
    CheckoutEntry.checked_in_at,
    CheckoutEntry.auto_checkin,
    CheckoutEntry.words_added,
)


def _to_row(row: tuple) -> CheckoutRow:
    return CheckoutRow(
        id=int(row[0]),
        story_id=int(row[1]),
        user_id=int(row[2]),
        checked_out_at=as_utc(row[3]),
        checked_in_at=as_utc(row[4]) if row[4] is not None else None,
        auto_checkin=bool(row[5]),
        words_added=int(row[6] or 0),
    )


def _latest_first(query):
    return query.order_by(CheckoutEntry.checked_out_at.desc(), CheckoutEntry.id.desc())


async def open_checkout(session: AsyncSession, *, story_id: int, user_id: int, checked_out_at: datetime) -> int:
    entry = CheckoutEntry(
        story_id=story_id,
        user_id=user_id,
        checked_out_at=to_storage(checked_out_at),
        checked_in_at=None,
        auto_checkin=False,
        words_added=0,
    )
    session.add(entry)
    await session.flush()
    return int(entry.id)


async def get_checkout(session: AsyncSession, checkout_id: int) -> CheckoutRow | None:
    result = await session.execute(select(*_COLUMNS).where(CheckoutEntry.id == checkout_id))
    row = result.first()
    return _to_row(tuple(row)) if row else None


async def get_open_checkout(
    session: AsyncSession,
    story_id: int,
    user_id: int | None = None,
) -> CheckoutRow | None:
    """Latest open entry for a story, optionally restricted to one holder."""

    query = select(*_COLUMNS).where(CheckoutEntry.story_id == story_id, CheckoutEntry.checked_in_at.is_(None))
    if user_id is not None:
        query = query.where(CheckoutEntry.user_id == user_id)
    result = await session.execute(_latest_first(query).limit(1))
    row = result.first()
    return _to_row(tuple(row)) if row else None


async def count_open_checkouts(session: AsyncSession, story_id: int) -> int:
    result = await session.execute(
        select(func.count(CheckoutEntry.id)).where(
            CheckoutEntry.story_id == story_id,
            CheckoutEntry.checked_in_at.is_(None),
        )
    )
    return int(result.scalar_one())


async def list_checkouts(session: AsyncSession, story_id: int) -> list[CheckoutRow]:
    result = await session.execute(
        select(*_COLUMNS).where(CheckoutEntry.story_id == story_id).order_by(CheckoutEntry.id)
    )
    return [_to_row(tuple(row)) for row in result.all()]


async def list_expired_open_checkouts(session: AsyncSession, *, cutoff: datetime) -> list[CheckoutRow]:
    """Open entries checked out strictly before ``cutoff``."""

    result = await session.execute(
        select(*_COLUMNS)
        .where(CheckoutEntry.checked_in_at.is_(None), CheckoutEntry.checked_out_at < to_storage(cutoff))
        .order_by(CheckoutEntry.checked_out_at, CheckoutEntry.id)
    )
    return [_to_row(tuple(row)) for row in result.all()]


async def close_checkout(
    session: AsyncSession,
    checkout_id: int,
    *,
    checked_in_at: datetime,
    words_added: int,
    auto_checkin: bool,
) -> bool:
    """Closes an open entry. Returns False if it was already closed."""

    result = await session.execute(
        update(CheckoutEntry)
        .where(CheckoutEntry.id == checkout_id, CheckoutEntry.checked_in_at.is_(None))
        .values(checked_in_at=to_storage(checked_in_at), words_added=words_added, auto_checkin=auto_checkin)
    )
    return result.rowcount == 1
