from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from story_relay.config.schema import USER_ROLES, AppConfigRoot
from story_relay.domain.errors import ContentValidationError, InvalidStateError
from story_relay.storage.db import session_scope
from story_relay.storage.repo import SQLAlchemyRepo
from story_relay.storage.types import UserRow


@dataclass
class CatalogStats:
    languages_total: int
    languages_inserted: int
    genres_total: int
    genres_inserted: int


async def register_user(username: str, email: str, role: str, pen_name: str | None = None) -> UserRow:
    username = username.strip()
    email = email.strip()
    if not username or not email or not role:
        raise ContentValidationError("username, email and role are required")
    if role not in USER_ROLES:
        raise ContentValidationError(f"Unknown role '{role}', expected one of: {', '.join(USER_ROLES)}")

    async with session_scope() as session:
        repo = SQLAlchemyRepo(session)
        result = await repo.create_user(username=username, email=email, role=role, pen_name=pen_name or None)
        if not result.inserted:
            raise InvalidStateError("Username or email already exists")
    user = UserRow(id=result.id, username=username, email=email, role=role, pen_name=pen_name or None)
    logger.bind(op="register", user_id=user.id).info("Registered {} as {}", user.username, user.role)
    return user


async def seed_catalog(config: AppConfigRoot) -> CatalogStats:
    """Inserts the configured languages and genres; safe to run repeatedly."""

    languages_inserted = 0
    genres_inserted = 0
    async with session_scope() as session:
        repo = SQLAlchemyRepo(session)
        for language in config.catalog.languages:
            result = await repo.upsert_language(name=language.name, code=language.code, container=language.container)
            if result.inserted:
                languages_inserted += 1
        for genre in config.catalog.genres:
            result = await repo.get_or_create_genre(genre)
            if result.inserted:
                genres_inserted += 1

    logger.info("Catalog seeded: {} new languages, {} new genres", languages_inserted, genres_inserted)
    return CatalogStats(
        languages_total=len(config.catalog.languages),
        languages_inserted=languages_inserted,
        genres_total=len(config.catalog.genres),
        genres_inserted=genres_inserted,
    )
