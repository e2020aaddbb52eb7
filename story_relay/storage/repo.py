from __future__ import annotations

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from story_relay.storage.checkouts import crud as checkouts_crud
from story_relay.storage.contributors import crud as contributors_crud
from story_relay.storage.genres import crud as genres_crud
from story_relay.storage.languages import crud as languages_crud
from story_relay.storage.stories import crud as stories_crud
from story_relay.storage.types import (
    CheckoutRow,
    ContributorRow,
    GenreRow,
    InsertResult,
    LanguageRow,
    StoryDetailRow,
    StoryRow,
    UserRow,
)
from story_relay.storage.users import crud as users_crud


class SQLAlchemyRepo:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_user(self, *, username: str, email: str, role: str, pen_name: str | None) -> InsertResult:
        return await users_crud.create_user(
            self.session,
            username=username,
            email=email,
            role=role,
            pen_name=pen_name,
        )

    async def get_user(self, user_id: int) -> UserRow | None:
        return await users_crud.get_user(self.session, user_id)

    async def upsert_language(self, *, name: str, code: str, container: str) -> InsertResult:
        return await languages_crud.upsert_language(self.session, name=name, code=code, container=container)

    async def get_language(self, language_id: int) -> LanguageRow | None:
        return await languages_crud.get_language(self.session, language_id)

    async def list_languages(self) -> list[LanguageRow]:
        return await languages_crud.list_languages(self.session)

    async def get_or_create_genre(self, name: str) -> InsertResult:
        return await genres_crud.get_or_create_genre(self.session, name)

    async def get_genre(self, genre_id: int) -> GenreRow | None:
        return await genres_crud.get_genre(self.session, genre_id)

    async def list_genres(self) -> list[GenreRow]:
        return await genres_crud.list_genres(self.session)

    async def create_story(
        self,
        *,
        title: str,
        theme: str,
        initial_plot: str | None,
        language_id: int,
        genre_id: int,
        creator_id: int,
    ) -> int:
        return await stories_crud.create_story(
            self.session,
            title=title,
            theme=theme,
            initial_plot=initial_plot,
            language_id=language_id,
            genre_id=genre_id,
            creator_id=creator_id,
        )

    async def get_story(self, story_id: int) -> StoryRow | None:
        return await stories_crud.get_story(self.session, story_id)

    async def get_story_detail(self, story_id: int) -> StoryDetailRow | None:
        return await stories_crud.get_story_detail(self.session, story_id)

    async def list_story_details(self, status: str | None = None) -> list[StoryDetailRow]:
        return await stories_crud.list_story_details(self.session, status)

    async def set_story_file_path(self, story_id: int, file_path: str) -> None:
        await stories_crud.set_file_path(self.session, story_id, file_path)

    async def delete_story(self, story_id: int) -> None:
        await stories_crud.delete_story(self.session, story_id)

    async def transition_story_status(
        self,
        story_id: int,
        *,
        from_status: str,
        to_status: str,
        add_words: int = 0,
    ) -> bool:
        return await stories_crud.transition_status(
            self.session,
            story_id,
            from_status=from_status,
            to_status=to_status,
            add_words=add_words,
        )

    async def open_checkout(self, *, story_id: int, user_id: int, checked_out_at: datetime) -> int:
        return await checkouts_crud.open_checkout(
            self.session,
            story_id=story_id,
            user_id=user_id,
            checked_out_at=checked_out_at,
        )

    async def get_checkout(self, checkout_id: int) -> CheckoutRow | None:
        return await checkouts_crud.get_checkout(self.session, checkout_id)

    async def get_open_checkout(self, story_id: int, user_id: int | None = None) -> CheckoutRow | None:
        return await checkouts_crud.get_open_checkout(self.session, story_id, user_id)

    async def count_open_checkouts(self, story_id: int) -> int:
        return await checkouts_crud.count_open_checkouts(self.session, story_id)

    async def list_checkouts(self, story_id: int) -> list[CheckoutRow]:
        return await checkouts_crud.list_checkouts(self.session, story_id)

    async def list_expired_open_checkouts(self, *, cutoff: datetime) -> list[CheckoutRow]:
        return await checkouts_crud.list_expired_open_checkouts(self.session, cutoff=cutoff)

    async def close_checkout(
        self,
        checkout_id: int,
        *,
        checked_in_at: datetime,
        words_added: int,
        auto_checkin: bool,
    ) -> bool:
        return await checkouts_crud.close_checkout(
            self.session,
            checkout_id,
            checked_in_at=checked_in_at,
            words_added=words_added,
            auto_checkin=auto_checkin,
        )

    async def add_contributor(self, *, story_id: int, user_id: int, contributed_at: datetime) -> bool:
        return await contributors_crud.add_contributor(
            self.session,
            story_id=story_id,
            user_id=user_id,
            contributed_at=contributed_at,
        )

    async def list_contributors(self, story_id: int) -> list[ContributorRow]:
        return await contributors_crud.list_contributors(self.session, story_id)
