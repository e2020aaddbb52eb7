from __future__ import annotations

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


def import_all_models() -> None:
    from story_relay.storage.checkouts.base import CheckoutEntry
    from story_relay.storage.contributors.base import StoryContributor
    from story_relay.storage.genres.base import Genre
    from story_relay.storage.languages.base import Language
    from story_relay.storage.stories.base import Story
    from story_relay.storage.users.base import User

    _ = (
        User,
        Language,
        Genre,
        Story,
        CheckoutEntry,
        StoryContributor,
    )
