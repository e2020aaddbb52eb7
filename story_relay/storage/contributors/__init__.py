"""Story contributor models and CRUD helpers."""

from story_relay.storage.contributors.base import StoryContributor
from story_relay.storage.contributors import crud

__all__ = ["StoryContributor", "crud"]
