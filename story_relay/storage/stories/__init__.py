"""Story storage models and CRUD helpers."""

from story_relay.storage.stories.base import STATUS_AVAILABLE, STATUS_CHECKED_OUT, STATUS_FINISHED, Story
from story_relay.storage.stories import crud

__all__ = ["STATUS_AVAILABLE", "STATUS_CHECKED_OUT", "STATUS_FINISHED", "Story", "crud"]
