"""User storage models and CRUD helpers."""

from story_relay.storage.users.base import User
from story_relay.storage.users import crud

__all__ = ["User", "crud"]
