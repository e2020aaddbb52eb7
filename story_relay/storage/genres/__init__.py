"""Genre catalog models and CRUD helpers."""

from story_relay.storage.genres.base import Genre
from story_relay.storage.genres import crud

__all__ = ["Genre", "crud"]
