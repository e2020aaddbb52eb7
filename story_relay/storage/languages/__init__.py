"""Language catalog models and CRUD helpers."""

from story_relay.storage.languages.base import Language
from story_relay.storage.languages import crud

__all__ = ["Language", "crud"]
