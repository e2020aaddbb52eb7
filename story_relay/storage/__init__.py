"""Storage layer for SQLite via SQLAlchemy async."""

from story_relay.storage import checkouts, contributors, genres, languages, stories, users

__all__ = ["checkouts", "contributors", "genres", "languages", "stories", "users"]
