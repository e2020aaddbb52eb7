from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class InsertResult:
    id: int
    inserted: bool


@dataclass
class UserRow:
    id: int
    username: str
    email: str
    role: str
    pen_name: str | None

    @property
    def display_name(self) -> str:
        return self.pen_name or self.username


@dataclass
class LanguageRow:
    id: int
    name: str
    code: str
    container: str | None


@dataclass
class GenreRow:
    id: int
    name: str


@dataclass
class StoryRow:
    id: int
    title: str
    theme: str
    initial_plot: str | None
    language_id: int
    genre_id: int
    creator_id: int
    file_path: str | None
    status: str
    word_count: int
    created_at: datetime


@dataclass
class StoryDetailRow:
    id: int
    title: str
    theme: str
    initial_plot: str | None
    status: str
    word_count: int
    file_path: str | None
    language_name: str
    container: str | None
    genre_name: str
    creator_id: int
    creator_name: str
    creator_pen_name: str | None
    created_at: datetime


@dataclass
class CheckoutRow:
    id: int
    story_id: int
    user_id: int
    checked_out_at: datetime
    checked_in_at: datetime | None
    auto_checkin: bool
    words_added: int

    @property
    def is_open(self) -> bool:
        return self.checked_in_at is None


@dataclass
class ContributorRow:
    user_id: int
    username: str
    pen_name: str | None
    contributed_at: datetime
    total_words: int
