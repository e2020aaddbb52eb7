from __future__ import annotations

from datetime import timedelta
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator


USER_ROLES: tuple[str, ...] = ("author", "reader", "artist")


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    data_dir: Path = Field(default=Path("./data"))
    log_level: str = Field(default="INFO")


class StorageConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    sqlite_path: Path = Field(default=Path("./data/story_relay.db"))


class ContentStoreConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    kind: Literal["github"] = "github"
    base_url: str = "https://api.github.com"
    owner: str | None = None
    token_env: str | None = "GITHUB_TOKEN"
    api_version: str = "2022-11-28"
    timeout_s: float = 30.0

    @field_validator("timeout_s")
    @classmethod
    def _positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("content_store.timeout_s must be positive")
        return value


class CheckoutConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    duration_days: float = 7
    # Target is 1000-1250 words; the accepted band is deliberately wider.
    min_words: int = 50
    max_words: int = 1312
    author_roles: list[str] = Field(default_factory=lambda: ["author"])
    finish_at_words: int | None = None

    @field_validator("duration_days")
    @classmethod
    def _positive_duration(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("checkout.duration_days must be positive")
        return value

    @field_validator("min_words", "max_words")
    @classmethod
    def _positive_words(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("checkout word limits must be positive")
        return value

    @field_validator("finish_at_words")
    @classmethod
    def _positive_finish_threshold(cls, value: int | None) -> int | None:
        if value is not None and value <= 0:
            raise ValueError("finish_at_words must be positive when provided")
        return value

    @field_validator("author_roles")
    @classmethod
    def _known_roles(cls, value: list[str]) -> list[str]:
        unknown = [role for role in value if role not in USER_ROLES]
        if unknown:
            raise ValueError(f"unknown author roles: {', '.join(unknown)}")
        return value

    @model_validator(mode="after")
    def _validate_range(self) -> "CheckoutConfig":
        if self.min_words > self.max_words:
            raise ValueError("checkout.min_words must not exceed checkout.max_words")
        return self

    @property
    def duration(self) -> timedelta:
        return timedelta(days=self.duration_days)


class ReclaimerConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enabled: bool = True
    interval_seconds: float = 3600

    @field_validator("interval_seconds")
    @classmethod
    def _positive_interval(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("reclaimer.interval_seconds must be positive")
        return value


class LanguageConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    code: str
    container: str


def default_languages() -> list[LanguageConfig]:
    return [
        LanguageConfig(name="English", code="en", container="oola-stories-english"),
        LanguageConfig(name="Tamil", code="ta", container="oola-stories-tamil"),
        LanguageConfig(name="Spanish", code="es", container="oola-stories-spanish"),
        LanguageConfig(name="French", code="fr", container="oola-stories-french"),
    ]


def default_genres() -> list[str]:
    return [
        "Fiction",
        "Non-Fiction",
        "Fantasy",
        "Science Fiction",
        "Mystery",
        "Romance",
        "Thriller",
        "Horror",
    ]


class CatalogConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    languages: list[LanguageConfig] = Field(default_factory=default_languages)
    genres: list[str] = Field(default_factory=default_genres)

    @model_validator(mode="after")
    def _validate_unique(self) -> "CatalogConfig":
        codes = [language.code for language in self.languages]
        if len(codes) != len(set(codes)):
            raise ValueError("catalog.languages codes must be unique")
        names = [language.name for language in self.languages]
        if len(names) != len(set(names)):
            raise ValueError("catalog.languages names must be unique")
        if len(self.genres) != len(set(self.genres)):
            raise ValueError("catalog.genres must be unique")
        return self


class AppConfigRoot(BaseModel):
    model_config = ConfigDict(extra="forbid")

    app: AppConfig = AppConfig()
    storage: StorageConfig = StorageConfig()
    content_store: ContentStoreConfig = ContentStoreConfig()
    checkout: CheckoutConfig = CheckoutConfig()
    reclaimer: ReclaimerConfig = ReclaimerConfig()
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)


def resolve_paths(config: AppConfigRoot, base_dir: Path) -> AppConfigRoot:
    def _resolve(path_value: Path) -> Path:
        return path_value if path_value.is_absolute() else (base_dir / path_value).resolve()

    config.app.data_dir = _resolve(config.app.data_dir)
    config.storage.sqlite_path = _resolve(config.storage.sqlite_path)
    return config
