from __future__ import annotations


class StoryRelayError(Exception):
    """Base class for failures surfaced to callers of the services."""


class NotFoundError(StoryRelayError):
    pass


class InvalidStateError(StoryRelayError):
    pass


class ForbiddenError(StoryRelayError):
    pass


class ContentValidationError(StoryRelayError):
    def __init__(
        self,
        message: str,
        *,
        word_count: int | None = None,
        min_words: int | None = None,
        max_words: int | None = None,
    ):
        super().__init__(message)
        self.word_count = word_count
        self.min_words = min_words
        self.max_words = max_words


class ConflictError(StoryRelayError):
    """Remote content changed since the version token was read."""


class UpstreamError(StoryRelayError):
    """Remote content host unreachable or returned an unexpected failure."""
