from __future__ import annotations

from story_relay.domain.errors import ContentValidationError


def count_words(text: str) -> int:
    return len(text.split())


def validate_contribution(text: str, min_words: int, max_words: int) -> int:
    """Returns the word count of a contribution or raises ContentValidationError.

    Counting is on whitespace-separated tokens of the trimmed text. Empty text
    is rejected before the range check.
    """

    if not text or not text.strip():
        raise ContentValidationError("Content is required", word_count=0, min_words=min_words, max_words=max_words)

    word_count = count_words(text)
    if word_count < min_words or word_count > max_words:
        raise ContentValidationError(
            f"Content must be between {min_words} and {max_words} words. You have {word_count} words.",
            word_count=word_count,
            min_words=min_words,
            max_words=max_words,
        )
    return word_count
