from __future__ import annotations

import pytest

from story_relay.domain.errors import ContentValidationError
from story_relay.domain.wordcount import count_words, validate_contribution


def _words(n: int) -> str:
    return " ".join(f"w{i}" for i in range(n))


def test_count_words_splits_on_any_whitespace() -> None:
    assert count_words("  one\ttwo\n\nthree   four ") == 4
    assert count_words("") == 0


@pytest.mark.parametrize("n", [50, 51, 1000, 1312])
def test_validate_contribution_accepts_inclusive_range(n: int) -> None:
    assert validate_contribution(_words(n), 50, 1312) == n


@pytest.mark.parametrize("n", [1, 49, 1313])
def test_validate_contribution_rejects_out_of_range(n: int) -> None:
    with pytest.raises(ContentValidationError) as exc_info:
        validate_contribution(_words(n), 50, 1312)

    assert exc_info.value.word_count == n
    assert exc_info.value.min_words == 50
    assert exc_info.value.max_words == 1312
    assert f"You have {n} words." in str(exc_info.value)


@pytest.mark.parametrize("text", ["", "   ", "\n\t"])
def test_validate_contribution_rejects_empty_text(text: str) -> None:
    with pytest.raises(ContentValidationError) as exc_info:
        validate_contribution(text, 50, 1312)

    assert exc_info.value.word_count == 0
