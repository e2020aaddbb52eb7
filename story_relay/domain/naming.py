from __future__ import annotations

import re

STORY_FILE_PREFIX = "story"

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def normalize_title(title: str) -> str:
    slug = _NON_ALNUM.sub("-", title.lower())
    return slug.strip("-")


def story_filename(story_id: int, title: str) -> str:
    slug = normalize_title(title) or "untitled"
    return f"{STORY_FILE_PREFIX}-{story_id}-{slug}.md"
