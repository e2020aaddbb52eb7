from __future__ import annotations

from datetime import datetime

CONTRIBUTION_SEPARATOR = "---"


def render_story_document(
    *,
    title: str,
    theme: str,
    genre: str,
    language: str,
    creator: str,
    initial_plot: str | None = None,
) -> str:
    lines = [
        f"# {title}",
        "",
        f"**Genre:** {genre}",
        f"**Language:** {language}",
        f"**Created by:** {creator}",
        "",
        "## Theme",
        theme,
        "",
    ]
    if initial_plot:
        lines.extend(["## Initial Plot", initial_plot, ""])
    lines.extend([CONTRIBUTION_SEPARATOR, "", "## Story Content", ""])
    if initial_plot:
        lines.append(initial_plot)
    return "\n".join(lines)


def append_contribution(
    existing: str,
    *,
    author_name: str,
    text: str,
    word_count: int,
    contributed_at: datetime,
) -> str:
    section = (
        f"{CONTRIBUTION_SEPARATOR}\n\n"
        f"### Contribution by {author_name} ({contributed_at.date().isoformat()})\n"
        f"Words: {word_count}\n\n"
        f"{text.strip()}"
    )
    return f"{existing.rstrip()}\n\n{section}\n"
