from __future__ import annotations

from loguru import logger

from story_relay.content.store import ContentStore
from story_relay.domain.document import render_story_document
from story_relay.domain.errors import ContentValidationError, InvalidStateError, NotFoundError
from story_relay.domain.naming import story_filename
from story_relay.storage.db import session_scope
from story_relay.storage.repo import SQLAlchemyRepo
from story_relay.storage.stories import STATUS_AVAILABLE, STATUS_CHECKED_OUT, STATUS_FINISHED
from story_relay.storage.types import StoryDetailRow

STORY_STATUSES = (STATUS_AVAILABLE, STATUS_CHECKED_OUT, STATUS_FINISHED)


async def create_story(
    content_store: ContentStore,
    *,
    title: str,
    theme: str,
    language_id: int,
    genre_id: int,
    creator_id: int,
    initial_plot: str | None = None,
) -> StoryDetailRow:
    """Creates the story row and its remote file.

    The row is inserted first to obtain the id the filename is derived from.
    If the remote file cannot be created the row is deleted again.
    """

    title = title.strip()
    theme = theme.strip()
    if not title or not theme:
        raise ContentValidationError("title and theme are required")
    initial_plot = (initial_plot or "").strip() or None

    async with session_scope() as session:
        repo = SQLAlchemyRepo(session)
        language = await repo.get_language(language_id)
        if language is None:
            raise NotFoundError(f"Language {language_id} not found")
        if not language.container:
            raise InvalidStateError(f"Language {language.name} has no content container")
        genre = await repo.get_genre(genre_id)
        if genre is None:
            raise NotFoundError(f"Genre {genre_id} not found")
        creator = await repo.get_user(creator_id)
        if creator is None:
            raise NotFoundError(f"User {creator_id} not found")

        story_id = await repo.create_story(
            title=title,
            theme=theme,
            initial_plot=initial_plot,
            language_id=language_id,
            genre_id=genre_id,
            creator_id=creator_id,
        )

    log = logger.bind(op="create_story", story_id=story_id, user_id=creator_id)
    filename = story_filename(story_id, title)
    document = render_story_document(
        title=title,
        theme=theme,
        genre=genre.name,
        language=language.name,
        creator=creator.display_name,
        initial_plot=initial_plot,
    )

    try:
        await content_store.create(language.container, filename, document, f"Initial commit: {title}")
    except Exception:
        log.warning("Remote file creation failed; removing story row")
        async with session_scope() as session:
            await SQLAlchemyRepo(session).delete_story(story_id)
        raise

    async with session_scope() as session:
        repo = SQLAlchemyRepo(session)
        await repo.set_story_file_path(story_id, filename)
        story = await repo.get_story_detail(story_id)

    if story is None:
        raise NotFoundError(f"Story {story_id} disappeared during creation")
    log.info("Created story '{}' at {}/{}", title, language.container, filename)
    return story


async def list_stories(status: str | None = None) -> list[StoryDetailRow]:
    if status is not None and status not in STORY_STATUSES:
        raise ContentValidationError(f"Unknown status '{status}'")
    async with session_scope() as session:
        return await SQLAlchemyRepo(session).list_story_details(status)


async def get_story(story_id: int) -> StoryDetailRow:
    async with session_scope() as session:
        story = await SQLAlchemyRepo(session).get_story_detail(story_id)
    if story is None:
        raise NotFoundError(f"Story {story_id} not found")
    return story


async def read_story_content(content_store: ContentStore, story_id: int) -> str:
    story = await get_story(story_id)
    if not story.container or not story.file_path:
        raise InvalidStateError(f"Story {story_id} has no remote content file")
    snapshot = await content_store.read(story.container, story.file_path)
    return snapshot.content
