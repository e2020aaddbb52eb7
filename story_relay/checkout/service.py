"""Checkout/checkin lifecycle of a story.

A story cycles ``available -> checked_out -> available``; ``finished`` is
terminal. Every checkout appends an open entry to the ledger and every checkin
(manual here, automatic in the reclaimer) closes it. Status and the ledger
always move together inside one transaction.

Checkin writes the remote text first and records it locally afterwards, so
the ledger never claims a contribution the content host does not have.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from loguru import logger

from story_relay.config.schema import AppConfigRoot
from story_relay.content.store import ContentStore
from story_relay.domain.clock import Clock, utc_now
from story_relay.domain.document import append_contribution
from story_relay.domain.errors import ForbiddenError, InvalidStateError, NotFoundError, UpstreamError
from story_relay.domain.wordcount import validate_contribution
from story_relay.storage.db import session_scope
from story_relay.storage.repo import SQLAlchemyRepo
from story_relay.storage.stories import STATUS_AVAILABLE, STATUS_CHECKED_OUT, STATUS_FINISHED
from story_relay.storage.types import ContributorRow


@dataclass
class CheckoutResult:
    checkout_id: int
    story_id: int
    user_id: int
    checked_out_at: datetime
    deadline: datetime


@dataclass
class CheckinResult:
    checkout_id: int
    story_id: int
    words_added: int
    story_word_count: int
    status: str


@dataclass
class CheckoutStatus:
    story_id: int
    checked_out: bool
    checkout_id: int | None = None
    holder_id: int | None = None
    holder_name: str | None = None
    checked_out_at: datetime | None = None
    deadline: datetime | None = None
    by_viewer: bool = False


@dataclass
class _CheckinTarget:
    checkout_id: int
    container: str
    file_path: str
    author_name: str
    word_count: int


class CheckoutService:
    def __init__(self, config: AppConfigRoot, content_store: ContentStore | None = None, clock: Clock = utc_now):
        self.config = config
        self.content_store = content_store
        self.clock = clock

    @property
    def policy(self):
        return self.config.checkout

    def deadline_for(self, checked_out_at: datetime) -> datetime:
        return checked_out_at + self.policy.duration

    async def checkout(self, story_id: int, user_id: int) -> CheckoutResult:
        log = logger.bind(op="checkout", story_id=story_id, user_id=user_id)
        now = self.clock()

        async with session_scope() as session:
            repo = SQLAlchemyRepo(session)
            user = await repo.get_user(user_id)
            if user is None:
                raise NotFoundError(f"User {user_id} not found")
            story = await repo.get_story(story_id)
            if story is None:
                raise NotFoundError(f"Story {story_id} not found")
            if user.role not in self.policy.author_roles:
                raise ForbiddenError(f"Role '{user.role}' cannot check out stories")
            if story.status != STATUS_AVAILABLE:
                raise InvalidStateError(f"Story {story_id} is not available for checkout (status={story.status})")

            claimed = await repo.transition_story_status(
                story_id,
                from_status=STATUS_AVAILABLE,
                to_status=STATUS_CHECKED_OUT,
            )
            if not claimed:
                raise InvalidStateError(f"Story {story_id} is not available for checkout")
            checkout_id = await repo.open_checkout(story_id=story_id, user_id=user_id, checked_out_at=now)

        deadline = self.deadline_for(now)
        log.bind(checkout_id=checkout_id).info("Story checked out until {}", deadline.isoformat())
        return CheckoutResult(
            checkout_id=checkout_id,
            story_id=story_id,
            user_id=user_id,
            checked_out_at=now,
            deadline=deadline,
        )

    async def _load_checkin_target(self, story_id: int, user_id: int) -> _CheckinTarget:
        async with session_scope() as session:
            repo = SQLAlchemyRepo(session)
            story = await repo.get_story_detail(story_id)
            if story is None:
                raise NotFoundError(f"Story {story_id} not found")

            entry = await repo.get_open_checkout(story_id, user_id)
            if entry is None:
                if await repo.get_open_checkout(story_id) is not None:
                    raise ForbiddenError(f"Story {story_id} is checked out by another author")
                raise InvalidStateError(f"Story {story_id} is not checked out by user {user_id}")

            if not story.container or not story.file_path:
                raise InvalidStateError(f"Story {story_id} has no remote content file")

            user = await repo.get_user(user_id)
            author_name = user.display_name if user else str(user_id)

        return _CheckinTarget(
            checkout_id=entry.id,
            container=story.container,
            file_path=story.file_path,
            author_name=author_name,
            word_count=story.word_count,
        )

    async def checkin(self, story_id: int, user_id: int, text: str) -> CheckinResult:
        if self.content_store is None:
            raise RuntimeError("CheckoutService needs a content store to check stories in")
        log = logger.bind(op="checkin", story_id=story_id, user_id=user_id)
        target = await self._load_checkin_target(story_id, user_id)
        words = validate_contribution(text, self.policy.min_words, self.policy.max_words)
        log = log.bind(checkout_id=target.checkout_id)

        # Remote errors propagate from here with no local changes made.
        try:
            snapshot = await self.content_store.read(target.container, target.file_path)
        except NotFoundError as exc:
            log.warning("Remote file {}/{} is missing", target.container, target.file_path)
            raise UpstreamError(f"Remote file for story {story_id} could not be read: {exc}") from exc
        now = self.clock()
        merged = append_contribution(
            snapshot.content,
            author_name=target.author_name,
            text=text,
            word_count=words,
            contributed_at=now,
        )
        await self.content_store.update(
            target.container,
            target.file_path,
            merged,
            f"Contribution by {target.author_name}: +{words} words",
            snapshot.version,
        )

        finish_at = self.policy.finish_at_words
        new_total = target.word_count + words
        next_status = STATUS_FINISHED if finish_at is not None and new_total >= finish_at else STATUS_AVAILABLE

        async with session_scope() as session:
            repo = SQLAlchemyRepo(session)
            closed = await repo.close_checkout(
                target.checkout_id,
                checked_in_at=now,
                words_added=words,
                auto_checkin=False,
            )
            if not closed:
                log.warning("Checkout closed before check-in was recorded; remote text was already written")
                raise InvalidStateError(f"Checkout {target.checkout_id} is no longer open")
            released = await repo.transition_story_status(
                story_id,
                from_status=STATUS_CHECKED_OUT,
                to_status=next_status,
                add_words=words,
            )
            if not released:
                raise InvalidStateError(f"Story {story_id} is not checked out")
            await repo.add_contributor(story_id=story_id, user_id=user_id, contributed_at=now)
            story = await repo.get_story(story_id)

        story_word_count = story.word_count if story else new_total
        log.info("Checked in {} words; story now {} words ({})", words, story_word_count, next_status)
        return CheckinResult(
            checkout_id=target.checkout_id,
            story_id=story_id,
            words_added=words,
            story_word_count=story_word_count,
            status=next_status,
        )

    async def status(self, story_id: int, viewer_id: int | None = None) -> CheckoutStatus:
        async with session_scope() as session:
            repo = SQLAlchemyRepo(session)
            if await repo.get_story(story_id) is None:
                raise NotFoundError(f"Story {story_id} not found")
            entry = await repo.get_open_checkout(story_id)
            if entry is None:
                return CheckoutStatus(story_id=story_id, checked_out=False)
            holder = await repo.get_user(entry.user_id)

        return CheckoutStatus(
            story_id=story_id,
            checked_out=True,
            checkout_id=entry.id,
            holder_id=entry.user_id,
            holder_name=holder.display_name if holder else None,
            checked_out_at=entry.checked_out_at,
            deadline=self.deadline_for(entry.checked_out_at),
            by_viewer=viewer_id is not None and entry.user_id == viewer_id,
        )

    async def contributors(self, story_id: int) -> list[ContributorRow]:
        async with session_scope() as session:
            repo = SQLAlchemyRepo(session)
            if await repo.get_story(story_id) is None:
                raise NotFoundError(f"Story {story_id} not found")
            return await repo.list_contributors(story_id)

    async def finish(self, story_id: int, user_id: int) -> None:
        """Creator marks an available story as finished."""

        async with session_scope() as session:
            repo = SQLAlchemyRepo(session)
            story = await repo.get_story(story_id)
            if story is None:
                raise NotFoundError(f"Story {story_id} not found")
            if story.creator_id != user_id:
                raise ForbiddenError("Only the story creator can finish a story")
            finished = await repo.transition_story_status(
                story_id,
                from_status=STATUS_AVAILABLE,
                to_status=STATUS_FINISHED,
            )
            if not finished:
                raise InvalidStateError(f"Story {story_id} cannot be finished (status={story.status})")

        logger.bind(op="finish", story_id=story_id, user_id=user_id).info("Story finished")
