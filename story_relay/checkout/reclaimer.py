from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import timedelta
from typing import Awaitable, Callable

from loguru import logger

from story_relay.config.schema import AppConfigRoot
from story_relay.domain.clock import Clock, utc_now
from story_relay.storage.db import session_scope
from story_relay.storage.repo import SQLAlchemyRepo
from story_relay.storage.stories import STATUS_AVAILABLE, STATUS_CHECKED_OUT
from story_relay.storage.types import CheckoutRow


@dataclass
class ReclaimStats:
    scanned: int = 0
    reclaimed: int = 0
    failed: int = 0


class ExpiryReclaimer:
    """Force-checks-in checkouts whose deadline has passed.

    An expired checkout contributes nothing: the entry is closed with
    ``auto_checkin`` set and zero words, and the story becomes available.
    """

    def __init__(
        self,
        *,
        checkout_duration: timedelta,
        interval_seconds: float,
        clock: Clock = utc_now,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.checkout_duration = checkout_duration
        self.interval_seconds = interval_seconds
        self.clock = clock
        self.sleep = sleep

    @classmethod
    def from_config(cls, config: AppConfigRoot, clock: Clock = utc_now) -> "ExpiryReclaimer":
        return cls(
            checkout_duration=config.checkout.duration,
            interval_seconds=config.reclaimer.interval_seconds,
            clock=clock,
        )

    async def _reclaim_entry(self, entry: CheckoutRow) -> bool:
        now = self.clock()
        async with session_scope() as session:
            repo = SQLAlchemyRepo(session)
            closed = await repo.close_checkout(entry.id, checked_in_at=now, words_added=0, auto_checkin=True)
            if not closed:
                return False
            released = await repo.transition_story_status(
                entry.story_id,
                from_status=STATUS_CHECKED_OUT,
                to_status=STATUS_AVAILABLE,
            )
            if not released:
                logger.bind(story_id=entry.story_id, checkout_id=entry.id).warning(
                    "Reclaimed checkout of a story that was not checked out"
                )
        return True

    async def run_once(self) -> ReclaimStats:
        cutoff = self.clock() - self.checkout_duration
        async with session_scope() as session:
            expired = await SQLAlchemyRepo(session).list_expired_open_checkouts(cutoff=cutoff)

        stats = ReclaimStats(scanned=len(expired))
        for entry in expired:
            log = logger.bind(op="reclaim", story_id=entry.story_id, user_id=entry.user_id, checkout_id=entry.id)
            try:
                if await self._reclaim_entry(entry):
                    stats.reclaimed += 1
                    log.info("Auto check-in of checkout from {}", entry.checked_out_at.isoformat())
            except Exception:
                stats.failed += 1
                log.exception("Auto check-in failed")

        if stats.reclaimed or stats.failed:
            logger.info(
                "Reclaim sweep: {} expired, {} reclaimed, {} failed",
                stats.scanned,
                stats.reclaimed,
                stats.failed,
            )
        return stats

    async def run_forever(self, stop_event: asyncio.Event | None = None) -> None:
        stop_event = stop_event or asyncio.Event()
        logger.info("Reclaimer started (interval {}s)", self.interval_seconds)
        while not stop_event.is_set():
            try:
                await self.run_once()
            except Exception:
                logger.exception("Reclaim sweep failed")
            if stop_event.is_set():
                break
            await self.sleep(self.interval_seconds)
        logger.info("Reclaimer stopped")
