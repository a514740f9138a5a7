"""Debounced, coalescing autosave for microsite content edits.

The editor sends field-level edits as the user types. Instead of writing
each keystroke, edits are collected per content row and written in one
update once no new edit has arrived for ``delay`` seconds.
"""

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable
from functools import lru_cache
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from api.services.content_service import ContentService
from api.services.database import session_scope
from common.config import settings

logger = logging.getLogger(__name__)

SaveCallback = Callable[[dict[str, Any]], Awaitable[None]]


class DebouncedSaver:
    """Collects keyed edits and saves them together after a quiet period."""

    def __init__(
        self,
        on_save: SaveCallback,
        delay: float = 2.0,
        on_idle: Callable[[], None] | None = None,
    ):
        self.on_save = on_save
        self.on_idle = on_idle
        self.delay = delay
        self._pending: dict[str, Any] = {}
        self._timer: asyncio.Task | None = None
        self._lock = asyncio.Lock()
        self._saving = False

    @property
    def is_saving(self) -> bool:
        return self._saving

    @property
    def has_pending_updates(self) -> bool:
        return bool(self._pending)

    @property
    def is_idle(self) -> bool:
        """Nothing pending, nothing saving and no save scheduled."""
        return not self._pending and not self._saving and self._timer is None

    @property
    def pending_fields(self) -> list[str]:
        return sorted(self._pending)

    def queue_update(self, key: str, value: Any) -> None:
        """Record the latest value for ``key`` and restart the delay."""
        self._pending[key] = value
        self._cancel_timer()
        self._timer = asyncio.create_task(self._flush_after_delay())

    async def save_immediately(self) -> bool:
        """Skip the remaining delay and save pending edits now."""
        self._cancel_timer()
        return await self.flush()

    def cancel(self) -> None:
        """Stop the scheduled save. Pending edits are kept."""
        self._cancel_timer()

    async def flush(self) -> bool:
        """Save all pending edits in one call.

        Edits that arrive while a save is running stay pending. On failure
        the error is logged and every edit stays pending for the next flush.

        Returns:
            True if nothing was pending or the save succeeded
        """
        async with self._lock:
            if not self._pending:
                return True

            snapshot = dict(self._pending)
            self._saving = True
            try:
                await self.on_save(snapshot)
            except Exception:
                logger.exception(f"Autosave failed; {len(snapshot)} field(s) remain pending")
                return False
            finally:
                self._saving = False

            for key, value in snapshot.items():
                if key in self._pending and self._pending[key] is value:
                    del self._pending[key]
            return True

    def _cancel_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    async def _flush_after_delay(self) -> None:
        await asyncio.sleep(self.delay)
        self._timer = None
        if await self.flush() and self.is_idle and self.on_idle is not None:
            self.on_idle()


class AutoSaveRegistry:
    """One ``DebouncedSaver`` per content row, saving through its own session."""

    def __init__(
        self,
        delay: float | None = None,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ):
        self.delay = settings.autosave_delay_seconds if delay is None else delay
        self._session_factory = session_factory
        self._savers: dict[uuid.UUID, DebouncedSaver] = {}

    def saver_for(self, content_id: uuid.UUID) -> DebouncedSaver:
        saver = self._savers.get(content_id)
        if saver is None:

            async def persist(updates: dict[str, Any]) -> None:
                await self._persist(content_id, updates)

            saver = DebouncedSaver(
                persist,
                delay=self.delay,
                on_idle=lambda: self._discard_if_idle(content_id, saver),
            )
            self._savers[content_id] = saver
        return saver

    def get(self, content_id: uuid.UUID) -> DebouncedSaver | None:
        """The row's saver, or None when it has nothing queued."""
        return self._savers.get(content_id)

    def queue(self, content_id: uuid.UUID, updates: dict[str, Any]) -> DebouncedSaver:
        """Queue several field edits for a content row."""
        saver = self.saver_for(content_id)
        for key, value in updates.items():
            saver.queue_update(key, value)
        return saver

    async def flush(self, content_id: uuid.UUID) -> bool:
        saver = self._savers.get(content_id)
        if saver is None:
            return True
        saved = await saver.save_immediately()
        if saved:
            self._discard_if_idle(content_id, saver)
        return saved

    async def flush_all(self) -> None:
        """Save everything still pending. Called on application shutdown."""
        for content_id, saver in list(self._savers.items()):
            if saver.has_pending_updates:
                logger.info(f"Flushing pending autosave for content {content_id}")
                await saver.save_immediately()
            else:
                saver.cancel()
            self._discard_if_idle(content_id, saver)

    def __contains__(self, content_id: object) -> bool:
        return content_id in self._savers

    def _discard_if_idle(self, content_id: uuid.UUID, saver: DebouncedSaver) -> None:
        # A saver with nothing left to write is dropped; the next edit makes a new one
        if saver.is_idle and self._savers.get(content_id) is saver:
            del self._savers[content_id]

    async def _persist(self, content_id: uuid.UUID, updates: dict[str, Any]) -> None:
        async with session_scope(self._session_factory) as session:
            content = await ContentService(session).update_content(content_id, updates)
            if content is None:
                raise LookupError(f"Content {content_id} not found")


@lru_cache
def get_autosave_registry() -> AutoSaveRegistry:
    """Get the process-wide autosave registry."""
    return AutoSaveRegistry()
