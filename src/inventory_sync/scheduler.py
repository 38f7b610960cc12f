"""Debounced, dirty-gated scheduling of remote saves.

The scheduler moves between three states:

* ``CLEAN``: memory matches the last successful save.
* ``DIRTY``: memory has changed since; a save is pending or will be retried.
* ``SAVING``: one save call is in flight.

At most one save runs at a time. A trigger that arrives while saving is
deferred and replayed once the in-flight call resolves, so no edit is left
without a follow-up save. Failures keep the scheduler dirty; there is no retry
loop beyond the next trigger.
"""
from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Awaitable, Callable

from .errors import PersistenceError

logger = logging.getLogger(__name__)

SaveCallback = Callable[[str], Awaitable[None]]
ErrorCallback = Callable[[PersistenceError], None]


class SaveState(str, enum.Enum):
    CLEAN = "clean"
    DIRTY = "dirty"
    SAVING = "saving"


class SaveScheduler:
    """Coalesce bursts of edits into single calls to ``save``.

    ``save`` receives the trigger reason and is expected to persist the
    freshest full snapshot, raising :class:`PersistenceError` on failure.
    Saves started by the timer or by :meth:`flush_soon` report failures to
    ``on_error``; :meth:`flush_now` raises them to its caller.

    Must be used from within a running event loop.
    """

    def __init__(
        self,
        save: SaveCallback,
        *,
        delay: float = 0.3,
        on_error: ErrorCallback | None = None,
    ) -> None:
        self._save = save
        self.delay = delay
        self._on_error = on_error
        self._dirty = False
        self._saving = False
        self._generation = 0
        self._timer: asyncio.TimerHandle | None = None
        self._deferred: str | None = None
        self._tasks: set[asyncio.Task[None]] = set()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def state(self) -> SaveState:
        if self._saving:
            return SaveState.SAVING
        if self._dirty:
            return SaveState.DIRTY
        return SaveState.CLEAN

    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def saving(self) -> bool:
        return self._saving

    @property
    def timer_pending(self) -> bool:
        return self._timer is not None

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------
    def mark_dirty(self, delay: float | None = None) -> None:
        """Record a change and restart the debounce timer."""

        self._dirty = True
        self._generation += 1
        self._cancel_timer()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.delay if delay is None else delay, self._on_timer)

    def flush_soon(self, reason: str) -> None:
        """Flush on the next loop iteration instead of waiting out the debounce."""

        asyncio.get_running_loop().call_soon(self._submit, reason)

    async def flush_now(self, reason: str = "flush") -> bool:
        """Save immediately if dirty and idle.

        Returns ``True`` when a save ran. While another save is in flight the
        request is deferred until it resolves and ``False`` is returned.
        """

        self._cancel_timer()
        if not self._dirty:
            return False
        if self._saving:
            self._deferred = reason
            return False
        generation = self._enter_saving()
        await self._perform(reason, generation)
        return True

    def reset(self) -> None:
        """Forget pending work: cancel the timer and mark clean."""

        self._cancel_timer()
        self._deferred = None
        self._dirty = False
        self._generation += 1

    async def drain(self) -> None:
        """Wait for saves already submitted in the background."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self) -> None:
        self._timer = None
        self._submit("debounced")

    def _submit(self, reason: str) -> None:
        self._cancel_timer()
        if not self._dirty:
            return
        if self._saving:
            self._deferred = reason
            return
        generation = self._enter_saving()
        task = asyncio.get_running_loop().create_task(self._run_reported(reason, generation))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _enter_saving(self) -> int:
        self._saving = True
        return self._generation

    async def _run_reported(self, reason: str, generation: int) -> None:
        try:
            await self._perform(reason, generation)
        except PersistenceError as exc:
            self._report(exc)
        except Exception as exc:
            logger.exception("Save (%s) failed unexpectedly", reason)
            self._report(PersistenceError(f"Save failed: {exc}", reason=reason))

    async def _perform(self, reason: str, generation: int) -> None:
        logger.debug("Saving (%s)", reason)
        try:
            await self._save(reason)
        except PersistenceError as exc:
            if exc.reason is None:
                exc.reason = reason
            logger.warning("Save (%s) failed, keeping changes for the next attempt: %s", reason, exc)
            raise
        else:
            # Edits made while the call was in flight keep the state dirty.
            if self._generation == generation:
                self._dirty = False
            logger.info("Saved (%s)", reason)
        finally:
            self._saving = False
            self._resume_deferred()

    def _resume_deferred(self) -> None:
        reason, self._deferred = self._deferred, None
        if reason is not None and self._dirty:
            self._submit(reason)

    def _report(self, exc: PersistenceError) -> None:
        if self._on_error is not None:
            self._on_error(exc)


__all__ = ["SaveScheduler", "SaveState"]
