"""In-memory registry of which conversation threads have a run in flight.

The provider rejects new messages (and new runs) on a thread while a run is
active. Every code path that appends to a thread or starts a run consults this
registry first, and every run start/finish is recorded here, so the registry is
the single serialization point per thread.

Entries self-heal: an active entry that has not been refreshed within the
staleness window is treated as abandoned and flipped inactive on read. A
background sweep purges stale and long-inactive entries.
"""
from __future__ import annotations

import asyncio
import logging
import re
import time
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, Dict, Optional

from .config import get_settings

logger = logging.getLogger(__name__)

_RUN_ID_PATTERN = re.compile(r"\brun (run_[A-Za-z0-9]+)")

WAIT_INITIAL_DELAY = 0.5
WAIT_MAX_DELAY = 3.0
WAIT_BACKOFF_FACTOR = 2.0


@dataclass
class RunState:
    is_active: bool
    run_id: Optional[str]
    last_updated: float
    created_at: float


def extract_run_id_from_error(message: str) -> Optional[str]:
    """Pull the ``run_...`` id out of a provider "run is active" error."""

    match = _RUN_ID_PATTERN.search(message or "")
    if match:
        return match.group(1)
    return None


class RunStateRegistry:
    """Tracks run liveness per thread id."""

    def __init__(
        self,
        *,
        stale_after: float = 120.0,
        inactive_ttl: float = 300.0,
        sweep_interval: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._states: Dict[str, RunState] = {}
        self._stale_after = stale_after
        self._inactive_ttl = inactive_ttl
        self._sweep_interval = sweep_interval
        self._clock = clock
        self._sleep = sleep
        self._running = False
        self._task: Optional[asyncio.Task] = None

    @property
    def stale_after(self) -> float:
        return self._stale_after

    def set_staleness_threshold(self, seconds: float) -> None:
        self._stale_after = seconds

    def set_run_active(self, thread_id: str, run_id: str) -> None:
        now = self._clock()
        self._states[thread_id] = RunState(
            is_active=True,
            run_id=run_id,
            last_updated=now,
            created_at=now,
        )
        logger.info("[RUN_STATE] Run %s set active for thread %s", run_id, thread_id)

    def update_run_activity(self, thread_id: str) -> None:
        state = self._states.get(thread_id)
        if state and state.is_active:
            state.last_updated = self._clock()

    def set_run_inactive(self, thread_id: str) -> None:
        state = self._states.get(thread_id)
        if state is None:
            return
        was_active = state.is_active
        state.is_active = False
        state.run_id = None
        state.last_updated = self._clock()
        if was_active:
            logger.info("[RUN_STATE] Run marked inactive for thread %s", thread_id)

    def _is_stale(self, state: RunState, now: float) -> bool:
        return state.is_active and now - state.last_updated > self._stale_after

    def has_active_run(self, thread_id: str) -> bool:
        state = self._states.get(thread_id)
        if state is None:
            return False

        if self._is_stale(state, self._clock()):
            logger.warning(
                "[RUN_STATE] Run %s for thread %s appears stale, marking inactive",
                state.run_id,
                thread_id,
            )
            self.set_run_inactive(thread_id)
            return False

        return state.is_active

    def get_run_info(self, thread_id: str) -> Optional[RunState]:
        """Return a snapshot of the thread's run state, or None if untracked."""

        if thread_id not in self._states:
            return None
        # Reading through has_active_run applies the staleness self-heal.
        self.has_active_run(thread_id)
        return replace(self._states[thread_id])

    async def wait_for_run_completion(self, thread_id: str, timeout: float = 15.0) -> bool:
        """Wait until the thread has no active run.

        Returns True if completion was observed, False if ``timeout`` elapsed first.
        """
        deadline = self._clock() + timeout
        delay = WAIT_INITIAL_DELAY

        while self.has_active_run(thread_id):
            remaining = deadline - self._clock()
            if remaining <= 0:
                logger.warning(
                    "[RUN_STATE] Timed out after %.1fs waiting for run on thread %s",
                    timeout,
                    thread_id,
                )
                return False
            await self._sleep(min(delay, remaining))
            delay = min(delay * WAIT_BACKOFF_FACTOR, WAIT_MAX_DELAY)

        return True

    def sweep(self) -> int:
        """Drop stale-active and long-inactive entries. Returns how many were removed."""

        now = self._clock()
        removed = 0
        for thread_id, state in list(self._states.items()):
            expired_inactive = (
                not state.is_active and now - state.last_updated > self._inactive_ttl
            )
            if self._is_stale(state, now) or expired_inactive:
                del self._states[thread_id]
                removed += 1
                logger.info("[RUN_STATE] Cleaned up run state for thread %s", thread_id)
        return removed

    def __len__(self) -> int:
        return len(self._states)

    async def start(self) -> None:
        """Start the background sweep task."""
        if self._running:
            return

        self._running = True
        self._task = asyncio.create_task(self._sweep_loop())
        logger.info("[RUN_STATE] Sweeper started (every %.0fs)", self._sweep_interval)

    async def stop(self) -> None:
        """Stop the background sweep task."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("[RUN_STATE] Sweeper stopped")

    async def _sweep_loop(self) -> None:
        while self._running:
            await self._sleep(self._sweep_interval)
            try:
                self.sweep()
            except Exception:
                logger.exception("[RUN_STATE] Error in sweep loop")


_registry: RunStateRegistry | None = None


def get_run_state_registry() -> RunStateRegistry:
    """Get or create the process-wide registry."""
    global _registry

    if _registry is None:
        settings = get_settings()
        _registry = RunStateRegistry(
            stale_after=settings.run_stale_after,
            inactive_ttl=settings.run_inactive_ttl,
            sweep_interval=settings.run_sweep_interval,
        )

    return _registry
