"""
healthgate/services/drain.py
Graceful drain on termination.

RUNNING -> DRAINING -> STOPPED

- RUNNING -> DRAINING: ``request_shutdown()``; ``ready`` is cleared at once
- DRAINING: poll the pending-work counter every ``poll_interval`` seconds
  until it reaches zero or ``timeout`` seconds have passed
- DRAINING -> STOPPED: run teardown exactly once, whether the drain
  completed or was forced

A second ``request_shutdown()`` while DRAINING or STOPPED is a no-op.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

import structlog

from ..core.state import LifecycleState, PendingWorkTracker

logger = structlog.get_logger(__name__)

Teardown = Callable[[], Awaitable[Any]]


class DrainPhase(Enum):
    RUNNING = "running"
    DRAINING = "draining"
    STOPPED = "stopped"


@dataclass(frozen=True)
class DrainOutcome:
    """How the drain ended."""
    forced: bool
    pending_tasks: int
    elapsed_seconds: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "forced": self.forced,
            "pending_tasks": self.pending_tasks,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
        }


class DrainController:
    """
    Owns the shutdown sequence of the process.

    Must be driven from the event loop thread; signal handlers should hop
    onto the loop (``loop.call_soon_threadsafe``) before calling in.
    """

    def __init__(
        self,
        state: LifecycleState,
        tracker: PendingWorkTracker,
        teardown: Teardown,
        timeout: float = 60.0,
        poll_interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        self.state = state
        self.tracker = tracker
        self.timeout = timeout
        self.poll_interval = poll_interval
        self._teardown = teardown
        self._clock = clock

        self._phase = DrainPhase.RUNNING
        self._task: Optional[asyncio.Task] = None
        self._stopped = asyncio.Event()
        self._teardown_started = False
        self.outcome: Optional[DrainOutcome] = None
        self.reason: Optional[str] = None

    @property
    def phase(self) -> DrainPhase:
        return self._phase

    @property
    def accepting_work(self) -> bool:
        return self._phase == DrainPhase.RUNNING

    # ------------------------------------------------------------------ #
    # Transitions
    # ------------------------------------------------------------------ #

    def request_shutdown(self, reason: str = "signal") -> bool:
        """
        Begin draining. Returns False if shutdown was already requested.
        """
        if self._phase != DrainPhase.RUNNING:
            logger.info(
                "shutdown_already_in_progress",
                reason=reason,
                phase=self._phase.value,
            )
            return False

        self._phase = DrainPhase.DRAINING
        self.reason = reason
        self.state.begin_draining()
        logger.info(
            "drain_started",
            reason=reason,
            pending_tasks=self.tracker.current(),
            timeout_seconds=self.timeout,
        )
        self._task = asyncio.get_running_loop().create_task(self._drain_and_stop())
        return True

    async def wait_stopped(self) -> DrainOutcome:
        """Block until teardown has finished."""
        await self._stopped.wait()
        return self.outcome

    async def shutdown(self, reason: str = "shutdown") -> DrainOutcome:
        """Request shutdown (if not already requested) and wait for STOPPED."""
        if self._phase == DrainPhase.RUNNING:
            self.request_shutdown(reason)
        return await self.wait_stopped()

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    async def _wait_for_pending(self) -> DrainOutcome:
        started = self._clock()
        while True:
            pending = self.tracker.current()
            elapsed = self._clock() - started
            if pending == 0:
                return DrainOutcome(False, 0, elapsed)
            if elapsed >= self.timeout:
                return DrainOutcome(True, pending, elapsed)
            logger.debug("drain_waiting", pending_tasks=pending, elapsed_seconds=round(elapsed, 1))
            await asyncio.sleep(self.poll_interval)

    async def _drain_and_stop(self) -> None:
        try:
            self.outcome = await self._wait_for_pending()
            if self.outcome.forced:
                logger.warning("drain_forced_with_pending_tasks", **self.outcome.to_dict())
            else:
                logger.info("drain_completed", **self.outcome.to_dict())
        finally:
            await self._stop()

    async def _stop(self) -> None:
        if self._teardown_started:
            return
        self._teardown_started = True

        logger.info("teardown_started")
        try:
            await self._teardown()
        except Exception as e:
            logger.error("teardown_failed", error=str(e), exc_info=True)
        finally:
            self.state.mark_stopped()
            self._phase = DrainPhase.STOPPED
            self._stopped.set()
            logger.info("teardown_completed")


__all__ = ["DrainController", "DrainPhase", "DrainOutcome"]
