"""Process-wide lifecycle flags and the in-flight work counter."""
from contextlib import contextmanager
from threading import RLock
from typing import Dict, Iterator
import structlog

logger = structlog.get_logger(__name__)


class LifecycleState:
    """
    Thread-safe owner of the ``ready`` / ``started`` / ``healthy`` flags.

    All flags start false. ``ready`` cannot be set while the process is
    draining; once draining begins it stays false until exit.
    """

    def __init__(self):
        self._lock = RLock()
        self._ready = False
        self._started = False
        self._healthy = False
        self._draining = False

    @property
    def ready(self) -> bool:
        with self._lock:
            return self._ready

    @property
    def started(self) -> bool:
        with self._lock:
            return self._started

    @property
    def healthy(self) -> bool:
        with self._lock:
            return self._healthy

    @property
    def draining(self) -> bool:
        with self._lock:
            return self._draining

    def mark_ready(self) -> bool:
        """
        Set ``ready`` unless draining.

        Returns:
            True if the flag is now set
        """
        with self._lock:
            if self._draining:
                return False
            if not self._ready:
                logger.info("lifecycle_ready")
            self._ready = True
            return True

    def mark_started(self) -> None:
        with self._lock:
            if not self._started:
                logger.info("lifecycle_started")
            self._started = True

    def set_healthy(self, healthy: bool) -> None:
        with self._lock:
            if self._healthy != healthy:
                logger.info("lifecycle_healthy_changed", healthy=healthy)
            self._healthy = healthy

    def begin_draining(self) -> bool:
        """
        Enter draining: clear ``ready`` and refuse it from now on.

        Returns:
            False if draining had already begun
        """
        with self._lock:
            if self._draining:
                return False
            self._draining = True
            self._ready = False
            return True

    def mark_stopped(self) -> None:
        """Handles are closed: clear every flag. Draining stays set."""
        with self._lock:
            self._draining = True
            self._ready = False
            self._started = False
            self._healthy = False

    def snapshot(self) -> Dict[str, bool]:
        with self._lock:
            return {
                "ready": self._ready,
                "started": self._started,
                "healthy": self._healthy,
                "draining": self._draining,
            }


class PendingWorkTracker:
    """
    Counter of long-running handlers currently in flight.

    Every mutation goes through one lock, so concurrent requests never
    lose an update. Use ``track()`` instead of calling ``begin()``/``end()``
    by hand; it decrements on every exit path.
    """

    def __init__(self):
        self._lock = RLock()
        self._count = 0

    def begin(self) -> int:
        with self._lock:
            self._count += 1
            return self._count

    def end(self) -> int:
        with self._lock:
            if self._count == 0:
                # unpaired end(); clamp instead of going negative
                logger.warning("pending_work_underflow")
                return 0
            self._count -= 1
            return self._count

    def current(self) -> int:
        with self._lock:
            return self._count

    @contextmanager
    def track(self) -> Iterator[int]:
        """Count the enclosed block as one pending task."""
        pending = self.begin()
        try:
            yield pending
        finally:
            self.end()


__all__ = ["LifecycleState", "PendingWorkTracker"]
