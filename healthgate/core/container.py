"""
healthgate/core/container.py
Per-process object graph built once by the lifespan and shared by handlers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List

from fastapi import Request

from .config import Settings
from .exceptions import DependencyNotInitializedException
from .state import LifecycleState, PendingWorkTracker
from ..services.dependencies import DependencyHandles
from ..services.drain import DrainController
from ..services.health import HealthAggregator
from ..services.probes import DependencyProbe

ProbeFactory = Callable[[DependencyHandles, Settings], List[DependencyProbe]]


@dataclass
class AppContainer:
    settings: Settings
    state: LifecycleState
    tracker: PendingWorkTracker
    handles: DependencyHandles
    aggregator: HealthAggregator
    drain: DrainController

    def require(self, service: str):
        """Return an open handle or raise ``DependencyNotInitializedException``."""
        handle = self.handles.get(service)
        if handle is None:
            raise DependencyNotInitializedException(service)
        return handle


def get_container(request: Request) -> AppContainer:
    """FastAPI dependency: the container stored on ``app.state`` at startup."""
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise DependencyNotInitializedException("container")
    return container


__all__ = ["AppContainer", "ProbeFactory", "get_container"]
