"""
healthgate/api/server.py
uvicorn server that routes termination signals into the drain controller.

uvicorn's own handler stops the server right away. Here SIGTERM and SIGINT
both go through one routine: start the drain, and only tell uvicorn to
exit once teardown has finished.
"""

import asyncio
import signal
from typing import Optional

from fastapi import FastAPI
import structlog
import uvicorn

from ..core.config import Settings

logger = structlog.get_logger("server")


class GracefulServer(uvicorn.Server):
    """uvicorn.Server whose exit signal handling drains first."""

    def __init__(self, config: uvicorn.Config, app: FastAPI) -> None:
        super().__init__(config)
        self.fastapi_app = app
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._exit_waiter: Optional[asyncio.Future] = None

    async def serve(self, sockets=None) -> None:
        self._loop = asyncio.get_running_loop()
        await super().serve(sockets=sockets)

    def handle_exit(self, sig: int, frame) -> None:
        """Signal handler for SIGTERM and SIGINT."""
        container = getattr(self.fastapi_app.state, "container", None)
        if container is None or self._loop is None:
            # bootstrap has not finished; nothing to drain
            self.should_exit = True
            return
        self._loop.call_soon_threadsafe(self._begin_drain, signal.Signals(sig).name)

    def _begin_drain(self, reason: str) -> None:
        container = self.fastapi_app.state.container
        logger.info("termination_requested", signal=reason)
        container.drain.request_shutdown(reason)
        if self._exit_waiter is None:
            self._exit_waiter = asyncio.ensure_future(self._exit_when_stopped(container.drain))

    async def _exit_when_stopped(self, drain) -> None:
        await drain.wait_stopped()
        self.should_exit = True


def build_server(app: FastAPI, config: Settings) -> GracefulServer:
    """Server bound to HOST:PORT, logging through our structlog setup."""
    uv_config = uvicorn.Config(
        app,
        host=config.HOST,
        port=config.PORT,
        lifespan="on",
        log_config=None,
        log_level=config.LOG_LEVEL.lower(),
        timeout_graceful_shutdown=config.SHUTDOWN_GRACE_SECONDS,
    )
    return GracefulServer(uv_config, app)


__all__ = ["GracefulServer", "build_server"]
