"""HTTP middleware: request log context and the drain gate."""
import uuid

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import structlog

from ..core.exceptions import ServiceDrainingException
from ..core.logging import LogContext

logger = structlog.get_logger(__name__)

# Reachable while draining so orchestrators can watch the shutdown
PROBE_PATHS = frozenset({"/health", "/liveness", "/readiness", "/startup", "/metrics"})


def register_middleware(app: FastAPI) -> None:
    """Attach middleware; the drain gate runs inside the log context."""

    @app.middleware("http")
    async def drain_gate(request: Request, call_next):
        container = getattr(request.app.state, "container", None)
        if (
            container is not None
            and not container.drain.accepting_work
            and request.url.path not in PROBE_PATHS
        ):
            exc = ServiceDrainingException(pending_tasks=container.tracker.current())
            logger.info("request_rejected_draining", path=request.url.path)
            return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
        return await call_next(request)

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        with LogContext(request_id=request_id, method=request.method, path=request.url.path):
            response = await call_next(request)
            response.headers["x-request-id"] = request_id
            logger.debug("request_completed", status_code=response.status_code)
            return response


__all__ = ["register_middleware", "PROBE_PATHS"]
