"""
healthgate/api/main.py
FastAPI application entry point.

Architecture:
- Thin main.py (just app creation)
- Lifespan handles bootstrap and teardown of the backing services
- Middleware: request log context and drain gate
- Routes: probes, work endpoints, metrics
"""

from typing import Optional, Sequence

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from ..core.config import Settings, settings
from ..core.container import ProbeFactory
from ..core.exceptions import HealthGateException
from ..core.logging import setup_logging, get_logger
from ..services.dependencies import ServiceConnector
from .lifespan.manager import build_lifespan
from .middleware import register_middleware
from .routes import health, metrics, work

logger = get_logger("main")


# ============================================================================
# Create Application
# ============================================================================

def create_app(
    config: Optional[Settings] = None,
    connectors: Optional[Sequence[ServiceConnector]] = None,
    probe_factory: Optional[ProbeFactory] = None,
) -> FastAPI:
    """
    Create FastAPI application.

    Args:
        config: Settings (defaults to the process-wide settings)
        connectors: Service connectors, overridable for tests
        probe_factory: Probe builder, overridable for tests

    Returns:
        Configured FastAPI app
    """
    config = config or settings
    setup_logging(config)
    logger.info(
        "creating_app",
        name=config.APP_NAME,
        version=config.APP_VERSION,
        environment=config.ENVIRONMENT
    )

    app = FastAPI(
        title=config.APP_NAME,
        version=config.APP_VERSION,
        description="Dependency health probes with graceful drain on shutdown",
        lifespan=build_lifespan(config, connectors, probe_factory),
    )

    register_middleware(app)

    @app.exception_handler(HealthGateException)
    async def handle_service_error(request: Request, exc: HealthGateException):
        logger.warning("request_failed", error_code=exc.error_code, error=exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.get("/", tags=["Root"], response_class=PlainTextResponse)
    async def root():
        """Greeting"""
        return "Hello, World!"

    # Register routes
    app.include_router(health.router)
    app.include_router(work.router)
    app.include_router(metrics.router)

    logger.info("app_created_successfully")
    return app


# Create app instance
app = create_app()


# ============================================================================
# Exports
# ============================================================================

__all__ = ["app", "create_app"]
