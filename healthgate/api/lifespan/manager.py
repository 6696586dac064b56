"""
healthgate/api/lifespan/manager.py
Lifespan manager for FastAPI.

Responsibilities:
1. Open the relational, cache, document and broker connections on startup
   (fail fast: any failure aborts startup, nothing is retried)
2. Build the lifecycle state, pending-work tracker, health aggregator and
   drain controller and store them on ``app.state.container``
3. On shutdown, run the drain (if a signal has not already) and close the
   connections exactly once
"""

from contextlib import asynccontextmanager
from typing import Optional, Sequence
import structlog

from ...core.config import Settings
from ...core.container import AppContainer, ProbeFactory
from ...core.exceptions import BootstrapException
from ...core.state import LifecycleState, PendingWorkTracker
from ...services.dependencies import ServiceConnector, close_dependencies, open_dependencies
from ...services.drain import DrainController
from ...services.health import HealthAggregator
from ...services.probes import build_probes
from ..metrics.registry import track_probe

logger = structlog.get_logger("lifespan")


def build_lifespan(
    config: Settings,
    connectors: Optional[Sequence[ServiceConnector]] = None,
    probe_factory: Optional[ProbeFactory] = None,
):
    """
    Create the lifespan context manager for one application instance.

    Args:
        config: Settings to connect with
        connectors: Override the service connectors (tests)
        probe_factory: Override how probes are built from the handles (tests)
    """
    probe_factory = probe_factory or build_probes

    @asynccontextmanager
    async def lifespan(app):
        # ====================================================================
        # STARTUP
        # ====================================================================
        logger.info(
            "application_starting",
            app_name=config.APP_NAME,
            version=config.APP_VERSION,
            environment=config.ENVIRONMENT
        )
        logger.info("effective_config", **config.model_dump_safe())

        try:
            handles = await open_dependencies(config, connectors)
        except BootstrapException as e:
            logger.error("bootstrap_failed", **e.to_dict())
            raise  # Fail fast; the process exits without serving

        state = LifecycleState()
        tracker = PendingWorkTracker()
        aggregator = HealthAggregator(
            probe_factory(handles, config), handles, state, on_result=track_probe
        )

        async def teardown():
            await close_dependencies(handles, connectors)

        drain = DrainController(
            state,
            tracker,
            teardown,
            timeout=config.DRAIN_TIMEOUT_SECONDS,
            poll_interval=config.DRAIN_POLL_INTERVAL_SECONDS,
        )

        app.state.container = AppContainer(
            settings=config,
            state=state,
            tracker=tracker,
            handles=handles,
            aggregator=aggregator,
            drain=drain,
        )

        # every handle is open at this point
        aggregator.startup()
        logger.info("startup_completed_successfully")

        # ====================================================================
        # APP RUNNING
        # ====================================================================

        yield

        # ====================================================================
        # SHUTDOWN
        # ====================================================================
        logger.info("application_shutting_down", phase=drain.phase.value)
        outcome = await drain.shutdown(reason="server_stopping")
        logger.info("shutdown_completed", **(outcome.to_dict() if outcome else {}))

    return lifespan


__all__ = ["build_lifespan"]
