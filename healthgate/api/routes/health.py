"""Probe endpoints for orchestrators and load balancers."""
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse, PlainTextResponse
import structlog

from ...core.container import AppContainer, get_container
from ...schemas.health import HealthPayload

router = APIRouter(tags=["health"])
logger = structlog.get_logger(__name__)


@router.get(
    "/health",
    summary="Per-service dependency status",
    responses={200: {"model": HealthPayload}, 500: {"model": HealthPayload}},
)
async def health_check(container: AppContainer = Depends(get_container)):
    """
    Probe every backing service and report each one.

    Status Codes:
    - 200: All dependencies reachable
    - 500: At least one dependency failed (payload still lists every service)
    """
    try:
        report = await container.aggregator.health()
    except Exception as e:
        logger.error("health_check_error", error=str(e), exc_info=True)
        return PlainTextResponse("Health check failed", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

    status_code = status.HTTP_200_OK if report.ok else status.HTTP_500_INTERNAL_SERVER_ERROR
    return JSONResponse(status_code=status_code, content=report.payload())


@router.get("/liveness", summary="Liveness probe", response_class=PlainTextResponse)
async def liveness(container: AppContainer = Depends(get_container)):
    """
    Returns 200 if every dependency answers, 500 on the first one that does not.
    """
    verdict = await container.aggregator.liveness()
    if verdict.ok:
        return PlainTextResponse("Alive")
    return PlainTextResponse("Liveness check failed", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


@router.get("/readiness", summary="Readiness probe", response_class=PlainTextResponse)
async def readiness(container: AppContainer = Depends(get_container)):
    """
    Returns:
    - 200: Dependencies reachable; instance marked ready for traffic
    - 500: A dependency failed, or the instance is shutting down
    """
    verdict = await container.aggregator.readiness()
    if verdict.ok:
        return PlainTextResponse("Ready")
    return PlainTextResponse(f"Not ready: {verdict.reason}", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


@router.get("/startup", summary="Startup probe", response_class=PlainTextResponse)
async def startup(container: AppContainer = Depends(get_container)):
    """
    In-memory check that bootstrap opened every handle. No network calls.
    """
    verdict = container.aggregator.startup()
    if verdict.ok:
        return PlainTextResponse("Started")
    return PlainTextResponse(f"Not started: {verdict.reason}", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
