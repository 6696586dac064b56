"""
healthgate/api/routes/work.py
Endpoints that do real (or simulated) work and therefore count as pending
tasks during a drain.
"""

import asyncio
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
import structlog

from ...core.container import AppContainer, get_container
from ...schemas.health import ErrorResponse, InsertRequest, InsertResponse, MessageResponse

router = APIRouter(tags=["work"])
logger = structlog.get_logger(__name__)


@router.get(
    "/long-process",
    response_model=MessageResponse,
    responses={500: {"model": ErrorResponse}},
    summary="Simulated slow request",
)
async def long_process(container: AppContainer = Depends(get_container)):
    """
    Sleeps ``LONG_PROCESS_SECONDS`` without blocking the event loop.
    Counted as pending work for the whole duration.
    """
    try:
        with container.tracker.track() as pending:
            logger.info("long_process_started", pending_tasks=pending)
            await asyncio.sleep(container.settings.LONG_PROCESS_SECONDS)
        logger.info("long_process_completed")
        return MessageResponse(message="Long process completed")
    except Exception as e:
        logger.error("long_process_failed", error=str(e))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Long process failed"},
        )


@router.post(
    "/insert-mongo",
    response_model=InsertResponse,
    status_code=status.HTTP_201_CREATED,
    responses={500: {"model": ErrorResponse}},
    summary="Insert one document into the document store",
)
async def insert_mongo(
    body: Optional[InsertRequest] = None,
    container: AppContainer = Depends(get_container),
):
    client = container.require("mongo")
    config = container.settings

    document = {
        "name": (body.name if body and body.name else "sample"),
        "value": (body.value if body and body.value else "Hello from healthgate"),
        "createdAt": datetime.now(timezone.utc),
    }

    try:
        with container.tracker.track():
            collection = client[config.MONGO_DB_NAME][config.MONGO_COLLECTION]
            result = await collection.insert_one(document)
    except Exception as e:
        logger.error("insert_mongo_failed", error=str(e))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to insert document"},
        )

    inserted_id = str(result.inserted_id)
    logger.info("document_inserted", id=inserted_id)
    return InsertResponse(message=f"Document inserted with id {inserted_id}", id=inserted_id)
