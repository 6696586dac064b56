"""
healthgate/services/dependencies.py
Connections to the four backing services.

Responsibilities:
- Open every dependency handle once, in a fixed order, at startup
- Fail fast on the first handle that cannot be opened (no retries)
- Close every handle once at shutdown, logging (never raising) close errors
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional, Sequence

import psycopg2
from psycopg2.pool import ThreadedConnectionPool
import redis.asyncio as aioredis
from pymongo import AsyncMongoClient
from aiokafka import AIOKafkaProducer
import structlog

from ..core.config import Settings
from ..core.exceptions import BootstrapException

logger = structlog.get_logger(__name__)


# ============================================================================
# Handles
# ============================================================================

@dataclass
class DependencyHandles:
    """Long-lived connections owned by the process, one per service."""
    db: Optional[ThreadedConnectionPool] = None
    redis: Optional[aioredis.Redis] = None
    mongo: Optional[AsyncMongoClient] = None
    kafka: Optional[AIOKafkaProducer] = None
    closed: bool = field(default=False, compare=False)

    def get(self, name: str) -> Any:
        return getattr(self, name)

    def set(self, name: str, handle: Any) -> None:
        setattr(self, name, handle)

    def missing(self) -> List[str]:
        """Names of handles that are not open, in bootstrap order."""
        return [name for name in SERVICE_ORDER if self.get(name) is None]

    def all_present(self) -> bool:
        return not self.missing()


SERVICE_ORDER = tuple(f.name for f in fields(DependencyHandles) if f.name != "closed")


# ============================================================================
# Connectors
# ============================================================================

class ServiceConnector:
    """Opens and closes the handle of one backing service."""

    name: str = "unnamed"

    async def open(self, config: Settings) -> Any:
        raise NotImplementedError

    async def close(self, handle: Any) -> None:
        raise NotImplementedError


class PostgresConnector(ServiceConnector):
    """psycopg2 threaded pool; connections are opened eagerly (minconn)."""

    name = "db"

    async def open(self, config: Settings) -> ThreadedConnectionPool:
        try:
            return await asyncio.to_thread(
                ThreadedConnectionPool,
                config.DB_POOL_MIN_SIZE,
                config.DB_POOL_MAX_SIZE,
                dsn=config.DATABASE_URL,
            )
        except psycopg2.Error as e:
            raise RuntimeError(f"Database connection failed: {e}") from e

    async def close(self, handle: ThreadedConnectionPool) -> None:
        await asyncio.to_thread(handle.closeall)


class RedisConnector(ServiceConnector):
    name = "redis"

    async def open(self, config: Settings) -> aioredis.Redis:
        client = aioredis.from_url(config.REDIS_URL, decode_responses=True)
        # from_url is lazy; force one round trip so a bad URL fails here
        await client.ping()
        return client

    async def close(self, handle: aioredis.Redis) -> None:
        await handle.aclose()


class MongoConnector(ServiceConnector):
    name = "mongo"

    async def open(self, config: Settings) -> AsyncMongoClient:
        client = AsyncMongoClient(config.MONGO_URL, serverSelectionTimeoutMS=5000)
        await client.admin.command("ping")
        return client

    async def close(self, handle: AsyncMongoClient) -> None:
        await handle.close()


class KafkaConnector(ServiceConnector):
    name = "kafka"

    async def open(self, config: Settings) -> AIOKafkaProducer:
        producer = AIOKafkaProducer(
            bootstrap_servers=config.kafka_bootstrap_servers,
            client_id=config.KAFKA_CLIENT_ID,
        )
        await producer.start()
        return producer

    async def close(self, handle: AIOKafkaProducer) -> None:
        await handle.stop()


def default_connectors() -> List[ServiceConnector]:
    """Connectors in bootstrap order: relational, cache, document, broker."""
    return [PostgresConnector(), RedisConnector(), MongoConnector(), KafkaConnector()]


# ============================================================================
# Bootstrap / Teardown
# ============================================================================

async def open_dependencies(
    config: Settings,
    connectors: Optional[Sequence[ServiceConnector]] = None,
) -> DependencyHandles:
    """
    Open every dependency handle in order.

    Raises:
        BootstrapException: on the first connector that fails. Handles
            opened before it are left as they are; the caller is expected
            to terminate the process.
    """
    connectors = connectors if connectors is not None else default_connectors()
    handles = DependencyHandles()

    for connector in connectors:
        logger.info("dependency_connecting", service=connector.name)
        try:
            handle = await connector.open(config)
        except Exception as e:
            logger.error(
                "dependency_connect_failed",
                service=connector.name,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise BootstrapException(connector.name, str(e)) from e

        handles.set(connector.name, handle)
        logger.info("dependency_connected", service=connector.name)

    return handles


async def close_dependencies(
    handles: DependencyHandles,
    connectors: Optional[Sequence[ServiceConnector]] = None,
) -> Dict[str, bool]:
    """
    Close every open handle in bootstrap order. Safe to call twice.

    Returns:
        Mapping of service name -> whether its close succeeded
    """
    connectors = connectors if connectors is not None else default_connectors()
    results: Dict[str, bool] = {}

    if handles.closed:
        logger.debug("dependencies_already_closed")
        return results

    for connector in connectors:
        handle = handles.get(connector.name)
        if handle is None:
            continue

        logger.info("dependency_closing", service=connector.name)
        try:
            await connector.close(handle)
            results[connector.name] = True
            logger.info("dependency_closed", service=connector.name)
        except Exception as e:
            # Best effort: keep closing the rest
            results[connector.name] = False
            logger.error("dependency_close_failed", service=connector.name, error=str(e))
        finally:
            handles.set(connector.name, None)

    handles.closed = True
    return results


__all__ = [
    "DependencyHandles",
    "SERVICE_ORDER",
    "ServiceConnector",
    "PostgresConnector",
    "RedisConnector",
    "MongoConnector",
    "KafkaConnector",
    "default_connectors",
    "open_dependencies",
    "close_dependencies",
]
