"""
Dependency probes.

Each probe performs one minimal round trip against a live handle and
reports the outcome as a ``ProbeResult``. Probes never raise: transport
and protocol errors become ``ok=False`` with the error text as detail.
No retries and no timeout beyond the client library's default.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, List, Protocol, runtime_checkable

import structlog

from ..core.config import Settings
from .dependencies import DependencyHandles

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of one probe call. Produced fresh on every call."""
    service: str
    ok: bool
    detail: str


@runtime_checkable
class DependencyProbe(Protocol):
    """Protocol for a single reachability check."""

    @property
    def name(self) -> str:
        """Service name; also the prefix of the ``/health`` payload key."""
        ...

    async def check(self) -> ProbeResult:
        """Probe the dependency. Must not raise."""
        ...


class BaseProbe:
    """Wraps ``_round_trip()`` so that every failure becomes a result."""

    name: str = "unnamed"

    def __init__(self, handle: Any):
        self.handle = handle

    async def check(self) -> ProbeResult:
        if self.handle is None:
            return ProbeResult(self.name, False, "not initialized")
        try:
            detail = await self._round_trip()
        except Exception as e:
            logger.warning("probe_failed", service=self.name, error=str(e))
            return ProbeResult(self.name, False, str(e) or type(e).__name__)
        return ProbeResult(self.name, True, detail)

    async def _round_trip(self) -> str:
        raise NotImplementedError


class PostgresProbe(BaseProbe):
    """``SELECT NOW()`` on a pooled connection."""

    name = "db"

    async def _round_trip(self) -> str:
        now = await asyncio.to_thread(self._select_now)
        return f"DB Connected: {now}"

    def _select_now(self):
        conn = self.handle.getconn()
        try:
            with conn.cursor() as cursor:
                cursor.execute("SELECT NOW()")
                row = cursor.fetchone()
            conn.rollback()
            return row[0]
        finally:
            self.handle.putconn(conn)


class RedisProbe(BaseProbe):
    name = "redis"

    async def _round_trip(self) -> str:
        if not await self.handle.ping():
            raise RuntimeError("PING was not acknowledged")
        return "PONG"


class MongoProbe(BaseProbe):
    name = "mongo"

    async def _round_trip(self) -> str:
        reply = await self.handle.admin.command("ping")
        if reply.get("ok") != 1:
            raise RuntimeError(f"unexpected ping reply: {reply}")
        return "ok"


class KafkaProbe(BaseProbe):
    """
    Sends one marker message to the health topic.

    The marker lands on a real topic; consumers of that topic must
    tolerate it.
    """

    name = "kafka"

    def __init__(self, handle: Any, topic: str):
        super().__init__(handle)
        self.topic = topic

    async def _round_trip(self) -> str:
        await self.handle.send_and_wait(self.topic, b"health-check")
        return "Message sent"


def build_probes(handles: DependencyHandles, config: Settings) -> List[DependencyProbe]:
    """Probes in the fixed evaluation order: relational, cache, document, broker."""
    return [
        PostgresProbe(handles.db),
        RedisProbe(handles.redis),
        MongoProbe(handles.mongo),
        KafkaProbe(handles.kafka, config.KAFKA_HEALTH_TOPIC),
    ]


__all__ = [
    "ProbeResult",
    "DependencyProbe",
    "BaseProbe",
    "PostgresProbe",
    "RedisProbe",
    "MongoProbe",
    "KafkaProbe",
    "build_probes",
]
