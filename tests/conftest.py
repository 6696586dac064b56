"""Shared fakes: connectors and probes that never touch the network."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from healthgate.core.config import Settings
from healthgate.services.dependencies import ServiceConnector
from healthgate.services.probes import ProbeResult


class FakeConnector(ServiceConnector):
    """Records open/close calls into a shared log."""

    def __init__(self, name, log, handle=None, fail_open=False, fail_close=False):
        self.name = name
        self.log = log
        self.handle = handle if handle is not None else MagicMock(name=f"{name}_handle")
        self.fail_open = fail_open
        self.fail_close = fail_close

    async def open(self, config):
        self.log.append(("open", self.name))
        if self.fail_open:
            raise ConnectionRefusedError(f"{self.name} refused")
        return self.handle

    async def close(self, handle):
        self.log.append(("close", self.name))
        if self.fail_close:
            raise RuntimeError(f"{self.name} close failed")


class FakeProbe:
    """Probe with a canned outcome; appends its name to ``calls``."""

    def __init__(self, name, calls, ok=True, detail=None):
        self._name = name
        self.calls = calls
        self.ok = ok
        self.detail = detail or ("ok" if ok else f"{name} down")

    @property
    def name(self):
        return self._name

    async def check(self):
        self.calls.append(self._name)
        return ProbeResult(self._name, self.ok, self.detail)


def make_connectors(log, failing=(), mongo_handle=None):
    connectors = []
    for name in ("db", "redis", "mongo", "kafka"):
        handle = mongo_handle if name == "mongo" else None
        connectors.append(FakeConnector(name, log, handle=handle, fail_open=name in failing))
    return connectors


def make_probe_factory(calls, failing=()):
    def factory(handles, config):
        return [
            FakeProbe(name, calls, ok=name not in failing)
            for name in ("db", "redis", "mongo", "kafka")
        ]
    return factory


def make_mongo_handle(inserted_id="652f1c0ab1e2c3d4e5f60718", error=None):
    """MagicMock shaped like ``client[db][collection].insert_one``."""
    client = MagicMock(name="mongo_client")
    collection = client.__getitem__.return_value.__getitem__.return_value
    if error is not None:
        collection.insert_one = AsyncMock(side_effect=error)
    else:
        collection.insert_one = AsyncMock(return_value=SimpleNamespace(inserted_id=inserted_id))
    return client


@pytest.fixture
def config():
    return Settings(
        LONG_PROCESS_SECONDS=0,
        DRAIN_TIMEOUT_SECONDS=5,
        DRAIN_POLL_INTERVAL_SECONDS=0.01,
        LOG_FORMAT="console",
    )


@pytest.fixture
def connector_log():
    return []


@pytest.fixture
def probe_calls():
    return []
