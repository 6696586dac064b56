"""Unit tests for the probe views."""

import pytest

from healthgate.core.state import LifecycleState
from healthgate.services.dependencies import DependencyHandles
from healthgate.services.health import HealthAggregator

from .conftest import FakeProbe


def _open_handles():
    return DependencyHandles(db=object(), redis=object(), mongo=object(), kafka=object())


def _aggregator(calls, failing=(), handles=None, state=None, on_result=None):
    probes = [FakeProbe(n, calls, ok=n not in failing) for n in ("db", "redis", "mongo", "kafka")]
    return HealthAggregator(
        probes,
        handles if handles is not None else _open_handles(),
        state or LifecycleState(),
        on_result=on_result,
    )


# ---------------------------------------------------------------------------
# liveness / readiness
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_liveness_short_circuits_on_first_failure(probe_calls):
    state = LifecycleState()
    aggregator = _aggregator(probe_calls, failing={"redis"}, state=state)

    verdict = await aggregator.liveness()

    assert not verdict.ok
    assert probe_calls == ["db", "redis"]
    assert state.healthy is False


@pytest.mark.asyncio
async def test_liveness_pass_sets_healthy(probe_calls):
    state = LifecycleState()
    verdict = await _aggregator(probe_calls, state=state).liveness()

    assert verdict.ok
    assert probe_calls == ["db", "redis", "mongo", "kafka"]
    assert state.healthy is True


@pytest.mark.asyncio
async def test_readiness_short_circuits_and_stays_unready(probe_calls):
    state = LifecycleState()
    verdict = await _aggregator(probe_calls, failing={"redis"}, state=state).readiness()

    assert not verdict.ok
    assert probe_calls == ["db", "redis"]
    assert state.ready is False


@pytest.mark.asyncio
async def test_readiness_pass_marks_ready(probe_calls):
    state = LifecycleState()
    verdict = await _aggregator(probe_calls, state=state).readiness()

    assert verdict.ok
    assert state.ready is True


@pytest.mark.asyncio
async def test_readiness_while_draining_skips_probes(probe_calls):
    state = LifecycleState()
    state.begin_draining()

    verdict = await _aggregator(probe_calls, state=state).readiness()

    assert not verdict.ok
    assert verdict.reason == "shutting down"
    assert probe_calls == []
    assert state.ready is False


# ---------------------------------------------------------------------------
# health
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_health_probes_everything_after_failure(probe_calls):
    state = LifecycleState()
    report = await _aggregator(probe_calls, failing={"redis"}, state=state).health()

    assert probe_calls == ["db", "redis", "mongo", "kafka"]
    assert not report.ok
    payload = report.payload()
    assert payload["status"] == "unhealthy"
    assert payload["dbStatus"] == "ok"
    assert payload["redisStatus"] == "Error: redis down"
    assert payload["mongoStatus"] == "ok"
    assert payload["kafkaStatus"] == "ok"


@pytest.mark.asyncio
async def test_health_is_read_only(probe_calls):
    state = LifecycleState()
    await _aggregator(probe_calls, state=state).health()
    assert state.snapshot() == {
        "ready": False,
        "started": False,
        "healthy": False,
        "draining": False,
    }


@pytest.mark.asyncio
async def test_result_hook_sees_every_probe(probe_calls):
    seen = []
    await _aggregator(probe_calls, on_result=seen.append).health()
    assert [r.service for r in seen] == ["db", "redis", "mongo", "kafka"]


# ---------------------------------------------------------------------------
# startup
# ---------------------------------------------------------------------------


def test_startup_checks_handles_without_probing(probe_calls):
    state = LifecycleState()
    verdict = _aggregator(probe_calls, state=state).startup()

    assert verdict.ok
    assert state.started is True
    assert probe_calls == []


def test_startup_fails_when_a_handle_is_missing(probe_calls):
    state = LifecycleState()
    handles = DependencyHandles(db=object(), redis=object(), mongo=None, kafka=object())

    verdict = _aggregator(probe_calls, handles=handles, state=state).startup()

    assert not verdict.ok
    assert "mongo" in verdict.reason
    assert state.started is False
    assert probe_calls == []
