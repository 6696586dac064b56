"""DrainController state machine."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from healthgate.core.state import LifecycleState, PendingWorkTracker
from healthgate.services.drain import DrainController, DrainPhase


def _controller(tracker=None, state=None, teardown=None, timeout=5.0):
    return DrainController(
        state or LifecycleState(),
        tracker or PendingWorkTracker(),
        teardown or AsyncMock(),
        timeout=timeout,
        poll_interval=0.01,
    )


@pytest.mark.asyncio
async def test_waits_for_pending_work_before_teardown():
    tracker = PendingWorkTracker()
    for _ in range(3):
        tracker.begin()
    teardown = AsyncMock()
    controller = _controller(tracker=tracker, teardown=teardown)

    assert controller.request_shutdown("SIGTERM") is True
    await asyncio.sleep(0.05)

    assert controller.phase is DrainPhase.DRAINING
    teardown.assert_not_awaited()

    for _ in range(3):
        tracker.end()
    outcome = await asyncio.wait_for(controller.wait_stopped(), timeout=1)

    assert controller.phase is DrainPhase.STOPPED
    assert outcome.forced is False
    assert outcome.pending_tasks == 0
    teardown.assert_awaited_once()


@pytest.mark.asyncio
async def test_timeout_forces_teardown_with_pending_work():
    tracker = PendingWorkTracker()
    tracker.begin()
    tracker.begin()
    teardown = AsyncMock()
    controller = _controller(tracker=tracker, teardown=teardown, timeout=0.05)

    controller.request_shutdown("SIGTERM")
    outcome = await asyncio.wait_for(controller.wait_stopped(), timeout=1)

    assert outcome.forced is True
    assert outcome.pending_tasks == 2
    assert outcome.elapsed_seconds >= 0.05
    teardown.assert_awaited_once()


@pytest.mark.asyncio
async def test_second_request_is_ignored():
    tracker = PendingWorkTracker()
    tracker.begin()
    teardown = AsyncMock()
    controller = _controller(tracker=tracker, teardown=teardown)

    assert controller.request_shutdown("SIGTERM") is True
    assert controller.request_shutdown("SIGINT") is False
    assert controller.reason == "SIGTERM"

    tracker.end()
    await asyncio.wait_for(controller.wait_stopped(), timeout=1)
    assert controller.request_shutdown("SIGTERM") is False
    await asyncio.sleep(0.02)

    teardown.assert_awaited_once()


@pytest.mark.asyncio
async def test_shutdown_clears_ready():
    state = LifecycleState()
    state.mark_ready()
    tracker = PendingWorkTracker()
    tracker.begin()
    controller = _controller(tracker=tracker, state=state)

    controller.request_shutdown()

    assert state.ready is False
    assert state.mark_ready() is False
    assert not controller.accepting_work
    tracker.end()
    await asyncio.wait_for(controller.wait_stopped(), timeout=1)


@pytest.mark.asyncio
async def test_teardown_error_still_reaches_stopped():
    teardown = AsyncMock(side_effect=RuntimeError("close failed"))
    controller = _controller(teardown=teardown)

    outcome = await asyncio.wait_for(controller.shutdown(), timeout=1)

    assert controller.phase is DrainPhase.STOPPED
    assert outcome.forced is False


@pytest.mark.asyncio
async def test_shutdown_after_signal_waits_for_same_drain():
    teardown = AsyncMock()
    controller = _controller(teardown=teardown)

    controller.request_shutdown("SIGTERM")
    await asyncio.wait_for(controller.shutdown("server_stopping"), timeout=1)

    assert controller.reason == "SIGTERM"
    teardown.assert_awaited_once()


def test_poll_interval_must_be_positive():
    with pytest.raises(ValueError):
        DrainController(LifecycleState(), PendingWorkTracker(), AsyncMock(), poll_interval=0)


@pytest.mark.asyncio
async def test_flags_cleared_once_stopped():
    state = LifecycleState()
    state.mark_started()
    state.set_healthy(True)
    state.mark_ready()
    tracker = PendingWorkTracker()
    tracker.begin()
    controller = _controller(tracker=tracker, state=state)

    controller.request_shutdown("SIGTERM")
    await asyncio.sleep(0.03)
    # still draining: started/healthy describe handles that are still open
    assert state.started and state.healthy
    assert state.ready is False

    tracker.end()
    await asyncio.wait_for(controller.wait_stopped(), timeout=1)

    assert state.snapshot() == {
        "ready": False,
        "started": False,
        "healthy": False,
        "draining": True,
    }
