"""
healthgate/api/metrics/registry.py
Central Prometheus metrics registry for the health gate service.
"""

from prometheus_client import (
    CollectorRegistry, Counter, Gauge, generate_latest
)
import psutil

from ...services.drain import DrainPhase

# Global registry instance
REGISTRY = CollectorRegistry(auto_describe=True)

# =============================
# Metric definitions
# =============================
PROBE_RESULTS = Counter(
    "healthgate_probe_results_total",
    "Dependency probe outcomes",
    ["service", "outcome"],
    registry=REGISTRY,
)

PENDING_TASKS = Gauge(
    "healthgate_pending_tasks",
    "Long-running handlers currently in flight",
    registry=REGISTRY,
)

LIFECYCLE_FLAG = Gauge(
    "healthgate_lifecycle_flag",
    "1 if the lifecycle flag is set, else 0",
    ["flag"],
    registry=REGISTRY,
)

DRAIN_PHASE = Gauge(
    "healthgate_drain_phase",
    "1 for the current drain phase, 0 for the others",
    ["phase"],
    registry=REGISTRY,
)

DRAIN_FORCED = Gauge(
    "healthgate_drain_forced",
    "1 if the last drain hit its timeout with work still pending",
    registry=REGISTRY,
)

CPU_USAGE = Gauge(
    "healthgate_process_cpu_percent",
    "CPU utilization of this process",
    registry=REGISTRY,
)

MEMORY_RSS = Gauge(
    "healthgate_process_memory_rss_bytes",
    "Resident memory of this process",
    registry=REGISTRY,
)

_process = psutil.Process()

# =============================
# Updater helpers
# =============================

def track_probe(result) -> None:
    """Record one probe outcome (hooked into the health aggregator)."""
    PROBE_RESULTS.labels(service=result.service, outcome="ok" if result.ok else "failed").inc()


def update_process_metrics():
    """Refresh process resource gauges."""
    CPU_USAGE.set(_process.cpu_percent(interval=None))
    MEMORY_RSS.set(_process.memory_info().rss)


def update_lifecycle_metrics(container) -> None:
    """Copy lifecycle state and drain progress into the gauges."""
    for flag, value in container.state.snapshot().items():
        LIFECYCLE_FLAG.labels(flag=flag).set(1 if value else 0)
    PENDING_TASKS.set(container.tracker.current())
    for phase in DrainPhase:
        DRAIN_PHASE.labels(phase=phase.value).set(1 if container.drain.phase == phase else 0)
    outcome = container.drain.outcome
    DRAIN_FORCED.set(1 if outcome is not None and outcome.forced else 0)


def render_prometheus_metrics(container=None):
    """Return text for Prometheus scrape endpoint."""
    update_process_metrics()
    if container is not None:
        update_lifecycle_metrics(container)
    return generate_latest(REGISTRY)
