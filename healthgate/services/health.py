"""
healthgate/services/health.py
Aggregates dependency probes into the four probe views.

Views:
- health:    every probe runs, per-service detail reported, read-only
- liveness:  probes run in order, first failure short-circuits; sets ``healthy``
- readiness: same probe sequence as liveness; sets ``ready`` on success,
             fails without probing while draining
- startup:   in-memory check that every handle is open; sets ``started``.
             Never touches the network.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

import structlog

from ..core.state import LifecycleState
from .dependencies import DependencyHandles
from .probes import DependencyProbe, ProbeResult

logger = structlog.get_logger(__name__)

ResultHook = Callable[[ProbeResult], None]


@dataclass
class HealthReport:
    """Result of the ``health`` view: one entry per probe, in order."""
    results: List[ProbeResult]

    @property
    def ok(self) -> bool:
        return all(r.ok for r in self.results)

    def payload(self) -> Dict[str, str]:
        """``{"dbStatus": ..., "redisStatus": ..., ...}`` plus overall status."""
        body = {"status": "healthy" if self.ok else "unhealthy"}
        for r in self.results:
            body[f"{r.service}Status"] = r.detail if r.ok else f"Error: {r.detail}"
        return body


@dataclass
class Verdict:
    """Pass/fail outcome of a liveness, readiness or startup view."""
    ok: bool
    reason: str
    results: List[ProbeResult] = field(default_factory=list)


class HealthAggregator:
    """Runs probes strictly one after another in the order given."""

    def __init__(
        self,
        probes: Sequence[DependencyProbe],
        handles: DependencyHandles,
        state: LifecycleState,
        on_result: Optional[ResultHook] = None,
    ):
        self.probes = list(probes)
        self.handles = handles
        self.state = state
        self._on_result = on_result

    async def _probe(self, probe: DependencyProbe) -> ProbeResult:
        result = await probe.check()
        if self._on_result is not None:
            self._on_result(result)
        return result

    async def _run_until_failure(self) -> Verdict:
        results: List[ProbeResult] = []
        for probe in self.probes:
            result = await self._probe(probe)
            results.append(result)
            if not result.ok:
                return Verdict(False, f"{result.service} unreachable: {result.detail}", results)
        return Verdict(True, "all dependencies reachable", results)

    # ------------------------------------------------------------------ #
    # Views
    # ------------------------------------------------------------------ #

    async def health(self) -> HealthReport:
        """Probe every dependency, even after a failure. Mutates nothing."""
        results = [await self._probe(probe) for probe in self.probes]
        report = HealthReport(results)
        logger.debug("health_evaluated", ok=report.ok)
        return report

    async def liveness(self) -> Verdict:
        verdict = await self._run_until_failure()
        self.state.set_healthy(verdict.ok)
        if not verdict.ok:
            logger.warning("liveness_failed", reason=verdict.reason)
        return verdict

    async def readiness(self) -> Verdict:
        if self.state.draining:
            return Verdict(False, "shutting down")

        verdict = await self._run_until_failure()
        if not verdict.ok:
            logger.warning("readiness_failed", reason=verdict.reason)
            return verdict

        # draining may have begun while the probes were running
        if not self.state.mark_ready():
            return Verdict(False, "shutting down", verdict.results)
        return verdict

    def startup(self) -> Verdict:
        missing = self.handles.missing()
        if missing:
            return Verdict(False, f"not initialized: {', '.join(missing)}")
        self.state.mark_started()
        return Verdict(True, "all dependencies initialized")


__all__ = ["HealthAggregator", "HealthReport", "Verdict"]
