"""
Metrics Collection Utilities

Per-phase timing and status for one refinement run.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional
from collections import defaultdict

from .types import PhaseStatus

logger = logging.getLogger(__name__)


class MetricsCollector:
    """
    Collect metrics from the phases of a refinement run.

    Each session owns its own collector; nothing is shared across runs.
    """

    def __init__(self, name: str = "refinement"):
        """
        Args:
            name: Identifier for this collector (e.g., session directory)
        """
        self.name = name
        self.metrics = defaultdict(list)
        self.start_time: Optional[datetime] = None
        self.end_time: Optional[datetime] = None

    def start(self) -> None:
        """Mark start of execution."""
        self.start_time = datetime.now()
        self.metrics = defaultdict(list)

    def stop(self) -> None:
        """Mark end of execution."""
        self.end_time = datetime.now()

    def record(
        self,
        phase: str,
        duration_ms: float,
        status: PhaseStatus,
        details: Optional[Dict] = None,
    ) -> None:
        """
        Record one phase execution.

        Args:
            phase: Phase identifier ("critique", "judge", ...)
            duration_ms: Execution time in milliseconds
            status: Phase outcome
            details: Optional additional details
        """
        self.metrics[phase].append({
            "timestamp": time.time(),
            "duration_ms": duration_ms,
            "status": PhaseStatus(status).value,
            "details": details or {},
        })

    def count(self, phase: str, status: Optional[PhaseStatus] = None) -> int:
        """Number of recorded executions of a phase, optionally by status."""
        executions = self.metrics.get(phase, [])
        if status is None:
            return len(executions)
        return len([e for e in executions if e["status"] == PhaseStatus(status).value])

    def get_summary(self) -> Dict[str, Any]:
        """
        Get summary of all metrics.

        Returns:
            Dict with per-phase statistics plus total duration
        """
        summary: Dict[str, Any] = {}
        for phase, executions in self.metrics.items():
            durations = [e["duration_ms"] for e in executions]
            summary[phase] = {
                "count": len(executions),
                "avg_ms": sum(durations) / len(durations) if durations else 0,
                "min_ms": min(durations) if durations else 0,
                "max_ms": max(durations) if durations else 0,
                "success_rate": self.count(phase, PhaseStatus.SUCCESS) / len(executions) if executions else 0,
            }

        total_duration_ms = 0.0
        if self.start_time and self.end_time:
            total_duration_ms = (self.end_time - self.start_time).total_seconds() * 1000
        summary["total_duration_ms"] = total_duration_ms
        return summary


@dataclass
class PhaseTimer:
    """Context manager for timing one phase and recording it."""
    phase: str
    collector: MetricsCollector
    status: PhaseStatus = PhaseStatus.SUCCESS
    details: Dict[str, Any] = field(default_factory=dict)
    _start: float = field(default=0.0, init=False)
    duration_ms: float = field(default=0.0, init=False)

    def __enter__(self):
        self._start = time.time()
        logger.debug(f"[{self.phase}] Starting")
        return self

    def __exit__(self, exc_type, exc, tb):
        self.duration_ms = (time.time() - self._start) * 1000
        if exc_type is not None:
            self.status = PhaseStatus.FAILED
            self.details.setdefault("error", str(exc))
        self.collector.record(self.phase, self.duration_ms, self.status, self.details)
        logger.debug(f"[{self.phase}] Complete ({self.duration_ms:.1f}ms, {self.status.value})")
