"""
CogCore — Telemetry contract and introspection producers

Goal generation pulls three things per cycle from whatever observes the
running system: performance metrics, introspection history and a
knowledge-domain mastery map. ``TelemetrySource`` names that contract;
``InMemoryTelemetry`` is the bounded in-process implementation the engine
uses.

The ``introspect_*`` functions turn live system statistics into
``IntrospectionResult`` records.
"""

from __future__ import annotations

import threading
from collections import deque
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from cogcore.systems.metacognition.types import (
    CognitiveProcess,
    IntrospectionResult,
    PerformanceMetric,
)

if TYPE_CHECKING:
    from cogcore.systems.atomspace.store import AtomSpace
    from cogcore.systems.attention.allocator import AttentionAllocator
    from cogcore.systems.scheduler.scheduler import TaskScheduler

_DEFAULT_HISTORY = 100


@runtime_checkable
class TelemetrySource(Protocol):
    def performance_metrics(self) -> list[PerformanceMetric]: ...

    def introspection_history(self) -> list[IntrospectionResult]: ...

    def domain_mastery(self) -> dict[str, float]: ...


class InMemoryTelemetry:
    """Bounded, thread-safe buffers satisfying ``TelemetrySource``."""

    def __init__(
        self,
        domains: dict[str, float] | None = None,
        history_size: int = _DEFAULT_HISTORY,
    ) -> None:
        self._lock = threading.Lock()
        self._metrics: deque[PerformanceMetric] = deque(maxlen=history_size)
        self._introspection: deque[IntrospectionResult] = deque(maxlen=history_size)
        self._domains: dict[str, float] = dict(domains or {})

    def record_metric(self, metric: PerformanceMetric) -> None:
        with self._lock:
            self._metrics.append(metric)

    def record_introspection(self, result: IntrospectionResult) -> None:
        with self._lock:
            self._introspection.append(result)

    def set_mastery(self, domain: str, mastery: float) -> None:
        if not 0.0 <= mastery <= 1.0:
            raise ValueError(f"mastery must be in [0, 1], got {mastery!r}")
        with self._lock:
            self._domains[domain] = mastery

    def performance_metrics(self) -> list[PerformanceMetric]:
        """Latest metric per process, in first-seen process order."""
        with self._lock:
            latest: dict[CognitiveProcess, PerformanceMetric] = {}
            for metric in self._metrics:
                latest[metric.process] = metric
            return list(latest.values())

    def introspection_history(self) -> list[IntrospectionResult]:
        with self._lock:
            return list(self._introspection)

    def domain_mastery(self) -> dict[str, float]:
        with self._lock:
            return dict(self._domains)


# ─── Introspection producers ──────────────────────────────────────


def introspect_attention(allocator: AttentionAllocator) -> IntrospectionResult:
    """Efficiency = share of Nodes currently in the attentional focus."""
    stats = allocator.statistics()
    nodes = int(stats["nodes"])
    focused = int(stats["focus_size"])
    efficiency = min(1.0, focused / nodes) if nodes else 0.0

    bottlenecks: list[str] = []
    suggestions: list[str] = []
    if stats["bank_available"] < 100.0:
        bottlenecks.append("Low STI funds")
        suggestions.append("Reduce attention decay")
    if focused < 5:
        bottlenecks.append("Insufficient focus")
    if efficiency < 0.3:
        suggestions.append("Increase attention spread")

    return IntrospectionResult(
        process=CognitiveProcess.ATTENTION_ALLOCATION,
        efficiency_rating=efficiency,
        bottlenecks=tuple(bottlenecks),
        suggestions=tuple(suggestions),
    )


def introspect_memory(space: AtomSpace) -> IntrospectionResult:
    """Efficiency falls off once the store holds more than a thousand atoms."""
    nodes = space.node_count
    links = space.link_count
    total = nodes + links
    efficiency = min(1.0, 1000.0 / total) if total else 1.0

    bottlenecks: list[str] = []
    suggestions: list[str] = []
    if total > 5000:
        bottlenecks.append("Memory overload")
    if links > nodes * 3:
        bottlenecks.append("Too many links")
    if total > 3000:
        suggestions.append("Garbage collect old atoms")
    if efficiency < 0.7:
        suggestions.append("Optimize memory structure")

    return IntrospectionResult(
        process=CognitiveProcess.MEMORY_ACCESS,
        efficiency_rating=efficiency,
        bottlenecks=tuple(bottlenecks),
        suggestions=tuple(suggestions),
    )


def introspect_scheduler(scheduler: TaskScheduler) -> IntrospectionResult:
    """Efficiency = completed tasks over all tasks (1.0 when idle)."""
    stats = scheduler.statistics()
    pending = stats["pending"] + stats["eligible"]
    running = stats["running"]
    completed = stats["completed"]
    failed = stats["failed"]
    total = pending + running + completed + failed
    efficiency = completed / total if total else 1.0

    bottlenecks: list[str] = []
    suggestions: list[str] = []
    if pending > running * 5:
        bottlenecks.append("Task queue overflow")
    if failed > completed / 4:
        bottlenecks.append("High failure rate")
    if pending > 50:
        suggestions.append("Increase concurrent tasks")
    if failed:
        suggestions.append("Improve error handling")

    return IntrospectionResult(
        process=CognitiveProcess.GOAL_PURSUIT,
        efficiency_rating=efficiency,
        bottlenecks=tuple(bottlenecks),
        suggestions=tuple(suggestions),
    )
