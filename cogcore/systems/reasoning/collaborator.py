"""
CogCore — Reasoning collaborator contract

The core does no inference itself. A reasoning engine plugs in through
three calls: atoms are submitted to it, it can be asked which atoms it
holds, and it is told about performance metric updates. ``StubReasoner``
satisfies the contract without reasoning, which is all the core and its
tests need.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Protocol, runtime_checkable

import structlog

from cogcore.systems.atomspace.store import AtomSpace
from cogcore.systems.atomspace.types import Atom, AtomKind, LinkType, NodeType
from cogcore.systems.metacognition.telemetry import InMemoryTelemetry
from cogcore.systems.metacognition.types import PerformanceMetric

logger = structlog.get_logger()


@runtime_checkable
class ReasoningCollaborator(Protocol):
    def submit_atom(self, atom_id: int, kind: AtomKind = AtomKind.NODE) -> None: ...

    def query_atoms(
        self,
        atom_type: NodeType | LinkType | None = None,
        name: str | Callable[[str], bool] | None = None,
    ) -> list[Atom]: ...

    def on_metric_update(self, metric: PerformanceMetric) -> None: ...


class StubReasoner:
    """
    Remembers which atoms were submitted and answers queries over them
    from the live store. Metric updates are forwarded to a telemetry
    buffer when one is given.
    """

    def __init__(self, space: AtomSpace, telemetry: InMemoryTelemetry | None = None) -> None:
        self._space = space
        self._telemetry = telemetry
        self._submitted: dict[tuple[AtomKind, int], None] = {}
        self._metric_updates = 0
        self._lock = threading.Lock()
        self._logger = logger.bind(system="reasoning.stub")

    def submit_atom(self, atom_id: int, kind: AtomKind = AtomKind.NODE) -> None:
        if not self._space.contains(kind, atom_id):
            self._logger.debug("submit_ignored_unknown_atom", atom_id=atom_id, kind=kind.value)
            return
        with self._lock:
            self._submitted[(kind, atom_id)] = None

    def query_atoms(
        self,
        atom_type: NodeType | LinkType | None = None,
        name: str | Callable[[str], bool] | None = None,
    ) -> list[Atom]:
        """Submitted atoms still in the store that match, in store order."""
        with self._lock:
            submitted = set(self._submitted)
        return [
            atom
            for atom in self._space.pattern_match(atom_type=atom_type, name=name)
            if (atom.kind, atom.id) in submitted
        ]

    def on_metric_update(self, metric: PerformanceMetric) -> None:
        with self._lock:
            self._metric_updates += 1
        if self._telemetry is not None:
            self._telemetry.record_metric(metric)

    @property
    def stats(self) -> dict[str, int]:
        return {"submitted": len(self._submitted), "metric_updates": self._metric_updates}
