"""
Goal data types.

An ``AutonomousGoal`` is created only by the generator. Its priority is
recomputed by rescoring and its status moves through the store's
lifecycle; everything else is fixed at creation.
"""

from __future__ import annotations

import enum
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime

from pydantic import Field

from cogcore.primitives.common import CogBaseModel, utc_now
from cogcore.systems.atomspace.snapshot import AtomSpaceSnapshot
from cogcore.systems.metacognition.types import IntrospectionResult, PerformanceMetric


class GoalSource(enum.StrEnum):
    KNOWLEDGE_GAP = "knowledge-gap-discovery"
    PERFORMANCE = "performance-optimization"
    CREATIVE = "creative-synthesis"
    CURIOSITY = "curiosity-driven"
    DECOMPOSITION = "problem-decomposition"


class GoalStatus(enum.StrEnum):
    PROPOSED = "proposed"
    ACTIVE = "active"
    COMPLETED = "completed"
    ABANDONED = "abandoned"
    SUPERSEDED = "superseded"


TERMINAL_STATUSES = frozenset(
    {GoalStatus.COMPLETED, GoalStatus.ABANDONED, GoalStatus.SUPERSEDED}
)


class AutonomousGoal(CogBaseModel):
    id: int
    description: str
    source: GoalSource
    priority: float = Field(default=0.5, ge=0.0, le=1.0)
    estimated_difficulty: float = Field(default=0.5, ge=0.0, le=1.0)
    potential_impact: float = Field(default=0.5, ge=0.0, le=1.0)
    required_capabilities: frozenset[str] = Field(default_factory=frozenset)
    parent_goals: frozenset[int] = Field(default_factory=frozenset)
    status: GoalStatus = GoalStatus.PROPOSED
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


@dataclass(frozen=True)
class GenerationContext:
    """Everything one generation cycle reads. Built once, never mutated."""

    snapshot: AtomSpaceSnapshot
    metrics: tuple[PerformanceMetric, ...] = ()
    introspection: tuple[IntrospectionResult, ...] = ()
    domains: dict[str, float] = field(default_factory=dict)
    capabilities: frozenset[str] = frozenset()

    def latest_introspection(self) -> IntrospectionResult | None:
        return latest_introspection(self.introspection)


def latest_introspection(
    history: Sequence[IntrospectionResult],
) -> IntrospectionResult | None:
    """Most recent by timestamp; among equal timestamps the later record."""
    if not history:
        return None
    _, latest = max(enumerate(history), key=lambda p: (p[1].timestamp, p[0]))
    return latest
