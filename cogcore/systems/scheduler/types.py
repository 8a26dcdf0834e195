"""
Scheduler data types.
"""

from __future__ import annotations

import enum
from typing import Any

from pydantic import Field

from cogcore.primitives.common import CogBaseModel


class TaskStatus(enum.StrEnum):
    PENDING = "pending"  # waiting on dependencies
    ELIGIBLE = "eligible"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class TaskType(enum.StrEnum):
    REASONING = "reasoning"
    PATTERN_MATCHING = "pattern-matching"
    ATTENTION_ALLOCATION = "attention-allocation"
    MEMORY_CONSOLIDATION = "memory-consolidation"
    META_COGNITION = "meta-cognition"


class Task(CogBaseModel):
    """
    A unit of cognitive work.

    Timestamps are readings of the scheduler's clock (seconds), not wall
    time, so tests can drive ageing deterministically.
    """

    id: int
    description: str
    task_type: TaskType = TaskType.REASONING
    urgency: float = Field(default=0.5, ge=0.0, le=1.0)
    # Node whose STI feeds the effective priority
    atom_id: int | None = None
    dependencies: frozenset[int] = Field(default_factory=frozenset)
    status: TaskStatus = TaskStatus.PENDING
    # Insertion order; breaks priority ties FIFO
    sequence: int = 0
    goal_id: int | None = None

    created_at: float = 0.0
    started_at: float | None = None
    finished_at: float | None = None
    attempts: int = 0
    error: str = ""
    result: Any = None

    @property
    def execution_time(self) -> float | None:
        if self.started_at is None or self.finished_at is None:
            return None
        return self.finished_at - self.started_at

    @property
    def is_terminal(self) -> bool:
        return self.status in (TaskStatus.COMPLETED, TaskStatus.FAILED)
