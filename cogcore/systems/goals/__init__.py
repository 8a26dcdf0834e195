"""
CogCore — Goals (autonomous goal generation)

Public interface:
  GoalGenerator    — four discovery strategies + decomposition, rescoring,
                     deterministic ranking
  GoalStore        — bounded Active set and the goal lifecycle
  GoalService      — trigger policy, single-flight cycles, timer loop
  assess_priority  — 0.4·urgency + 0.4·impact + 0.2·(1 − difficulty)
  should_trigger   — whether a cycle runs given efficiency and recent changes
"""

from cogcore.systems.goals.generator import (
    URGENCY,
    GoalGenerator,
    assess_priority,
    rank,
    should_trigger,
)
from cogcore.systems.goals.service import GoalCycleResult, GoalService
from cogcore.systems.goals.store import GoalStore
from cogcore.systems.goals.types import (
    AutonomousGoal,
    GenerationContext,
    GoalSource,
    GoalStatus,
)

__all__ = [
    "URGENCY",
    "AutonomousGoal",
    "GenerationContext",
    "GoalCycleResult",
    "GoalGenerator",
    "GoalService",
    "GoalSource",
    "GoalStatus",
    "GoalStore",
    "assess_priority",
    "rank",
    "should_trigger",
]
