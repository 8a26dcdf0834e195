"""
CogCore — Goal Generator

Turns a read-only view of the knowledge store plus telemetry into a ranked
list of self-directed goals.

Pipeline per cycle:
    knowledge gaps → performance → creative synthesis → curiosity
    → number in emission order → drop duplicate descriptions
    → rescore → sort (priority desc, id asc)

Rescoring replaces every provisional priority with
    priority = 0.4 × urgency(source)
             + 0.4 × potential_impact
             + 0.2 × (1 − estimated_difficulty)

The generator never mutates the store or the goal set. Sampling uses the
injected ``random.Random``, so a fixed seed reproduces a cycle exactly.
"""

from __future__ import annotations

import random
from collections.abc import Iterable, Sequence

import structlog

from cogcore.config import GoalsConfig
from cogcore.primitives.common import clamp
from cogcore.systems.goals.strategies import (
    GoalCandidate,
    discover_knowledge_gaps,
    discover_performance_goals,
    generate_curiosity_goals,
    synthesize_creative_goals,
)
from cogcore.systems.goals.types import AutonomousGoal, GenerationContext, GoalSource

logger = structlog.get_logger()

URGENCY: dict[GoalSource, float] = {
    GoalSource.PERFORMANCE: 0.9,
    GoalSource.DECOMPOSITION: 0.8,
    GoalSource.KNOWLEDGE_GAP: 0.7,
    GoalSource.CREATIVE: 0.4,
    GoalSource.CURIOSITY: 0.3,
}

_URGENCY_WEIGHT = 0.4
_IMPACT_WEIGHT = 0.4
_FEASIBILITY_WEIGHT = 0.2

# Sub-goals are easier than the goal they split
_DECOMPOSITION_DIFFICULTY_FACTOR = 0.7


def assess_priority(goal: AutonomousGoal) -> float:
    return (
        _URGENCY_WEIGHT * URGENCY[goal.source]
        + _IMPACT_WEIGHT * goal.potential_impact
        + _FEASIBILITY_WEIGHT * (1.0 - goal.estimated_difficulty)
    )


def should_trigger(efficiency: float, recent_changes: int) -> bool:
    """
    Whether a generation cycle should run.

    Stable and efficient, or very efficient regardless, or struggling with
    nothing changed recently. A freshly edited goal set with middling
    efficiency waits.
    """
    return (
        (recent_changes == 0 and efficiency > 0.6)
        or efficiency > 0.85
        or (efficiency < 0.4 and recent_changes == 0)
    )


def rank(goals: Iterable[AutonomousGoal]) -> list[AutonomousGoal]:
    """Priority descending, ties by ascending id."""
    return sorted(goals, key=lambda g: (-g.priority, g.id))


class GoalGenerator:
    """
    Runs the four discovery strategies and the decomposition producer.

    Goal ids come from a counter owned by the generator and only ever
    increase, so ids are unique across every cycle this instance runs.
    """

    def __init__(
        self,
        config: GoalsConfig | None = None,
        rng: random.Random | None = None,
        start_id: int = 1,
    ) -> None:
        self._config = config or GoalsConfig()
        self._rng = rng if rng is not None else random.Random(self._config.seed)
        self._next_id = start_id
        self._logger = logger.bind(system="goals.generator")

    @property
    def next_id(self) -> int:
        return self._next_id

    def advance_ids(self, floor: int) -> None:
        """Never hand out an id below ``floor``."""
        self._next_id = max(self._next_id, floor)

    def generate(
        self,
        context: GenerationContext,
        exclude_descriptions: Iterable[str] = (),
    ) -> list[AutonomousGoal]:
        """
        One generation pass over ``context``.

        ``exclude_descriptions`` are goals already held elsewhere (the
        store's live goals); candidates repeating one are dropped along with
        repeats inside this pass, keeping the lowest id.
        """
        candidates: list[GoalCandidate] = []
        candidates += discover_knowledge_gaps(context, self._config)
        candidates += discover_performance_goals(context, self._config)
        candidates += synthesize_creative_goals(context, self._config, self._rng)
        candidates += generate_curiosity_goals(context, self._config, self._rng)

        goals = [self._materialise(c) for c in candidates]
        unique = _dedupe(goals, set(exclude_descriptions))
        for goal in unique:
            goal.priority = assess_priority(goal)
        ranked = rank(unique)

        self._logger.info(
            "goals_generated",
            candidates=len(candidates),
            kept=len(ranked),
            by_source={s.value: sum(1 for g in ranked if g.source == s) for s in GoalSource},
        )
        return ranked

    def decompose(
        self,
        parent: AutonomousGoal,
        sub_descriptions: Sequence[str],
    ) -> list[AutonomousGoal]:
        """Split ``parent`` into derived goals that name it as their parent."""
        difficulty = parent.estimated_difficulty * _DECOMPOSITION_DIFFICULTY_FACTOR
        goals = [
            self._materialise(
                GoalCandidate(
                    description=description,
                    source=GoalSource.DECOMPOSITION,
                    priority=parent.priority,
                    difficulty=difficulty,
                    impact=parent.potential_impact,
                    capabilities=parent.required_capabilities,
                ),
                parents=frozenset({parent.id}),
            )
            for description in sub_descriptions
        ]
        unique = _dedupe(goals, {parent.description})
        for goal in unique:
            goal.priority = assess_priority(goal)
        self._logger.debug("goal_decomposed", parent_id=parent.id, children=len(unique))
        return rank(unique)

    # ─── Internals ────────────────────────────────────────────────

    def _materialise(
        self, candidate: GoalCandidate, parents: frozenset[int] = frozenset()
    ) -> AutonomousGoal:
        goal = AutonomousGoal(
            id=self._next_id,
            description=candidate.description,
            source=candidate.source,
            priority=clamp(candidate.priority, 0.0, 1.0),
            estimated_difficulty=clamp(candidate.difficulty, 0.0, 1.0),
            potential_impact=clamp(candidate.impact, 0.0, 1.0),
            required_capabilities=candidate.capabilities,
            parent_goals=parents,
        )
        self._next_id += 1
        return goal


def _dedupe(goals: list[AutonomousGoal], seen: set[str]) -> list[AutonomousGoal]:
    unique: list[AutonomousGoal] = []
    for goal in goals:
        if goal.description in seen:
            continue
        seen.add(goal.description)
        unique.append(goal)
    return unique
