"""
CogCore — Goal discovery strategies

Each strategy reads the generation context and returns raw candidates with
provisional scores. Candidates carry no id: the generator numbers them in
the order the strategies emit them, and every strategy emits in ascending
atom id (or input) order so that numbering is deterministic.

Creative and curiosity discovery sample with the injected ``random.Random``;
nothing here touches the module-level generator.
"""

from __future__ import annotations

import random
from dataclasses import dataclass

from cogcore.config import GoalsConfig
from cogcore.systems.atomspace.types import NodeType
from cogcore.systems.goals.types import GenerationContext, GoalSource


@dataclass(frozen=True)
class GoalCandidate:
    description: str
    source: GoalSource
    priority: float
    difficulty: float
    impact: float
    capabilities: frozenset[str]


_GAP_CAPS = frozenset({"pattern-recognition", "reasoning"})
_MASTERY_CAPS = frozenset({"learning", "reasoning", "pattern-recognition"})
_PERFORMANCE_CAPS = frozenset({"optimization", "debugging"})
_CREATIVE_CAPS = frozenset({"creativity", "pattern-recognition", "reasoning"})
_CURIOSITY_CAPS = frozenset({"exploration", "reasoning"})


def discover_knowledge_gaps(
    context: GenerationContext, config: GoalsConfig
) -> list[GoalCandidate]:
    """Weakly connected Nodes, then under-mastered domains."""
    snapshot = context.snapshot
    candidates = [
        GoalCandidate(
            description=f"Connect '{node.name}' to existing knowledge network",
            source=GoalSource.KNOWLEDGE_GAP,
            priority=0.7,
            difficulty=0.6,
            impact=0.8,
            capabilities=_GAP_CAPS,
        )
        for node in snapshot.nodes.values()
        if snapshot.incoming_count(node.id) < config.connectivity_threshold
    ]
    for domain, mastery in context.domains.items():
        if mastery < config.mastery_threshold:
            candidates.append(
                GoalCandidate(
                    description=f"Improve mastery of {domain} domain",
                    source=GoalSource.KNOWLEDGE_GAP,
                    priority=1.0 - mastery,
                    difficulty=0.7,
                    impact=0.9,
                    capabilities=_MASTERY_CAPS,
                )
            )
    return candidates


def discover_performance_goals(
    context: GenerationContext, config: GoalsConfig
) -> list[GoalCandidate]:
    candidates: list[GoalCandidate] = []
    for metric in context.metrics:
        if metric.success_rate >= config.success_rate_threshold:
            continue
        process = metric.process.value.replace("-", " ")
        candidates.append(
            GoalCandidate(
                description=(
                    f"Optimize {process} performance "
                    f"(current: {metric.success_rate * 100:.2f}%)"
                ),
                source=GoalSource.PERFORMANCE,
                priority=1.0 - metric.success_rate,
                difficulty=0.5,
                impact=0.8,
                capabilities=_PERFORMANCE_CAPS,
            )
        )
    return candidates


def synthesize_creative_goals(
    context: GenerationContext, config: GoalsConfig, rng: random.Random
) -> list[GoalCandidate]:
    """
    Unordered pairs of distinct Concept names, each kept independently with
    probability ``creative_retention``. Names are taken in order of first
    appearance by Node id; pairs are visited as (i, j) with i < j.
    """
    names = list(
        dict.fromkeys(n.name for n in context.snapshot.nodes_of_type(NodeType.CONCEPT))
    )
    candidates: list[GoalCandidate] = []
    for i, first in enumerate(names):
        for second in names[i + 1 :]:
            if rng.random() >= config.creative_retention:
                continue
            candidates.append(
                GoalCandidate(
                    description=f"Explore creative synthesis of '{first}' and '{second}'",
                    source=GoalSource.CREATIVE,
                    priority=0.6,
                    difficulty=0.8,
                    impact=0.7,
                    capabilities=_CREATIVE_CAPS,
                )
            )
    return candidates


def generate_curiosity_goals(
    context: GenerationContext, config: GoalsConfig, rng: random.Random
) -> list[GoalCandidate]:
    candidates: list[GoalCandidate] = []
    for node in context.snapshot.nodes.values():
        if node.attention.sti <= config.high_attention_threshold:
            continue
        if rng.random() >= config.curiosity_retention:
            continue
        candidates.append(
            GoalCandidate(
                description=f"Explore deeper implications of '{node.name}'",
                source=GoalSource.CURIOSITY,
                priority=0.5,
                difficulty=0.6,
                impact=0.6,
                capabilities=_CURIOSITY_CAPS,
            )
        )
    return candidates
