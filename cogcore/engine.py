"""
CogCore — Cognitive Engine

One explicit context value holding an AtomSpace and every system that
works over it. Nothing in the core is process-global: two engines built
from two configs are fully independent, and tests build and discard them
freely.

    engine = CognitiveEngine.from_yaml("config/default.yaml")
    cat = engine.space.add_node(NodeType.CONCEPT, "cat")
    engine.attention.stimulate(cat, 50.0)
    engine.attention_cycle()
    engine.run_goal_cycle(force=True)
    engine.seed_tasks()
    engine.scheduler.process_queue()
"""

from __future__ import annotations

import random
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

import structlog

from cogcore.config import CogCoreConfig, load_config
from cogcore.errors import UnknownTask
from cogcore.systems.atomspace.store import AtomSpace
from cogcore.systems.attention.allocator import AttentionAllocator
from cogcore.systems.goals.service import GoalCycleResult, GoalService
from cogcore.systems.goals.types import GoalStatus
from cogcore.systems.metacognition.telemetry import (
    InMemoryTelemetry,
    introspect_attention,
    introspect_memory,
    introspect_scheduler,
)
from cogcore.systems.metacognition.types import IntrospectionResult
from cogcore.systems.reasoning.collaborator import StubReasoner
from cogcore.systems.scheduler.scheduler import TaskScheduler
from cogcore.systems.scheduler.types import Task, TaskStatus
from cogcore.telemetry.logging import setup_logging

logger = structlog.get_logger()


class CognitiveEngine:
    def __init__(
        self,
        config: CogCoreConfig | None = None,
        telemetry: InMemoryTelemetry | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or CogCoreConfig()
        self.space = AtomSpace(config=self.config.atomspace, attention=self.config.attention)
        self.attention = AttentionAllocator(self.space, self.config.attention)
        self.scheduler = TaskScheduler(self.config.scheduler, space=self.space, clock=clock)
        self.telemetry = telemetry or InMemoryTelemetry(
            domains=self.config.goals.default_domains
        )
        self.goals = GoalService(self.space, self.telemetry, self.config.goals, rng=rng)
        self.reasoner = StubReasoner(self.space, self.telemetry)
        # goal id → task id
        self._seeded: dict[int, int] = {}
        self._logger = logger.bind(system="engine", instance_id=self.config.instance_id)

    @classmethod
    def from_yaml(
        cls, config_path: str | Path | None = None, **kwargs: Any
    ) -> CognitiveEngine:
        return cls(load_config(config_path), **kwargs)

    # ─── Cycles ───────────────────────────────────────────────────

    def attention_cycle(self) -> dict[str, float]:
        """One attention-economy pass, followed by introspection."""
        summary = self.attention.ecan_cycle()
        self.introspect()
        return summary

    def introspect(self) -> list[IntrospectionResult]:
        """Observe attention, memory and task execution; record the results."""
        results = [
            introspect_attention(self.attention),
            introspect_memory(self.space),
            introspect_scheduler(self.scheduler),
        ]
        for result in results:
            self.telemetry.record_introspection(result)
        return results

    def run_goal_cycle(self, force: bool = False) -> GoalCycleResult:
        return self.goals.run_cycle(force=force)

    def seed_tasks(self) -> list[Task]:
        """
        Queue one task per Active goal that has none yet. The task is
        anchored to the first Node named in the goal's description, if any.
        """
        seeded: list[Task] = []
        for goal in self.goals.store.active_goals:
            if goal.id in self._seeded:
                continue
            task = self.scheduler.submit_goal(goal, atom_id=self._anchor_for(goal.description))
            self._seeded[goal.id] = task.id
            seeded.append(task)
        if seeded:
            self._logger.info("tasks_seeded_from_goals", count=len(seeded))
        return seeded

    def settle_goals(self) -> list[int]:
        """Complete every Active goal whose seeded task has completed."""
        settled: list[int] = []
        for goal_id, task_id in list(self._seeded.items()):
            goal = self.goals.store.get_goal(goal_id)
            if goal is None or goal.status != GoalStatus.ACTIVE:
                continue
            try:
                task = self.scheduler.get_task(task_id)
            except UnknownTask:
                continue
            if task.status == TaskStatus.COMPLETED:
                self.goals.store.complete(goal_id)
                settled.append(goal_id)
        return settled

    # ─── Lifecycle ────────────────────────────────────────────────

    async def start(self, configure_logging: bool = True) -> None:
        if configure_logging:
            setup_logging(self.config.logging, instance_id=self.config.instance_id)
        self.goals.schedule_loop()
        self._logger.info("engine_started", **self.space.stats())

    async def shutdown(self) -> None:
        await self.goals.shutdown()
        self._logger.info("engine_shutdown")

    def stats(self) -> dict[str, Any]:
        return {
            "atomspace": self.space.stats(),
            "attention": self.attention.statistics(),
            "scheduler": self.scheduler.statistics(),
            "goals": self.goals.store.stats(),
            "goal_service": self.goals.stats,
            "reasoner": self.reasoner.stats,
        }

    # ─── Internals ────────────────────────────────────────────────

    def _anchor_for(self, description: str) -> int | None:
        # Descriptions quote atom names: "Connect 'cat' to ..."
        parts = description.split("'")
        for name in parts[1::2]:
            ids = self.space.find_by_name(name)
            if ids:
                return ids[0]
        return None
