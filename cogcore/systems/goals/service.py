"""
CogCore — Goal Service

Runs goal generation cycles against a live AtomSpace and feeds the results
into the goal store.

A cycle:
  1. Pull telemetry (metrics, introspection history, domain mastery).
  2. Read the store's goal-set change count.
  3. Apply the trigger policy to the latest introspection result. A
     skipped cycle leaves the count untouched.
  4. Reset the count, snapshot the AtomSpace, generate, propose and
     promote.

At most one cycle is ever in flight. A trigger that arrives while one is
running is coalesced into a no-op: it neither queues nor raises.

The service may be driven synchronously (``run_cycle``) or on a timer
(``schedule_loop``); the timer is an asyncio task that runs each cycle in
a worker thread so the event loop never blocks on generation.
"""

from __future__ import annotations

import asyncio
import random
import threading
from dataclasses import dataclass, field

import structlog

from cogcore.config import GoalsConfig
from cogcore.errors import GenerationInProgress
from cogcore.systems.atomspace.store import AtomSpace
from cogcore.systems.goals.generator import GoalGenerator, should_trigger
from cogcore.systems.goals.store import GoalStore
from cogcore.systems.goals.types import (
    AutonomousGoal,
    GenerationContext,
    latest_introspection,
)
from cogcore.systems.metacognition.telemetry import TelemetrySource

logger = structlog.get_logger()


@dataclass
class GoalCycleResult:
    ran: bool
    # "generated" | "skipped" | "no_introspection" | "coalesced"
    outcome: str
    goals: list[AutonomousGoal] = field(default_factory=list)
    activated: list[AutonomousGoal] = field(default_factory=list)
    efficiency: float | None = None
    recent_changes: int = 0


class GoalService:
    def __init__(
        self,
        space: AtomSpace,
        telemetry: TelemetrySource,
        config: GoalsConfig | None = None,
        store: GoalStore | None = None,
        generator: GoalGenerator | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._space = space
        self._telemetry = telemetry
        self._config = config or GoalsConfig()
        self._store = store or GoalStore(self._config.max_active_goals)
        self._generator = generator or GoalGenerator(self._config, rng=rng)
        self._cycle_lock = threading.Lock()
        self._loop_task: asyncio.Task[None] | None = None
        self._total_cycles = 0
        self._total_skipped = 0
        self._total_coalesced = 0
        self._logger = logger.bind(system="goals.service")

    @property
    def store(self) -> GoalStore:
        return self._store

    @property
    def generator(self) -> GoalGenerator:
        return self._generator

    @property
    def in_flight(self) -> bool:
        return self._cycle_lock.locked()

    # ─── Cycle ────────────────────────────────────────────────────

    def run_cycle(self, force: bool = False) -> GoalCycleResult:
        """
        Run one generation cycle.

        ``force`` bypasses the trigger policy (and the requirement that
        some introspection history exists) but never the single-flight rule.
        """
        try:
            self._begin_cycle()
        except GenerationInProgress:
            self._total_coalesced += 1
            self._logger.debug("goal_cycle_coalesced")
            return GoalCycleResult(ran=False, outcome="coalesced")
        try:
            return self._run_locked(force)
        finally:
            self._cycle_lock.release()

    def _begin_cycle(self) -> None:
        if not self._cycle_lock.acquire(blocking=False):
            raise GenerationInProgress("goal generation cycle already running")

    def _run_locked(self, force: bool) -> GoalCycleResult:
        metrics = tuple(self._telemetry.performance_metrics())
        history = tuple(self._telemetry.introspection_history())
        domains = self._telemetry.domain_mastery() or dict(self._config.default_domains)
        changes = self._store.recent_changes

        latest = latest_introspection(history)
        efficiency = latest.efficiency_rating if latest is not None else None

        if not force:
            if efficiency is None:
                self._total_skipped += 1
                self._logger.debug("goal_cycle_skipped", reason="no_introspection")
                return GoalCycleResult(
                    ran=False, outcome="no_introspection", recent_changes=changes
                )
            if not should_trigger(efficiency, changes):
                self._total_skipped += 1
                self._logger.debug(
                    "goal_cycle_skipped",
                    efficiency=round(efficiency, 3),
                    recent_changes=changes,
                )
                return GoalCycleResult(
                    ran=False,
                    outcome="skipped",
                    efficiency=efficiency,
                    recent_changes=changes,
                )

        # The count covers everything since the last cycle that ran.
        changes = self._store.consume_changes()
        # Ids continue past anything already held, including goals
        # restored into the store from records.
        self._generator.advance_ids(self._store.max_goal_id() + 1)

        context = GenerationContext(
            snapshot=self._space.snapshot(),
            metrics=metrics,
            introspection=history,
            domains=domains,
            capabilities=frozenset(self._config.default_capabilities),
        )
        goals = self._generator.generate(
            context, exclude_descriptions=self._store.live_descriptions()
        )
        self._store.propose(goals)
        activated = self._store.promote()
        self._total_cycles += 1

        self._logger.info(
            "goal_cycle_complete",
            generated=len(goals),
            activated=len(activated),
            efficiency=round(efficiency, 3) if efficiency is not None else None,
            recent_changes=changes,
            forced=force,
        )
        return GoalCycleResult(
            ran=True,
            outcome="generated",
            goals=goals,
            activated=activated,
            efficiency=efficiency,
            recent_changes=changes,
        )

    # ─── Timer ────────────────────────────────────────────────────

    def schedule_loop(self) -> None:
        """Start the background generation loop on the running event loop."""
        if self._loop_task and not self._loop_task.done():
            return
        self._loop_task = asyncio.create_task(self._cycle_loop(), name="goal_generation_loop")

    async def _cycle_loop(self) -> None:
        while True:
            try:
                await asyncio.sleep(self._config.cycle_interval_s)
                await asyncio.to_thread(self.run_cycle)
            except asyncio.CancelledError:
                self._logger.info("goal_loop_cancelled")
                return
            except Exception as exc:
                self._logger.error("goal_loop_error", error=str(exc))

    async def shutdown(self) -> None:
        """Cancel the timer loop, if running."""
        if self._loop_task and not self._loop_task.done():
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
        self._loop_task = None
        self._logger.info("goal_service_shutdown", **self.stats)

    @property
    def stats(self) -> dict[str, int]:
        return {
            "cycles": self._total_cycles,
            "skipped": self._total_skipped,
            "coalesced": self._total_coalesced,
        }
