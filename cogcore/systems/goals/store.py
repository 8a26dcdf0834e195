"""
CogCore — Goal Store

Holds every goal the generator has produced and drives its lifecycle:

    Proposed ──activate──▶ Active ──complete──▶ Completed
        │                    │  └───abandon───▶ Abandoned
        │                    └──evicted──────▶ Superseded
        └──────────abandon─────────────────▶ Abandoned

The Active set is bounded. Activating a goal into a full set evicts the
lowest-priority Active goal, but only when the newcomer outranks it.

Lifecycle transitions made through this store (activation, completion,
abandonment, eviction) count as goal-set changes; the goal service reads
and resets that count each time it evaluates its trigger policy.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable

import structlog

from cogcore.systems.goals.generator import rank
from cogcore.systems.goals.types import AutonomousGoal, GoalStatus

logger = structlog.get_logger()


class GoalStore:
    def __init__(self, max_active_goals: int = 8) -> None:
        self._max_active = max_active_goals
        self._goals: dict[int, AutonomousGoal] = {}
        self._changes = 0
        self._lock = threading.RLock()
        self._logger = logger.bind(system="goals.store")

    # ─── Queries ──────────────────────────────────────────────────

    @property
    def max_active_goals(self) -> int:
        return self._max_active

    @property
    def active_goals(self) -> list[AutonomousGoal]:
        """Active goals, highest priority first."""
        with self._lock:
            return rank(g for g in self._goals.values() if g.status == GoalStatus.ACTIVE)

    @property
    def proposed_goals(self) -> list[AutonomousGoal]:
        with self._lock:
            return rank(g for g in self._goals.values() if g.status == GoalStatus.PROPOSED)

    @property
    def all_goals(self) -> list[AutonomousGoal]:
        with self._lock:
            return [self._goals[k] for k in sorted(self._goals)]

    @property
    def recent_changes(self) -> int:
        return self._changes

    def get_goal(self, goal_id: int) -> AutonomousGoal | None:
        return self._goals.get(goal_id)

    def live_descriptions(self) -> set[str]:
        """Descriptions of goals that are not yet terminal."""
        with self._lock:
            return {g.description for g in self._goals.values() if not g.is_terminal}

    def max_goal_id(self) -> int:
        with self._lock:
            return max(self._goals, default=0)

    # ─── Lifecycle ────────────────────────────────────────────────

    def propose(self, goals: Iterable[AutonomousGoal]) -> list[AutonomousGoal]:
        """Register freshly generated goals. Known ids are left untouched."""
        added: list[AutonomousGoal] = []
        with self._lock:
            for goal in goals:
                if goal.id in self._goals:
                    continue
                stored = goal.model_copy(update={"status": GoalStatus.PROPOSED})
                self._goals[goal.id] = stored
                added.append(stored)
        if added:
            self._logger.debug("goals_proposed", count=len(added))
        return added

    def activate(self, goal_id: int) -> AutonomousGoal | None:
        """
        Move a Proposed goal into the Active set.

        Returns the goal in its resulting state, or None if the id is
        unknown. A full Active set whose weakest member outranks (or ties)
        the newcomer leaves the newcomer Proposed.
        """
        with self._lock:
            goal = self._goals.get(goal_id)
            if goal is None:
                return None
            if goal.status != GoalStatus.PROPOSED:
                if goal.status != GoalStatus.ACTIVE:
                    self._logger.warning(
                        "goal_transition_ignored",
                        goal_id=goal_id,
                        status=goal.status.value,
                        requested=GoalStatus.ACTIVE.value,
                    )
                return goal

            active = [g for g in self._goals.values() if g.status == GoalStatus.ACTIVE]
            if len(active) >= self._max_active:
                # Weakest: lowest priority, newest among equals
                weakest = min(active, key=lambda g: (g.priority, -g.id))
                if weakest.priority >= goal.priority:
                    self._logger.debug(
                        "goal_activation_declined",
                        goal_id=goal_id,
                        priority=round(goal.priority, 3),
                        weakest_active=weakest.id,
                    )
                    return goal
                self._set_status(weakest, GoalStatus.SUPERSEDED)
                self._logger.info(
                    "goal_superseded_for_capacity",
                    superseded_id=weakest.id,
                    by_goal_id=goal_id,
                )

            activated = self._set_status(goal, GoalStatus.ACTIVE)
        self._logger.info(
            "goal_activated",
            goal_id=goal_id,
            source=goal.source.value,
            description=goal.description[:80],
            priority=round(goal.priority, 3),
        )
        return activated

    def promote(self) -> list[AutonomousGoal]:
        """Activate Proposed goals in rank order while they win a place."""
        activated: list[AutonomousGoal] = []
        for goal in self.proposed_goals:
            result = self.activate(goal.id)
            if result is not None and result.status == GoalStatus.ACTIVE:
                activated.append(result)
        return activated

    def complete(self, goal_id: int) -> AutonomousGoal | None:
        return self._finish(goal_id, GoalStatus.COMPLETED)

    def abandon(self, goal_id: int, reason: str = "") -> AutonomousGoal | None:
        return self._finish(goal_id, GoalStatus.ABANDONED, reason=reason)

    def consume_changes(self) -> int:
        """Return the change count since the last call and reset it."""
        with self._lock:
            changes, self._changes = self._changes, 0
        return changes

    def prune_retired(self, max_retired: int = 50) -> int:
        """
        Drop the oldest terminal goals beyond ``max_retired``.
        Returns the count pruned.
        """
        with self._lock:
            retired = sorted(
                (g for g in self._goals.values() if g.is_terminal),
                key=lambda g: (g.created_at, g.id),
            )
            excess = retired[: max(0, len(retired) - max_retired)]
            for goal in excess:
                del self._goals[goal.id]
        if excess:
            self._logger.debug("retired_goals_pruned", count=len(excess))
        return len(excess)

    def stats(self) -> dict[str, int]:
        with self._lock:
            counts = {status.value: 0 for status in GoalStatus}
            for goal in self._goals.values():
                counts[goal.status.value] += 1
            counts["total"] = len(self._goals)
            counts["recent_changes"] = self._changes
        return counts

    # ─── Internals ────────────────────────────────────────────────

    def _finish(
        self, goal_id: int, status: GoalStatus, reason: str = ""
    ) -> AutonomousGoal | None:
        with self._lock:
            goal = self._goals.get(goal_id)
            if goal is None:
                return None
            if goal.is_terminal:
                self._logger.warning(
                    "goal_transition_ignored",
                    goal_id=goal_id,
                    status=goal.status.value,
                    requested=status.value,
                )
                return goal
            updated = self._set_status(goal, status)
        self._logger.info(
            f"goal_{status.value}",
            goal_id=goal_id,
            description=goal.description[:60],
            reason=reason[:80],
        )
        return updated

    def _set_status(self, goal: AutonomousGoal, status: GoalStatus) -> AutonomousGoal:
        updated = goal.model_copy(update={"status": status})
        self._goals[goal.id] = updated
        self._changes += 1
        return updated
