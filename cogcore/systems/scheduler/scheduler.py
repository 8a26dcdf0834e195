"""
CogCore — Task Scheduler

Priority queue over dependent units of cognitive work.

Lifecycle:
    Pending ──deps completed──▶ Eligible ──dequeue──▶ Running
    Running ──▶ Completed | Failed
    Failed ──requeue (caller's retry policy)──▶ Pending

Effective priority is recomputed on every dequeue attempt, never cached:
    priority = urgency_weight × urgency
             + sti_weight     × clamp(STI(atom) / sti_scale, 0, 1)
             + age_weight     × min(1, age / age_horizon_s)

so attention moving between atoms reorders the queue without any explicit
notification. Equal priorities pop in insertion order.

A Failed task's dependents stay Pending until the task is requeued and
completes; the scheduler has no retry policy of its own.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Iterable
from typing import Any

import structlog

from cogcore.config import SchedulerConfig
from cogcore.errors import InvalidTaskTransition, UnknownTask
from cogcore.primitives.common import clamp
from cogcore.systems.atomspace.store import AtomSpace
from cogcore.systems.goals.types import AutonomousGoal, GoalSource
from cogcore.systems.scheduler.types import Task, TaskStatus, TaskType

logger = structlog.get_logger()

TaskCallable = Callable[[Task], Any]

_GOAL_TASK_TYPES: dict[GoalSource, TaskType] = {
    GoalSource.KNOWLEDGE_GAP: TaskType.PATTERN_MATCHING,
    GoalSource.PERFORMANCE: TaskType.META_COGNITION,
    GoalSource.CREATIVE: TaskType.REASONING,
    GoalSource.CURIOSITY: TaskType.REASONING,
    GoalSource.DECOMPOSITION: TaskType.REASONING,
}


class TaskScheduler:
    """
    Dependency-aware priority scheduler.

    ``space`` supplies the STI term; without one every task's STI term is
    zero. ``clock`` returns seconds and defaults to ``time.monotonic``.
    """

    def __init__(
        self,
        config: SchedulerConfig | None = None,
        space: AtomSpace | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config or SchedulerConfig()
        self._space = space
        self._clock = clock
        self._tasks: dict[int, Task] = {}
        self._callables: dict[int, TaskCallable] = {}
        self._next_id = 1
        self._sequence = 0
        self._lock = threading.RLock()
        self._logger = logger.bind(system="scheduler")

    # ─── Submission ───────────────────────────────────────────────

    def add_task(
        self,
        description: str,
        task_type: TaskType = TaskType.REASONING,
        urgency: float = 0.5,
        atom_id: int | None = None,
        dependencies: Iterable[int] = (),
        execute: TaskCallable | None = None,
        goal_id: int | None = None,
    ) -> Task:
        """
        Queue a task. Every dependency must already be known to the
        scheduler; an unknown one raises ``UnknownTask`` and nothing is
        queued.
        """
        deps = frozenset(dependencies)
        with self._lock:
            for dep in sorted(deps):
                if dep not in self._tasks:
                    raise UnknownTask(dep)
            task = Task(
                id=self._next_id,
                description=description,
                task_type=task_type,
                urgency=clamp(urgency, 0.0, 1.0),
                atom_id=atom_id,
                dependencies=deps,
                sequence=self._sequence,
                goal_id=goal_id,
                created_at=self._clock(),
            )
            self._next_id += 1
            self._sequence += 1
            self._tasks[task.id] = task
            if execute is not None:
                self._callables[task.id] = execute
            self._refresh_one(task)
            task = self._tasks[task.id]

        self._logger.debug(
            "task_added",
            task_id=task.id,
            task_type=task.task_type.value,
            urgency=task.urgency,
            dependencies=sorted(deps),
        )
        return task

    def submit_goal(
        self,
        goal: AutonomousGoal,
        atom_id: int | None = None,
        execute: TaskCallable | None = None,
    ) -> Task:
        """Seed a task from a goal; the goal's priority becomes its urgency."""
        return self.add_task(
            description=goal.description,
            task_type=_GOAL_TASK_TYPES[goal.source],
            urgency=goal.priority,
            atom_id=atom_id,
            execute=execute,
            goal_id=goal.id,
        )

    # ─── Priority ─────────────────────────────────────────────────

    def effective_priority(self, task: Task, now: float | None = None) -> float:
        now = self._clock() if now is None else now
        cfg = self._config
        sti = 0.0
        if self._space is not None and task.atom_id is not None:
            node = self._space.get_node(task.atom_id)
            if node is not None:
                sti = node.attention.sti
        sti_term = clamp(sti / cfg.sti_scale, 0.0, 1.0)
        age_term = min(1.0, max(0.0, now - task.created_at) / cfg.age_horizon_s)
        return (
            cfg.urgency_weight * task.urgency
            + cfg.sti_weight * sti_term
            + cfg.age_weight * age_term
        )

    # ─── Dequeue ──────────────────────────────────────────────────

    def refresh_eligibility(self) -> list[int]:
        """Promote Pending tasks whose dependencies have all completed."""
        with self._lock:
            promoted = [
                t.id
                for t in list(self._tasks.values())
                if t.status == TaskStatus.PENDING and self._refresh_one(t)
            ]
        return promoted

    def pop_next(self) -> Task | None:
        """
        Move the highest-priority Eligible task to Running and return it.
        Returns None when nothing is eligible.
        """
        with self._lock:
            self.refresh_eligibility()
            now = self._clock()
            eligible = [t for t in self._tasks.values() if t.status == TaskStatus.ELIGIBLE]
            if not eligible:
                return None
            best = max(
                eligible, key=lambda t: (self.effective_priority(t, now), -t.sequence)
            )
            running = self._replace(
                best,
                status=TaskStatus.RUNNING,
                started_at=now,
                attempts=best.attempts + 1,
            )
        self._logger.debug("task_started", task_id=running.id, attempt=running.attempts)
        return running

    def schedule_next_tasks(self) -> list[Task]:
        """Start as many Eligible tasks as ``max_concurrent`` allows."""
        started: list[Task] = []
        with self._lock:
            slots = self._config.max_concurrent - len(self.tasks_by_status(TaskStatus.RUNNING))
            for _ in range(max(0, slots)):
                task = self.pop_next()
                if task is None:
                    break
                started.append(task)
        return started

    # ─── Transitions ──────────────────────────────────────────────

    def complete(self, task_id: int, result: Any = None) -> Task:
        with self._lock:
            task = self._expect(task_id, TaskStatus.RUNNING, TaskStatus.COMPLETED)
            done = self._replace(
                task, status=TaskStatus.COMPLETED, finished_at=self._clock(), result=result
            )
            self.refresh_eligibility()
        self._logger.debug("task_completed", task_id=task_id)
        return done

    def fail(self, task_id: int, error: str = "") -> Task:
        with self._lock:
            task = self._expect(task_id, TaskStatus.RUNNING, TaskStatus.FAILED)
            failed = self._replace(
                task, status=TaskStatus.FAILED, finished_at=self._clock(), error=error
            )
        self._logger.warning("task_failed", task_id=task_id, error=error[:200])
        return failed

    def requeue(self, task_id: int) -> Task:
        """Send a Failed task back to Pending so it can run again."""
        with self._lock:
            task = self._expect(task_id, TaskStatus.FAILED, TaskStatus.PENDING)
            pending = self._replace(
                task,
                status=TaskStatus.PENDING,
                started_at=None,
                finished_at=None,
                error="",
            )
            self._refresh_one(pending)
            requeued = self._tasks[task_id]
        self._logger.info("task_requeued", task_id=task_id, attempts=requeued.attempts)
        return requeued

    def remove_task(self, task_id: int) -> Task:
        """
        Forget a task that is not Running. Dependents keep the id in their
        dependency set and so stay Pending.
        """
        with self._lock:
            task = self.get_task(task_id)
            if task.status == TaskStatus.RUNNING:
                raise InvalidTaskTransition(f"task {task_id} is running")
            del self._tasks[task_id]
            self._callables.pop(task_id, None)
        self._logger.debug("task_removed", task_id=task_id, status=task.status.value)
        return task

    # ─── Execution ────────────────────────────────────────────────

    def execute_task(self, task_id: int) -> Task:
        """
        Run a Running task's callable and record the outcome. An exception
        from the callable marks the task Failed; it is not re-raised.
        """
        task = self.get_task(task_id)
        if task.status != TaskStatus.RUNNING:
            raise InvalidTaskTransition(
                f"task {task_id} is {task.status.value}, expected running"
            )
        func = self._callables.get(task_id)
        try:
            result = func(task) if func is not None else None
        except Exception as exc:
            self._logger.error(
                "task_execution_error", task_id=task_id, error=str(exc), exc_info=True
            )
            return self.fail(task_id, error=f"{type(exc).__name__}: {exc}")
        return self.complete(task_id, result=result)

    def process_queue(self, max_iterations: int | None = None) -> list[Task]:
        """Pop and execute tasks until none is eligible. Returns finished tasks."""
        finished: list[Task] = []
        while max_iterations is None or len(finished) < max_iterations:
            task = self.pop_next()
            if task is None:
                break
            finished.append(self.execute_task(task.id))
        return finished

    # ─── Queries ──────────────────────────────────────────────────

    def get_task(self, task_id: int) -> Task:
        task = self._tasks.get(task_id)
        if task is None:
            raise UnknownTask(task_id)
        return task

    def tasks_by_status(self, status: TaskStatus) -> list[Task]:
        with self._lock:
            return [t for t in self._tasks.values() if t.status == status]

    def tasks_by_type(self, task_type: TaskType) -> list[Task]:
        with self._lock:
            return [t for t in self._tasks.values() if t.task_type == task_type]

    def average_execution_time(self, task_type: TaskType | None = None) -> float:
        with self._lock:
            times = [
                t.execution_time
                for t in self._tasks.values()
                if t.status == TaskStatus.COMPLETED
                and t.execution_time is not None
                and (task_type is None or t.task_type == task_type)
            ]
        return sum(times) / len(times) if times else 0.0

    def statistics(self) -> dict[str, int]:
        with self._lock:
            counts = {status.value: 0 for status in TaskStatus}
            for task in self._tasks.values():
                counts[task.status.value] += 1
            counts["total"] = len(self._tasks)
        return counts

    def __len__(self) -> int:
        return len(self._tasks)

    # ─── Internals ────────────────────────────────────────────────

    def _refresh_one(self, task: Task) -> bool:
        if task.status != TaskStatus.PENDING:
            return False
        ready = all(
            (dep := self._tasks.get(d)) is not None and dep.status == TaskStatus.COMPLETED
            for d in task.dependencies
        )
        if ready:
            self._replace(task, status=TaskStatus.ELIGIBLE)
        return ready

    def _expect(self, task_id: int, current: TaskStatus, target: TaskStatus) -> Task:
        task = self.get_task(task_id)
        if task.status != current:
            raise InvalidTaskTransition(
                f"task {task_id}: cannot move {task.status.value} -> {target.value}"
            )
        return task

    def _replace(self, task: Task, **update: Any) -> Task:
        updated = task.model_copy(update=update)
        self._tasks[task.id] = updated
        return updated
