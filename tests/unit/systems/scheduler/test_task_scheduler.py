"""
Unit tests for the TaskScheduler.

Tests dependency gating, attention- and age-weighted priority, FIFO tie
breaking, the task state machine, caller-driven retries and goal seeding.
"""

from __future__ import annotations

import pytest

from cogcore.config import SchedulerConfig
from cogcore.errors import InvalidTaskTransition, UnknownTask
from cogcore.systems.atomspace import AtomKind, AtomSpace, AttentionValue, NodeType
from cogcore.systems.goals.types import AutonomousGoal, GoalSource
from cogcore.systems.scheduler import TaskScheduler, TaskStatus, TaskType

# ─── Fixtures ─────────────────────────────────────────────────────


class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def space() -> AtomSpace:
    return AtomSpace()


@pytest.fixture
def scheduler(space: AtomSpace, clock: FakeClock) -> TaskScheduler:
    return TaskScheduler(SchedulerConfig(), space=space, clock=clock)


def boom(task) -> None:
    raise ValueError("inference diverged")


# ─── Dependencies ─────────────────────────────────────────────────


class TestDependencies:
    def test_task_without_dependencies_is_eligible(self, scheduler: TaskScheduler) -> None:
        task = scheduler.add_task("think")
        assert task.status == TaskStatus.ELIGIBLE

    def test_dependent_waits_for_completion(self, scheduler: TaskScheduler) -> None:
        first = scheduler.add_task("first")
        second = scheduler.add_task("second", dependencies=[first.id])
        assert second.status == TaskStatus.PENDING

        popped = scheduler.pop_next()
        assert popped is not None and popped.id == first.id
        assert scheduler.pop_next() is None

        scheduler.complete(first.id)
        assert scheduler.get_task(second.id).status == TaskStatus.ELIGIBLE

    def test_unknown_dependency_rejected(self, scheduler: TaskScheduler) -> None:
        with pytest.raises(UnknownTask):
            scheduler.add_task("orphan", dependencies=[99])
        assert len(scheduler) == 0

    def test_failed_dependency_blocks_dependents(self, scheduler: TaskScheduler) -> None:
        first = scheduler.add_task("first", execute=boom)
        second = scheduler.add_task("second", dependencies=[first.id])

        finished = scheduler.process_queue()

        assert [t.status for t in finished] == [TaskStatus.FAILED]
        assert scheduler.get_task(second.id).status == TaskStatus.PENDING
        assert scheduler.pop_next() is None

    def test_requeue_then_success_unblocks(self, scheduler: TaskScheduler) -> None:
        attempts = []

        def flaky(task) -> str:
            attempts.append(task.attempts)
            if len(attempts) == 1:
                raise RuntimeError("transient")
            return "ok"

        first = scheduler.add_task("first", execute=flaky)
        second = scheduler.add_task("second", dependencies=[first.id])
        scheduler.process_queue()

        requeued = scheduler.requeue(first.id)
        assert requeued.status == TaskStatus.ELIGIBLE
        assert requeued.error == ""

        finished = scheduler.process_queue()
        assert [t.id for t in finished] == [first.id, second.id]
        assert scheduler.get_task(first.id).result == "ok"
        assert attempts == [1, 2]


# ─── Priority ─────────────────────────────────────────────────────


class TestPriority:
    def test_higher_urgency_first(self, scheduler: TaskScheduler) -> None:
        scheduler.add_task("low", urgency=0.2)
        high = scheduler.add_task("high", urgency=0.9)
        assert scheduler.pop_next().id == high.id  # type: ignore[union-attr]

    def test_ties_pop_in_insertion_order(self, scheduler: TaskScheduler) -> None:
        ids = [scheduler.add_task(f"t{i}", urgency=0.5).id for i in range(4)]
        popped = [scheduler.pop_next().id for _ in ids]  # type: ignore[union-attr]
        assert popped == ids

    def test_sti_of_associated_atom_raises_priority(
        self, scheduler: TaskScheduler, space: AtomSpace
    ) -> None:
        cold = space.add_node(NodeType.CONCEPT, "cold")
        hot = space.add_node(NodeType.CONCEPT, "hot")
        first = scheduler.add_task("about cold", urgency=0.5, atom_id=cold)
        second = scheduler.add_task("about hot", urgency=0.5, atom_id=hot)
        assert scheduler.effective_priority(first) == scheduler.effective_priority(second)

        space.set_attention(AtomKind.NODE, hot, AttentionValue(sti=100.0))

        assert scheduler.effective_priority(second) == pytest.approx(0.25 + 0.3)
        assert scheduler.pop_next().id == second.id  # type: ignore[union-attr]

    def test_age_raises_priority(self, scheduler: TaskScheduler, clock: FakeClock) -> None:
        old = scheduler.add_task("old", urgency=0.5)
        clock.advance(60.0)
        fresh = scheduler.add_task("fresh", urgency=0.6)
        assert scheduler.effective_priority(old) == pytest.approx(0.45)
        assert scheduler.effective_priority(fresh) == pytest.approx(0.3)
        assert scheduler.pop_next().id == old.id  # type: ignore[union-attr]

    def test_urgency_is_clamped(self, scheduler: TaskScheduler) -> None:
        assert scheduler.add_task("x", urgency=3.0).urgency == 1.0


# ─── State Machine ────────────────────────────────────────────────


class TestStateMachine:
    def test_complete_requires_running(self, scheduler: TaskScheduler) -> None:
        task = scheduler.add_task("x")
        with pytest.raises(InvalidTaskTransition):
            scheduler.complete(task.id)

    def test_requeue_requires_failed(self, scheduler: TaskScheduler) -> None:
        task = scheduler.add_task("x")
        with pytest.raises(InvalidTaskTransition):
            scheduler.requeue(task.id)

    def test_execute_requires_running(self, scheduler: TaskScheduler) -> None:
        task = scheduler.add_task("x")
        with pytest.raises(InvalidTaskTransition):
            scheduler.execute_task(task.id)

    def test_unknown_task(self, scheduler: TaskScheduler) -> None:
        with pytest.raises(UnknownTask):
            scheduler.get_task(5)

    def test_execution_failure_is_recorded_not_raised(self, scheduler: TaskScheduler) -> None:
        task = scheduler.add_task("x", execute=boom)
        scheduler.pop_next()
        failed = scheduler.execute_task(task.id)
        assert failed.status == TaskStatus.FAILED
        assert "ValueError" in failed.error

    def test_remove_running_task_refused(self, scheduler: TaskScheduler) -> None:
        task = scheduler.add_task("x")
        scheduler.pop_next()
        with pytest.raises(InvalidTaskTransition):
            scheduler.remove_task(task.id)

    def test_removed_dependency_keeps_dependent_pending(self, scheduler: TaskScheduler) -> None:
        first = scheduler.add_task("first")
        second = scheduler.add_task("second", dependencies=[first.id])
        scheduler.remove_task(first.id)
        assert scheduler.refresh_eligibility() == []
        assert scheduler.get_task(second.id).status == TaskStatus.PENDING


# ─── Batching & Statistics ────────────────────────────────────────


class TestBatching:
    def test_schedule_respects_concurrency(self, space: AtomSpace, clock: FakeClock) -> None:
        scheduler = TaskScheduler(SchedulerConfig(max_concurrent=2), space=space, clock=clock)
        for i in range(3):
            scheduler.add_task(f"t{i}")
        assert len(scheduler.schedule_next_tasks()) == 2
        assert scheduler.schedule_next_tasks() == []
        assert len(scheduler.tasks_by_status(TaskStatus.RUNNING)) == 2

    def test_process_queue_iteration_limit(self, scheduler: TaskScheduler) -> None:
        for i in range(3):
            scheduler.add_task(f"t{i}")
        assert len(scheduler.process_queue(max_iterations=2)) == 2
        assert len(scheduler.tasks_by_status(TaskStatus.ELIGIBLE)) == 1

    def test_statistics_and_timing(self, scheduler: TaskScheduler, clock: FakeClock) -> None:
        task = scheduler.add_task("timed", task_type=TaskType.PATTERN_MATCHING)
        scheduler.add_task("waiting", dependencies=[task.id])
        scheduler.pop_next()
        clock.advance(2.0)
        scheduler.complete(task.id)

        stats = scheduler.statistics()
        assert stats["completed"] == 1
        assert stats["eligible"] == 1
        assert stats["total"] == 2
        assert scheduler.average_execution_time(TaskType.PATTERN_MATCHING) == 2.0
        assert scheduler.average_execution_time(TaskType.REASONING) == 0.0
        assert [t.id for t in scheduler.tasks_by_type(TaskType.PATTERN_MATCHING)] == [task.id]


class TestGoalSeeding:
    def test_goal_becomes_task(self, scheduler: TaskScheduler) -> None:
        goal = AutonomousGoal(
            id=7,
            description="Optimize reasoning inference performance (current: 50.00%)",
            source=GoalSource.PERFORMANCE,
            priority=0.62,
        )
        task = scheduler.submit_goal(goal)
        assert task.goal_id == 7
        assert task.urgency == 0.62
        assert task.task_type == TaskType.META_COGNITION
        assert task.description == goal.description
