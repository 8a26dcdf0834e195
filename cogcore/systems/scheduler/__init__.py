"""
CogCore — Scheduler (dependency-aware, attention-weighted task queue)
"""

from cogcore.systems.scheduler.scheduler import TaskScheduler
from cogcore.systems.scheduler.types import Task, TaskStatus, TaskType

__all__ = ["Task", "TaskScheduler", "TaskStatus", "TaskType"]
