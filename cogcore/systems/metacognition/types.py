"""
Metacognition data types.

These are the records an external meta-cognition collaborator hands to
goal generation once per cycle.
"""

from __future__ import annotations

import enum
from datetime import datetime

from pydantic import Field

from cogcore.primitives.common import FrozenModel, utc_now


class CognitiveProcess(enum.StrEnum):
    MEMORY_ACCESS = "memory-access"
    ATTENTION_ALLOCATION = "attention-allocation"
    REASONING_INFERENCE = "reasoning-inference"
    PATTERN_RECOGNITION = "pattern-recognition"
    GOAL_PURSUIT = "goal-pursuit"
    SELF_MONITORING = "self-monitoring"


class PerformanceMetric(FrozenModel):
    process: CognitiveProcess
    success_rate: float = Field(ge=0.0, le=1.0)
    average_time: float = Field(default=0.0, ge=0.0)
    resource_usage: float = Field(default=0.0, ge=0.0)
    # Positive = improving
    improvement_trend: float = 0.0
    timestamp: datetime = Field(default_factory=utc_now)


class IntrospectionResult(FrozenModel):
    process: CognitiveProcess
    efficiency_rating: float = Field(ge=0.0, le=1.0)
    bottlenecks: tuple[str, ...] = ()
    suggestions: tuple[str, ...] = ()
    timestamp: datetime = Field(default_factory=utc_now)
