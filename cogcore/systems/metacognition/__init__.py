"""
CogCore — Metacognition (inbound telemetry for goal generation)
"""

from cogcore.systems.metacognition.telemetry import (
    InMemoryTelemetry,
    TelemetrySource,
    introspect_attention,
    introspect_memory,
    introspect_scheduler,
)
from cogcore.systems.metacognition.types import (
    CognitiveProcess,
    IntrospectionResult,
    PerformanceMetric,
)

__all__ = [
    "CognitiveProcess",
    "IntrospectionResult",
    "InMemoryTelemetry",
    "PerformanceMetric",
    "TelemetrySource",
    "introspect_attention",
    "introspect_memory",
    "introspect_scheduler",
]
