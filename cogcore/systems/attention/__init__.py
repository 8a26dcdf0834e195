"""
CogCore — Attention (economic attention allocation)

Public interface:
  AttentionAllocator  — stimulus, spreading activation, rent, LTI decay,
                        focus and forgetting over one AtomSpace
  AttentionBank       — the STI pool behind the zero-sum economy
  SpreadResult        — per-atom deliveries of one spreading wave
"""

from cogcore.systems.attention.allocator import AttentionAllocator
from cogcore.systems.attention.types import (
    AttentionBank,
    AttentionEvent,
    AttentionEventType,
    AttentionMetric,
    SpreadResult,
)

__all__ = [
    "AttentionAllocator",
    "AttentionBank",
    "AttentionEvent",
    "AttentionEventType",
    "AttentionMetric",
    "SpreadResult",
]
