"""
Attention and truth-value bounds.

One policy per deployment: either every out-of-range component is clamped
on write, or every such write is rejected with ValueOutOfRange.
"""

from __future__ import annotations

from cogcore.config import AttentionConfig, ValuePolicy
from cogcore.errors import ValueOutOfRange
from cogcore.primitives.common import clamp
from cogcore.systems.atomspace.types import AttentionValue, TruthValue


class ValueBounds:
    def __init__(
        self,
        attention: AttentionConfig | None = None,
        policy: ValuePolicy = ValuePolicy.CLAMP,
    ) -> None:
        attention = attention or AttentionConfig()
        self.policy = policy
        self.sti_range = (attention.min_sti, attention.max_sti)
        self.lti_range = (0.0, attention.max_lti)
        self.vlti_range = (attention.min_vlti, attention.max_vlti)

    def bound(self, field: str, value: float, lo: float, hi: float) -> float:
        if lo <= value <= hi:
            return value
        if self.policy == ValuePolicy.REJECT:
            raise ValueOutOfRange(field, value, lo, hi)
        return clamp(value, lo, hi)

    def attention(self, av: AttentionValue) -> AttentionValue:
        sti = self.bound("sti", av.sti, *self.sti_range)
        lti = self.bound("lti", av.lti, *self.lti_range)
        vlti = self.bound("vlti", av.vlti, *self.vlti_range)
        if (sti, lti, vlti) == (av.sti, av.lti, av.vlti):
            return av
        return AttentionValue(sti=sti, lti=lti, vlti=vlti)

    def truth(self, tv: TruthValue) -> TruthValue:
        strength = self.bound("strength", tv.strength, 0.0, 1.0)
        confidence = self.bound("confidence", tv.confidence, 0.0, 1.0)
        if (strength, confidence) == (tv.strength, tv.confidence):
            return tv
        return TruthValue(strength=strength, confidence=confidence)
