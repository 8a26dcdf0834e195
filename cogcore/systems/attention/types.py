"""
Attention-specific data types.

The bank and the event log are mutated in place on every allocator call,
so they are plain dataclasses rather than Pydantic models.
"""

from __future__ import annotations

import enum
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime

from pydantic import Field

from cogcore.primitives.common import FrozenModel, utc_now
from cogcore.systems.atomspace.types import AtomKind


class AttentionMetric(enum.StrEnum):
    STI = "sti"
    LTI = "lti"


class AttentionEventType(enum.StrEnum):
    STIMULUS = "stimulus"
    SPREAD = "spread-activation"
    RENT = "rent-collection"
    LTI_DECAY = "lti-decay"
    FORGET = "forget"


class AttentionEvent(FrozenModel):
    event_type: AttentionEventType
    amount: float
    atom_id: int | None = None
    kind: AtomKind | None = None
    timestamp: datetime = Field(default_factory=utc_now)


@dataclass
class AttentionBank:
    """
    The STI pool behind the zero-sum economy.

    ``capacity`` is fixed; ``available`` is what atoms do not currently
    hold. Rent flows atoms → pool, stimulus flows pool → atoms.
    """

    capacity: float
    available: float

    def allocate(self, amount: float) -> float:
        """Withdraw up to ``amount``. Returns what was actually granted."""
        granted = max(0.0, min(amount, self.available))
        self.available -= granted
        return granted

    def refund(self, amount: float) -> None:
        self.available += max(0.0, amount)

    def settle(self, held: float) -> None:
        """
        Take back the STI an atom held when it leaves the AtomSpace.
        Negative holdings were paid into the pool, so they come back out.
        """
        self.available += held

    def status(self) -> dict[str, float]:
        return {"capacity": self.capacity, "available": self.available}


@dataclass
class SpreadResult:
    """Outcome of one spreading-activation wave."""

    source: tuple[AtomKind, int]
    delivered: dict[tuple[AtomKind, int], float] = field(default_factory=dict)
    hops: int = 0
    # Branches dropped because their share fell under epsilon
    truncated: int = 0

    @property
    def total(self) -> float:
        return sum(self.delivered.values())


def make_event_log(size: int) -> deque[AttentionEvent]:
    return deque(maxlen=size)
