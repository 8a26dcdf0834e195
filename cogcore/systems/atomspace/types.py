"""
AtomSpace data types.

Nodes and Links are immutable records owned by the AtomSpace. Cross
references are plain integer ids: a Link names its Nodes by id and never
holds the Node object, and the incoming index maps Node ids back to Link
ids. Updating an atom's attention or truth value replaces its record.
"""

from __future__ import annotations

import enum

from pydantic import Field, model_validator

from cogcore.primitives.common import FrozenModel

# ---------------------------------------------------------------------------
# Type tags
# ---------------------------------------------------------------------------


class AtomKind(enum.StrEnum):
    """Nodes and Links live in separate id spaces."""

    NODE = "node"
    LINK = "link"


class NodeType(enum.StrEnum):
    CONCEPT = "Concept"
    PREDICATE = "Predicate"
    VARIABLE = "Variable"
    NUMBER = "Number"
    LINK_TYPE = "LinkType"


class LinkType(enum.StrEnum):
    INHERITANCE = "Inheritance"
    SIMILARITY = "Similarity"
    IMPLICATION = "Implication"
    EVALUATION = "Evaluation"
    EXECUTION = "Execution"
    # Carries a free-form label on the Link
    CUSTOM = "Custom"


# ---------------------------------------------------------------------------
# Values
# ---------------------------------------------------------------------------


class AttentionValue(FrozenModel):
    """Short-, long- and very-long-term importance."""

    sti: float = 0.0
    lti: float = 0.0
    vlti: float = 0.0


class TruthValue(FrozenModel):
    """(strength, confidence). Bounds are enforced by the owning AtomSpace."""

    strength: float = 1.0
    confidence: float = 1.0


# ---------------------------------------------------------------------------
# Atoms
# ---------------------------------------------------------------------------


class Node(FrozenModel):
    id: int
    node_type: NodeType
    name: str
    attention: AttentionValue = Field(default_factory=AttentionValue)
    truth: TruthValue = Field(default_factory=TruthValue)

    @property
    def kind(self) -> AtomKind:
        return AtomKind.NODE


class Link(FrozenModel):
    """
    Ordered hyperedge over Node ids.

    Order is significant: for INHERITANCE, ``outgoing[0]`` inherits from
    ``outgoing[1]``.
    """

    id: int
    link_type: LinkType
    outgoing: tuple[int, ...]
    label: str = ""
    attention: AttentionValue = Field(default_factory=AttentionValue)
    truth: TruthValue = Field(default_factory=TruthValue)

    @property
    def kind(self) -> AtomKind:
        return AtomKind.LINK

    @property
    def type_name(self) -> str:
        """The CUSTOM label, or the tag itself for built-in types."""
        return self.label if self.link_type == LinkType.CUSTOM else self.link_type.value

    @model_validator(mode="after")
    def _check_shape(self) -> Link:
        if not self.outgoing:
            raise ValueError("a link needs at least one outgoing node")
        if self.link_type == LinkType.CUSTOM and not self.label:
            raise ValueError("custom links need a label")
        if self.link_type != LinkType.CUSTOM and self.label:
            raise ValueError("only custom links carry a label")
        return self


Atom = Node | Link
