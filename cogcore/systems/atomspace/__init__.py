"""
CogCore — AtomSpace (typed hypergraph knowledge store)

Public interface:
  AtomSpace           — the store: add/remove Nodes and Links, queries,
                        lazy pattern matching, snapshots
  AtomSpaceSnapshot   — immutable view used by goal generation
  Node, Link          — atom records
  NodeType, LinkType  — closed type tags (LinkType.CUSTOM carries a label)
  AttentionValue, TruthValue
"""

from cogcore.systems.atomspace.snapshot import AtomSpaceSnapshot
from cogcore.systems.atomspace.store import AtomSpace, PatternQuery
from cogcore.systems.atomspace.types import (
    Atom,
    AtomKind,
    AttentionValue,
    Link,
    LinkType,
    Node,
    NodeType,
    TruthValue,
)

__all__ = [
    "AtomSpace",
    "AtomSpaceSnapshot",
    "PatternQuery",
    "Atom",
    "AtomKind",
    "AttentionValue",
    "Link",
    "LinkType",
    "Node",
    "NodeType",
    "TruthValue",
]
