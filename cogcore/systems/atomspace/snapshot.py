"""
Immutable AtomSpace snapshot.

Taken at the start of a goal generation cycle so that discovery runs over
a consistent view while the live store keeps changing.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from cogcore.errors import UnknownAtom
from cogcore.systems.atomspace.types import Link, Node, NodeType


@dataclass(frozen=True)
class AtomSpaceSnapshot:
    nodes: Mapping[int, Node]
    links: Mapping[int, Link]
    incoming: Mapping[int, frozenset[int]]
    next_node_id: int = 1
    next_link_id: int = 1
    _by_name: Mapping[str, tuple[int, ...]] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "nodes", MappingProxyType(dict(sorted(self.nodes.items()))))
        object.__setattr__(self, "links", MappingProxyType(dict(sorted(self.links.items()))))
        object.__setattr__(self, "incoming", MappingProxyType(dict(self.incoming)))
        by_name: dict[str, list[int]] = {}
        for node in self.nodes.values():
            by_name.setdefault(node.name, []).append(node.id)
        object.__setattr__(
            self, "_by_name", MappingProxyType({k: tuple(v) for k, v in by_name.items()})
        )

    def get_incoming(self, node_id: int) -> list[int]:
        if node_id not in self.nodes:
            raise UnknownAtom(node_id)
        return sorted(self.incoming.get(node_id, ()))

    def incoming_count(self, node_id: int) -> int:
        return len(self.incoming.get(node_id, ()))

    def find_by_name(self, name: str) -> list[int]:
        return list(self._by_name.get(name, ()))

    def nodes_of_type(self, node_type: NodeType) -> list[Node]:
        """Nodes of ``node_type`` in ascending id order."""
        return [n for n in self.nodes.values() if n.node_type == node_type]
