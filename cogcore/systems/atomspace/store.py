"""
CogCore — AtomSpace

The typed hypergraph store. The AtomSpace is the sole owner of every Node
and Link; all cross references are integer ids.

Three structures must stay consistent on every mutation:
  nodes / links        — id → record
  name index           — name → Node ids
  incoming index       — Node id → ids of Links whose outgoing list holds it

Invariant: every id in any Link's outgoing list is a live Node id. It is
validated before a Link is inserted and preserved on removal by refusing
(or cascading) deletes of referenced Nodes.

Concurrency: structural mutations take the exclusive write lock; queries
take the shared read lock. Attention and truth updates replace a single
record and are serialised by a dedicated attention lock while holding a
read lock, so they never race a structural change.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable, Iterator, Sequence
from typing import Any

import structlog

from cogcore.config import AtomSpaceConfig, AttentionConfig
from cogcore.errors import AtomInUse, UnknownAtom
from cogcore.systems.atomspace.bounds import ValueBounds
from cogcore.systems.atomspace.locks import ReadWriteLock
from cogcore.systems.atomspace.snapshot import AtomSpaceSnapshot
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

logger = structlog.get_logger()

# An outgoing-shape element: a concrete Node id, a NodeType the Node at
# that position must have, or None for "anything".
ShapeElement = int | NodeType | None


class AtomSpace:
    """
    In-memory hypergraph of Nodes and Links.

    Ids are assigned monotonically from 1 and never reused, separately for
    Nodes and Links.
    """

    def __init__(
        self,
        config: AtomSpaceConfig | None = None,
        attention: AttentionConfig | None = None,
    ) -> None:
        self._config = config or AtomSpaceConfig()
        self.bounds = ValueBounds(attention, self._config.value_policy)

        self._nodes: dict[int, Node] = {}
        self._links: dict[int, Link] = {}
        self._next_node_id: int = 1
        self._next_link_id: int = 1
        self._name_index: dict[str, set[int]] = {}
        self._incoming: dict[int, set[int]] = {}

        self._lock = ReadWriteLock()
        self._attention_lock = threading.RLock()
        self._logger = logger.bind(system="atomspace")

    # ─── Locks ────────────────────────────────────────────────────

    def read_lock(self) -> Any:
        """Shared lock over the structure. Re-entrant per thread."""
        return self._lock.read()

    # ─── Mutation ─────────────────────────────────────────────────

    def add_node(
        self,
        node_type: NodeType,
        name: str,
        attention: AttentionValue | None = None,
        truth: TruthValue | None = None,
    ) -> int:
        """
        Always creates a new Node, even when ``name`` is already taken.

        A seeded ``attention`` is not drawn from any attention bank; an
        allocator built afterwards counts it, one built before needs
        ``reconcile()``.
        """
        av = self.bounds.attention(attention or AttentionValue())
        tv = self.bounds.truth(truth or TruthValue())
        with self._lock.write():
            node_id = self._next_node_id
            self._nodes[node_id] = Node(
                id=node_id, node_type=node_type, name=name, attention=av, truth=tv
            )
            self._name_index.setdefault(name, set()).add(node_id)
            self._next_node_id = node_id + 1
        self._logger.debug("node_added", node_id=node_id, node_type=node_type.value, name=name)
        return node_id

    def add_link(
        self,
        link_type: LinkType,
        outgoing: Sequence[int],
        label: str = "",
        attention: AttentionValue | None = None,
        truth: TruthValue | None = None,
    ) -> int:
        """
        Create a Link over existing Nodes.

        Raises UnknownAtom, before any mutation, if an outgoing id is not a
        live Node.
        """
        av = self.bounds.attention(attention or AttentionValue())
        tv = self.bounds.truth(truth or TruthValue())
        with self._lock.write():
            for node_id in outgoing:
                if node_id not in self._nodes:
                    self._logger.info(
                        "link_rejected_unknown_atom",
                        link_type=link_type.value,
                        missing_id=node_id,
                    )
                    raise UnknownAtom(node_id)
            link_id = self._next_link_id
            link = Link(
                id=link_id,
                link_type=link_type,
                outgoing=tuple(outgoing),
                label=label,
                attention=av,
                truth=tv,
            )
            self._links[link_id] = link
            for node_id in set(link.outgoing):
                self._incoming.setdefault(node_id, set()).add(link_id)
            self._next_link_id = link_id + 1
        self._logger.debug(
            "link_added", link_id=link_id, link_type=link.type_name, outgoing=list(link.outgoing)
        )
        return link_id

    def remove_node(self, node_id: int, cascade: bool = False) -> list[int]:
        """
        Remove a Node.

        Without ``cascade`` a Node that any Link still references is refused
        with AtomInUse. With ``cascade`` every referencing Link is removed
        first. Returns the ids of the Links removed along the way.
        """
        with self._lock.write():
            node = self._nodes.get(node_id)
            if node is None:
                raise UnknownAtom(node_id)
            referencing = sorted(self._incoming.get(node_id, ()))
            if referencing and not cascade:
                raise AtomInUse(node_id, referencing)
            for link_id in referencing:
                self._remove_link_locked(link_id)
            del self._nodes[node_id]
            self._incoming.pop(node_id, None)
            names = self._name_index.get(node.name)
            if names is not None:
                names.discard(node_id)
                if not names:
                    del self._name_index[node.name]
        self._logger.debug("node_removed", node_id=node_id, cascaded_links=referencing)
        return referencing

    def remove_link(self, link_id: int) -> None:
        with self._lock.write():
            self._remove_link_locked(link_id)
        self._logger.debug("link_removed", link_id=link_id)

    def _remove_link_locked(self, link_id: int) -> None:
        link = self._links.pop(link_id, None)
        if link is None:
            raise UnknownAtom(link_id, AtomKind.LINK.value)
        for node_id in set(link.outgoing):
            refs = self._incoming.get(node_id)
            if refs is not None:
                refs.discard(link_id)
                if not refs:
                    del self._incoming[node_id]

    def set_attention(self, kind: AtomKind, atom_id: int, attention: AttentionValue) -> Atom:
        """
        Replace an atom's attention value. Returns the updated record.

        Raw write with no bank accounting. Outside the allocator, follow
        it with ``AttentionAllocator.reconcile()``.
        """
        av = self.bounds.attention(attention)
        with self._lock.read(), self._attention_lock:
            table = self._table(kind)
            atom = table.get(atom_id)
            if atom is None:
                raise UnknownAtom(atom_id, kind.value)
            updated = atom.model_copy(update={"attention": av})
            table[atom_id] = updated
        return updated

    def update_truth(self, kind: AtomKind, atom_id: int, truth: TruthValue) -> Atom:
        tv = self.bounds.truth(truth)
        with self._lock.read(), self._attention_lock:
            table = self._table(kind)
            atom = table.get(atom_id)
            if atom is None:
                raise UnknownAtom(atom_id, kind.value)
            updated = atom.model_copy(update={"truth": tv})
            table[atom_id] = updated
        return updated

    # ─── Queries ──────────────────────────────────────────────────

    def get_node(self, node_id: int) -> Node | None:
        with self._lock.read():
            return self._nodes.get(node_id)

    def get_link(self, link_id: int) -> Link | None:
        with self._lock.read():
            return self._links.get(link_id)

    def get_atom(self, kind: AtomKind, atom_id: int) -> Atom | None:
        with self._lock.read():
            return self._table(kind).get(atom_id)

    def contains(self, kind: AtomKind, atom_id: int) -> bool:
        with self._lock.read():
            return atom_id in self._table(kind)

    def find_by_name(self, name: str) -> list[int]:
        with self._lock.read():
            return sorted(self._name_index.get(name, ()))

    def find_by_type(self, node_type: NodeType) -> list[int]:
        with self._lock.read():
            return [n.id for n in self._nodes.values() if n.node_type == node_type]

    def find_links_by_type(self, link_type: LinkType, label: str = "") -> list[int]:
        with self._lock.read():
            return [
                link.id
                for link in self._links.values()
                if link.link_type == link_type and (not label or link.label == label)
            ]

    def get_incoming(self, node_id: int) -> list[int]:
        """Ids of Links referencing ``node_id``; empty for an isolated Node."""
        with self._lock.read():
            if node_id not in self._nodes:
                raise UnknownAtom(node_id)
            return sorted(self._incoming.get(node_id, ()))

    def get_outgoing_links(self, node_id: int) -> list[int]:
        """Links in which ``node_id`` is the first (source) element."""
        with self._lock.read():
            if node_id not in self._nodes:
                raise UnknownAtom(node_id)
            return [
                link_id
                for link_id in sorted(self._incoming.get(node_id, ()))
                if self._links[link_id].outgoing[0] == node_id
            ]

    def nodes(self) -> list[Node]:
        with self._lock.read():
            return list(self._nodes.values())

    def links(self) -> list[Link]:
        with self._lock.read():
            return list(self._links.values())

    def atoms(self) -> list[Atom]:
        with self._lock.read():
            return [*self._nodes.values(), *self._links.values()]

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @property
    def link_count(self) -> int:
        return len(self._links)

    def pattern_match(
        self,
        atom_type: NodeType | LinkType | None = None,
        name: str | Callable[[str], bool] | None = None,
        outgoing_shape: Sequence[ShapeElement] | None = None,
    ) -> PatternQuery:
        """
        Lazy, restartable query over the live store.

        Each iteration walks the store as it is at that moment; take a
        ``snapshot()`` first for a frozen view.
        """
        return PatternQuery(self, atom_type, name, outgoing_shape)

    def snapshot(self) -> AtomSpaceSnapshot:
        """Immutable copy of the whole store, taken under the read lock."""
        with self._lock.read():
            return AtomSpaceSnapshot(
                nodes=dict(self._nodes),
                links=dict(self._links),
                incoming={nid: frozenset(ids) for nid, ids in self._incoming.items()},
                next_node_id=self._next_node_id,
                next_link_id=self._next_link_id,
            )

    def stats(self) -> dict[str, int]:
        with self._lock.read():
            return {
                "nodes": len(self._nodes),
                "links": len(self._links),
                "names": len(self._name_index),
                "isolated_nodes": sum(1 for nid in self._nodes if nid not in self._incoming),
                "next_node_id": self._next_node_id,
                "next_link_id": self._next_link_id,
            }

    # ─── Restoration ──────────────────────────────────────────────

    @classmethod
    def from_records(
        cls,
        nodes: Iterable[Node],
        links: Iterable[Link],
        next_node_id: int | None = None,
        next_link_id: int | None = None,
        config: AtomSpaceConfig | None = None,
        attention: AttentionConfig | None = None,
    ) -> AtomSpace:
        """
        Rebuild a store from existing records, keeping their ids.

        Links are validated against the restored Nodes exactly as
        ``add_link`` would validate them.
        """
        space = cls(config=config, attention=attention)
        with space._lock.write():
            for node in nodes:
                space._nodes[node.id] = node.model_copy(
                    update={
                        "attention": space.bounds.attention(node.attention),
                        "truth": space.bounds.truth(node.truth),
                    }
                )
                space._name_index.setdefault(node.name, set()).add(node.id)
            for link in links:
                for node_id in link.outgoing:
                    if node_id not in space._nodes:
                        raise UnknownAtom(node_id)
                space._links[link.id] = link.model_copy(
                    update={
                        "attention": space.bounds.attention(link.attention),
                        "truth": space.bounds.truth(link.truth),
                    }
                )
                for node_id in set(link.outgoing):
                    space._incoming.setdefault(node_id, set()).add(link.id)
            space._next_node_id = max(next_node_id or 1, max(space._nodes, default=0) + 1)
            space._next_link_id = max(next_link_id or 1, max(space._links, default=0) + 1)
        return space

    # ─── Internals ────────────────────────────────────────────────

    def _table(self, kind: AtomKind) -> dict[int, Any]:
        return self._nodes if kind == AtomKind.NODE else self._links

    def _node_id_bound(self) -> int:
        return self._next_node_id

    def _link_id_bound(self) -> int:
        return self._next_link_id


class PatternQuery:
    """
    Restartable lazy sequence of atoms matching a pattern.

    Iterates ids in ascending order; an atom removed mid-iteration is
    skipped, an atom added mid-iteration is visited if its id is ahead of
    the cursor.
    """

    def __init__(
        self,
        space: AtomSpace,
        atom_type: NodeType | LinkType | None,
        name: str | Callable[[str], bool] | None,
        outgoing_shape: Sequence[ShapeElement] | None,
    ) -> None:
        self._space = space
        self._atom_type = atom_type
        self._name = name
        self._shape = tuple(outgoing_shape) if outgoing_shape is not None else None

    def __iter__(self) -> Iterator[Atom]:
        want_nodes = self._shape is None and not isinstance(self._atom_type, LinkType)
        want_links = self._name is None and not isinstance(self._atom_type, NodeType)
        if want_nodes:
            yield from self._walk(AtomKind.NODE, self._space._node_id_bound, self._node_matches)
        if want_links:
            yield from self._walk(AtomKind.LINK, self._space._link_id_bound, self._link_matches)

    def _walk(
        self,
        kind: AtomKind,
        bound: Callable[[], int],
        matches: Callable[[Any], bool],
    ) -> Iterator[Atom]:
        atom_id = 1
        while atom_id < bound():
            with self._space.read_lock():
                atom = self._space._table(kind).get(atom_id)
                hit = atom is not None and matches(atom)
            if hit:
                yield atom
            atom_id += 1

    def _node_matches(self, node: Node) -> bool:
        if self._atom_type is not None and node.node_type != self._atom_type:
            return False
        if self._name is None:
            return True
        if callable(self._name):
            return bool(self._name(node.name))
        return node.name == self._name

    def _link_matches(self, link: Link) -> bool:
        if self._atom_type is not None and link.link_type != self._atom_type:
            return False
        if self._shape is None:
            return True
        if len(self._shape) != len(link.outgoing):
            return False
        for expected, node_id in zip(self._shape, link.outgoing):
            if expected is None:
                continue
            if isinstance(expected, NodeType):
                node = self._space._nodes.get(node_id)
                if node is None or node.node_type != expected:
                    return False
            elif expected != node_id:
                return False
        return True
