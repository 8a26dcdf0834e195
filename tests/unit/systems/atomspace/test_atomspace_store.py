"""
Unit tests for the AtomSpace.

Tests node/link insertion, the name and incoming indices, validated
deletes, value bounds, lazy pattern matching, snapshots and restoration.
"""

from __future__ import annotations

import threading

import pytest

from cogcore.config import AtomSpaceConfig, AttentionConfig, ValuePolicy
from cogcore.errors import AtomInUse, UnknownAtom, ValueOutOfRange
from cogcore.systems.atomspace import (
    AtomKind,
    AtomSpace,
    AttentionValue,
    LinkType,
    NodeType,
    TruthValue,
)

# ─── Fixtures ─────────────────────────────────────────────────────


@pytest.fixture
def space() -> AtomSpace:
    return AtomSpace()


def make_animals(space: AtomSpace) -> dict[str, int]:
    ids = {
        name: space.add_node(NodeType.CONCEPT, name)
        for name in ("cat", "dog", "animal", "mammal")
    }
    space.add_link(LinkType.INHERITANCE, [ids["cat"], ids["mammal"]])
    space.add_link(LinkType.INHERITANCE, [ids["dog"], ids["mammal"]])
    space.add_link(LinkType.INHERITANCE, [ids["mammal"], ids["animal"]])
    return ids


# ─── Nodes ────────────────────────────────────────────────────────


class TestNodes:
    def test_ids_start_at_one_and_increase(self, space: AtomSpace) -> None:
        assert space.add_node(NodeType.CONCEPT, "a") == 1
        assert space.add_node(NodeType.CONCEPT, "b") == 2

    def test_duplicate_names_create_distinct_nodes(self, space: AtomSpace) -> None:
        first = space.add_node(NodeType.CONCEPT, "cat")
        second = space.add_node(NodeType.CONCEPT, "cat")
        assert first != second
        assert space.find_by_name("cat") == [first, second]

    def test_defaults(self, space: AtomSpace) -> None:
        node = space.get_node(space.add_node(NodeType.PREDICATE, "likes"))
        assert node is not None
        assert node.truth == TruthValue(strength=1.0, confidence=1.0)
        assert node.attention == AttentionValue()
        assert node.kind == AtomKind.NODE

    def test_find_by_name_missing_is_empty(self, space: AtomSpace) -> None:
        assert space.find_by_name("nothing") == []

    def test_find_by_type(self, space: AtomSpace) -> None:
        space.add_node(NodeType.CONCEPT, "cat")
        number = space.add_node(NodeType.NUMBER, "42")
        assert space.find_by_type(NodeType.NUMBER) == [number]

    def test_ids_are_never_reused(self, space: AtomSpace) -> None:
        first = space.add_node(NodeType.CONCEPT, "a")
        space.remove_node(first)
        assert space.add_node(NodeType.CONCEPT, "b") == first + 1


# ─── Links ────────────────────────────────────────────────────────


class TestLinks:
    def test_link_updates_incoming_index(self, space: AtomSpace) -> None:
        ids = make_animals(space)
        assert space.get_incoming(ids["mammal"]) == [1, 2, 3]
        assert space.get_incoming(ids["cat"]) == [1]

    def test_isolated_node_has_empty_incoming(self, space: AtomSpace) -> None:
        lonely = space.add_node(NodeType.CONCEPT, "lonely")
        assert space.get_incoming(lonely) == []

    def test_outgoing_order_is_preserved(self, space: AtomSpace) -> None:
        ids = make_animals(space)
        link = space.get_link(1)
        assert link is not None
        assert link.outgoing == (ids["cat"], ids["mammal"])

    def test_repeated_outgoing_id_indexed_once(self, space: AtomSpace) -> None:
        a = space.add_node(NodeType.CONCEPT, "a")
        link_id = space.add_link(LinkType.SIMILARITY, [a, a])
        assert space.get_incoming(a) == [link_id]

    def test_unknown_outgoing_id_rejected_without_mutation(self, space: AtomSpace) -> None:
        make_animals(space)
        before = (space.node_count, space.link_count)
        with pytest.raises(UnknownAtom) as excinfo:
            space.add_link(LinkType.INHERITANCE, [1, 99])
        assert excinfo.value.atom_id == 99
        assert (space.node_count, space.link_count) == before
        assert space.get_incoming(1) == [1]

    def test_custom_link_carries_label(self, space: AtomSpace) -> None:
        a = space.add_node(NodeType.CONCEPT, "a")
        b = space.add_node(NodeType.CONCEPT, "b")
        link_id = space.add_link(LinkType.CUSTOM, [a, b], label="causes")
        link = space.get_link(link_id)
        assert link is not None
        assert link.type_name == "causes"
        assert space.find_links_by_type(LinkType.CUSTOM, label="causes") == [link_id]
        assert space.find_links_by_type(LinkType.CUSTOM, label="prevents") == []

    def test_custom_link_without_label_is_invalid(self, space: AtomSpace) -> None:
        a = space.add_node(NodeType.CONCEPT, "a")
        with pytest.raises(ValueError):
            space.add_link(LinkType.CUSTOM, [a])

    def test_empty_outgoing_is_invalid(self, space: AtomSpace) -> None:
        with pytest.raises(ValueError):
            space.add_link(LinkType.EVALUATION, [])

    def test_get_outgoing_links(self, space: AtomSpace) -> None:
        ids = make_animals(space)
        assert space.get_outgoing_links(ids["mammal"]) == [3]
        assert space.get_outgoing_links(ids["animal"]) == []


# ─── Removal ──────────────────────────────────────────────────────


class TestRemoval:
    def test_referenced_node_cannot_be_removed(self, space: AtomSpace) -> None:
        ids = make_animals(space)
        with pytest.raises(AtomInUse) as excinfo:
            space.remove_node(ids["mammal"])
        assert excinfo.value.referencing_links == [1, 2, 3]
        assert space.node_count == 4
        assert space.link_count == 3

    def test_cascade_removes_referencing_links(self, space: AtomSpace) -> None:
        ids = make_animals(space)
        removed = space.remove_node(ids["mammal"], cascade=True)
        assert removed == [1, 2, 3]
        assert space.link_count == 0
        assert space.get_incoming(ids["cat"]) == []
        assert space.find_by_name("mammal") == []

    def test_remove_link_cleans_incoming(self, space: AtomSpace) -> None:
        ids = make_animals(space)
        space.remove_link(1)
        assert space.get_incoming(ids["cat"]) == []
        assert space.get_incoming(ids["mammal"]) == [2, 3]
        space.remove_node(ids["cat"])
        assert space.get_node(ids["cat"]) is None

    def test_remove_unknown_atoms(self, space: AtomSpace) -> None:
        with pytest.raises(UnknownAtom):
            space.remove_node(5)
        with pytest.raises(UnknownAtom):
            space.remove_link(5)

    def test_incoming_of_unknown_node_raises(self, space: AtomSpace) -> None:
        with pytest.raises(UnknownAtom):
            space.get_incoming(7)

    def test_unknown_atom_is_a_key_error(self) -> None:
        assert isinstance(UnknownAtom(1), KeyError)


# ─── Values ───────────────────────────────────────────────────────


class TestValueBounds:
    def test_clamp_policy_clamps_on_write(self) -> None:
        space = AtomSpace(attention=AttentionConfig(sti_funds=100.0))
        node_id = space.add_node(
            NodeType.CONCEPT,
            "hot",
            attention=AttentionValue(sti=500.0, lti=-3.0, vlti=2.0),
            truth=TruthValue(strength=1.5, confidence=-0.1),
        )
        node = space.get_node(node_id)
        assert node is not None
        assert node.attention == AttentionValue(sti=100.0, lti=0.0, vlti=1.0)
        assert node.truth == TruthValue(strength=1.0, confidence=0.0)

    def test_reject_policy_raises_and_leaves_store_unchanged(self) -> None:
        space = AtomSpace(config=AtomSpaceConfig(value_policy=ValuePolicy.REJECT))
        with pytest.raises(ValueOutOfRange) as excinfo:
            space.add_node(NodeType.CONCEPT, "x", truth=TruthValue(strength=2.0))
        assert excinfo.value.field == "strength"
        assert space.node_count == 0

    def test_update_truth_replaces_record(self, space: AtomSpace) -> None:
        node_id = space.add_node(NodeType.CONCEPT, "x")
        updated = space.update_truth(AtomKind.NODE, node_id, TruthValue(strength=0.3, confidence=0.4))
        assert updated.truth.strength == 0.3
        assert space.get_node(node_id).truth.confidence == 0.4  # type: ignore[union-attr]

    def test_set_attention_unknown_atom(self, space: AtomSpace) -> None:
        with pytest.raises(UnknownAtom):
            space.set_attention(AtomKind.LINK, 1, AttentionValue(sti=1.0))


# ─── Pattern Matching ─────────────────────────────────────────────


class TestPatternMatch:
    def test_type_filter_selects_links(self, space: AtomSpace) -> None:
        make_animals(space)
        matches = list(space.pattern_match(atom_type=LinkType.INHERITANCE))
        assert [m.id for m in matches] == [1, 2, 3]
        assert all(m.kind == AtomKind.LINK for m in matches)

    def test_name_filter_selects_nodes_only(self, space: AtomSpace) -> None:
        make_animals(space)
        matches = list(space.pattern_match(name="cat"))
        assert [(m.kind, m.id) for m in matches] == [(AtomKind.NODE, 1)]

    def test_callable_name_filter(self, space: AtomSpace) -> None:
        make_animals(space)
        matches = list(space.pattern_match(name=lambda n: n.endswith("al")))
        assert sorted(m.name for m in matches) == ["animal", "mammal"]  # type: ignore[union-attr]

    def test_outgoing_shape(self, space: AtomSpace) -> None:
        ids = make_animals(space)
        into_mammal = list(space.pattern_match(outgoing_shape=[None, ids["mammal"]]))
        assert [m.id for m in into_mammal] == [1, 2]
        typed = list(space.pattern_match(outgoing_shape=[NodeType.CONCEPT, NodeType.CONCEPT]))
        assert len(typed) == 3
        assert list(space.pattern_match(outgoing_shape=[None])) == []

    def test_query_is_lazy_and_restartable(self, space: AtomSpace) -> None:
        query = space.pattern_match(atom_type=NodeType.CONCEPT)
        assert list(query) == []
        space.add_node(NodeType.CONCEPT, "late")
        assert [n.name for n in query] == ["late"]  # type: ignore[union-attr]
        assert [n.name for n in query] == ["late"]  # type: ignore[union-attr]

    def test_removed_atoms_skipped_mid_iteration(self, space: AtomSpace) -> None:
        for name in ("a", "b", "c"):
            space.add_node(NodeType.CONCEPT, name)
        seen = []
        for node in space.pattern_match(atom_type=NodeType.CONCEPT):
            seen.append(node.id)
            if node.id == 1:
                space.remove_node(2)
        assert seen == [1, 3]


# ─── Snapshots & Restoration ──────────────────────────────────────


class TestSnapshot:
    def test_snapshot_is_isolated_from_later_writes(self, space: AtomSpace) -> None:
        ids = make_animals(space)
        snap = space.snapshot()
        space.add_node(NodeType.CONCEPT, "fish")
        space.remove_node(ids["cat"], cascade=True)
        assert len(snap.nodes) == 4
        assert snap.get_incoming(ids["cat"]) == [1]
        assert snap.find_by_name("fish") == []

    def test_snapshot_is_read_only(self, space: AtomSpace) -> None:
        make_animals(space)
        snap = space.snapshot()
        with pytest.raises(TypeError):
            snap.nodes[99] = snap.nodes[1]  # type: ignore[index]

    def test_from_records_keeps_ids_and_counters(self, space: AtomSpace) -> None:
        make_animals(space)
        space.remove_node(space.add_node(NodeType.CONCEPT, "gone"))
        snap = space.snapshot()
        restored = AtomSpace.from_records(
            snap.nodes.values(),
            snap.links.values(),
            next_node_id=snap.next_node_id,
            next_link_id=snap.next_link_id,
        )
        assert restored.get_incoming(4) == [1, 2, 3]
        assert restored.find_by_name("cat") == [1]
        assert restored.add_node(NodeType.CONCEPT, "new") == 6

    def test_from_records_validates_links(self, space: AtomSpace) -> None:
        make_animals(space)
        snap = space.snapshot()
        nodes = [n for n in snap.nodes.values() if n.name != "cat"]
        with pytest.raises(UnknownAtom):
            AtomSpace.from_records(nodes, snap.links.values())

    def test_stats(self, space: AtomSpace) -> None:
        make_animals(space)
        space.add_node(NodeType.CONCEPT, "lonely")
        stats = space.stats()
        assert stats["nodes"] == 5
        assert stats["links"] == 3
        assert stats["isolated_nodes"] == 1


# ─── Concurrency ──────────────────────────────────────────────────


class TestConcurrency:
    def test_concurrent_writers_keep_indices_consistent(self, space: AtomSpace) -> None:
        hub = space.add_node(NodeType.CONCEPT, "hub")

        def worker(n: int) -> None:
            for i in range(50):
                leaf = space.add_node(NodeType.CONCEPT, f"leaf-{n}-{i}")
                space.add_link(LinkType.SIMILARITY, [hub, leaf])

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert space.node_count == 201
        assert space.link_count == 200
        assert len(space.get_incoming(hub)) == 200
        for link in space.links():
            for node_id in link.outgoing:
                assert space.get_node(node_id) is not None
