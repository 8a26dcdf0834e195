"""
Unit tests for the StubReasoner collaborator.
"""

from __future__ import annotations

from cogcore.systems.atomspace import AtomKind, AtomSpace, LinkType, NodeType
from cogcore.systems.metacognition import (
    CognitiveProcess,
    InMemoryTelemetry,
    PerformanceMetric,
)
from cogcore.systems.reasoning import ReasoningCollaborator, StubReasoner


def make_reasoner() -> tuple[AtomSpace, StubReasoner, InMemoryTelemetry]:
    space = AtomSpace()
    telemetry = InMemoryTelemetry()
    return space, StubReasoner(space, telemetry), telemetry


class TestStubReasoner:
    def test_satisfies_protocol(self) -> None:
        _, reasoner, _ = make_reasoner()
        assert isinstance(reasoner, ReasoningCollaborator)

    def test_query_returns_only_submitted_atoms(self) -> None:
        space, reasoner, _ = make_reasoner()
        cat = space.add_node(NodeType.CONCEPT, "cat")
        dog = space.add_node(NodeType.CONCEPT, "dog")
        link = space.add_link(LinkType.SIMILARITY, [cat, dog])

        reasoner.submit_atom(dog)
        reasoner.submit_atom(link, AtomKind.LINK)

        assert [a.id for a in reasoner.query_atoms(NodeType.CONCEPT)] == [dog]
        assert [a.id for a in reasoner.query_atoms(LinkType.SIMILARITY)] == [link]
        assert reasoner.query_atoms(name="cat") == []

    def test_unknown_atom_ignored(self) -> None:
        _, reasoner, _ = make_reasoner()
        reasoner.submit_atom(42)
        assert reasoner.stats["submitted"] == 0

    def test_removed_atoms_drop_out_of_queries(self) -> None:
        space, reasoner, _ = make_reasoner()
        owl = space.add_node(NodeType.CONCEPT, "owl")
        reasoner.submit_atom(owl)
        space.remove_node(owl)
        assert reasoner.query_atoms() == []

    def test_metric_updates_reach_telemetry(self) -> None:
        _, reasoner, telemetry = make_reasoner()
        metric = PerformanceMetric(
            process=CognitiveProcess.REASONING_INFERENCE, success_rate=0.4
        )
        reasoner.on_metric_update(metric)

        assert reasoner.stats["metric_updates"] == 1
        assert telemetry.performance_metrics() == [metric]
