"""
CogCore — Record codec

Tagged textual records for atoms, goals and whole stores:

    (node <id> <type> "<name>" (attention <sti> <lti> <vlti>) (tv <strength> <confidence>))
    (link <id> <type> (<node-id> ...) (attention ...) (tv ...) [(label "<label>")])
    (goal <id> "<description>" <source> <priority> <difficulty> <impact> (caps "<cap>" ...)
          [(parents <id> ...)] [(status <status>)] [(created "<iso-8601>")])
    (atomspace (nodes <node>...) (links <link>...) (next-node <n>) (next-link <m>))

Floats are written with ``repr`` and strings as JSON literals, so
``parse(serialize(x)) == x`` for every field. The optional goal clauses are
omitted when they hold their defaults for a freshly generated goal, except
``created``, which is always written.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable
from datetime import datetime
from typing import TypeVar

from pydantic import ValidationError

from cogcore.codec.sexpr import (
    Expr,
    clauses,
    expect_list,
    expect_string,
    expect_symbol,
    expect_tagged,
    form,
    group,
    number,
    parse_one,
    quote,
    to_float,
    to_int,
)
from cogcore.config import AtomSpaceConfig, AttentionConfig
from cogcore.errors import RecordParseError
from cogcore.systems.atomspace.store import AtomSpace
from cogcore.systems.atomspace.types import (
    AttentionValue,
    Link,
    LinkType,
    Node,
    NodeType,
    TruthValue,
)
from cogcore.systems.goals.types import AutonomousGoal, GoalSource, GoalStatus

E = TypeVar("E", bound=enum.Enum)

# ─── Serialisation ────────────────────────────────────────────────


def _attention(av: AttentionValue) -> str:
    return form("attention", number(av.sti), number(av.lti), number(av.vlti))


def _truth(tv: TruthValue) -> str:
    return form("tv", number(tv.strength), number(tv.confidence))


def serialize_node(node: Node) -> str:
    return form(
        "node",
        str(node.id),
        node.node_type.value,
        quote(node.name),
        _attention(node.attention),
        _truth(node.truth),
    )


def serialize_link(link: Link) -> str:
    parts = [
        str(link.id),
        link.link_type.value,
        group(str(i) for i in link.outgoing),
        _attention(link.attention),
        _truth(link.truth),
    ]
    if link.link_type == LinkType.CUSTOM:
        parts.append(form("label", quote(link.label)))
    return form("link", *parts)


def serialize_goal(goal: AutonomousGoal) -> str:
    parts = [
        str(goal.id),
        quote(goal.description),
        goal.source.value,
        number(goal.priority),
        number(goal.estimated_difficulty),
        number(goal.potential_impact),
        form("caps", *(quote(c) for c in sorted(goal.required_capabilities))),
    ]
    if goal.parent_goals:
        parts.append(form("parents", *(str(p) for p in sorted(goal.parent_goals))))
    if goal.status != GoalStatus.PROPOSED:
        parts.append(form("status", goal.status.value))
    parts.append(form("created", quote(goal.created_at.isoformat())))
    return form("goal", *parts)


def dump_atomspace(space: AtomSpace) -> str:
    """The whole store, one record per line."""
    snapshot = space.snapshot()
    lines = ["(atomspace", "  (nodes"]
    lines += [f"    {serialize_node(n)}" for n in snapshot.nodes.values()]
    lines.append("  )")
    lines.append("  (links")
    lines += [f"    {serialize_link(k)}" for k in snapshot.links.values()]
    lines.append("  )")
    lines.append(f"  {form('next-node', str(snapshot.next_node_id))}")
    lines.append(f"  {form('next-link', str(snapshot.next_link_id))}")
    lines.append(")")
    return "\n".join(lines)


def dump_goals(goals: Iterable[AutonomousGoal]) -> str:
    body = [f"  {serialize_goal(g)}" for g in goals]
    return "\n".join(["(goals", *body, ")"])


# ─── Parsing ──────────────────────────────────────────────────────


def _parse_attention(expr: Expr) -> AttentionValue:
    body = expect_tagged(expr, "attention")
    if len(body) != 3:
        raise RecordParseError("(attention sti lti vlti) takes three numbers")
    sti, lti, vlti = (to_float(x, "attention") for x in body)
    return AttentionValue(sti=sti, lti=lti, vlti=vlti)


def _parse_truth(expr: Expr) -> TruthValue:
    body = expect_tagged(expr, "tv")
    if len(body) != 2:
        raise RecordParseError("(tv strength confidence) takes two numbers")
    strength, confidence = (to_float(x, "tv") for x in body)
    return TruthValue(strength=strength, confidence=confidence)


def _enum(enum_cls: type[E], expr: Expr, what: str) -> E:
    token = expect_symbol(expr, what)
    try:
        return enum_cls(str(token))
    except ValueError as exc:
        raise RecordParseError(f"{what}: unknown value {token!r}") from exc


def _node_from(expr: Expr) -> Node:
    body = expect_tagged(expr, "node")
    if len(body) != 5:
        raise RecordParseError(f"node record takes 5 fields, got {len(body)}")
    try:
        return Node(
            id=to_int(body[0], "node id"),
            node_type=_enum(NodeType, body[1], "node type"),
            name=expect_string(body[2], "node name"),
            attention=_parse_attention(body[3]),
            truth=_parse_truth(body[4]),
        )
    except ValidationError as exc:
        raise RecordParseError(f"invalid node record: {exc}") from exc


def _link_from(expr: Expr) -> Link:
    body = expect_tagged(expr, "link")
    if len(body) < 5:
        raise RecordParseError(f"link record takes at least 5 fields, got {len(body)}")
    extra = clauses(body[5:], "link")
    unknown = set(extra) - {"label"}
    if unknown:
        raise RecordParseError(f"link: unknown clause(s) {sorted(unknown)}")
    label = ""
    if "label" in extra:
        if len(extra["label"]) != 1:
            raise RecordParseError("(label ...) takes one string")
        label = expect_string(extra["label"][0], "link label")
    try:
        return Link(
            id=to_int(body[0], "link id"),
            link_type=_enum(LinkType, body[1], "link type"),
            outgoing=tuple(
                to_int(x, "outgoing id") for x in expect_list(body[2], "outgoing")
            ),
            attention=_parse_attention(body[3]),
            truth=_parse_truth(body[4]),
            label=label,
        )
    except ValidationError as exc:
        raise RecordParseError(f"invalid link record: {exc}") from exc


def _goal_from(expr: Expr) -> AutonomousGoal:
    body = expect_tagged(expr, "goal")
    if len(body) < 7:
        raise RecordParseError(f"goal record takes at least 7 fields, got {len(body)}")
    caps = expect_tagged(body[6], "caps")
    extra = clauses(body[7:], "goal")
    unknown = set(extra) - {"parents", "status", "created"}
    if unknown:
        raise RecordParseError(f"goal: unknown clause(s) {sorted(unknown)}")

    fields: dict[str, object] = {
        "id": to_int(body[0], "goal id"),
        "description": expect_string(body[1], "goal description"),
        "source": _enum(GoalSource, body[2], "goal source"),
        "priority": to_float(body[3], "priority"),
        "estimated_difficulty": to_float(body[4], "difficulty"),
        "potential_impact": to_float(body[5], "impact"),
        "required_capabilities": frozenset(expect_string(c, "capability") for c in caps),
    }
    if "parents" in extra:
        fields["parent_goals"] = frozenset(to_int(p, "parent id") for p in extra["parents"])
    if "status" in extra:
        if len(extra["status"]) != 1:
            raise RecordParseError("(status ...) takes one symbol")
        fields["status"] = _enum(GoalStatus, extra["status"][0], "goal status")
    if "created" in extra:
        if len(extra["created"]) != 1:
            raise RecordParseError("(created ...) takes one string")
        stamp = expect_string(extra["created"][0], "created")
        try:
            fields["created_at"] = datetime.fromisoformat(stamp)
        except ValueError as exc:
            raise RecordParseError(f"created: bad timestamp {stamp!r}") from exc
    try:
        return AutonomousGoal(**fields)
    except ValidationError as exc:
        raise RecordParseError(f"invalid goal record: {exc}") from exc


def parse_node(text: str) -> Node:
    return _node_from(parse_one(text))


def parse_link(text: str) -> Link:
    return _link_from(parse_one(text))


def parse_goal(text: str) -> AutonomousGoal:
    return _goal_from(parse_one(text))


_READERS = {"node": _node_from, "link": _link_from, "goal": _goal_from}


def parse_record(text: str) -> Node | Link | AutonomousGoal:
    """Parse any single node, link or goal record by its leading tag."""
    expr = parse_one(text)
    items = expect_list(expr, "record")
    tag = str(expect_symbol(items[0], "record tag")) if items else ""
    reader = _READERS.get(tag)
    if reader is None:
        raise RecordParseError(f"unknown record tag {tag!r}")
    return reader(expr)


def load_atomspace(
    text: str,
    config: AtomSpaceConfig | None = None,
    attention: AttentionConfig | None = None,
) -> AtomSpace:
    """Rebuild a store from ``dump_atomspace`` output, keeping every id."""
    body = expect_tagged(parse_one(text), "atomspace")
    sections = clauses(body, "atomspace")
    missing = {"nodes", "links"} - set(sections)
    if missing:
        raise RecordParseError(f"atomspace: missing section(s) {sorted(missing)}")

    nodes = [_node_from(x) for x in sections["nodes"]]
    links = [_link_from(x) for x in sections["links"]]
    _check_unique((n.id for n in nodes), "node")
    _check_unique((k.id for k in links), "link")

    next_node = next_link = None
    if "next-node" in sections:
        next_node = to_int(_single(sections["next-node"], "next-node"), "next-node")
    if "next-link" in sections:
        next_link = to_int(_single(sections["next-link"], "next-link"), "next-link")

    return AtomSpace.from_records(
        nodes,
        links,
        next_node_id=next_node,
        next_link_id=next_link,
        config=config,
        attention=attention,
    )


def load_goals(text: str) -> list[AutonomousGoal]:
    goals = [_goal_from(x) for x in expect_tagged(parse_one(text), "goals")]
    _check_unique((g.id for g in goals), "goal")
    return goals


def _single(items: list[Expr], what: str) -> Expr:
    if len(items) != 1:
        raise RecordParseError(f"({what} ...) takes one value")
    return items[0]


def _check_unique(ids: Iterable[int], what: str) -> None:
    seen: set[int] = set()
    for atom_id in ids:
        if atom_id in seen:
            raise RecordParseError(f"duplicate {what} id {atom_id}")
        seen.add(atom_id)
