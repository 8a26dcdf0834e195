"""
CogCore — Codec (tagged textual records)
"""

from cogcore.codec.records import (
    dump_atomspace,
    dump_goals,
    load_atomspace,
    load_goals,
    parse_goal,
    parse_link,
    parse_node,
    parse_record,
    serialize_goal,
    serialize_link,
    serialize_node,
)

__all__ = [
    "dump_atomspace",
    "dump_goals",
    "load_atomspace",
    "load_goals",
    "parse_goal",
    "parse_link",
    "parse_node",
    "parse_record",
    "serialize_goal",
    "serialize_link",
    "serialize_node",
]
