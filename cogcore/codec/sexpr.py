"""
Minimal reader and writer for parenthesised records.

Grammar:
    expr   := list | string | symbol
    list   := "(" expr* ")"
    string := JSON string literal
    symbol := any run of characters other than whitespace, parens and quotes

Strings are decoded into ``str``; symbols (including numbers) are returned
as ``Symbol`` so a caller can tell ``foo`` from ``"foo"``.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterable, Iterator
from typing import Union

from cogcore.errors import RecordParseError


class Symbol(str):
    """A bare token: a tag, an enum value or a number."""

    __slots__ = ()

    def __repr__(self) -> str:
        return f"Symbol({str.__repr__(self)})"


Expr = Union[Symbol, str, list["Expr"]]

_TOKEN_RE = re.compile(
    r"""
    \s*(?:
        (?P<open>\()
      | (?P<close>\))
      | (?P<string>"(?:[^"\\]|\\.)*")
      | (?P<symbol>[^\s()"]+)
    )
    """,
    re.VERBOSE,
)
_TRAILING_WS = re.compile(r"\s*")


def _tokens(text: str) -> Iterator[tuple[str, str, int]]:
    pos = 0
    end = len(text)
    while True:
        pos = _TRAILING_WS.match(text, pos).end()  # type: ignore[union-attr]
        if pos >= end:
            return
        match = _TOKEN_RE.match(text, pos)
        if match is None or match.lastgroup is None:
            raise RecordParseError(f"unexpected character {text[pos]!r} at offset {pos}")
        yield match.lastgroup, match.group(match.lastgroup), pos
        pos = match.end()


def parse_many(text: str) -> list[Expr]:
    """Parse every top-level expression in ``text``."""
    stack: list[list[Expr]] = [[]]
    for kind, value, pos in _tokens(text):
        if kind == "open":
            stack.append([])
        elif kind == "close":
            if len(stack) == 1:
                raise RecordParseError(f"unbalanced ')' at offset {pos}")
            done = stack.pop()
            stack[-1].append(done)
        elif kind == "string":
            try:
                stack[-1].append(json.loads(value))
            except json.JSONDecodeError as exc:
                raise RecordParseError(f"bad string literal at offset {pos}: {exc}") from exc
        else:
            stack[-1].append(Symbol(value))
    if len(stack) != 1:
        raise RecordParseError("unbalanced '(' at end of input")
    return stack[0]


def parse_one(text: str) -> Expr:
    exprs = parse_many(text)
    if len(exprs) != 1:
        raise RecordParseError(f"expected one expression, found {len(exprs)}")
    return exprs[0]


# ─── Writing ──────────────────────────────────────────────────────


def quote(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


def number(value: float | int) -> str:
    """``repr`` round-trips floats exactly."""
    if isinstance(value, bool):
        raise TypeError("booleans are not numbers here")
    return repr(float(value)) if isinstance(value, float) else str(int(value))


def form(tag: str, *parts: str) -> str:
    return "(" + " ".join([tag, *parts]) + ")"


def group(parts: Iterable[str]) -> str:
    return "(" + " ".join(parts) + ")"


# ─── Reading helpers ──────────────────────────────────────────────


def expect_list(expr: Expr, what: str) -> list[Expr]:
    if not isinstance(expr, list):
        raise RecordParseError(f"{what}: expected a list, got {expr!r}")
    return expr


def expect_tagged(expr: Expr, tag: str) -> list[Expr]:
    items = expect_list(expr, tag)
    if not items or items[0] != tag or not isinstance(items[0], Symbol):
        raise RecordParseError(f"expected ({tag} ...), got {expr!r}")
    return items[1:]


def expect_symbol(expr: Expr, what: str) -> Symbol:
    if not isinstance(expr, Symbol):
        raise RecordParseError(f"{what}: expected a symbol, got {expr!r}")
    return expr


def expect_string(expr: Expr, what: str) -> str:
    if isinstance(expr, Symbol) or not isinstance(expr, str):
        raise RecordParseError(f"{what}: expected a string, got {expr!r}")
    return expr


def to_int(expr: Expr, what: str) -> int:
    token = expect_symbol(expr, what)
    try:
        return int(token)
    except ValueError as exc:
        raise RecordParseError(f"{what}: not an integer: {token!r}") from exc


def to_float(expr: Expr, what: str) -> float:
    token = expect_symbol(expr, what)
    try:
        return float(token)
    except ValueError as exc:
        raise RecordParseError(f"{what}: not a number: {token!r}") from exc


def clauses(items: list[Expr], what: str) -> dict[str, list[Expr]]:
    """Index trailing ``(tag ...)`` clauses by tag. Repeats are an error."""
    found: dict[str, list[Expr]] = {}
    for item in items:
        body = expect_list(item, what)
        if not body:
            raise RecordParseError(f"{what}: empty clause")
        tag = str(expect_symbol(body[0], f"{what} clause tag"))
        if tag in found:
            raise RecordParseError(f"{what}: duplicate ({tag} ...) clause")
        found[tag] = body[1:]
    return found
