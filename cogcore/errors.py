"""
CogCore — Error Hierarchy

All exceptions raised by the core. None of them is fatal to the process:
each is a local, recoverable condition reported to the immediate caller,
and every operation that raises one has left its state untouched.

  UnknownAtom            — an id that is not in the AtomSpace
  AtomInUse              — non-cascading delete of a referenced Node
  ValueOutOfRange        — attention/truth component outside its bound
                           (only under the ``reject`` value policy)
  GenerationInProgress   — a goal cycle is already running; coalesced
                           internally, never surfaced to callers
  UnknownTask            — scheduler id lookup failed
  InvalidTaskTransition  — task state machine violation
  RecordParseError       — malformed textual record
"""

from __future__ import annotations


class CogCoreError(RuntimeError):
    """Base for all CogCore errors."""


class UnknownAtom(CogCoreError, KeyError):
    """Referenced atom id does not exist."""

    def __init__(self, atom_id: int, kind: str = "node") -> None:
        self.atom_id = atom_id
        self.kind = kind
        super().__init__(f"unknown {kind} id {atom_id}")

    def __str__(self) -> str:
        return f"unknown {self.kind} id {self.atom_id}"


class AtomInUse(CogCoreError):
    """A Node is still referenced by at least one Link."""

    def __init__(self, node_id: int, referencing_links: list[int]) -> None:
        self.node_id = node_id
        self.referencing_links = referencing_links
        super().__init__(
            f"node {node_id} is referenced by {len(referencing_links)} link(s)"
        )


class ValueOutOfRange(CogCoreError, ValueError):
    """An attention or truth-value component lies outside its configured bound."""

    def __init__(self, field: str, value: float, lo: float, hi: float) -> None:
        self.field = field
        self.value = value
        self.lo = lo
        self.hi = hi
        super().__init__(f"{field}={value!r} outside [{lo!r}, {hi!r}]")


class GenerationInProgress(CogCoreError):
    """A goal generation cycle is already in flight."""


class UnknownTask(CogCoreError, KeyError):
    """Referenced task id does not exist."""

    def __init__(self, task_id: int) -> None:
        self.task_id = task_id
        super().__init__(f"unknown task id {task_id}")

    def __str__(self) -> str:
        return f"unknown task id {self.task_id}"


class InvalidTaskTransition(CogCoreError):
    """A task was asked to move to a state its current state cannot reach."""


class RecordParseError(CogCoreError, ValueError):
    """A textual record could not be parsed."""
