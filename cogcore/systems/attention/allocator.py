"""
CogCore — Attention Allocator (economic attention network)

Importance is a currency. The allocator owns the attention bank and is the
only writer of attention fields in the AtomSpace:

  stimulate          — pool → atom
  spread_activation  — atom → neighbours, decaying per hop
  collect_rent       — focused atoms → pool
  decay_lti          — LTI fades geometrically

Zero-sum: the sum of every atom's STI plus the bank's available pool is
the same before and after stimulate, spread_activation, collect_rent and
forgetting. A spread wave never delivers more than the source and the
bank can pay for together.

Locking order is always AtomSpace read lock → allocator lock, so a
traversal sees a stable structure while no other attention write
interleaves with it. Structural removals (forgetting) are performed after
both locks are released.
"""

from __future__ import annotations

import math
import threading
from collections.abc import Iterable

import structlog

from cogcore.config import AttentionConfig
from cogcore.errors import UnknownAtom
from cogcore.primitives.common import clamp
from cogcore.systems.atomspace.store import AtomSpace
from cogcore.systems.atomspace.types import Atom, AtomKind, AttentionValue, Link, Node
from cogcore.systems.attention.types import (
    AttentionBank,
    AttentionEvent,
    AttentionEventType,
    AttentionMetric,
    SpreadResult,
    make_event_log,
)

logger = structlog.get_logger()

AtomKey = tuple[AtomKind, int]

# Connectivity bonus per incident link in calculate_importance
_CONNECTIVITY_WEIGHT = 0.1
# wage_attention scales the wage by importance / this
_WAGE_IMPORTANCE_SCALE = 100.0
_DISTRIBUTION_BUCKETS = 10
_DISTRIBUTION_BUCKET_WIDTH = 10.0


class AttentionAllocator:
    """Maintains importance values over one AtomSpace."""

    def __init__(self, space: AtomSpace, config: AttentionConfig | None = None) -> None:
        self._space = space
        self._config = config or AttentionConfig()
        self._lock = threading.RLock()
        self._focus: list[AtomKey] = []
        self._events = make_event_log(self._config.event_history_size)
        self._logger = logger.bind(system="attention")
        self.bank = AttentionBank(capacity=self._config.sti_funds, available=0.0)
        self.reconcile()

    # ─── Core economy ─────────────────────────────────────────────

    def stimulate(self, atom_id: int, amount: float, kind: AtomKind = AtomKind.NODE) -> float:
        """
        Add ``amount`` STI to an atom, funded by the bank.

        The result is clamped to the STI bounds and limited by what the
        bank can pay. Negative amounts return STI to the bank. Returns the
        change actually applied.
        """
        with self._space.read_lock(), self._lock:
            atom = self._require(kind, atom_id)
            applied = self._shift_sti(atom, amount, funded=True, strict=True)
            self._record(AttentionEventType.STIMULUS, applied, atom_id, kind)
        if applied != amount:
            self._logger.debug(
                "stimulus_limited", atom_id=atom_id, requested=amount, applied=applied
            )
        return applied

    def spread_activation(
        self,
        atom_id: int,
        amount: float,
        decay_factor: float | None = None,
        max_hops: int | None = None,
        kind: AtomKind = AtomKind.NODE,
    ) -> SpreadResult:
        """
        Propagate ``amount`` STI outward from an atom.

        Node → every Link that references it; Link → every Node it names.
        Each hop multiplies the wave by ``decay_factor`` and splits it
        evenly across the not-yet-visited neighbours. Every atom is
        credited at most once (visited set), the wave stops after
        ``max_hops``, and a share under ``spread_epsilon`` is dropped.

        The total delivered is debited from the source, down to the lower
        STI bound, and the bank covers the rest. When the two together
        cannot pay for the whole wave every share is scaled down to fit.
        A negative ``amount`` is clamped to zero or rejected per policy.
        """
        decay = self._config.spread_decay if decay_factor is None else decay_factor
        hops_limit = self._config.spread_max_hops if max_hops is None else max_hops
        if not 0.0 < decay < 1.0:
            raise ValueError(f"decay_factor must be in (0, 1), got {decay!r}")
        amount = self._space.bounds.bound("spread_amount", amount, 0.0, math.inf)
        epsilon = self._config.spread_epsilon

        with self._space.read_lock(), self._lock:
            source = self._require(kind, atom_id)
            source_key: AtomKey = (kind, atom_id)
            result = SpreadResult(source=source_key)
            visited: set[AtomKey] = {source_key}
            planned: dict[AtomKey, float] = {}
            frontier: list[tuple[AtomKey, float]] = [(source_key, amount)]

            for hop in range(1, hops_limit + 1):
                next_frontier: list[tuple[AtomKey, float]] = []
                for key, wave in frontier:
                    neighbours = [n for n in self._neighbours(key) if n not in visited]
                    if not neighbours:
                        continue
                    share = wave * decay / len(neighbours)
                    if abs(share) < epsilon:
                        result.truncated += 1
                        continue
                    for neighbour in neighbours:
                        visited.add(neighbour)
                        planned[neighbour] = share
                        next_frontier.append((neighbour, share))
                if not next_frontier:
                    break
                result.hops = hop
                frontier = next_frontier

            lo, _ = self._space.bounds.sti_range
            funds = max(0.0, source.attention.sti - lo) + max(0.0, self.bank.available)
            wanted = sum(planned.values())
            scale = min(1.0, funds / wanted) if wanted > 0.0 else 1.0
            for neighbour, share in planned.items():
                target = self._space.get_atom(*neighbour)
                applied = self._shift_sti(target, share * scale, funded=False)
                if applied:
                    result.delivered[neighbour] = applied

            # Debit the source; any shortfall at the lower STI bound is
            # drawn from the pool.
            total = result.total
            source = self._space.get_atom(kind, atom_id)
            debited = -self._shift_sti(source, -total, funded=False)
            if debited < total:
                self.bank.allocate(total - debited)

            self._record(AttentionEventType.SPREAD, total, atom_id, kind)

        self._logger.debug(
            "activation_spread",
            atom_id=atom_id,
            amount=amount,
            delivered=round(total, 6),
            reached=len(result.delivered),
            hops=result.hops,
            truncated=result.truncated,
        )
        return result

    def collect_rent(self, rent_rate: float | None = None) -> float:
        """
        Charge every focused atom ``rent_rate × STI`` and pay it into the bank.

        An atom is in focus when its STI exceeds ``focus_threshold``.
        Returns the total collected.
        """
        rate = self._config.rent_rate if rent_rate is None else rent_rate
        collected = 0.0
        with self._space.read_lock(), self._lock:
            for atom in self._space.atoms():
                if atom.attention.sti <= self._config.focus_threshold:
                    continue
                rent = rate * atom.attention.sti
                paid = -self._shift_sti(atom, -rent, funded=False)
                self.bank.refund(paid)
                collected += paid
            self._record(AttentionEventType.RENT, collected)
        self._logger.debug("rent_collected", rate=rate, collected=round(collected, 6))
        return collected

    def decay_lti(self, rate: float | None = None) -> None:
        """Multiply every atom's LTI by ``1 - rate``."""
        rate = self._config.lti_decay_rate if rate is None else rate
        factor = 1.0 - rate
        with self._space.read_lock(), self._lock:
            for atom in self._space.atoms():
                if atom.attention.lti == 0.0:
                    continue
                self._space.set_attention(
                    atom.kind,
                    atom.id,
                    atom.attention.model_copy(update={"lti": atom.attention.lti * factor}),
                )
            self._record(AttentionEventType.LTI_DECAY, rate)

    def set_lti(self, atom_id: int, lti: float, kind: AtomKind = AtomKind.NODE) -> Atom:
        with self._space.read_lock(), self._lock:
            atom = self._require(kind, atom_id)
            return self._space.set_attention(
                kind, atom_id, atom.attention.model_copy(update={"lti": lti})
            )

    def set_vlti(self, atom_id: int, vlti: float, kind: AtomKind = AtomKind.NODE) -> Atom:
        with self._space.read_lock(), self._lock:
            atom = self._require(kind, atom_id)
            return self._space.set_attention(
                kind, atom_id, atom.attention.model_copy(update={"vlti": vlti})
            )

    # ─── Ranking ──────────────────────────────────────────────────

    def get_most_important(
        self,
        n: int,
        metric: AttentionMetric = AttentionMetric.STI,
        kinds: Iterable[AtomKind] = (AtomKind.NODE, AtomKind.LINK),
    ) -> list[Atom]:
        """Top ``n`` atoms by ``metric``, descending; ties by ascending id."""
        wanted = set(kinds)
        atoms = [a for a in self._space.atoms() if a.kind in wanted]
        atoms.sort(key=lambda a: (-_metric(a, metric), a.id, a.kind != AtomKind.NODE))
        return atoms[: max(0, n)]

    def calculate_importance(self, node_id: int) -> float:
        """STI + LTI plus a small bonus per incident link."""
        node = self._require(AtomKind.NODE, node_id)
        incoming = len(self._space.get_incoming(node_id))
        outgoing = len(self._space.get_outgoing_links(node_id))
        return (
            node.attention.sti
            + node.attention.lti
            + (incoming + outgoing) * _CONNECTIVITY_WEIGHT
        )

    def wage_attention(self, node_id: int, amount: float) -> float:
        """Stimulus scaled by the Node's current importance."""
        importance = self.calculate_importance(node_id)
        return self.stimulate(node_id, amount * importance / _WAGE_IMPORTANCE_SCALE)

    def attention_distribution(self) -> list[tuple[float, int]]:
        """Node counts per STI bucket of width 10, lowest bucket first."""
        buckets = [0] * _DISTRIBUTION_BUCKETS
        for node in self._space.nodes():
            index = int(node.attention.sti // _DISTRIBUTION_BUCKET_WIDTH)
            buckets[min(_DISTRIBUTION_BUCKETS - 1, max(0, index))] += 1
        return [(i * _DISTRIBUTION_BUCKET_WIDTH, count) for i, count in enumerate(buckets)]

    # ─── Attentional focus ────────────────────────────────────────

    def update_attentional_focus(self) -> list[Atom]:
        """Recompute the focus: atoms over the threshold, capped at ``focus_size``."""
        with self._space.read_lock(), self._lock:
            ranked = self.get_most_important(self._space.node_count + self._space.link_count)
            focus = [
                a for a in ranked if a.attention.sti > self._config.focus_threshold
            ][: self._config.focus_size]
            self._focus = [(a.kind, a.id) for a in focus]
        return focus

    def focused_atoms(self) -> list[tuple[AtomKind, int]]:
        return list(self._focus)

    def is_in_focus(self, atom_id: int, kind: AtomKind = AtomKind.NODE) -> bool:
        return (kind, atom_id) in self._focus

    # ─── Forgetting ───────────────────────────────────────────────

    def forget_low_attention_atoms(self) -> list[int]:
        """
        Remove Nodes whose STI and LTI are both under the forgetting
        threshold. VLTI > 0 protects a Node. Referencing Links go with
        it; the STI they held returns to the bank.
        """
        threshold = self._config.forgetting_threshold
        with self._space.read_lock(), self._lock:
            doomed = [
                n.id
                for n in self._space.nodes()
                if n.attention.sti < threshold
                and n.attention.lti < threshold
                and n.attention.vlti <= 0.0
            ]

        removed: list[int] = []
        for node_id in doomed:
            with self._space.read_lock(), self._lock:
                node = self._space.get_node(node_id)
                if node is None:
                    continue
                held = node.attention.sti + sum(
                    link.attention.sti
                    for lid in self._space.get_incoming(node_id)
                    if (link := self._space.get_link(lid)) is not None
                )
            # Removal takes the write lock, so no other lock may be held here.
            try:
                dropped_links = self._space.remove_node(node_id, cascade=True)
            except UnknownAtom:
                continue
            with self._lock:
                self.bank.settle(held)
                gone = {(AtomKind.NODE, node_id)} | {(AtomKind.LINK, lid) for lid in dropped_links}
                self._focus = [k for k in self._focus if k not in gone]
                self._record(AttentionEventType.FORGET, held, node_id, AtomKind.NODE)
            removed.append(node_id)

        if removed:
            self._logger.info("atoms_forgotten", count=len(removed))
        return removed

    # ─── Cycle ────────────────────────────────────────────────────

    def ecan_cycle(self) -> dict[str, float]:
        """
        One pass of the attention economy: rent, LTI decay, spreading from
        the focus, focus refresh, forgetting.
        """
        collected = self.collect_rent()
        self.decay_lti()
        spread_total = 0.0
        self.update_attentional_focus()
        for kind, atom_id in self.focused_atoms():
            atom = self._space.get_atom(kind, atom_id)
            if atom is None or atom.attention.sti <= self._config.focus_threshold:
                continue
            result = self.spread_activation(
                atom_id, atom.attention.sti * self._config.spread_fraction, kind=kind
            )
            spread_total += result.total
        focus = self.update_attentional_focus()
        forgotten = self.forget_low_attention_atoms()
        summary = {
            "rent_collected": collected,
            "spread_total": spread_total,
            "focus_size": float(len(focus)),
            "forgotten": float(len(forgotten)),
        }
        self._logger.info("ecan_cycle_complete", **{k: round(v, 4) for k, v in summary.items()})
        return summary

    # ─── Diagnostics ──────────────────────────────────────────────

    def total_sti(self) -> float:
        return sum(a.attention.sti for a in self._space.atoms())

    def reconcile(self) -> float:
        """
        Re-derive the bank pool from the STI atoms hold, so that held STI
        plus the pool equals capacity again. Needed after attention was
        written straight into the AtomSpace (seeded ``add_node`` values,
        ``set_attention``, a loaded snapshot). Returns the new pool.
        """
        with self._space.read_lock(), self._lock:
            self.bank.available = self.bank.capacity - self.total_sti()
            available = self.bank.available
        if available < 0.0:
            self._logger.warning("bank_overdrawn", available=round(available, 6))
        return available

    def recent_events(self, limit: int = 10) -> list[AttentionEvent]:
        """Most recent first."""
        return list(reversed(self._events))[:limit]

    def statistics(self) -> dict[str, float]:
        return {
            "bank_capacity": self.bank.capacity,
            "bank_available": self.bank.available,
            "total_sti": self.total_sti(),
            "nodes": float(self._space.node_count),
            "focus_size": float(len(self._focus)),
        }

    # ─── Internals ────────────────────────────────────────────────

    def _require(self, kind: AtomKind, atom_id: int) -> Atom:
        atom = self._space.get_atom(kind, atom_id)
        if atom is None:
            raise UnknownAtom(atom_id, kind.value)
        return atom

    def _neighbours(self, key: AtomKey) -> list[AtomKey]:
        kind, atom_id = key
        if kind == AtomKind.NODE:
            return [(AtomKind.LINK, lid) for lid in self._space.get_incoming(atom_id)]
        link = self._space.get_link(atom_id)
        if link is None:
            return []
        return [(AtomKind.NODE, nid) for nid in dict.fromkeys(link.outgoing)]

    def _shift_sti(
        self, atom: Node | Link, delta: float, funded: bool, strict: bool = False
    ) -> float:
        """
        Move an atom's STI by ``delta`` within bounds. When ``funded`` the
        bank pays for increases and absorbs decreases. Only ``strict``
        shifts (caller-supplied amounts) honour the reject policy; internal
        flows always clamp. Returns the change applied.
        """
        current = atom.attention.sti
        lo, hi = self._space.bounds.sti_range
        if strict:
            target = self._space.bounds.bound("sti", current + delta, lo, hi)
        else:
            target = clamp(current + delta, lo, hi)
        change = target - current
        if funded:
            if change > 0:
                change = self.bank.allocate(change)
            else:
                self.bank.refund(-change)
        if change == 0.0:
            return 0.0
        self._space.set_attention(
            atom.kind,
            atom.id,
            AttentionValue(
                sti=current + change, lti=atom.attention.lti, vlti=atom.attention.vlti
            ),
        )
        return change

    def _record(
        self,
        event_type: AttentionEventType,
        amount: float,
        atom_id: int | None = None,
        kind: AtomKind | None = None,
    ) -> None:
        self._events.append(
            AttentionEvent(event_type=event_type, amount=amount, atom_id=atom_id, kind=kind)
        )


def _metric(atom: Atom, metric: AttentionMetric) -> float:
    return atom.attention.sti if metric == AttentionMetric.STI else atom.attention.lti
