from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass

from songsort.core.graph import transitive_closure
from songsort.core.models import Decision, DecisionKind, Direction


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KnownPreference:
    direction: Direction | None = None
    provenance: DecisionKind | None = None

    @property
    def resolved(self) -> bool:
        return self.direction is not None


UNKNOWN = KnownPreference()


def _pair_key(a: str, b: str) -> tuple[str, str]:
    return (a, b) if a < b else (b, a)


class DecisionLedger:
    """Ordered history of resolved preferences for one ranking session.

    The inference cache (pair memo, direct map and closure edges) is derived
    from the history and tagged with the history length it was built at.
    """

    def __init__(self) -> None:
        self._decisions: list[Decision] = []
        self._edges: set[tuple[str, str]] = set()
        self._direct_count = 0

        self._memo: dict[tuple[str, str], tuple[str, DecisionKind]] = {}
        self._direct_map: dict[tuple[str, str], tuple[str, DecisionKind]] = {}
        self._direct_version = -1
        self._closure_edges: set[tuple[str, str]] = set()
        self._closure_version = -1

    def __len__(self) -> int:
        return len(self._decisions)

    def __iter__(self) -> Iterator[Decision]:
        return iter(self._decisions)

    @property
    def decisions(self) -> tuple[Decision, ...]:
        return tuple(self._decisions)

    @property
    def direct_count(self) -> int:
        return self._direct_count

    def has_edge(self, chosen: str, rejected: str) -> bool:
        return (chosen, rejected) in self._edges

    def has_pair(self, a: str, b: str) -> bool:
        return (a, b) in self._edges or (b, a) in self._edges

    def append(self, decision: Decision) -> Decision:
        self._decisions.append(decision)
        self._edges.add((decision.chosen, decision.rejected))
        if decision.kind == DecisionKind.DIRECT:
            self._direct_count += 1
        if decision.kind != DecisionKind.INFERRED:
            self.invalidate()
        return decision

    def invalidate(self) -> None:
        self._memo.clear()
        self._direct_version = -1
        self._closure_version = -1

    def clear(self) -> None:
        self._decisions.clear()
        self._edges.clear()
        self._direct_count = 0
        self.invalidate()

    def _refresh_direct_map(self) -> None:
        if self._direct_version == len(self._decisions):
            return
        self._direct_map = {
            _pair_key(decision.chosen, decision.rejected): (decision.chosen, decision.kind)
            for decision in self._decisions
        }
        self._direct_version = len(self._decisions)

    def _refresh_closure(self) -> None:
        if self._closure_version == len(self._decisions):
            return
        closure = transitive_closure(self._decisions)
        self._closure_edges = {
            (decision.chosen, decision.rejected)
            for decision in closure
            if decision.kind == DecisionKind.INFERRED
        }
        self._closure_version = len(self._decisions)
        logger.debug(
            "Rebuilt transitive closure at ledger length %s (%s inferred edges)",
            self._closure_version,
            len(self._closure_edges),
        )

    def _lookup(self, key: tuple[str, str]) -> tuple[str, DecisionKind] | None:
        cached = self._memo.get(key)
        if cached is not None:
            return cached

        self._refresh_direct_map()
        hit = self._direct_map.get(key)
        if hit is None:
            self._refresh_closure()
            first, second = key
            if (first, second) in self._closure_edges:
                hit = (first, DecisionKind.INFERRED)
            elif (second, first) in self._closure_edges:
                hit = (second, DecisionKind.INFERRED)

        if hit is not None:
            self._memo[key] = hit
        return hit

    def known_preference(self, a: str, b: str) -> KnownPreference:
        """Report whether ``a`` (left) or ``b`` (right) is already preferred."""
        hit = self._lookup(_pair_key(a, b))
        if hit is None:
            return UNKNOWN
        winner, provenance = hit
        direction = Direction.LEFT if winner == a else Direction.RIGHT
        return KnownPreference(direction=direction, provenance=provenance)
