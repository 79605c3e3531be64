"""Preference graph helpers.

Every function here is pure: it only reads the decision sequence it is given
and breaks ties by first-encountered order, so equal inputs always produce
equal outputs.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable, Sequence

from songsort.core.models import Decision, DecisionKind


logger = logging.getLogger(__name__)

Adjacency = dict[str, dict[str, None]]


class InvalidInputError(ValueError):
    pass


def _require(decisions: Sequence[Decision] | None) -> Sequence[Decision]:
    if decisions is None:
        raise InvalidInputError("A decision sequence is required")
    return decisions


def _nodes(decisions: Iterable[Decision]) -> list[str]:
    seen: dict[str, None] = {}
    for decision in decisions:
        seen.setdefault(decision.chosen)
        seen.setdefault(decision.rejected)
    return list(seen)


def build_adjacency(decisions: Iterable[Decision]) -> Adjacency:
    adjacency: Adjacency = {}
    for decision in decisions:
        adjacency.setdefault(decision.chosen, {})[decision.rejected] = None
        adjacency.setdefault(decision.rejected, {})
    return adjacency


def transitive_closure(decisions: Sequence[Decision] | None) -> list[Decision]:
    """Return ``decisions`` plus one inferred decision per implied pair.

    Reachability is computed with Floyd-Warshall over a dense boolean matrix,
    which is fine for the tens to low hundreds of items a ranking holds.
    """
    history = list(_require(decisions))
    nodes = _nodes(history)
    if len(nodes) <= 1:
        return history

    index = {node: position for position, node in enumerate(nodes)}
    size = len(nodes)
    matrix = [bytearray(size) for _ in range(size)]
    direct: set[tuple[str, str]] = set()
    for decision in history:
        matrix[index[decision.chosen]][index[decision.rejected]] = 1
        direct.add((decision.chosen, decision.rejected))

    for k in range(size):
        row_k = matrix[k]
        for i in range(size):
            row_i = matrix[i]
            if not row_i[k]:
                continue
            for j in range(size):
                if row_k[j]:
                    row_i[j] = 1

    closure = list(history)
    for i, chosen in enumerate(nodes):
        row = matrix[i]
        for j, rejected in enumerate(nodes):
            if i == j or not row[j] or (chosen, rejected) in direct:
                continue
            closure.append(Decision(chosen=chosen, rejected=rejected, kind=DecisionKind.INFERRED))
    return closure


def transitive_reduction(decisions: Sequence[Decision] | None, closure_computed: bool = False) -> list[Decision]:
    """Keep only the direct edges not implied by a two-hop path in the closure.

    Surviving edges are reported as their first original record, never as a
    synthetic copy, grouped by the item that first appears in the history.
    """
    history = list(_require(decisions))
    if not history:
        return []

    closure = history if closure_computed else transitive_closure(history)

    direct: dict[str, dict[str, Decision]] = {}
    for decision in history:
        direct.setdefault(decision.chosen, {}).setdefault(decision.rejected, decision)

    reachable: dict[str, set[str]] = {}
    for decision in closure:
        reachable.setdefault(decision.chosen, set()).add(decision.rejected)

    nodes = _nodes(history)
    reduced: list[Decision] = []
    for chosen in nodes:
        beats = reachable.get(chosen, set())
        for rejected, record in direct.get(chosen, {}).items():
            implied = any(
                middle != chosen
                and middle != rejected
                and middle in beats
                and rejected in reachable.get(middle, ())
                for middle in nodes
            )
            if not implied:
                reduced.append(record)

    logger.debug(
        "Transitive reduction over %s items: %s -> %s preferences",
        len(nodes),
        len(history),
        len(reduced),
    )
    return reduced


def topological_sort_items(preferences: Sequence[Decision] | None) -> list[str]:
    """Order items so every chosen item precedes the items it beats.

    A cycle is logged and the items reachable before it are returned.
    """
    history = _require(preferences)
    adjacency = build_adjacency(history)
    in_degree = {node: 0 for node in _nodes(history)}
    for edges in adjacency.values():
        for target in edges:
            in_degree[target] += 1

    queue = deque(node for node, degree in in_degree.items() if degree == 0)
    ordered: list[str] = []
    while queue:
        node = queue.popleft()
        ordered.append(node)
        for neighbor in adjacency.get(node, {}):
            in_degree[neighbor] -= 1
            if in_degree[neighbor] == 0:
                queue.append(neighbor)

    if len(ordered) != len(in_degree):
        logger.warning(
            "Preference graph contains cycles: ordered %s of %s items",
            len(ordered),
            len(in_degree),
        )
    return ordered


def topological_sort_preferences(preferences: Sequence[Decision] | None) -> list[Decision]:
    history = list(_require(preferences))
    positions = {item: position for position, item in enumerate(topological_sort_items(history))}
    missing = len(positions)
    return sorted(
        history,
        key=lambda decision: (
            positions.get(decision.chosen, missing),
            positions.get(decision.rejected, missing),
        ),
    )


def has_path(adjacency: Adjacency, source: str, target: str) -> bool:
    if source == target:
        return True
    if source not in adjacency:
        return False

    visited: set[str] = set()
    stack = [source]
    while stack:
        current = stack.pop()
        if current == target:
            return True
        if current in visited:
            continue
        visited.add(current)
        stack.extend(neighbor for neighbor in adjacency.get(current, {}) if neighbor not in visited)
    return False


def would_create_cycle(adjacency: Adjacency, chosen: str, rejected: str) -> bool:
    """True when an edge ``chosen -> rejected`` would close a directed cycle."""
    return has_path(adjacency, rejected, chosen)
