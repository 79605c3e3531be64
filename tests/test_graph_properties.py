from __future__ import annotations

from hypothesis import given, settings, strategies as st

from songsort.core.decision_text import exportable_decisions, format_decisions, parse_decision_lines
from songsort.core.graph import (
    build_adjacency,
    has_path,
    topological_sort_items,
    transitive_closure,
    transitive_reduction,
)
from songsort.core.ledger import DecisionLedger
from songsort.core.models import Decision, Direction

SONGS = [
    "Yesterday",
    "Hey Jude",
    "Help!",
    "Let It Be",
    "Stairway > Heaven",
    "Come Together",
    "Something",
]

# --- Strategies ---


@st.composite
def acyclic_histories(draw, max_decisions: int = 15) -> list[Decision]:
    """Decisions that always point down one hidden total order, so no cycle can form."""
    size = draw(st.integers(min_value=2, max_value=len(SONGS)))
    order = draw(st.permutations(SONGS[:size]))
    pairs = draw(
        st.lists(
            st.tuples(st.integers(0, size - 1), st.integers(0, size - 1))
            .filter(lambda pair: pair[0] != pair[1])
            .map(lambda pair: (min(pair), max(pair))),
            max_size=max_decisions,
        )
    )
    return [
        Decision(chosen=order[high], rejected=order[low], ordinal=position)
        for position, (high, low) in enumerate(pairs, start=1)
    ]


def _items(decisions: list[Decision]) -> set[str]:
    return {decision.chosen for decision in decisions} | {decision.rejected for decision in decisions}


def _reachability(decisions: list[Decision], items: set[str]) -> set[tuple[str, str]]:
    adjacency = build_adjacency(decisions)
    return {(a, b) for a in items for b in items if a != b and has_path(adjacency, a, b)}


def _pairs(decisions: list[Decision]) -> set[tuple[str, str]]:
    return {(decision.chosen, decision.rejected) for decision in decisions}


# --- Tests ---


@settings(deadline=None)
@given(acyclic_histories())
def test_reduction_keeps_reachability(history: list[Decision]) -> None:
    items = _items(history)

    reduced = transitive_reduction(history)

    assert _pairs(reduced) <= _pairs(history)
    assert _reachability(reduced, items) == _reachability(history, items)


@settings(deadline=None)
@given(acyclic_histories())
def test_reduced_edges_are_never_implied_by_a_two_hop_path(history: list[Decision]) -> None:
    reachable = _pairs(transitive_closure(history))
    items = _items(history)

    reduced = transitive_reduction(transitive_closure(history), closure_computed=True)

    for chosen, rejected in _pairs(reduced):
        assert not any(
            (chosen, middle) in reachable and (middle, rejected) in reachable
            for middle in items - {chosen, rejected}
        )


@settings(deadline=None)
@given(acyclic_histories())
def test_topological_sort_lists_every_item_once_and_respects_every_edge(history: list[Decision]) -> None:
    ordered = topological_sort_items(history)
    position = {item: index for index, item in enumerate(ordered)}

    assert len(ordered) == len(set(ordered)) == len(_items(history))
    for decision in history:
        assert position[decision.chosen] < position[decision.rejected]


@settings(deadline=None)
@given(acyclic_histories())
def test_known_preferences_are_antisymmetric_and_follow_paths(history: list[Decision]) -> None:
    ledger = DecisionLedger()
    for decision in history:
        ledger.append(decision)
    adjacency = build_adjacency(history)
    items = sorted(_items(history))

    for left in items:
        for right in items:
            if left == right:
                continue
            forward = ledger.known_preference(left, right)
            backward = ledger.known_preference(right, left)
            assert forward.resolved == backward.resolved
            assert forward.resolved == (has_path(adjacency, left, right) or has_path(adjacency, right, left))
            if forward.resolved:
                assert forward.direction != backward.direction
                expected = Direction.LEFT if has_path(adjacency, left, right) else Direction.RIGHT
                assert forward.direction == expected


@settings(deadline=None)
@given(acyclic_histories(), st.booleans())
def test_export_then_import_keeps_reachability(history: list[Decision], clean: bool) -> None:
    items = _items(history)

    parsed = parse_decision_lines(format_decisions("Mix", history, clean=clean))

    assert len(parsed) == len(exportable_decisions(history, clean=clean))
    assert _reachability(parsed, items) == _reachability(history, items)
