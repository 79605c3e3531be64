from __future__ import annotations

from songsort.core.ledger import UNKNOWN, DecisionLedger
from songsort.core.models import Decision, DecisionKind, Direction


def _ledger(*pairs: tuple[str, str], kind: DecisionKind = DecisionKind.DIRECT) -> DecisionLedger:
    ledger = DecisionLedger()
    for chosen, rejected in pairs:
        ledger.append(Decision(chosen=chosen, rejected=rejected, kind=kind))
    return ledger


def test_direct_preference_is_reported_from_both_sides() -> None:
    ledger = _ledger(("a", "b"))

    left = ledger.known_preference("a", "b")
    right = ledger.known_preference("b", "a")

    assert left.direction == Direction.LEFT
    assert left.provenance == DecisionKind.DIRECT
    assert right.direction == Direction.RIGHT
    assert right.provenance == DecisionKind.DIRECT


def test_transitive_preference_is_inferred() -> None:
    ledger = _ledger(("a", "b"), ("b", "c"))

    known = ledger.known_preference("c", "a")

    assert known.resolved
    assert known.direction == Direction.RIGHT
    assert known.provenance == DecisionKind.INFERRED


def test_unrelated_pair_is_unknown() -> None:
    ledger = _ledger(("a", "b"), ("c", "d"))

    assert ledger.known_preference("a", "c") == UNKNOWN
    assert not ledger.known_preference("b", "d").resolved


def test_imported_provenance_is_kept() -> None:
    ledger = _ledger(("a", "b"), kind=DecisionKind.IMPORTED)

    assert ledger.known_preference("b", "a").provenance == DecisionKind.IMPORTED


def test_cache_sees_decisions_appended_after_a_miss() -> None:
    ledger = _ledger(("a", "b"))
    assert not ledger.known_preference("a", "c").resolved

    ledger.append(Decision(chosen="b", rejected="c"))

    assert ledger.known_preference("a", "c").direction == Direction.LEFT


def test_counts_and_edges() -> None:
    ledger = DecisionLedger()
    ledger.append(Decision(chosen="a", rejected="b"))
    ledger.append(Decision(chosen="c", rejected="d", kind=DecisionKind.IMPORTED))
    ledger.append(Decision(chosen="a", rejected="d", kind=DecisionKind.INFERRED))

    assert len(ledger) == 3
    assert ledger.direct_count == 1
    assert ledger.has_edge("a", "b")
    assert not ledger.has_edge("b", "a")
    assert ledger.has_pair("b", "a")
    assert [decision.chosen for decision in ledger] == ["a", "c", "a"]

    ledger.clear()
    assert len(ledger) == 0
    assert ledger.direct_count == 0
    assert not ledger.known_preference("a", "b").resolved


def test_known_preferences_are_antisymmetric() -> None:
    ledger = _ledger(("a", "b"), ("b", "c"), ("d", "c"), ("c", "e"))
    items = ["a", "b", "c", "d", "e"]

    for left in items:
        for right in items:
            if left == right:
                continue
            forward = ledger.known_preference(left, right)
            backward = ledger.known_preference(right, left)
            assert forward.resolved == backward.resolved
            if forward.resolved:
                assert forward.direction != backward.direction
