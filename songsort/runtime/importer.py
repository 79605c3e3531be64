from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from songsort.core.graph import build_adjacency, transitive_closure, transitive_reduction, would_create_cycle
from songsort.core.models import Decision, ImportSummary
from songsort.runtime.engine import ComparisonEngine


logger = logging.getLogger(__name__)


def clean_imports(decisions: Sequence[Decision], items: Iterable[str]) -> list[Decision]:
    """Collapse an import batch to the minimal preferences among ``items``.

    Closure runs first so that preferences routed through songs outside the
    active list survive the filter as direct edges.
    """
    active = set(items)
    closure = transitive_closure(decisions)
    filtered = [decision for decision in closure if decision.chosen in active and decision.rejected in active]
    reduced = transitive_reduction(filtered, closure_computed=True)
    logger.debug("Import cleaning: %s -> %s -> %s", len(closure), len(filtered), len(reduced))
    return reduced


def reconcile_imports(
    engine: ComparisonEngine,
    decisions: Sequence[Decision],
    items: Iterable[str],
    *,
    clean: bool = False,
) -> ImportSummary:
    active = set(items)
    summary = ImportSummary(parsed=len(decisions))

    candidates: Sequence[Decision] = decisions
    if clean:
        candidates = clean_imports(decisions, active)
        summary.cleaned = max(0, len(decisions) - len(candidates))

    adjacency = build_adjacency(engine.decisions)
    for decision in candidates:
        if decision.chosen not in active or decision.rejected not in active:
            summary.cleaned += 1
            continue

        if engine.ledger.has_edge(decision.chosen, decision.rejected):
            summary.skipped += 1
            continue

        if would_create_cycle(adjacency, decision.chosen, decision.rejected):
            summary.cycle += 1
            logger.warning(
                "Cycle detected: adding %s > %s would contradict earlier decisions",
                decision.chosen,
                decision.rejected,
            )
            continue

        engine.add_imported_decision(decision)
        adjacency.setdefault(decision.chosen, {})[decision.rejected] = None
        adjacency.setdefault(decision.rejected, {})
        summary.added += 1

    logger.info(summary.message())
    return summary
