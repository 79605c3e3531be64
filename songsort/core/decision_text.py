from __future__ import annotations

import re
from collections.abc import Iterable, Sequence

from songsort.core.graph import topological_sort_preferences, transitive_reduction
from songsort.core.models import Decision, DecisionKind


LINE_RE = re.compile(r"^(?:I|X|\d)+\.\s+.+\s+>\s+.+$")
EXTRACT_RE = re.compile(r'^(?:I|X|\d)+\.\s+(?:"([^"]+)"|([^>]+))\s+>\s+(?:"([^"]+)"|(.+))$')


def parse_decision_lines(text: str) -> list[Decision]:
    """Parse ``<marker>. <chosen> > <rejected>`` lines, ignoring anything else."""
    decisions: list[Decision] = []
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not LINE_RE.match(line):
            continue
        match = EXTRACT_RE.match(line)
        if not match:
            continue
        chosen = (match.group(1) or match.group(2) or "").strip()
        rejected = (match.group(3) or match.group(4) or "").strip().strip('"')
        if chosen and rejected and chosen != rejected:
            decisions.append(Decision(chosen=chosen, rejected=rejected, kind=DecisionKind.IMPORTED))
    return decisions


def _quote(name: str) -> str:
    return f'"{name}"' if ">" in name else name


def format_decision_line(marker: str | int, decision: Decision) -> str:
    return f"{marker}. {_quote(decision.chosen)} > {_quote(decision.rejected)}"


def exportable_decisions(decisions: Sequence[Decision], clean: bool = False) -> list[Decision]:
    history = list(decisions)
    if clean:
        history = topological_sort_preferences(transitive_reduction(history))
    return [decision for decision in history if decision.kind != DecisionKind.INFERRED]


def format_decisions(name: str, decisions: Sequence[Decision], *, partial: bool = False, clean: bool = False) -> str:
    exported = exportable_decisions(decisions, clean=clean)
    header = f"My {'Partial ' if partial else ''}{name} Decision History:"
    lines = [
        format_decision_line(index if clean else decision.marker, decision)
        for index, decision in enumerate(exported, start=1)
    ]
    return f"{header}\n\n" + "\n".join(lines)


def format_ranking(name: str, ranking: Iterable[str]) -> str:
    lines = [f"{index}. {song}" for index, song in enumerate(ranking, start=1)]
    return f"My {name} Song Ranking:\n\n" + "\n".join(lines)
