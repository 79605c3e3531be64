from __future__ import annotations

from songsort.core.models import SortStrategyName
from songsort.runtime.engine import ComparisonEngine
from songsort.runtime.merge_insertion import MergeInsertionStrategy
from songsort.runtime.merge_sort import MergeSortStrategy
from songsort.runtime.sorting import SortStrategy


STRATEGIES: dict[SortStrategyName, type[SortStrategy]] = {
    SortStrategyName.MERGE: MergeSortStrategy,
    SortStrategyName.MERGE_INSERTION: MergeInsertionStrategy,
}


def create_strategy(name: SortStrategyName | str, engine: ComparisonEngine) -> SortStrategy:
    try:
        strategy_cls = STRATEGIES[SortStrategyName(name)]
    except ValueError as exc:
        choices = ", ".join(item.value for item in SortStrategyName)
        raise ValueError(f"Unknown sort strategy: {name}. Expected one of: {choices}") from exc
    return strategy_cls(engine)
