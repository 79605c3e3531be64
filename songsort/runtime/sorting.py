from __future__ import annotations

import logging
import random
from abc import ABC, abstractmethod
from collections.abc import Sequence

from songsort.core.models import SortStrategyName
from songsort.runtime.engine import ComparisonEngine


logger = logging.getLogger(__name__)

Bounds = tuple[int, int]


class SortStrategy(ABC):
    """A comparison sort whose every comparison goes through the engine.

    ``sort`` returns items most-preferred first. ``best_case`` and
    ``worst_case`` are the closed-form comparison counts for ``n`` items.
    """

    name: SortStrategyName

    def __init__(self, engine: ComparisonEngine):
        self.engine = engine

    @abstractmethod
    async def sort(self, items: list[str]) -> list[str]:
        raise NotImplementedError

    @abstractmethod
    def worst_case(self, n: int) -> int:
        raise NotImplementedError

    @abstractmethod
    def best_case(self, n: int) -> int:
        raise NotImplementedError

    async def run(
        self,
        items: Sequence[str],
        shuffle: bool = False,
        rng: random.Random | None = None,
    ) -> list[str]:
        songs = list(items)
        if len(set(songs)) != len(songs):
            raise ValueError("Items to rank must be unique")

        self.engine.reset()
        if shuffle:
            (rng or random.Random()).shuffle(songs)

        self.engine.seed_estimates(best_case=self.best_case(len(songs)), worst_case=self.worst_case(len(songs)))
        logger.info(
            "Ranking %s items with %s (%s to %s comparisons)",
            len(songs),
            self.name.value,
            self.engine.estimate.best_case,
            self.engine.estimate.worst_case,
        )

        ranking = await self.sort(songs)
        self.engine.flush_inferred_streak()
        self.engine.finalize_estimates()
        logger.info("Ranking finished after %s comparisons", self.engine.estimate.completed)
        return ranking

    async def _compare_and_record(self, left: str, right: str) -> bool:
        outcome = await self.engine.compare(left, right)
        self.engine.record(outcome.chosen, outcome.rejected, outcome.kind)
        return outcome.chosen == left

    def _track_progress(self, before: Bounds, after: Bounds) -> None:
        # One comparison was spent between ``before`` and ``after``.
        best_before, worst_before = before
        best_after, worst_after = after
        self.engine.adjust_estimates(
            best_delta=1 + best_after - best_before,
            worst_delta=1 + worst_after - worst_before,
        )
