from __future__ import annotations

from songsort.core.models import SortStrategyName
from songsort.runtime.sorting import Bounds, SortStrategy


def _merge_bounds(left_remaining: int, right_remaining: int) -> Bounds:
    if left_remaining <= 0 or right_remaining <= 0:
        return 0, 0
    return min(left_remaining, right_remaining), left_remaining + right_remaining - 1


class MergeSortStrategy(SortStrategy):
    name = SortStrategyName.MERGE

    def worst_case(self, n: int) -> int:
        if n <= 1:
            return 0
        depth = (n - 1).bit_length()
        return n * depth - (1 << depth) + 1

    def best_case(self, n: int) -> int:
        total = 0
        size = 1
        while size < n:
            full_merges, remainder = divmod(n, 2 * size)
            total += size * full_merges + max(0, remainder - size)
            size *= 2
        return total

    async def sort(self, items: list[str]) -> list[str]:
        if not items:
            return []

        lists = [[item] for item in items]
        while len(lists) > 1:
            merged = [await self._merge(lists[index], lists[index + 1]) for index in range(0, len(lists) - 1, 2)]
            if len(lists) % 2:
                # The odd list leads the next round so list sizes stay balanced.
                merged.insert(0, lists[-1])
            lists = merged
        return lists[0]

    async def _merge(self, left: list[str], right: list[str]) -> list[str]:
        merged: list[str] = []
        left_index = 0
        right_index = 0

        while left_index < len(left) and right_index < len(right):
            before = _merge_bounds(len(left) - left_index, len(right) - right_index)
            if await self._compare_and_record(left[left_index], right[right_index]):
                merged.append(left[left_index])
                left_index += 1
            else:
                merged.append(right[right_index])
                right_index += 1
            self._track_progress(before, _merge_bounds(len(left) - left_index, len(right) - right_index))

        merged.extend(left[left_index:])
        merged.extend(right[right_index:])
        return merged
