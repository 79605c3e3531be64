"""Ford-Johnson merge-insertion sort.

Items are kept in ascending order (least preferred first) while sorting and
reversed on the way out. Pending items are inserted in Jacobsthal-sized groups,
each by binary search over only the part of the chain that precedes its
partner, which is what keeps the comparison count near the optimum.
"""

from __future__ import annotations

from songsort.core.models import SortStrategyName
from songsort.runtime.engine import ComparisonEngine
from songsort.runtime.sorting import Bounds, SortStrategy


JACOBSTHAL_SEED = (1, 1, 3, 5, 11, 21, 43, 85, 171)


def _search_bounds(span: int) -> Bounds:
    if span <= 0:
        return 0, 0
    return (span + 1).bit_length() - 1, span.bit_length()


class MergeInsertionStrategy(SortStrategy):
    name = SortStrategyName.MERGE_INSERTION

    def __init__(self, engine: ComparisonEngine):
        super().__init__(engine)
        self._jacobsthal = list(JACOBSTHAL_SEED)

    def jacobsthal(self, index: int) -> int:
        while len(self._jacobsthal) <= index:
            self._jacobsthal.append(self._jacobsthal[-1] + 2 * self._jacobsthal[-2])
        return self._jacobsthal[index]

    def insertion_groups(self, count: int) -> list[int]:
        groups: list[int] = []
        remaining = count
        index = 0
        while remaining > 0:
            size = min(2 * self.jacobsthal(index), remaining)
            groups.append(size)
            remaining -= size
            index += 1
        return groups

    @staticmethod
    def reorder_for_insertion(elements: list[str], groups: list[int]) -> list[str]:
        ordered: list[str] = []
        start = 0
        for size in groups:
            ordered.extend(reversed(elements[start : start + size]))
            start += size
        return ordered

    def worst_case(self, n: int) -> int:
        if n <= 1:
            return 0
        # n * ceil(log2(3n/4)) - floor(2^floor(log2(6n)) / 3) + floor(log2(6n) / 2)
        ceil_log = (3 * n - 1).bit_length() - 2
        floor_log = (6 * n).bit_length() - 1
        return n * ceil_log - (1 << floor_log) // 3 + floor_log // 2

    def best_case(self, n: int) -> int:
        return self._pairing_comparisons(n) + self._insertion_comparisons(n)

    @staticmethod
    def _pairing_comparisons(n: int) -> int:
        total = 0
        while n > 1:
            n //= 2
            total += n
        return total

    def _insertion_comparisons(self, n: int) -> int:
        if n <= 2:
            return 0

        groups = self.insertion_groups((n - 1) // 2)
        total = sum(size * (index + 1) for index, size in enumerate(groups))
        if sum(groups[-2:]) == 2 ** len(groups):
            total += len(groups)
        else:
            total += len(groups) - 1
        return self._insertion_comparisons(n // 2) + total

    async def sort(self, items: list[str]) -> list[str]:
        ascending = await self._merge_insertion(list(items))
        return list(reversed(ascending))

    async def _merge_insertion(self, items: list[str]) -> list[str]:
        if len(items) <= 1:
            return items

        partner: dict[str, str] = {}
        for index in range(0, len(items) - 1, 2):
            left, right = items[index], items[index + 1]
            if await self._compare_and_record(left, right):
                partner[left] = right
            else:
                partner[right] = left
        unpaired = items[-1] if len(items) % 2 else None

        larger = await self._merge_insertion(list(partner))
        chain = [partner[larger[0]], *larger]

        pending = [partner[item] for item in larger[1:]]
        if unpaired is not None:
            pending.append(unpaired)
        if not pending:
            return chain

        paired_with = {smaller: bigger for bigger, smaller in partner.items()}
        for item in self.reorder_for_insertion(pending, self.insertion_groups(len(pending))):
            bigger = paired_with.get(item)
            bound = chain.index(bigger) if bigger is not None else len(chain)
            chain.insert(await self._insertion_index(chain, bound, item), item)
        return chain

    async def _insertion_index(self, chain: list[str], bound: int, item: str) -> int:
        low = 0
        high = bound - 1
        while low <= high:
            middle = (low + high) // 2
            before = _search_bounds(high - low + 1)
            if await self._compare_and_record(chain[middle], item):
                high = middle - 1
            else:
                low = middle + 1
            self._track_progress(before, _search_bounds(high - low + 1))
        return low
