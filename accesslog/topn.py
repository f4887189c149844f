"""Access Log Analyzer - Bounded top-N ranking"""

import heapq
from typing import Dict, List, Tuple


class _Rank:
    """Heap key: lower count first, then the lexically larger key.

    The heap root is therefore always the item that would be ranked last,
    which is the one to evict.
    """

    __slots__ = ('key', 'count')

    def __init__(self, key: str, count: int):
        self.key = key
        self.count = count

    def __lt__(self, other: '_Rank') -> bool:
        if self.count != other.count:
            return self.count < other.count
        return self.key > other.key


class TopNHeap:
    """Keeps the N highest-count keys in O(N) memory.

    Ranking is count descending, ties broken by key ascending. Each key is
    expected to be pushed once with its final count.
    """

    def __init__(self, n: int):
        if n < 0:
            raise ValueError("n must not be negative")
        self.n = n
        self._heap: List[_Rank] = []

    def push(self, key: str, count: int):
        if self.n == 0:
            return
        item = _Rank(key, count)
        if len(self._heap) < self.n:
            heapq.heappush(self._heap, item)
        elif self._heap[0] < item:
            heapq.heapreplace(self._heap, item)

    def push_all(self, counts: Dict[str, int]):
        for key, count in counts.items():
            self.push(key, count)

    def results(self) -> List[Tuple[str, int]]:
        ranked = sorted(self._heap, key=lambda r: (-r.count, r.key))
        return [(r.key, r.count) for r in ranked]

    def __len__(self):
        return len(self._heap)
