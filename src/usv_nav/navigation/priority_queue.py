"""
Indexed Priority Queue

Array-backed binary min-heap with a key -> heap index map, so a queued
key can be found in O(1) and have its priority lowered in O(log n).
heapq has no decrease-key, which A* needs to avoid stale duplicates.
"""

from typing import Dict, Hashable, List, Tuple


class IndexedPriorityQueue:
    """
    Min-heap keyed by hashable items.

    Usage:
        pq = IndexedPriorityQueue()
        pq.push((3, 4), 12.5)
        pq.decrease_key((3, 4), 10.0)
        key, priority = pq.pop()
    """

    def __init__(self):
        self._heap: List[Tuple[float, Hashable]] = []
        self._index: Dict[Hashable, int] = {}

    def __len__(self) -> int:
        return len(self._heap)

    def __bool__(self) -> bool:
        return bool(self._heap)

    def __contains__(self, key) -> bool:
        return key in self._index

    def clear(self):
        self._heap.clear()
        self._index.clear()

    def priority(self, key) -> float:
        """Current priority of a queued key (KeyError if absent)."""
        return self._heap[self._index[key]][0]

    def peek(self) -> Tuple[Hashable, float]:
        if not self._heap:
            raise IndexError("peek from empty priority queue")
        priority, key = self._heap[0]
        return key, priority

    def push(self, key, priority: float):
        """
        Insert a key. If it is already queued, its priority is lowered
        when the new one is smaller and left unchanged otherwise.
        """
        if key in self._index:
            if priority < self.priority(key):
                self.decrease_key(key, priority)
            return

        self._heap.append((priority, key))
        self._index[key] = len(self._heap) - 1
        self._sift_up(len(self._heap) - 1)

    def pop(self) -> Tuple[Hashable, float]:
        """Remove and return (key, priority) with the smallest priority."""
        if not self._heap:
            raise IndexError("pop from empty priority queue")

        priority, key = self._heap[0]
        last = self._heap.pop()
        del self._index[key]

        if self._heap:
            self._heap[0] = last
            self._index[last[1]] = 0
            self._sift_down(0)

        return key, priority

    def decrease_key(self, key, priority: float):
        """Lower the priority of a queued key and restore heap order."""
        i = self._index[key]
        if priority > self._heap[i][0]:
            raise ValueError(
                f"decrease_key would raise priority of {key!r} "
                f"from {self._heap[i][0]} to {priority}")
        self._heap[i] = (priority, key)
        self._sift_up(i)

    def _sift_up(self, i: int):
        heap = self._heap
        while i > 0:
            parent = (i - 1) >> 1
            if heap[parent][0] <= heap[i][0]:
                break
            self._swap(i, parent)
            i = parent

    def _sift_down(self, i: int):
        heap = self._heap
        n = len(heap)
        while True:
            left = 2 * i + 1
            right = left + 1
            smallest = i

            if left < n and heap[left][0] < heap[smallest][0]:
                smallest = left
            if right < n and heap[right][0] < heap[smallest][0]:
                smallest = right
            if smallest == i:
                break

            self._swap(i, smallest)
            i = smallest

    def _swap(self, i: int, j: int):
        heap = self._heap
        heap[i], heap[j] = heap[j], heap[i]
        self._index[heap[i][1]] = i
        self._index[heap[j][1]] = j
