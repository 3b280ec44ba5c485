"""
Interval Store - One Remapping Stage

Stores the disjoint source intervals of a single almanac map and answers
"which interval contains this value?" with a binary search.

Lifecycle:
    1. IntervalStoreBuilder accumulates intervals in input order
    2. finalize() sorts them by source start and seals the builder
    3. IntervalStore answers find_interval() queries, read-only
"""

from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class Interval:
    """Source block [src_start, src_end] mapped onto a block starting at dst_start."""

    src_start: int
    src_end: int
    dst_start: int

    def project(self, value: int) -> int:
        """Map a value inside the source block, keeping its offset."""
        return self.dst_start + (value - self.src_start)


class IntervalStoreBuilder:
    """Mutable accumulator for the intervals of one stage."""

    def __init__(self):
        self._intervals: Optional[List[Interval]] = []

    def add_interval(self, src_start: int, src_end: int, dst_start: int):
        """Append one interval. Order and overlap are not checked here."""
        if self._intervals is None:
            raise RuntimeError("builder already finalized")
        if src_end < src_start:
            raise ValueError(f"interval ends before it starts: {src_start}..{src_end}")
        self._intervals.append(Interval(src_start, src_end, dst_start))

    def finalize(self) -> "IntervalStore":
        """
        Consume the builder into a sorted, lookup-ready store.

        Returns:
            IntervalStore: immutable store sorted by source start

        Raises:
            RuntimeError: if the builder was already finalized
        """
        if self._intervals is None:
            raise RuntimeError("builder already finalized")
        intervals, self._intervals = self._intervals, None
        return IntervalStore(intervals)


class IntervalStore:
    """
    Finalized stage: intervals sorted by source start.

    Intervals are expected to be disjoint; the binary search relies on it
    and nothing here validates it.
    """

    def __init__(self, intervals):
        self._intervals = tuple(sorted(intervals, key=lambda interval: interval.src_start))

    def __len__(self):
        return len(self._intervals)

    def __iter__(self):
        return iter(self._intervals)

    def __repr__(self):
        return f"IntervalStore({list(self._intervals)!r})"

    def find_interval(self, value: int) -> Optional[Interval]:
        """
        Find the interval whose source block contains value.

        Args:
            value: Integer to look up

        Returns:
            Interval containing value, or None when value falls in a gap

        Algorithm:
            Three-way comparison per step: the interval ends before value
            (search right), starts after value (search left), or contains it.
        """
        left, right = 0, len(self._intervals) - 1

        while left <= right:
            mid = (left + right) // 2
            interval = self._intervals[mid]

            if interval.src_end < value:
                left = mid + 1
            elif interval.src_start > value:
                right = mid - 1
            else:
                return interval

        return None

    def project(self, value: int) -> int:
        """Project value through this stage alone (identity on a miss)."""
        interval = self.find_interval(value)
        if interval is None:
            return value
        return interval.project(value)
