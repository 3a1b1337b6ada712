"""
intervals.py - Interval Store

Stores [min, max) intervals keyed by owner and answers overlap queries.
Two independent instances are used by the billing processor: one for
Present intervals and one for Resident intervals.

Indexes:
    - by end: sorted list of (max, interval_id), so an overlap query can
      bisect to the first interval ending at or after the query start and
      scan right, filtering on min < query max.
    - open: owner -> id of the single interval with max == PLUS_INFINITY.

The open index makes finish_last() an O(1) deterministic lookup and
structurally prevents two open intervals for the same owner.
"""

from __future__ import annotations
from bisect import bisect_left, insort
from typing import Dict, List, Optional, Tuple

from .core import (
    Interval, Timestamp, ParticipantId,
    PLUS_INFINITY,
    NoOpenInterval, IntervalAlreadyOpen,
)


class IntervalStore:
    """
    Collection of intervals with an end-ordered index.

    Multiple intervals per owner are expected; nothing is merged.

    Example:
        present = IntervalStore("present")
        present.insert(0, 100, PLUS_INFINITY)
        present.finish_last(0, 200)
        assert present.intersect(150, 150) == [Interval(100, 200, 0)]
    """

    def __init__(self, name: str = "intervals"):
        self.name = name
        self._intervals: Dict[int, Interval] = {}
        self._by_max: List[Tuple[Timestamp, int]] = []
        self._open: Dict[ParticipantId, int] = {}
        self._next_id = 0

    # ========================================================================
    # MUTATION
    # ========================================================================

    def insert(self, owner: ParticipantId, min: Timestamp, max: Timestamp) -> Interval:
        """
        Store a new interval and return it.

        Raises:
            InvalidInterval: If min > max
            IntervalAlreadyOpen: If max is PLUS_INFINITY and owner already
                                 has an open interval in this store
        """
        interval = Interval(min, max, owner)
        if interval.is_open and owner in self._open:
            raise IntervalAlreadyOpen(
                f"{self.name}: participant {owner} already has an open interval"
            )
        iid = self._next_id
        self._next_id += 1
        self._intervals[iid] = interval
        insort(self._by_max, (interval.max, iid))
        if interval.is_open:
            self._open[owner] = iid
        return interval

    def finish_last(self, owner: ParticipantId, end: Timestamp) -> Interval:
        """
        Close the currently open interval of owner at end.

        Returns the closed interval.

        Raises:
            NoOpenInterval: If owner has no open interval in this store
            InvalidInterval: If end is before the interval's start
        """
        iid = self._open.get(owner)
        if iid is None:
            raise NoOpenInterval(
                f"{self.name}: participant {owner} has no open interval"
            )
        old = self._intervals[iid]
        closed = Interval(old.min, end, owner)
        del self._open[owner]
        pos = bisect_left(self._by_max, (old.max, iid))
        del self._by_max[pos]
        insort(self._by_max, (closed.max, iid))
        self._intervals[iid] = closed
        return closed

    # ========================================================================
    # QUERIES
    # ========================================================================

    def intersect(self, min: Timestamp, max: Timestamp) -> List[Interval]:
        """
        Return every interval i with i.max >= min and i.min < max.

        For a point query pass min == max. Results are ordered by end, then
        by insertion order.
        """
        matched: List[Interval] = []
        start = bisect_left(self._by_max, (min, -1))
        for _, iid in self._by_max[start:]:
            interval = self._intervals[iid]
            if interval.min < max:
                matched.append(interval)
        return matched

    def open_interval(self, owner: ParticipantId) -> Optional[Interval]:
        """Return the open interval of owner, or None."""
        iid = self._open.get(owner)
        return self._intervals[iid] if iid is not None else None

    def has_open(self, owner: ParticipantId) -> bool:
        return owner in self._open

    def open_owners(self) -> List[ParticipantId]:
        """Owners with an open interval, sorted."""
        return sorted(self._open)

    def __len__(self) -> int:
        return len(self._intervals)

    def __repr__(self) -> str:
        return f"IntervalStore({self.name!r}, {len(self._intervals)} intervals, {len(self._open)} open)"
