"""
splitting.py - Interval Split Engine and Gap Filler

Sweep-line decomposition of overlapping intervals into maximal
non-overlapping splits, each tagged with the exact set of owners whose
interval covers it.

Boundary rule: at a timestamp where one interval ends and another begins,
Start events sort before End events, and the active set of a split is the
snapshot taken after every event at its left endpoint has been applied.
Given [0, 10) for A and [10, 20) for B the result is exactly
[0, 10] -> {A}, [10, 20] -> {B}; no zero-width split is produced.

The gap filler turns the Present-store splits of a billing window into the
billable cover of that window, falling back to Resident-store splits
wherever nobody is marked present.
"""

from __future__ import annotations
from collections import Counter
from typing import Iterable, List, Optional, Tuple

from .core import Interval, Split, Timestamp, NoCoverage
from .intervals import IntervalStore


# Boundary event kinds; the numeric order is the tie-break at equal timestamps.
START = 0
END = 1


def split_intervals(intervals: Iterable[Interval]) -> List[Split]:
    """
    Partition the span of intervals into maximal splits.

    Returns splits sorted by time, pairwise disjoint except for shared
    endpoints, whose union is [earliest min, latest max]. A split covering
    a gap between intervals has an empty present set.

    O(n log n) in the number of intervals.
    """
    events: List[Tuple[Timestamp, int, int]] = []
    for interval in intervals:
        events.append((interval.min, START, interval.owner))
        events.append((interval.max, END, interval.owner))

    events.sort(key=lambda e: (e[0], e[1]))

    # Multiset, so an owner with overlapping intervals stays active until
    # the last of them ends.
    active: Counter = Counter()
    splits: List[Split] = []

    for i in range(len(events) - 1):
        ts, kind, owner = events[i]
        if kind == START:
            active[owner] += 1
        else:
            active[owner] -= 1
            if active[owner] <= 0:
                del active[owner]

        next_ts = events[i + 1][0]
        if ts == next_ts:
            continue

        splits.append(Split(ts, next_ts, frozenset(active)))

    return splits


def clip_intervals(
    intervals: Iterable[Interval],
    window_min: Timestamp,
    window_max: Timestamp,
) -> List[Interval]:
    """Clamp every interval to [window_min, window_max]; nothing is dropped."""
    return [interval.clip(window_min, window_max) for interval in intervals]


def split_window(store: IntervalStore, window_min: Timestamp, window_max: Timestamp) -> List[Split]:
    """Query store for [window_min, window_max], clip and split the matches."""
    matches = store.intersect(window_min, window_max)
    return split_intervals(clip_intervals(matches, window_min, window_max))


def _first_gap(splits: List[Split], lo: Timestamp, hi: Timestamp) -> Optional[Tuple[Timestamp, Timestamp]]:
    """Return the first part of [lo, hi] not covered by a non-empty split."""
    cursor = lo
    for split in splits:
        if split.min > cursor:
            return (cursor, split.min)
        if not split.present:
            return (split.min, split.max)
        cursor = split.max
    if cursor < hi:
        return (cursor, hi)
    return None


def resident_cover(resident: IntervalStore, lo: Timestamp, hi: Timestamp) -> List[Split]:
    """
    Splits of the Resident store covering exactly [lo, hi].

    Raises:
        NoCoverage: If any part of [lo, hi] has nobody resident
    """
    if lo >= hi:
        return []
    splits = split_window(resident, lo, hi)
    gap = _first_gap(splits, lo, hi)
    if gap is not None:
        raise NoCoverage(gap)
    return splits


def resident_edge(resident: IntervalStore, lo: Timestamp, hi: Timestamp) -> List[Split]:
    """
    Resident splits over [lo, hi], dropping any part with nobody resident.

    Used for the stretches before the first and after the last Present
    split, where nobody may have moved in yet or everyone has moved out.
    """
    if lo >= hi:
        return []
    return [split for split in split_window(resident, lo, hi) if split.present]


def fill_gaps(
    splits: List[Split],
    resident: IntervalStore,
    window_min: Timestamp,
    window_max: Timestamp,
) -> List[Split]:
    """
    Extend Present-store splits to the billable cover of the window.

    - no splits at all: the whole window comes from the Resident store
    - leading gap before the first split: prepend Resident splits
    - split with an empty present set: replace it with Resident splits
    - trailing gap after the last split: append Resident splits

    Time before anyone moved in or after everyone moved out is left
    uncharged. Between two Present splits every instant must be covered.

    Raises:
        NoCoverage: If an interior gap has nobody resident, or if nobody
                    at all covers the window
    """
    if not splits:
        filled = resident_edge(resident, window_min, window_max)
        if not filled:
            raise NoCoverage((window_min, window_max))
        return filled

    # Empty splits at either end belong to the edge gaps
    first = 0
    while first < len(splits) and not splits[first].present:
        first += 1
    if first == len(splits):
        return fill_gaps([], resident, window_min, window_max)
    last = len(splits) - 1
    while not splits[last].present:
        last -= 1

    filled = resident_edge(resident, window_min, splits[first].min)

    for split in splits[first:last + 1]:
        if split.present:
            filled.append(split)
        else:
            filled.extend(resident_cover(resident, split.min, split.max))

    filled.extend(resident_edge(resident, splits[last].max, window_max))
    return filled


def cover_window(
    present: IntervalStore,
    resident: IntervalStore,
    window_min: Timestamp,
    window_max: Timestamp,
) -> List[Split]:
    """Billing cover of [window_min, window_max]: Present splits, gaps filled by residency."""
    return fill_gaps(split_window(present, window_min, window_max), resident, window_min, window_max)
