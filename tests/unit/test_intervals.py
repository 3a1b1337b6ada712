"""
test_intervals.py - Unit tests for Interval and IntervalStore

Tests:
- Interval validation and clipping
- insert / finish_last and the open-interval index
- overlap queries (half-open boundary behaviour, point queries)
"""

import pytest

from flatshare import (
    Interval, IntervalStore,
    MINUS_INFINITY, PLUS_INFINITY,
    InvalidInterval, NoOpenInterval, IntervalAlreadyOpen,
)


def history(store, owner):
    """Every interval of owner in store, oldest first."""
    return [i for i in store.intersect(MINUS_INFINITY, PLUS_INFINITY) if i.owner == owner]


class TestInterval:

    def test_reversed_interval_rejected(self):
        with pytest.raises(InvalidInterval):
            Interval(10, 5, 0)

    def test_reversed_interval_is_value_error(self):
        with pytest.raises(ValueError):
            Interval(10, 5, 0)

    def test_zero_length_allowed(self):
        assert Interval(5, 5, 0).min == 5

    def test_is_open(self):
        assert Interval(0, PLUS_INFINITY, 0).is_open
        assert not Interval(0, 10, 0).is_open

    def test_clip_clamps_both_ends(self):
        assert Interval(MINUS_INFINITY, PLUS_INFINITY, 3).clip(10, 20) == Interval(10, 20, 3)

    def test_clip_inside_window_unchanged(self):
        assert Interval(12, 15, 3).clip(10, 20) == Interval(12, 15, 3)

    def test_immutable(self):
        interval = Interval(0, 1, 0)
        with pytest.raises(AttributeError):
            interval.max = 5


class TestInsertAndFinish:

    def test_finish_last_closes_open_interval(self):
        store = IntervalStore()
        store.insert(0, 100, PLUS_INFINITY)
        closed = store.finish_last(0, 200)
        assert closed == Interval(100, 200, 0)
        assert store.open_interval(0) is None
        assert history(store, 0) == [Interval(100, 200, 0)]

    def test_finish_last_without_open_raises(self):
        store = IntervalStore("present")
        store.insert(0, 0, 10)
        with pytest.raises(NoOpenInterval, match="present"):
            store.finish_last(0, 20)

    def test_finish_last_unknown_owner_raises(self):
        with pytest.raises(NoOpenInterval):
            IntervalStore().finish_last(9, 20)

    def test_second_open_interval_rejected(self):
        """At most one open interval per owner per store."""
        store = IntervalStore()
        store.insert(0, 0, PLUS_INFINITY)
        with pytest.raises(IntervalAlreadyOpen):
            store.insert(0, 10, PLUS_INFINITY)
        assert len(store) == 1

    def test_finish_before_start_rejected(self):
        store = IntervalStore()
        store.insert(0, 100, PLUS_INFINITY)
        with pytest.raises(InvalidInterval):
            store.finish_last(0, 50)
        assert store.has_open(0)

    def test_toggling_keeps_every_interval(self):
        """Closed intervals accumulate; only the latest is open."""
        store = IntervalStore()
        store.insert(0, 0, PLUS_INFINITY)
        store.finish_last(0, 10)
        store.insert(0, 20, PLUS_INFINITY)
        store.finish_last(0, 30)
        store.insert(0, 40, PLUS_INFINITY)
        assert history(store, 0) == [
            Interval(0, 10, 0), Interval(20, 30, 0), Interval(40, PLUS_INFINITY, 0),
        ]
        assert store.open_interval(0) == Interval(40, PLUS_INFINITY, 0)
        assert store.open_owners() == [0]

    def test_finish_last_closes_most_recent(self):
        store = IntervalStore()
        store.insert(0, 0, 10)
        store.insert(0, 20, PLUS_INFINITY)
        store.finish_last(0, 25)
        assert history(store, 0) == [Interval(0, 10, 0), Interval(20, 25, 0)]


class TestIntersect:

    @pytest.fixture
    def store(self):
        store = IntervalStore()
        store.insert(0, 0, 10)
        store.insert(1, 10, 20)
        store.insert(2, 5, PLUS_INFINITY)
        store.insert(3, MINUS_INFINITY, 3)
        return store

    def test_window_overlap(self, store):
        owners = sorted(i.owner for i in store.intersect(4, 12))
        assert owners == [0, 1, 2]

    def test_interval_ending_at_query_start_matches(self, store):
        """i.max >= min: an interval ending exactly at the start is included."""
        owners = sorted(i.owner for i in store.intersect(10, 15))
        assert owners == [0, 1, 2]

    def test_interval_starting_at_query_end_excluded(self, store):
        """i.min < max: an interval starting exactly at the end is excluded."""
        owners = sorted(i.owner for i in store.intersect(0, 5))
        assert owners == [0, 3]

    def test_point_query(self, store):
        """Point query at ts: intervals with min < ts <= max."""
        owners = sorted(i.owner for i in store.intersect(7, 7))
        assert owners == [0, 2]

    def test_point_query_at_start_excludes_new_interval(self, store):
        owners = sorted(i.owner for i in store.intersect(5, 5))
        assert owners == [0]

    def test_results_ordered_by_end(self, store):
        ends = [i.max for i in store.intersect(MINUS_INFINITY, PLUS_INFINITY)]
        assert ends == sorted(ends)

    def test_closed_interval_moves_in_index(self):
        """finish_last re-keys the interval by its new end."""
        store = IntervalStore()
        store.insert(0, 0, PLUS_INFINITY)
        store.finish_last(0, 10)
        assert store.intersect(50, 60) == []
        assert store.intersect(5, 6) == [Interval(0, 10, 0)]

    def test_empty_store(self):
        assert IntervalStore().intersect(0, 100) == []
