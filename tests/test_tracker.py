"""Seen-item tracker tests."""

import logging
import threading
from datetime import timedelta

from rss_monitor_agent.models import FeedItem
from rss_monitor_agent.tracker import RETENTION, SeenItemTracker

from conftest import NOW


class TestIsNew:

    def test_fresh_unseen_item_is_new(self, clock, make_item):
        tracker = SeenItemTracker(clock=clock)
        assert tracker.is_new(make_item("a1", minutes_ago=2), 5)

    def test_is_new_does_not_mark_seen(self, clock, make_item):
        tracker = SeenItemTracker(clock=clock)
        item = make_item("a1")
        assert tracker.is_new(item, 5)
        assert tracker.is_new(item, 5)
        assert tracker.size() == 0

    def test_seen_item_is_not_new(self, clock, make_item):
        tracker = SeenItemTracker(clock=clock)
        item = make_item("a1")
        tracker.mark_seen("a1")
        assert not tracker.is_new(item, 5)
        # Regardless of freshness
        assert not tracker.is_new(item, 500)

    def test_stale_item_is_not_new(self, clock, make_item):
        tracker = SeenItemTracker(clock=clock)
        assert not tracker.is_new(make_item("a1", minutes_ago=6), 5)

    def test_future_item_is_not_new(self, clock, make_item):
        tracker = SeenItemTracker(clock=clock)
        assert not tracker.is_new(make_item("a1", minutes_ago=-10), 5)

    def test_missing_id_fails_closed(self, clock, make_item, caplog):
        tracker = SeenItemTracker(clock=clock)
        item = make_item("")
        assert not tracker.is_new(item, 5)
        assert "Invalid feed item" in caplog.text

    def test_missing_publish_time_fails_closed(self, clock, make_item):
        tracker = SeenItemTracker(clock=clock)
        assert not tracker.is_new(make_item("a1", minutes_ago=None), 5)

    def test_object_without_fields_fails_closed(self, clock):
        tracker = SeenItemTracker(clock=clock)
        assert not tracker.is_new(object(), 5)

    def test_unparseable_publish_time_is_logged_invalid(self, clock, caplog):
        tracker = SeenItemTracker(clock=clock)
        item = FeedItem(id="a1", title="t", link="https://x/1", published_at="not a date", source="r/python")
        assert not tracker.is_new(item, 5)
        assert "Invalid feed item" in caplog.text

    def test_string_publish_time_is_parsed(self, clock):
        tracker = SeenItemTracker(clock=clock)
        published = (NOW - timedelta(minutes=3)).isoformat()
        item = FeedItem(id="a1", title="t", link="https://x/1", published_at=published, source="r/python")
        assert tracker.is_new(item, 5)

    def test_new_item_logs_its_age(self, clock, make_item, caplog):
        tracker = SeenItemTracker(clock=clock)
        with caplog.at_level(logging.DEBUG, logger="rss_monitor_agent.tracker"):
            assert tracker.is_new(make_item("a1", minutes_ago=3), 5)
        assert "New item detected: a1 (age: 3 minutes)" in caplog.text


class TestMarkSeen:

    def test_idempotent(self, clock):
        tracker = SeenItemTracker(clock=clock)
        tracker.mark_seen("a1")
        tracker.mark_seen("a1")
        assert tracker.size() == 1
        assert len(tracker) == 1
        assert "a1" in tracker

    def test_remark_refreshes_timestamp(self, clock):
        tracker = SeenItemTracker(clock=clock)
        tracker.mark_seen("a1")
        clock.advance(minutes=50)
        tracker.mark_seen("a1")
        clock.advance(minutes=50)
        assert tracker.evict_stale() == 0
        assert "a1" in tracker


class TestEvictStale:

    def test_default_retention_is_one_hour(self):
        assert RETENTION == timedelta(hours=1)

    def test_evicts_after_horizon(self, clock):
        tracker = SeenItemTracker(clock=clock)
        tracker.mark_seen("a1")
        clock.advance(minutes=61)
        assert tracker.evict_stale() == 1
        assert "a1" not in tracker

    def test_keeps_before_horizon(self, clock):
        tracker = SeenItemTracker(clock=clock)
        tracker.mark_seen("a1")
        clock.advance(minutes=59)
        assert tracker.evict_stale() == 0
        assert "a1" in tracker

    def test_exactly_at_horizon_is_kept(self, clock):
        tracker = SeenItemTracker(clock=clock)
        tracker.mark_seen("a1")
        clock.advance(minutes=60)
        assert tracker.evict_stale() == 0

    def test_only_old_records_removed(self, clock):
        tracker = SeenItemTracker(clock=clock)
        tracker.mark_seen("old")
        clock.advance(minutes=30)
        tracker.mark_seen("young")
        clock.advance(minutes=31)
        assert tracker.evict_stale() == 1
        assert "old" not in tracker
        assert "young" in tracker

    def test_empty_tracker(self, clock):
        assert SeenItemTracker(clock=clock).evict_stale() == 0

    def test_evicted_item_can_be_new_again(self, make_item):
        clock_time = {"now": NOW}
        tracker = SeenItemTracker(retention=timedelta(minutes=1), clock=lambda: clock_time["now"])
        item = make_item("a1", minutes_ago=1)
        tracker.mark_seen("a1")
        clock_time["now"] = NOW + timedelta(minutes=2)
        tracker.evict_stale()
        assert tracker.is_new(item, 5)


class TestConcurrency:

    def test_concurrent_marks_and_evictions(self, clock):
        tracker = SeenItemTracker(clock=clock)
        item_template = FeedItem(id="x", title="t", link="l", published_at=NOW, source="s")

        def worker(prefix):
            for i in range(200):
                tracker.mark_seen(f"{prefix}-{i}")
                tracker.is_new(item_template, 5)
                tracker.evict_stale()

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert tracker.size() == 1600
