"""One polling cycle: fetch, filter, annotate, notify, mark seen."""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence

from .annotator import Annotator, NullAnnotator
from .config import MonitoringConfig
from .content_client import fetch_full_content
from .email_notifier import Notifier
from .models import BatchEntry, CycleSummary, FeedItem, FeedResult
from .rss_client import all_items, fetch_all_feeds
from .tracker import SeenItemTracker

logger = logging.getLogger(__name__)

FeedFetcher = Callable[[Sequence[str], int], List[FeedResult]]
ContentFetcher = Callable[[str], Optional[str]]


class FeedMonitor:
    """
    Runs polling cycles against a shared SeenItemTracker.

    Items are marked seen only after the notification for their batch was
    sent, so a failed send offers the same items again on the next cycle.
    """

    def __init__(
        self,
        config: MonitoringConfig,
        notifier: Notifier,
        tracker: Optional[SeenItemTracker] = None,
        annotator: Optional[Annotator] = None,
        fetch_feeds: FeedFetcher = fetch_all_feeds,
        fetch_content: Optional[ContentFetcher] = fetch_full_content,
    ):
        self.config = config
        self.notifier = notifier
        self.tracker = tracker if tracker is not None else SeenItemTracker()
        self.annotator = annotator if annotator is not None else NullAnnotator()
        self.fetch_feeds = fetch_feeds
        self.fetch_content = fetch_content

    def select_new(self, items: Sequence[FeedItem]) -> List[FeedItem]:
        """Fresh, unseen items; repeated ids within one fetch keep the first occurrence."""
        new_items = []
        ids = set()
        for item in items:
            if not self.tracker.is_new(item, self.config.post_age_minutes):
                continue
            if item.id in ids:
                continue
            ids.add(item.id)
            new_items.append(item)
        return new_items

    def _enrich_one(self, item: FeedItem) -> BatchEntry:
        content = None
        if self.fetch_content is not None:
            try:
                content = self.fetch_content(item.link)
            except Exception as e:
                logger.warning(f"Content fetch failed for {item.id}: {e}")
        return BatchEntry(item=item, content=content or item.snippet)

    def enrich(self, items: Sequence[FeedItem]) -> List[BatchEntry]:
        """Fetch full content for each item concurrently, falling back to the feed snippet."""
        if not items:
            return []
        logger.info("Fetching full post content...")
        workers = min(self.config.max_workers, len(items))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(self._enrich_one, items))

    def run_cycle(self) -> CycleSummary:
        logger.info("Starting RSS feed check...")
        summary = CycleSummary()
        try:
            self._collect_and_notify(summary)
        finally:
            summary.evicted = self.tracker.evict_stale()
            summary.tracked = self.tracker.size()

        logger.info(
            f"Check complete: fetched={summary.fetched} new={summary.new} "
            f"notified={summary.notified} skipped={summary.skipped} "
            f"sources_failed={summary.sources_failed}. "
            f"Tracking {summary.tracked} item(s) in memory."
        )
        return summary

    def _collect_and_notify(self, summary: CycleSummary) -> None:
        results = self.fetch_feeds(self.config.sources, self.config.max_workers)
        summary.sources_ok = sum(1 for r in results if r.success)
        summary.sources_failed = len(results) - summary.sources_ok
        for result in results:
            if not result.success:
                logger.warning(f"Source {result.source} failed this cycle: {result.error}")

        items = all_items(results)
        summary.fetched = len(items)
        logger.info(f"Retrieved {len(items)} total item(s)")

        new_items = self.select_new(items)
        summary.new = len(new_items)
        logger.info(f"Found {len(new_items)} new item(s)")

        if new_items:
            entries = self.enrich(new_items)
            entries = self.annotator.annotate_all(entries, self.config.max_workers)
            summary.skipped = sum(1 for e in entries if e.skipped)

            if self.notifier.send(entries):
                summary.dispatched = True
                summary.notified = len(new_items)
                for item in new_items:
                    self.tracker.mark_seen(item.id)
            else:
                logger.error(f"Notification failed; {len(new_items)} item(s) will be retried next cycle")

    def safe_run_cycle(self) -> Optional[CycleSummary]:
        """Run a cycle, logging instead of raising on unexpected errors."""
        try:
            return self.run_cycle()
        except Exception as e:
            logger.error(f"Error during feed monitoring: {e}", exc_info=True)
            return None
