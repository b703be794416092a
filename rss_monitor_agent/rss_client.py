"""RSS/Atom feed client for fetching feed items."""

import calendar
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

import feedparser
import requests

from .date_utils import parse_timestamp
from .models import FeedItem, FeedResult

logger = logging.getLogger(__name__)

REDDIT_FEED_URL = "https://www.reddit.com/r/{name}/.rss"
FETCH_TIMEOUT = 30
SNIPPET_LIMIT = 600

# Reddit rejects default library user agents
REQUEST_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "application/rss+xml,application/atom+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}


class FeedFetchError(Exception):
    """Raised when a feed cannot be downloaded or parsed."""


def resolve_source(source: str) -> Tuple[str, Optional[str]]:
    """
    Map a configured source to its feed URL and display name.

    Full URLs are used as-is and named after the feed title later (None here).
    Anything else is treated as a subreddit name.
    """
    source = source.strip()
    if source.lower().startswith(("http://", "https://")):
        return source, None
    name = source[2:] if source.lower().startswith("r/") else source
    name = name.strip("/")
    return REDDIT_FEED_URL.format(name=name), f"r/{name}"


def _entry_published(entry) -> Optional[datetime]:
    # feedparser returns time_struct in UTC
    for key in ("published_parsed", "updated_parsed"):
        parsed = entry.get(key)
        if parsed:
            return datetime.fromtimestamp(calendar.timegm(parsed), tz=timezone.utc)
    return parse_timestamp(entry.get("published") or entry.get("updated"))


def _entry_snippet(entry) -> str:
    snippet = ""
    if "summary" in entry:
        snippet = entry.summary
    elif "description" in entry:
        snippet = entry.description
    elif "content" in entry:
        if isinstance(entry.content, list) and entry.content:
            snippet = entry.content[0].get("value", "")
        else:
            snippet = str(entry.content)

    snippet = snippet.strip()
    if len(snippet) > SNIPPET_LIMIT:
        snippet = snippet[:SNIPPET_LIMIT] + "..."
    return snippet


def parse_entries(feed, source_name: str) -> List[FeedItem]:
    """Convert parsed feed entries into FeedItems, skipping unusable entries."""
    items = []
    for entry in feed.entries:
        try:
            unique_id = entry.get("id") or entry.get("guid") or entry.get("link", "")
            if not unique_id:
                logger.debug(f"Skipping entry without id or link in {source_name}")
                continue

            items.append(FeedItem(
                id=unique_id,
                title=entry.get("title", "No title"),
                link=entry.get("link", ""),
                published_at=_entry_published(entry),
                source=source_name,
                snippet=_entry_snippet(entry),
            ))
        except (AttributeError, KeyError, TypeError, ValueError, OverflowError) as e:
            logger.debug(f"Error processing RSS entry from {source_name}: {e}")
            continue
    return items


def fetch_feed(source: str, session: Optional[requests.Session] = None) -> FeedResult:
    """
    Fetch and parse the feed for a single source.

    Never raises; failures are reported in the returned FeedResult.
    """
    url, display_name = resolve_source(source)
    name = display_name or url
    http = session or requests

    try:
        logger.debug(f"Fetching RSS feed: {url}")
        try:
            response = http.get(url, headers=REQUEST_HEADERS, timeout=FETCH_TIMEOUT)
            response.raise_for_status()
        except requests.RequestException as e:
            raise FeedFetchError(str(e)) from e

        feed = feedparser.parse(response.content)
        if feed.bozo and not feed.entries:
            raise FeedFetchError(f"Feed parsing error: {feed.bozo_exception}")

        if display_name is None:
            name = feed.feed.get("title") or url

        items = parse_entries(feed, name)
        logger.debug(f"Fetched {len(items)} items from {name}")
        return FeedResult(source=name, success=True, items=items)

    except FeedFetchError as e:
        logger.error(f"Failed to fetch RSS for {name}: {e}")
        return FeedResult(source=name, success=False, error=str(e))


def fetch_all_feeds(sources: Sequence[str], max_workers: int = 8) -> List[FeedResult]:
    """
    Fetch every source concurrently.

    Results keep the order of ``sources``. One source failing does not affect
    the others.
    """
    if not sources:
        return []

    logger.info(f"Fetching RSS feeds for {len(sources)} source(s): {', '.join(sources)}")
    results: List[Optional[FeedResult]] = [None] * len(sources)

    with ThreadPoolExecutor(max_workers=min(max_workers, len(sources))) as executor:
        future_map = {executor.submit(fetch_feed, source): idx for idx, source in enumerate(sources)}
        for future in as_completed(future_map):
            idx = future_map[future]
            try:
                results[idx] = future.result()
            except Exception as e:
                logger.error(f"Unexpected error fetching {sources[idx]}: {e}", exc_info=True)
                results[idx] = FeedResult(source=sources[idx], success=False, error=str(e))

    ok = sum(1 for r in results if r.success)
    logger.info(f"Fetch complete: {ok} succeeded, {len(results) - ok} failed")
    return results


def all_items(results: Sequence[FeedResult]) -> List[FeedItem]:
    """Flatten the items of every successful result."""
    return [item for result in results if result.success for item in result.items]
