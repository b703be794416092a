"""Data models for feed items and notifications."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass(frozen=True)
class FeedItem:
    """Represents an RSS feed item."""
    id: str                           # guid or link
    title: str
    link: str
    published_at: Optional[datetime]  # UTC, None when missing or unparseable
    source: str                       # e.g. "r/python" or the feed title
    snippet: str = ""                 # short description/content from the feed


@dataclass
class FeedResult:
    """Outcome of fetching a single source."""
    source: str
    success: bool
    items: List[FeedItem] = field(default_factory=list)
    error: Optional[str] = None


@dataclass(frozen=True)
class Annotation:
    """Reply suggestion produced for an item."""
    should_surface: bool
    text: Optional[str] = None
    reason: Optional[str] = None


@dataclass
class BatchEntry:
    """One item as it appears in a notification."""
    item: FeedItem
    content: str = ""
    annotation: Optional[Annotation] = None

    @property
    def skipped(self) -> bool:
        return self.annotation is not None and not self.annotation.should_surface

    @property
    def skip_reason(self) -> Optional[str]:
        if not self.skipped:
            return None
        return self.annotation.reason or "Not relevant"

    @property
    def reply(self) -> Optional[str]:
        if self.annotation is None or self.skipped:
            return None
        return self.annotation.text


@dataclass
class CycleSummary:
    """Counts reported at the end of a polling cycle."""
    fetched: int = 0
    new: int = 0
    notified: int = 0
    skipped: int = 0
    sources_ok: int = 0
    sources_failed: int = 0
    evicted: int = 0
    tracked: int = 0
    dispatched: bool = False
