"""Shared fixtures for the RSS reply monitor tests."""

from datetime import datetime, timedelta, timezone

import pytest

from rss_monitor_agent.config import EmailConfig, MonitoringConfig
from rss_monitor_agent.models import FeedItem

NOW = datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Controllable replacement for utc_now."""

    def __init__(self, start: datetime = NOW):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_item():
    def _make(item_id="a1", minutes_ago=2, source="r/python", now=NOW, **kwargs):
        published = now - timedelta(minutes=minutes_ago) if minutes_ago is not None else None
        return FeedItem(
            id=item_id,
            title=kwargs.pop("title", f"Post {item_id}"),
            link=kwargs.pop("link", f"https://www.reddit.com/r/python/comments/{item_id}/post/"),
            published_at=published,
            source=source,
            snippet=kwargs.pop("snippet", f"snippet for {item_id}"),
        )
    return _make


@pytest.fixture
def email_config():
    return EmailConfig(from_email="monitor@example.com", to_email="me@example.com")


@pytest.fixture
def monitoring_config():
    return MonitoringConfig(sources=["python", "learnpython"], check_interval_minutes=5, post_age_minutes=5, max_workers=4)
