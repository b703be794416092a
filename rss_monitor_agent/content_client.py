"""Fetch extended post content for feed item links."""

import logging
import re
from html import unescape
from typing import Optional
from urllib.parse import urlparse

import requests

from .rss_client import REQUEST_HEADERS

logger = logging.getLogger(__name__)

CONTENT_TIMEOUT = 15
CONTENT_LIMIT = 4000


def _extract_plain_text(body: str) -> str:
    """Extract plain text from HTML or return as-is."""
    text = re.sub(r"<(script|style)[^>]*>.*?</\1>", " ", body, flags=re.S | re.I)
    text = re.sub(r"<[^>]+>", " ", text)
    text = unescape(text)
    text = re.sub(r"\s+", " ", text)
    return text.strip()


def _truncate(text: str) -> str:
    if len(text) > CONTENT_LIMIT:
        return text[:CONTENT_LIMIT] + "..."
    return text


def _is_reddit(link: str) -> bool:
    host = urlparse(link).netloc.lower()
    return host == "reddit.com" or host.endswith(".reddit.com")


def _fetch_reddit_selftext(link: str) -> Optional[str]:
    url = link.split("?", 1)[0].rstrip("/") + ".json"
    response = requests.get(url, headers=REQUEST_HEADERS, timeout=CONTENT_TIMEOUT)
    response.raise_for_status()
    data = response.json()
    post = data[0]["data"]["children"][0]["data"]
    return (post.get("selftext") or "").strip() or None


def fetch_full_content(link: str) -> Optional[str]:
    """
    Fetch the full text behind an item link.

    Reddit posts are read through their JSON endpoint; anything else is fetched
    as HTML and reduced to plain text. Returns None on any failure or when the
    page has no text.
    """
    if not link:
        return None

    try:
        if _is_reddit(link):
            text = _fetch_reddit_selftext(link)
        else:
            response = requests.get(link, headers=REQUEST_HEADERS, timeout=CONTENT_TIMEOUT)
            response.raise_for_status()
            text = _extract_plain_text(response.text) or None
    except (requests.RequestException, ValueError, KeyError, IndexError, TypeError) as e:
        logger.warning(f"Could not fetch full content for {link}: {e}")
        return None

    return _truncate(text) if text else None
