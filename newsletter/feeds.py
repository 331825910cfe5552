"""Concurrent retrieval of the configured RSS feeds."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Sequence

import requests

from .types import SourceFeed

LOGGER = logging.getLogger(__name__)
USER_AGENT = "ACFE Newsletter Bot/1.0"


class FetchError(RuntimeError):
    """Raised when a feed cannot be retrieved."""


def _build_session() -> requests.Session:
    session = requests.Session()
    session.headers.update(
        {
            "User-Agent": USER_AGENT,
            "Accept": "application/rss+xml,application/xml;q=0.9,text/xml;q=0.8,*/*;q=0.5",
        }
    )
    return session


def fetch_feed_xml(
    feed: SourceFeed,
    timeout: int = 15,
    session: Optional[requests.Session] = None,
) -> str:
    owned = session is None
    if session is None:
        session = _build_session()
    try:
        response = session.get(feed.url, timeout=timeout)
    except requests.RequestException as exc:
        raise FetchError(f"Failed to retrieve {feed.url}: {exc}") from exc
    finally:
        if owned:
            session.close()
    if not 200 <= response.status_code < 300:
        raise FetchError(
            f"Failed to retrieve feed (status {response.status_code}) from {feed.url}"
        )
    return response.text


def _fetch_or_empty(feed: SourceFeed, timeout: int) -> str:
    LOGGER.info("Fetching RSS feed %s (%s)", feed.source, feed.url)
    try:
        return fetch_feed_xml(feed, timeout=timeout)
    except FetchError as exc:
        LOGGER.error("Feed %s skipped: %s", feed.source, exc)
        return ""


def fetch_all_feeds(
    feeds: Sequence[SourceFeed],
    timeout: int = 15,
    max_workers: Optional[int] = None,
) -> list[tuple[SourceFeed, str]]:
    """Fetch every feed at once and pair it with its body.

    A feed that fails is paired with an empty string, so callers always get
    one entry per configured feed, in configuration order.
    """

    if not feeds:
        return []
    workers = max_workers or len(feeds)
    with ThreadPoolExecutor(max_workers=workers) as executor:
        bodies = list(executor.map(lambda feed: _fetch_or_empty(feed, timeout), feeds))
    return list(zip(feeds, bodies))
