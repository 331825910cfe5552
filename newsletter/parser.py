"""Parsing RSS 2.0 items out of raw feed XML and filtering them for relevance.

Fields are pulled out of each ``<item>`` block with tolerant pattern matching,
so CDATA sections, stray markup and missing elements never reject a feed.
"""
from __future__ import annotations

import html
import logging
import re
import warnings
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Iterable, Optional

from bs4 import BeautifulSoup, MarkupResemblesLocatorWarning

from .types import Article

LOGGER = logging.getLogger(__name__)

MAX_ITEMS_PER_FEED = 5
MAX_DESCRIPTION_LENGTH = 200
ELLIPSIS = "..."

_ITEM_RE = re.compile(r"<item\b[^>]*>(.*?)</item>", re.DOTALL | re.IGNORECASE)
_CDATA_RE = re.compile(r"<!\[CDATA\[(.*?)\]\]>", re.DOTALL)
_WHITESPACE_RE = re.compile(r"\s+")
_FIELD_RES = {
    name: re.compile(rf"<{name}\b[^>]*>(.*?)</{name}>", re.DOTALL | re.IGNORECASE)
    for name in ("title", "link", "pubDate", "description")
}

warnings.filterwarnings("ignore", category=MarkupResemblesLocatorWarning)


def _clean_once(text: str) -> str:
    text = _CDATA_RE.sub(r"\1", text)
    text = BeautifulSoup(text, "html.parser").get_text()
    text = text.replace("\xa0", " ")
    return _WHITESPACE_RE.sub(" ", text).strip()


def clean_text(text: Optional[str]) -> str:
    """Unwrap CDATA, strip markup and decode entities until the text is stable.

    Repeating until nothing changes means escaped markup such as
    ``&lt;b&gt;`` is removed too, and cleaning already clean text is a no-op.
    A pass that changes the text shortens it or replaces a no-break space.
    """

    current = text or ""
    while True:
        cleaned = _clean_once(current)
        if cleaned == current:
            return current
        current = cleaned


def _clean_link(raw: str) -> str:
    return html.unescape(_CDATA_RE.sub(r"\1", raw)).strip()


def truncate_description(text: str, limit: int = MAX_DESCRIPTION_LENGTH) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + ELLIPSIS


def is_relevant(title: str, description: str, keywords: Iterable[str]) -> bool:
    haystack = f"{title} {description}".lower()
    return any(keyword.lower() in haystack for keyword in keywords)


def parse_pub_date(value: Optional[str]) -> Optional[datetime]:
    """Parse an RSS date (RFC 822, or ISO 8601 as some feeds emit) into UTC."""

    if not value:
        return None
    value = value.strip()
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        parsed = None
    if parsed is None:
        for fmt in (
            "%Y-%m-%dT%H:%M:%S%z",
            "%Y-%m-%dT%H:%M:%S.%f%z",
            "%Y-%m-%dT%H:%M:%S",
            "%Y-%m-%d",
        ):
            try:
                parsed = datetime.strptime(value.replace("Z", "+0000"), fmt)
                break
            except ValueError:
                continue
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _field(block: str, name: str) -> Optional[str]:
    match = _FIELD_RES[name].search(block)
    return match.group(1) if match else None


def parse_feed_items(
    xml: str,
    source: str,
    category: str,
    keywords: Iterable[str],
    max_items: int = MAX_ITEMS_PER_FEED,
    now: Optional[datetime] = None,
) -> list[Article]:
    """Return up to ``max_items`` relevant articles from one feed, in feed order.

    Items without a title or link, and items matching no keyword, are skipped
    without using up the cap. A missing or unreadable ``pubDate`` is treated
    as published at ``now``.
    """

    keywords = tuple(keywords)
    now = now or datetime.now(timezone.utc)
    articles: list[Article] = []
    for match in _ITEM_RE.finditer(xml or ""):
        if len(articles) >= max_items:
            break
        block = match.group(1)
        title = clean_text(_field(block, "title"))
        link = _clean_link(_field(block, "link") or "")
        if not title or not link:
            continue
        description = clean_text(_field(block, "description"))
        if not is_relevant(title, description, keywords):
            continue
        raw_date = _field(block, "pubDate")
        published = parse_pub_date(clean_text(raw_date)) if raw_date else None
        if published is None:
            if raw_date:
                LOGGER.debug("Unparseable pubDate %r in %s, using now", raw_date, source)
            published = now
        articles.append(
            Article(
                title=title,
                link=link,
                published=published,
                description=truncate_description(description),
                source=source,
                category=category,
            )
        )
    LOGGER.info("Found %s relevant article(s) from %s", len(articles), source)
    return articles
