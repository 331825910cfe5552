"""Merging per-feed results into the digest selection."""
from __future__ import annotations

from itertools import chain
from typing import Iterable

from .types import Article

MAX_DIGEST_ARTICLES = 15


def select_articles(
    batches: Iterable[Iterable[Article]], limit: int = MAX_DIGEST_ARTICLES
) -> list[Article]:
    """Newest first across every feed, capped at ``limit``."""
    merged = list(chain.from_iterable(batches))
    merged.sort(key=lambda article: article.published, reverse=True)
    return merged[:limit]
