"""High-level orchestration for one newsletter run."""
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Callable, Optional, Sequence

from .config import Settings
from .delivery import execute_send_plan, plan_sends, summarize
from .feeds import fetch_all_feeds
from .mailer import DryRunMailer, Mailer, ResendMailer
from .parser import parse_feed_items
from .ranking import select_articles
from .render import build_subject
from .rest import RestStore
from .storage import NewsletterStore, SQLiteStore
from .types import Article, RunSummary, SourceFeed

LOGGER = logging.getLogger(__name__)

NO_ARTICLES_MESSAGE = "No news articles found. Newsletter not sent."
NO_CONTACTS_MESSAGE = "No contacts found"

FeedFetcher = Callable[[Sequence[SourceFeed], int], list[tuple[SourceFeed, str]]]


class NewsletterService:
    def __init__(
        self,
        settings: Settings,
        store: NewsletterStore,
        mailer: Mailer,
        fetcher: FeedFetcher = fetch_all_feeds,
    ) -> None:
        self._settings = settings
        self._store = store
        self._mailer = mailer
        self._fetcher = fetcher

    @property
    def store(self) -> NewsletterStore:
        return self._store

    def collect_articles(self) -> list[Article]:
        settings = self._settings
        fetched = self._fetcher(settings.feeds, settings.feed_timeout)
        batches = [
            parse_feed_items(
                body,
                feed.source,
                feed.category,
                settings.keywords,
                max_items=settings.max_per_feed,
            )
            for feed, body in fetched
            if body
        ]
        return select_articles(batches, limit=settings.max_articles)

    def run_once(self, today: Optional[date] = None) -> RunSummary:
        LOGGER.info("Starting weekly newsletter send...")
        articles = self.collect_articles()
        if not articles:
            LOGGER.info("No news articles found. Aborting newsletter send.")
            return RunSummary(message=NO_ARTICLES_MESSAGE)
        LOGGER.info("Found %s articles for newsletter", len(articles))

        contacts = self._store.list_contacts()
        if not contacts:
            LOGGER.info("No contacts to send newsletter to")
            return RunSummary(message=NO_CONTACTS_MESSAGE, articles_included=len(articles))

        today = today or datetime.now().date()
        subject = build_subject(self._settings.brand, today)
        LOGGER.info("Sending %r to %s contact(s)", subject, len(contacts))
        outcomes = execute_send_plan(
            plan_sends(contacts, subject),
            articles,
            self._mailer,
            self._store,
            tracking_base_url=self._settings.tracking_base_url,
            today=today,
        )
        summary = summarize(outcomes, len(articles))
        LOGGER.info("Newsletter complete. Sent: %s, Failed: %s", summary.sent, summary.failed)
        return summary

    def dump_logs(self, limit: Optional[int] = None) -> list[str]:
        return [
            f"{entry.id} | {entry.status.value} | contact={entry.contact_id} | {entry.subject}"
            + (f" | {entry.error_message}" if entry.error_message else "")
            for entry in self._store.fetch_logs(limit)
        ]


def build_store(settings: Settings) -> NewsletterStore:
    if settings.uses_rest_store:
        return RestStore(settings.supabase_url, settings.supabase_key, timeout=settings.feed_timeout)
    return SQLiteStore(settings.database_path)


def build_service(settings: Settings, dry_run: bool = False) -> NewsletterService:
    mailer: Mailer
    if dry_run:
        mailer = DryRunMailer()
    else:
        mailer = ResendMailer(settings.resend_api_key, settings.sender)
    return NewsletterService(settings, build_store(settings), mailer)
