"""Configuration loading for the newsletter job."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable
from urllib.parse import urlsplit

from .types import SourceFeed

DEFAULT_FEEDS: tuple[SourceFeed, ...] = (
    SourceFeed("https://techpoint.africa/feed/", "TechPoint Africa", "DIGITAL SKILLS"),
    SourceFeed("https://www.itnewsafrica.com/feed/", "IT News Africa", "DIGITAL SKILLS"),
    SourceFeed("https://disrupt-africa.com/feed/", "Disrupt Africa", "STARTUP & FUNDING"),
    SourceFeed("https://www.theafricareport.com/feed/", "The Africa Report", "AI & INNOVATION"),
)

# Matched as lower-case substrings of "title description".
DEFAULT_KEYWORDS: tuple[str, ...] = (
    "digital skills", "education", "training", "learning", "skills development",
    "startup", "funding", "investment", "venture", "accelerator", "incubator",
    "ai", "artificial intelligence", "machine learning", "technology",
    "africa", "african", "nigeria", "kenya", "south africa", "ghana", "egypt",
    "youth", "jobs", "employment", "career", "workforce",
)

DEFAULT_BRAND = "ACFE"
DEFAULT_SENDER = "A Cloud for Everyone <newsletter@acloudforeveryone.org>"
BRAND_DOMAINS: tuple[str, ...] = (
    "acloudforeveryone.org",
    "spectrogramconsulting.com",
)
FALLBACK_URL = "https://acloudforeveryone.org"


def load_env(paths: Iterable[str] | None = None) -> None:
    """Populate os.environ with values from .env-style files if present."""

    if paths is None:
        paths = (".env",)

    for raw_path in paths:
        path = Path(raw_path)
        if not path.is_file():
            continue

        for line in path.read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" not in line:
                continue
            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            os.environ.setdefault(key, value)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


@dataclass
class Settings:
    brand: str = DEFAULT_BRAND
    sender: str = DEFAULT_SENDER
    tracking_base_url: str = ""
    database_path: str = "newsletter.sqlite3"
    feed_timeout: int = 15
    max_per_feed: int = 5
    max_articles: int = 15
    resend_api_key: str = ""
    supabase_url: str = ""
    supabase_key: str = ""
    feeds: tuple[SourceFeed, ...] = DEFAULT_FEEDS
    keywords: tuple[str, ...] = DEFAULT_KEYWORDS
    extra_redirect_domains: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_env(cls) -> "Settings":
        supabase_url = os.getenv("SUPABASE_URL", "").rstrip("/")
        tracking = os.getenv("NEWSLETTER_TRACKING_BASE_URL", "").rstrip("/")
        if not tracking and supabase_url:
            tracking = f"{supabase_url}/functions/v1"
        return cls(
            brand=os.getenv("NEWSLETTER_BRAND", DEFAULT_BRAND),
            sender=os.getenv("NEWSLETTER_FROM", DEFAULT_SENDER),
            tracking_base_url=tracking,
            database_path=os.getenv("NEWSLETTER_DATABASE", "newsletter.sqlite3"),
            feed_timeout=_env_int("NEWSLETTER_FEED_TIMEOUT", 15),
            max_per_feed=_env_int("NEWSLETTER_MAX_PER_FEED", 5),
            max_articles=_env_int("NEWSLETTER_MAX_ARTICLES", 15),
            resend_api_key=os.getenv("RESEND_API_KEY", ""),
            supabase_url=supabase_url,
            supabase_key=os.getenv("SUPABASE_SERVICE_ROLE_KEY", ""),
        )

    @property
    def uses_rest_store(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    def redirect_domains(self) -> tuple[str, ...]:
        """Hosts the click tracker may redirect to: brand sites plus feed sites."""
        hosts: list[str] = list(BRAND_DOMAINS) + list(self.extra_redirect_domains)
        for feed in self.feeds:
            host = (urlsplit(feed.url).hostname or "").lower()
            if host.startswith("www."):
                host = host[4:]
            if host and host not in hosts:
                hosts.append(host)
        return tuple(hosts)

