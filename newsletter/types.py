"""Core datatypes for the weekly newsletter job."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class SourceFeed:
    """A named RSS 2.0 source and the category its articles are filed under."""

    url: str
    source: str
    category: str


@dataclass(frozen=True)
class Article:
    """A single feed item that survived parsing and the relevance filter."""

    title: str
    link: str
    published: datetime
    description: str
    source: str
    category: str


@dataclass(frozen=True)
class Contact:
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class LogStatus(str, Enum):
    SENDING = "sending"
    SENT = "sent"
    FAILED = "failed"


@dataclass(frozen=True)
class EmailLogEntry:
    """One attempted or completed send of a digest to one contact."""

    id: str
    subject: str
    contact_id: str
    status: LogStatus
    sent_at: Optional[datetime] = None
    error_message: Optional[str] = None
    opened_at: Optional[datetime] = None
    clicked_at: Optional[datetime] = None


@dataclass(frozen=True)
class SendPlan:
    """What will be sent to one contact; decided before any I/O happens."""

    contact: Contact
    subject: str
    greeting_name: Optional[str] = None


@dataclass(frozen=True)
class SendOutcome:
    contact: Contact
    ok: bool
    log_id: Optional[str] = None
    error: Optional[str] = None


@dataclass
class RunSummary:
    """Result of one newsletter run, shaped for the JSON response."""

    message: str
    sent: int = 0
    failed: int = 0
    articles_included: int = 0
    delivered: bool = False
    outcomes: list[SendOutcome] = field(default_factory=list)

    def to_payload(self) -> dict:
        if not self.delivered:
            return {"message": self.message}
        return {
            "message": self.message,
            "sent": self.sent,
            "failed": self.failed,
            "articlesIncluded": self.articles_included,
        }
