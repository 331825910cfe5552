from datetime import datetime, timezone
from typing import Optional

import pytest

from newsletter.storage import StoreError
from newsletter.types import Article, Contact, LogStatus


class FakeStore:
    """In-memory stand-in for the contact and email log stores."""

    def __init__(self, contacts=None, fail_sending_insert=False, fail_failed_insert=False):
        self.contacts = list(contacts or [])
        self.logs: dict[str, dict] = {}
        self.inserts: list[dict] = []
        self.opened: list[str] = []
        self.clicked: list[str] = []
        self.list_calls = 0
        self._fail_sending_insert = fail_sending_insert
        self._fail_failed_insert = fail_failed_insert

    def list_contacts(self):
        self.list_calls += 1
        return list(self.contacts)

    def insert_log(self, subject, contact_id, status, sent_at=None, error_message=None):
        if status == LogStatus.SENDING and self._fail_sending_insert:
            raise StoreError("log store unavailable")
        if status == LogStatus.FAILED and self._fail_failed_insert:
            raise StoreError("log store unavailable")
        log_id = str(len(self.inserts) + 1)
        row = {
            "id": log_id,
            "subject": subject,
            "contact_id": contact_id,
            "status": LogStatus(status),
            "sent_at": sent_at,
            "error_message": error_message,
        }
        self.inserts.append(dict(row))
        self.logs[log_id] = row
        return log_id

    def update_log_status(self, log_id, status):
        self.logs[log_id]["status"] = LogStatus(status)

    def record_open(self, log_id):
        self.opened.append(log_id)
        return True

    def record_click(self, log_id):
        self.clicked.append(log_id)
        return True

    def statuses(self):
        return [row["status"] for row in self.logs.values()]


class FlakyMailer:
    """Mailer that fails for the given recipient addresses."""

    def __init__(self, failing: Optional[set] = None):
        self.failing = failing or set()
        self.sent: list[tuple[str, str, str]] = []
        self.attempted: list[str] = []

    def send(self, to, subject, html):
        self.attempted.append(to)
        if to in self.failing:
            raise RuntimeError(f"mailbox unavailable for {to}")
        self.sent.append((to, subject, html))
        return f"msg-{len(self.sent)}"


@pytest.fixture
def make_article():
    def _make(
        title="Kenya startup raises funding",
        link="https://techpoint.africa/story",
        published=datetime(2024, 1, 2, 9, 0, tzinfo=timezone.utc),
        description="A new round for youth training.",
        source="TechPoint Africa",
        category="DIGITAL SKILLS",
    ):
        return Article(
            title=title,
            link=link,
            published=published,
            description=description,
            source=source,
            category=category,
        )

    return _make


@pytest.fixture
def contacts():
    return [
        Contact(id="c1", email="ada@example.com", first_name="Ada", last_name="Obi"),
        Contact(id="c2", email="bola@example.com", first_name=None),
        Contact(id="c3", email="chidi@example.com", first_name="Chidi"),
    ]


@pytest.fixture
def fake_store():
    return FakeStore


@pytest.fixture
def flaky_mailer():
    return FlakyMailer
