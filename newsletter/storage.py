"""SQLite storage for contacts and the email send log."""
from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
import sqlite3
from typing import Generator, Optional, Protocol

from .types import Contact, EmailLogEntry, LogStatus


class StoreError(RuntimeError):
    """Raised when the contact or log store cannot be read or written."""


class NewsletterStore(Protocol):
    def list_contacts(self) -> list[Contact]:
        ...

    def insert_log(
        self,
        subject: str,
        contact_id: str,
        status: LogStatus,
        sent_at: Optional[datetime] = None,
        error_message: Optional[str] = None,
    ) -> str:
        ...

    def update_log_status(self, log_id: str, status: LogStatus) -> None:
        ...

    def record_open(self, log_id: str) -> bool:
        ...

    def record_click(self, log_id: str) -> bool:
        ...

    def fetch_logs(self, limit: Optional[int] = None) -> list[EmailLogEntry]:
        ...


_SCHEMA = """
CREATE TABLE IF NOT EXISTS contacts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    email TEXT NOT NULL UNIQUE,
    first_name TEXT,
    last_name TEXT
);
CREATE TABLE IF NOT EXISTS email_logs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    subject TEXT NOT NULL,
    contact_id TEXT NOT NULL,
    status TEXT NOT NULL,
    sent_at TEXT,
    error_message TEXT,
    opened_at TEXT,
    clicked_at TEXT
);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class SQLiteStore:
    """Lightweight wrapper around SQLite for contacts and email logs."""

    def __init__(self, path: str) -> None:
        db_path = Path(path)
        parent = db_path.parent
        if parent != Path("."):
            parent.mkdir(parents=True, exist_ok=True)
        self._path = str(db_path)
        self._ensure_schema()

    @contextmanager
    def _conn(self) -> Generator[sqlite3.Connection, None, None]:
        try:
            conn = sqlite3.connect(self._path)
        except sqlite3.Error as exc:
            raise StoreError(f"Cannot open {self._path}: {exc}") from exc
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self._conn() as conn:
            conn.execute("PRAGMA journal_mode=WAL;")
            conn.executescript(_SCHEMA)

    def add_contact(
        self, email: str, first_name: Optional[str] = None, last_name: Optional[str] = None
    ) -> Contact:
        with self._conn() as conn:
            cur = conn.execute(
                "INSERT INTO contacts (email, first_name, last_name) VALUES (?, ?, ?)",
                (email.strip().lower(), first_name, last_name),
            )
            contact_id = str(cur.lastrowid)
        return Contact(id=contact_id, email=email.strip().lower(), first_name=first_name, last_name=last_name)

    def list_contacts(self) -> list[Contact]:
        with self._conn() as conn:
            rows = conn.execute(
                "SELECT id, email, first_name, last_name FROM contacts ORDER BY id"
            ).fetchall()
        return [
            Contact(id=str(row_id), email=email, first_name=first_name, last_name=last_name)
            for row_id, email, first_name, last_name in rows
        ]

    def insert_log(
        self,
        subject: str,
        contact_id: str,
        status: LogStatus,
        sent_at: Optional[datetime] = None,
        error_message: Optional[str] = None,
    ) -> str:
        with self._conn() as conn:
            cur = conn.execute(
                """
                INSERT INTO email_logs (subject, contact_id, status, sent_at, error_message)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    subject,
                    contact_id,
                    LogStatus(status).value,
                    sent_at.isoformat(timespec="seconds") if sent_at else None,
                    error_message,
                ),
            )
            return str(cur.lastrowid)

    def update_log_status(self, log_id: str, status: LogStatus) -> None:
        with self._conn() as conn:
            cur = conn.execute(
                "UPDATE email_logs SET status = ? WHERE id = ?",
                (LogStatus(status).value, log_id),
            )
            if cur.rowcount == 0:
                raise StoreError(f"No email log with id {log_id}")

    def _stamp_once(self, column: str, log_id: str) -> bool:
        with self._conn() as conn:
            cur = conn.execute(
                f"UPDATE email_logs SET {column} = ? WHERE id = ? AND {column} IS NULL",
                (_now(), log_id),
            )
            return cur.rowcount > 0

    def record_open(self, log_id: str) -> bool:
        return self._stamp_once("opened_at", log_id)

    def record_click(self, log_id: str) -> bool:
        return self._stamp_once("clicked_at", log_id)

    def fetch_logs(self, limit: Optional[int] = None) -> list[EmailLogEntry]:
        query = (
            "SELECT id, subject, contact_id, status, sent_at, error_message, opened_at, clicked_at"
            " FROM email_logs ORDER BY id DESC"
        )
        if limit is not None:
            query += " LIMIT ?"
            params: tuple[object, ...] = (limit,)
        else:
            params = ()

        with self._conn() as conn:
            rows = conn.execute(query, params).fetchall()

        return [
            EmailLogEntry(
                id=str(row_id),
                subject=subject,
                contact_id=contact_id,
                status=LogStatus(status),
                sent_at=_parse_ts(sent_at),
                error_message=error_message,
                opened_at=_parse_ts(opened_at),
                clicked_at=_parse_ts(clicked_at),
            )
            for row_id, subject, contact_id, status, sent_at, error_message, opened_at, clicked_at in rows
        ]
