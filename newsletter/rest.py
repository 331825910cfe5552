"""Contact and email log store backed by a hosted PostgREST endpoint."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

import requests

from .storage import StoreError
from .types import Contact, EmailLogEntry, LogStatus

LOGGER = logging.getLogger(__name__)

_LOG_COLUMNS = "id,subject,contact_id,status,sent_at,error_message,opened_at,clicked_at"


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class RestStore:
    """Reads ``contacts`` and writes ``email_logs`` through ``/rest/v1``."""

    def __init__(
        self,
        base_url: str,
        service_key: str,
        timeout: int = 15,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._base = f"{base_url.rstrip('/')}/rest/v1"
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "apikey": service_key,
                "Authorization": f"Bearer {service_key}",
                "Content-Type": "application/json",
            }
        )

    def _request(self, method: str, table: str, **kwargs: Any) -> requests.Response:
        url = f"{self._base}/{table}"
        try:
            response = self._session.request(method, url, timeout=self._timeout, **kwargs)
        except requests.RequestException as exc:
            raise StoreError(f"{method} {table} failed: {exc}") from exc
        if response.status_code >= 400:
            raise StoreError(
                f"{method} {table} failed with status {response.status_code}: {response.text}"
            )
        return response

    def list_contacts(self) -> list[Contact]:
        response = self._request(
            "GET", "contacts", params={"select": "id,email,first_name,last_name"}
        )
        return [
            Contact(
                id=str(row["id"]),
                email=row["email"],
                first_name=row.get("first_name"),
                last_name=row.get("last_name"),
            )
            for row in response.json()
        ]

    def insert_log(
        self,
        subject: str,
        contact_id: str,
        status: LogStatus,
        sent_at: Optional[datetime] = None,
        error_message: Optional[str] = None,
    ) -> str:
        row: dict[str, Any] = {
            "subject": subject,
            "contact_id": contact_id,
            "status": LogStatus(status).value,
        }
        if sent_at is not None:
            row["sent_at"] = sent_at.isoformat()
        if error_message is not None:
            row["error_message"] = error_message
        response = self._request(
            "POST", "email_logs", json=row, headers={"Prefer": "return=representation"}
        )
        created = response.json()
        if isinstance(created, list):
            created = created[0] if created else {}
        if "id" not in created:
            raise StoreError("email_logs insert returned no id")
        return str(created["id"])

    def update_log_status(self, log_id: str, status: LogStatus) -> None:
        self._request(
            "PATCH",
            "email_logs",
            params={"id": f"eq.{log_id}"},
            json={"status": LogStatus(status).value},
        )

    def _stamp_once(self, column: str, log_id: str) -> bool:
        response = self._request(
            "PATCH",
            "email_logs",
            params={"id": f"eq.{log_id}", column: "is.null"},
            json={column: datetime.now(timezone.utc).isoformat()},
            headers={"Prefer": "return=representation"},
        )
        updated = bool(response.json())
        LOGGER.debug("%s for log %s recorded=%s", column, log_id, updated)
        return updated

    def record_open(self, log_id: str) -> bool:
        return self._stamp_once("opened_at", log_id)

    def record_click(self, log_id: str) -> bool:
        return self._stamp_once("clicked_at", log_id)

    def fetch_logs(self, limit: Optional[int] = None) -> list[EmailLogEntry]:
        params: dict[str, Any] = {"select": _LOG_COLUMNS, "order": "id.desc"}
        if limit is not None:
            params["limit"] = limit
        response = self._request("GET", "email_logs", params=params)
        return [
            EmailLogEntry(
                id=str(row["id"]),
                subject=row["subject"],
                contact_id=str(row["contact_id"]),
                status=LogStatus(row["status"]),
                sent_at=_parse_ts(row.get("sent_at")),
                error_message=row.get("error_message"),
                opened_at=_parse_ts(row.get("opened_at")),
                clicked_at=_parse_ts(row.get("clicked_at")),
            )
            for row in response.json()
        ]
