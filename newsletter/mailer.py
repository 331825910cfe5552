"""Outgoing mail through the Resend HTTP API."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol

import requests

LOGGER = logging.getLogger(__name__)

RESEND_ENDPOINT = "https://api.resend.com/emails"


class MailError(RuntimeError):
    """Raised when a message could not be handed to the mail provider."""


class Mailer(Protocol):
    def send(self, to: str, subject: str, html: str) -> Optional[str]:
        ...


class ResendMailer:
    def __init__(
        self,
        api_key: str,
        sender: str,
        timeout: int = 15,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not api_key:
            raise ValueError("A Resend API key is required to send mail.")
        self._sender = sender
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {api_key}",
                "User-Agent": "ACFE Newsletter Bot/1.0",
            }
        )

    def send(self, to: str, subject: str, html: str) -> Optional[str]:
        """Send one message and return the provider's message id."""
        payload = {"from": self._sender, "to": [to], "subject": subject, "html": html}
        try:
            response = self._session.post(RESEND_ENDPOINT, json=payload, timeout=self._timeout)
        except requests.RequestException as exc:
            raise MailError(f"Mail provider unreachable: {exc}") from exc
        if response.status_code >= 400:
            LOGGER.error(
                "Mail provider rejected message to %s: status %s, body=%s",
                to,
                response.status_code,
                response.text,
            )
            raise MailError(f"Mail provider returned status {response.status_code}: {response.text}")
        try:
            return response.json().get("id")
        except ValueError:
            return None


@dataclass
class DryRunMailer:
    """Records messages instead of sending them."""

    sent: list[tuple[str, str, str]] = field(default_factory=list)

    def send(self, to: str, subject: str, html: str) -> Optional[str]:
        LOGGER.info("Dry run enabled - not sending %r to %s.", subject, to)
        self.sent.append((to, subject, html))
        return None
