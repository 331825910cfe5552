"""Per-recipient delivery of a rendered digest, with an audit log entry per send."""
from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Optional, Sequence

from .mailer import Mailer
from .render import personalize, render_digest
from .storage import NewsletterStore, StoreError
from .types import Article, Contact, LogStatus, RunSummary, SendOutcome, SendPlan

LOGGER = logging.getLogger(__name__)


def plan_sends(contacts: Sequence[Contact], subject: str) -> list[SendPlan]:
    """Decide what each contact gets, without touching any collaborator."""
    plans: list[SendPlan] = []
    for contact in contacts:
        first_name = (contact.first_name or "").strip() or None
        plans.append(SendPlan(contact=contact, subject=subject, greeting_name=first_name))
    return plans


def _open_log(store: NewsletterStore, plan: SendPlan) -> Optional[str]:
    try:
        return store.insert_log(
            plan.subject,
            plan.contact.id,
            LogStatus.SENDING,
            sent_at=datetime.now(timezone.utc),
        )
    except StoreError as exc:
        LOGGER.warning("Failed to create log for %s: %s", plan.contact.email, exc)
        return None


def execute_send_plan(
    plans: Sequence[SendPlan],
    articles: Sequence[Article],
    mailer: Mailer,
    store: NewsletterStore,
    tracking_base_url: str = "",
    today: Optional[date] = None,
) -> list[SendOutcome]:
    """Send every planned message in turn.

    A failed send is recorded as its own ``failed`` log entry and never stops
    the loop. Tracking links are only embedded when a tracking base URL is
    configured and the ``sending`` entry was created.
    """

    untracked_html: Optional[str] = None
    outcomes: list[SendOutcome] = []
    for plan in plans:
        contact = plan.contact
        log_id = _open_log(store, plan)

        if log_id is not None and tracking_base_url:
            document = render_digest(articles, tracking_base_url, log_id=log_id, today=today)
        else:
            if untracked_html is None:
                untracked_html = render_digest(articles, tracking_base_url, today=today)
            document = untracked_html
        document = personalize(document, plan.greeting_name)

        try:
            mailer.send(contact.email, plan.subject, document)
        except Exception as exc:  # noqa: BLE001 - one recipient must not stop the run
            LOGGER.error("Failed to send to %s: %s", contact.email, exc)
            try:
                store.insert_log(
                    plan.subject,
                    contact.id,
                    LogStatus.FAILED,
                    error_message=str(exc),
                )
            except StoreError as log_exc:
                LOGGER.warning("Could not record failed send to %s: %s", contact.email, log_exc)
            outcomes.append(SendOutcome(contact=contact, ok=False, log_id=log_id, error=str(exc)))
            continue

        if log_id is not None:
            try:
                store.update_log_status(log_id, LogStatus.SENT)
            except StoreError as exc:
                LOGGER.warning("Sent to %s but could not mark log %s as sent: %s", contact.email, log_id, exc)
        LOGGER.info("Newsletter sent to %s", contact.email)
        outcomes.append(SendOutcome(contact=contact, ok=True, log_id=log_id))
    return outcomes


def summarize(outcomes: Sequence[SendOutcome], articles_included: int) -> RunSummary:
    sent = sum(1 for outcome in outcomes if outcome.ok)
    return RunSummary(
        message="Weekly newsletter sent",
        sent=sent,
        failed=len(outcomes) - sent,
        articles_included=articles_included,
        delivered=True,
        outcomes=list(outcomes),
    )
