"""
Notification Composer

Builds the change-notification email and the `mailto:` links that hand it to
the operator's mail client. Nothing is transmitted from here: sending only
marks the selected entries as emailed.
"""
import logging
from collections.abc import Sequence
from datetime import date, datetime
from urllib.parse import quote

from app.schemas import EmailDraft, EmailSendResult, EmailSettings, EPGEntry, MailtoLink
from app.services.entry_service import mark_entries_emailed
from app.services.storage_service import PersistentStore
from app.utils.timezone import format_gb_date, format_gb_long_date, get_zone


logger = logging.getLogger(__name__)

SIGN_OFF = (
    "Best regards,\n"
    "EPG Changes Management System\n\n"
    "---\n"
    "This email was generated automatically by the EPG Changes Management System."
)

# Characters encodeURIComponent leaves unescaped
_URI_COMPONENT_SAFE = "-_.!~*'()"


def select_entries(entries: Sequence[EPGEntry], entry_ids: Sequence[str] | None) -> list[EPGEntry]:
    """Entries whose id is selected, in storage order; all entries when ids is None"""
    if entry_ids is None:
        return list(entries)
    wanted = set(entry_ids)
    return [entry for entry in entries if entry.id in wanted]


def build_subject(selected: Sequence[EPGEntry]) -> str:
    if not selected:
        return "EPG Changes Update"
    if len(selected) == 1:
        return f"EPG Change: {selected[0].channel}"
    return f"EPG Changes Update - {len(selected)} Changes"


def build_body(selected: Sequence[EPGEntry], today: date) -> str:
    lines = [f"EPG Changes Update - {format_gb_long_date(today)}", ""]

    if not selected:
        lines += ["No changes selected.", ""]
    else:
        plural = "" if len(selected) == 1 else "s"
        lines += [f"{len(selected)} change{plural} to report:", ""]
        for index, entry in enumerate(selected, start=1):
            lines += [
                f"{index}. {entry.channel} ({entry.provider})",
                f"   Type: {entry.change_type}",
                f"   Date: {format_gb_date(entry.date)}",
                f"   Status: {entry.status}",
                f"   Description: {entry.description}",
                "",
            ]

    return "\n".join(lines) + "\n" + SIGN_OFF


def build_mailto(recipient: str, subject: str, body: str) -> str:
    return (
        f"mailto:{recipient}"
        f"?subject={quote(subject, safe=_URI_COMPONENT_SAFE)}"
        f"&body={quote(body, safe=_URI_COMPONENT_SAFE)}"
    )


def compose_email(
    selected: Sequence[EPGEntry],
    email_settings: EmailSettings,
    *,
    today: date | None = None,
    secondary_delay_ms: int = 500,
    tz_name: str = "UTC",
) -> EmailDraft:
    """
    Compose the notification for the selected entries

    Args:
        selected: Entries to report
        email_settings: Configured recipients; blank recipients get no link
        today: Date shown in the body header (defaults to today in `tz_name`)
        secondary_delay_ms: Delay before the client opens the secondary link
        tz_name: Zone whose calendar day is "today"

    Returns:
        EmailDraft with subject, body and one mailto link per recipient
    """
    today = today or datetime.now(get_zone(tz_name)).date()
    subject = build_subject(selected)
    body = build_body(selected, today)

    links = []
    if email_settings.primary_recipient:
        links.append(
            MailtoLink(
                recipient=email_settings.primary_recipient,
                url=build_mailto(email_settings.primary_recipient, subject, body),
            )
        )
    if email_settings.secondary_recipient:
        links.append(
            MailtoLink(
                recipient=email_settings.secondary_recipient,
                url=build_mailto(email_settings.secondary_recipient, subject, body),
                delay_ms=secondary_delay_ms,
            )
        )

    return EmailDraft(
        subject=subject,
        body=body,
        entry_ids=[entry.id for entry in selected],
        mailto_links=links,
    )


async def send_notification(
    store: PersistentStore,
    entry_ids: Sequence[str] | None,
    *,
    secondary_delay_ms: int = 500,
    tz_name: str = "UTC",
) -> EmailSendResult:
    """
    Compose the notification and mark the selected entries as emailed.

    Delivery is up to the mail client; entries are marked regardless.
    """
    selected = select_entries(await store.entries.get_all(), entry_ids)
    email_settings = await store.get_email_settings()
    draft = compose_email(
        selected, email_settings, secondary_delay_ms=secondary_delay_ms, tz_name=tz_name
    )

    if not draft.mailto_links:
        logger.warning("No email recipients configured; entries are marked as emailed anyway")

    marked = await mark_entries_emailed(store, draft.entry_ids)
    logger.info("Notification composed: %s (%s entries)", draft.subject, len(marked))
    return EmailSendResult(**draft.model_dump(), marked_sent=len(marked))
