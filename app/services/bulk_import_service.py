"""
Bulk import of pasted change notices

Each line is read as `channel, description`. Provider and change type are
guessed from keywords using ordered rule tables; the first matching rule
wins and unmatched text falls back to the table's default. Lines that do
not carry both a channel and a description are skipped without error.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from app.schemas import ChangeType, EPGEntry, Provider, utc_now
from app.utils.identifiers import generate_id


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class KeywordRule:
    """Maps any of `keywords` (case-insensitive substrings) to `result`."""
    keywords: tuple[str, ...]
    result: str

    def matches(self, *texts: str) -> bool:
        lowered = [text.lower() for text in texts]
        return any(keyword in text for keyword in self.keywords for text in lowered)


PROVIDER_RULES: tuple[KeywordRule, ...] = (
    KeywordRule(("virgin",), "Virgin Media"),
    KeywordRule(("freeview",), "Freeview"),
)
DEFAULT_PROVIDER: Provider = "Sky"

CHANGE_TYPE_RULES: tuple[KeywordRule, ...] = (
    KeywordRule(("new channel", "launch"), "New Channel"),
    KeywordRule(("removal", "close"), "Channel Removal"),
    KeywordRule(("technical", "frequency"), "Technical Change"),
)
DEFAULT_CHANGE_TYPE: ChangeType = "EPG Update"


@dataclass(slots=True)
class ParsedLine:
    channel: str
    description: str
    provider: Provider
    change_type: ChangeType


@dataclass(slots=True)
class ImportResult:
    entries: list[EPGEntry]
    skipped: int


def classify(rules: tuple[KeywordRule, ...], default: str, *texts: str) -> str:
    """Return the result of the first rule matching any text, else `default`."""
    for rule in rules:
        if rule.matches(*texts):
            return rule.result
    return default


def infer_provider(channel: str, description: str) -> Provider:
    return classify(PROVIDER_RULES, DEFAULT_PROVIDER, channel, description)  # type: ignore[return-value]


def infer_change_type(description: str) -> ChangeType:
    return classify(CHANGE_TYPE_RULES, DEFAULT_CHANGE_TYPE, description)  # type: ignore[return-value]


def parse_line(line: str) -> ParsedLine | None:
    """
    Parse one `channel, description` line.

    Returns:
        ParsedLine, or None when the line lacks a channel or description
    """
    parts = [part.strip() for part in line.split(",")]
    if len(parts) < 2:
        return None

    channel, description = parts[0], parts[1]
    # Same rule as EntryCreate: channel and description must be non-empty
    if not channel or not description:
        return None

    return ParsedLine(
        channel=channel,
        description=description,
        provider=infer_provider(channel, description),
        change_type=infer_change_type(description),
    )


def parse_bulk_text(text: str, *, now: datetime | None = None) -> ImportResult:
    """
    Turn pasted text into new Pending entries.

    Args:
        text: Newline-delimited `channel, description` lines
        now: Import time (defaults to current UTC time)

    Returns:
        ImportResult with the new entries and the number of skipped lines
    """
    now = now or utc_now()
    entries: list[EPGEntry] = []
    skipped = 0

    for line_number, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue

        parsed = parse_line(line)
        if parsed is None:
            logger.debug("Skipping import line %s: %r", line_number, line)
            skipped += 1
            continue

        entries.append(
            EPGEntry(
                id=generate_id(),
                date=now.date(),
                channel=parsed.channel,
                provider=parsed.provider,
                change_type=parsed.change_type,
                description=parsed.description,
                status="Pending",
                created_at=now,
                updated_at=now,
                email_sent=False,
            )
        )

    return ImportResult(entries=entries, skipped=skipped)
