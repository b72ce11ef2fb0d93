"""
CSV export utilities

Rows are fully quoted, the header row is not, and lines are joined with
'\\n' without a trailing newline.
"""
import csv
import io
from collections.abc import Iterable, Sequence
from datetime import date

from app.schemas import ChannelArchive, EPGEntry
from app.utils.timezone import ensure_utc, format_gb_date, get_zone


ARCHIVE_HEADER = "Number,Name,Category,Description"
ENTRIES_HEADER = "Channel,Description,Provider,Change Type,Date,Status,Created"


def _quoted_row(values: Sequence[str]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="")
    writer.writerow(values)
    return buffer.getvalue()


def build_csv(header: str, rows: Iterable[Sequence[str]]) -> str:
    return "\n".join([header, *(_quoted_row(row) for row in rows)])


def archive_to_csv(archive: ChannelArchive) -> str:
    return build_csv(
        ARCHIVE_HEADER,
        (
            (channel.number, channel.name, channel.category, channel.description or "")
            for channel in archive.channels
        ),
    )


def entries_to_csv(entries: Iterable[EPGEntry], tz_name: str = "UTC") -> str:
    """Entries CSV; the Created column is the local calendar day in `tz_name`"""
    zone = get_zone(tz_name)
    return build_csv(
        ENTRIES_HEADER,
        (
            (
                entry.channel,
                entry.description,
                entry.provider,
                entry.change_type,
                entry.date.isoformat(),
                entry.status,
                format_gb_date(ensure_utc(entry.created_at).astimezone(zone)),
            )
            for entry in entries
        ),
    )


def archive_filename(archive: ChannelArchive) -> str:
    return f"{archive.provider}-{archive.version}-channels.csv"


def entries_filename(today: date) -> str:
    return f"epg-entries-{today.isoformat()}.csv"
