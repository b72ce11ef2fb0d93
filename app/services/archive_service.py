"""
Channel Archive Service

Stores provider channel lineups. Channels live only inside their archive,
so deleting an archive discards its channels with it.
"""
import logging
from collections.abc import Iterable

from app.schemas import ArchiveCreate, Channel, ChannelArchive, ChannelInput, utc_now
from app.services.storage_service import PersistentStore, RecordNotFoundError
from app.utils.identifiers import generate_id


logger = logging.getLogger(__name__)

DEFAULT_CHANNEL_CATEGORY = "General"


def parse_channel_lines(text: str) -> list[Channel]:
    """
    Parse pasted lineup text into channels

    Each non-blank line is `number, name, category, description`; missing
    fields become empty strings and the category defaults to General.

    Args:
        text: Newline-delimited channel lines

    Returns:
        Channels in line order, each with a fresh identifier
    """
    channels = []
    for line in text.splitlines():
        if not line.strip():
            continue
        parts = [part.strip() for part in line.split(",")]
        parts += [""] * (4 - len(parts))
        channels.append(
            Channel(
                id=generate_id(),
                number=parts[0],
                name=parts[1],
                category=parts[2] or DEFAULT_CHANNEL_CATEGORY,
                description=parts[3],
            )
        )
    return channels


def _channel_from_input(channel: ChannelInput) -> Channel:
    return Channel(
        id=generate_id(),
        number=channel.number,
        name=channel.name,
        category=channel.category or DEFAULT_CHANNEL_CATEGORY,
        description=channel.description,
    )


async def create_archive(store: PersistentStore, payload: ArchiveCreate) -> ChannelArchive:
    channels = [_channel_from_input(channel) for channel in payload.channels]
    if payload.channel_text:
        channels.extend(parse_channel_lines(payload.channel_text))

    archive = ChannelArchive(
        id=generate_id(),
        provider=payload.provider,
        version=payload.version,
        channels=channels,
        created_at=utc_now(),
    )
    await store.archives.add(archive)
    logger.info(
        "Archived %s lineup '%s' with %s channels",
        archive.provider,
        archive.version,
        len(archive.channels),
    )
    return archive


async def get_archive(store: PersistentStore, archive_id: str) -> ChannelArchive:
    archive = await store.archives.get(archive_id)
    if archive is None:
        raise RecordNotFoundError("Archive", archive_id)
    return archive


async def delete_archive(store: PersistentStore, archive_id: str) -> None:
    if not await store.archives.delete(archive_id):
        raise RecordNotFoundError("Archive", archive_id)
    logger.info("Deleted archive %s", archive_id)


def filter_archives(
    archives: Iterable[ChannelArchive],
    search: str = "",
    provider: str | None = None,
) -> list[ChannelArchive]:
    """
    Filter archives for display

    The search matches the version or any channel name case-insensitively,
    and channel numbers case-sensitively.
    """
    needle = search.lower()
    matched = []
    for archive in archives:
        if search and not (
            needle in archive.version.lower()
            or any(
                needle in channel.name.lower() or search in channel.number
                for channel in archive.channels
            )
        ):
            continue
        if provider not in (None, "all") and archive.provider != provider:
            continue
        matched.append(archive)
    return matched
