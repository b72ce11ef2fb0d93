"""
Link Service

Reference links: create, edit, delete and filter.
"""
import logging
from collections.abc import Iterable

from app.schemas import Link, LinkCreate, LinkUpdate, utc_now
from app.services.storage_service import PersistentStore, RecordNotFoundError
from app.utils.identifiers import generate_id


logger = logging.getLogger(__name__)


async def create_link(store: PersistentStore, payload: LinkCreate) -> Link:
    link = Link(
        id=generate_id(),
        title=payload.title,
        url=payload.url,
        category=payload.category,
        description=payload.description,
        created_at=utc_now(),
    )
    await store.links.add(link)
    logger.info("Created link %s (%s)", link.id, link.category)
    return link


async def update_link(store: PersistentStore, link_id: str, payload: LinkUpdate) -> Link:
    """
    Merge the provided fields into a link; created_at is kept

    Raises:
        RecordNotFoundError: If no link has the identifier
    """
    changes = payload.changes()
    updated = await store.links.update(link_id, lambda link: link.model_copy(update=changes))
    if updated is None:
        raise RecordNotFoundError("Link", link_id)
    logger.info("Updated link %s: %s", link_id, sorted(changes))
    return updated


async def delete_link(store: PersistentStore, link_id: str) -> None:
    if not await store.links.delete(link_id):
        raise RecordNotFoundError("Link", link_id)
    logger.info("Deleted link %s", link_id)


def filter_links(links: Iterable[Link], search: str = "", category: str | None = None) -> list[Link]:
    """Case-insensitive match over title, description and url, plus exact category"""
    needle = search.lower()
    matched = []
    for link in links:
        haystacks = (link.title, link.description or "", link.url)
        if needle and not any(needle in text.lower() for text in haystacks):
            continue
        if category not in (None, "all") and link.category != category:
            continue
        matched.append(link)
    return matched
