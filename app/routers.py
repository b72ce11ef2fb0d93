from typing import Annotated, Literal
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response

from app.config import settings
from app.dependencies import get_store
from app.schemas import (
    LINK_CATEGORIES,
    AnalyticsSummary,
    ArchiveCreate,
    ArchiveProvider,
    BulkImportRequest,
    BulkImportResponse,
    Channel,
    ChannelArchive,
    ChannelParseRequest,
    DashboardSummary,
    EmailComposeRequest,
    EmailDraft,
    EmailSendResult,
    EmailSettings,
    EntryCreate,
    EntryStatus,
    EntryUpdate,
    EPGEntry,
    Link,
    LinkCreate,
    LinkUpdate,
    Provider,
    StatusUpdate,
    utc_now,
)
from app.services import (
    analytics_service,
    archive_service,
    entry_service,
    link_service,
    notification_service,
)
from app.services.storage_service import PersistentStore, RecordNotFoundError
from app.utils.csv_export import archive_filename, archive_to_csv, entries_filename, entries_to_csv
from app.utils.logging_helpers import log_report_generated


logger = logging.getLogger(__name__)

main_router = APIRouter()

StoreDep = Annotated[PersistentStore, Depends(get_store)]
ConfirmFlag = Annotated[
    bool, Query(description="Must be true; deletion cannot be undone")
]
WindowDays = Annotated[
    int | None, Query(ge=1, le=365, description="Trailing window in days")
]


def _require_confirmation(confirm: bool, what: str) -> None:
    if not confirm:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Deleting this {what} cannot be undone; repeat the request with confirm=true",
        )


def _attachment(content: str, media_type: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@main_router.get("/")
async def root() -> dict:
    """Root endpoint with service information"""
    return {
        "service": "EPG Changes Tracker",
        "version": "0.1.0",
        "endpoints": {
            "dashboard": "/dashboard - Status counts and recent records",
            "entries": "/entries - Logged EPG changes",
            "links": "/links - Reference links",
            "archives": "/archives - Channel lineup archives",
            "email": "/email - Notification settings and composition",
            "analytics": "/analytics - Aggregate statistics",
            "health": "/health - Health check",
        },
    }


@main_router.get("/health")
async def health_check(store: StoreDep) -> dict:
    """Health check endpoint"""
    return {
        "status": "ok",
        "storage_backend": type(store.backend).__name__ if store.backend else None,
    }


@main_router.get("/dashboard", response_model=DashboardSummary)
async def dashboard(store: StoreDep) -> DashboardSummary:
    entries = await store.entries.get_all()
    links = await store.links.get_all()
    return DashboardSummary(
        pending=sum(1 for e in entries if e.status == "Pending"),
        in_progress=sum(1 for e in entries if e.status == "In Progress"),
        completed=sum(1 for e in entries if e.status == "Completed"),
        total_links=len(links),
        recent_entries=entries[:settings.dashboard_recent_entries],
        recent_links=links[:settings.dashboard_recent_links],
    )


# Entries

@main_router.get("/entries", response_model=list[EPGEntry])
async def list_entries(
    store: StoreDep,
    search: str = "",
    status_filter: Annotated[EntryStatus | Literal["all"] | None, Query(alias="status")] = None,
    provider: Provider | Literal["all"] | None = None,
) -> list[EPGEntry]:
    entries = await store.entries.get_all()
    return entry_service.filter_entries(entries, search, status_filter, provider)


@main_router.post("/entries", response_model=EPGEntry, status_code=status.HTTP_201_CREATED)
async def create_entry(payload: EntryCreate, store: StoreDep) -> EPGEntry:
    return await entry_service.create_entry(store, payload)


@main_router.post("/entries/import", response_model=BulkImportResponse)
async def import_entries(payload: BulkImportRequest, store: StoreDep) -> BulkImportResponse:
    """
    Bulk import 'channel, description' lines

    Provider and change type are inferred from keywords; unparseable lines are skipped.
    """
    result = await entry_service.import_entries(store, payload.text)
    return BulkImportResponse(
        imported=len(result.entries),
        skipped=result.skipped,
        entries=result.entries,
    )


@main_router.get("/entries/export")
async def export_entries(store: StoreDep) -> Response:
    entries = await store.entries.get_all()
    logger.info("Exporting %s entries as CSV", len(entries))
    return _attachment(
        entries_to_csv(entries, settings.local_timezone), "text/csv", entries_filename(utc_now().date())
    )


@main_router.get("/entries/{entry_id}", response_model=EPGEntry)
async def get_entry(entry_id: str, store: StoreDep) -> EPGEntry:
    entry = await store.entries.get(entry_id)
    if entry is None:
        raise RecordNotFoundError("Entry", entry_id)
    return entry


@main_router.patch("/entries/{entry_id}", response_model=EPGEntry)
async def update_entry(entry_id: str, payload: EntryUpdate, store: StoreDep) -> EPGEntry:
    return await entry_service.update_entry(store, entry_id, payload)


@main_router.put("/entries/{entry_id}/status", response_model=EPGEntry)
async def update_entry_status(entry_id: str, payload: StatusUpdate, store: StoreDep) -> EPGEntry:
    return await entry_service.set_entry_status(store, entry_id, payload.status)


@main_router.delete("/entries/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_entry(entry_id: str, store: StoreDep, confirm: ConfirmFlag = False) -> None:
    _require_confirmation(confirm, "entry")
    await entry_service.delete_entry(store, entry_id)


# Links

@main_router.get("/links/categories")
async def link_categories() -> list[str]:
    """Suggested link categories"""
    return list(LINK_CATEGORIES)


@main_router.get("/links", response_model=list[Link])
async def list_links(store: StoreDep, search: str = "", category: str | None = None) -> list[Link]:
    links = await store.links.get_all()
    return link_service.filter_links(links, search, category)


@main_router.post("/links", response_model=Link, status_code=status.HTTP_201_CREATED)
async def create_link(payload: LinkCreate, store: StoreDep) -> Link:
    return await link_service.create_link(store, payload)


@main_router.patch("/links/{link_id}", response_model=Link)
async def update_link(link_id: str, payload: LinkUpdate, store: StoreDep) -> Link:
    return await link_service.update_link(store, link_id, payload)


@main_router.delete("/links/{link_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_link(link_id: str, store: StoreDep, confirm: ConfirmFlag = False) -> None:
    _require_confirmation(confirm, "link")
    await link_service.delete_link(store, link_id)


# Channel archives

@main_router.get("/archives", response_model=list[ChannelArchive])
async def list_archives(
    store: StoreDep,
    search: str = "",
    provider: ArchiveProvider | Literal["all"] | None = None,
) -> list[ChannelArchive]:
    archives = await store.archives.get_all()
    return archive_service.filter_archives(archives, search, provider)


@main_router.post("/archives", response_model=ChannelArchive, status_code=status.HTTP_201_CREATED)
async def create_archive(payload: ArchiveCreate, store: StoreDep) -> ChannelArchive:
    return await archive_service.create_archive(store, payload)


@main_router.post("/archives/channels/parse", response_model=list[Channel])
async def parse_channels(payload: ChannelParseRequest) -> list[Channel]:
    """Preview channels parsed from 'number, name, category, description' lines"""
    return archive_service.parse_channel_lines(payload.text)


@main_router.get("/archives/{archive_id}", response_model=ChannelArchive)
async def get_archive(archive_id: str, store: StoreDep) -> ChannelArchive:
    return await archive_service.get_archive(store, archive_id)


@main_router.get("/archives/{archive_id}/export")
async def export_archive(archive_id: str, store: StoreDep) -> Response:
    archive = await archive_service.get_archive(store, archive_id)
    return _attachment(archive_to_csv(archive), "text/csv", archive_filename(archive))


@main_router.delete("/archives/{archive_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_archive(archive_id: str, store: StoreDep, confirm: ConfirmFlag = False) -> None:
    _require_confirmation(confirm, "archive")
    await archive_service.delete_archive(store, archive_id)


# Email

@main_router.get("/email/settings", response_model=EmailSettings)
async def get_email_settings(store: StoreDep) -> EmailSettings:
    return await store.get_email_settings()


@main_router.put("/email/settings", response_model=EmailSettings)
async def save_email_settings(payload: EmailSettings, store: StoreDep) -> EmailSettings:
    return await store.save_email_settings(payload)


@main_router.post("/email/preview", response_model=EmailDraft)
async def preview_email(payload: EmailComposeRequest, store: StoreDep) -> EmailDraft:
    selected = notification_service.select_entries(await store.entries.get_all(), payload.entry_ids)
    return notification_service.compose_email(
        selected,
        await store.get_email_settings(),
        secondary_delay_ms=settings.email_secondary_delay_ms,
        tz_name=settings.local_timezone,
    )


@main_router.post("/email/send", response_model=EmailSendResult)
async def send_email(payload: EmailComposeRequest, store: StoreDep) -> EmailSendResult:
    """
    Compose the notification and mark the selected entries as emailed

    The returned mailto links must be opened by the client; nothing is sent from here.
    """
    return await notification_service.send_notification(
        store,
        payload.entry_ids,
        secondary_delay_ms=settings.email_secondary_delay_ms,
        tz_name=settings.local_timezone,
    )


# Analytics

async def _summary(store: PersistentStore, days: int | None) -> AnalyticsSummary:
    return analytics_service.compute_analytics(
        await store.entries.get_all(),
        days or settings.analytics_default_window_days,
        tz_name=settings.local_timezone,
    )


@main_router.get("/analytics", response_model=AnalyticsSummary)
async def analytics(store: StoreDep, days: WindowDays = None) -> AnalyticsSummary:
    return await _summary(store, days)


@main_router.get("/analytics/report")
async def analytics_report(store: StoreDep, days: WindowDays = None) -> Response:
    summary = await _summary(store, days)
    now = utc_now()
    report = analytics_service.build_report(summary, now=now, tz_name=settings.local_timezone)
    log_report_generated(logger, summary.window_days, summary.total_entries)
    return _attachment(
        report.model_dump_json(by_alias=True, indent=2),
        "application/json",
        analytics_service.report_filename(now),
    )
