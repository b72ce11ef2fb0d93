import datetime as dt
from typing import Annotated, ClassVar, Literal, get_args

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, model_validator
from pydantic.alias_generators import to_camel


Provider = Literal["Sky", "Virgin Media", "Freeview", "Other"]
ArchiveProvider = Literal["Sky", "Virgin Media", "Freeview"]
ChangeType = Literal["New Channel", "Channel Removal", "EPG Update", "Technical Change"]
EntryStatus = Literal["Pending", "In Progress", "Completed"]

PROVIDERS: tuple[str, ...] = get_args(Provider)
ARCHIVE_PROVIDERS: tuple[str, ...] = get_args(ArchiveProvider)
CHANGE_TYPES: tuple[str, ...] = get_args(ChangeType)
ENTRY_STATUSES: tuple[str, ...] = get_args(EntryStatus)

LINK_CATEGORIES: tuple[str, ...] = (
    "EPG Information",
    "Technical Documentation",
    "Provider Resources",
    "Compliance",
    "Other",
)

NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class CamelModel(BaseModel):
    """Base model persisted and served with camelCase keys"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PartialUpdateModel(CamelModel):
    """Partial update payload: omitted fields are left alone, explicit nulls are rejected"""

    nullable_fields: ClassVar[tuple[str, ...]] = ()

    @model_validator(mode="after")
    def reject_explicit_nulls(self):
        for name in self.model_fields_set:
            if getattr(self, name) is None and name not in self.nullable_fields:
                raise ValueError(f"{name} cannot be null")
        return self

    def changes(self) -> dict:
        """Fields explicitly provided by the caller"""
        return self.model_dump(include=self.model_fields_set)


# Entries

class EPGEntry(CamelModel):
    """A logged EPG change"""
    id: str
    date: dt.date = Field(..., description="Date the change takes effect")
    channel: str
    provider: Provider
    change_type: ChangeType
    description: str
    status: EntryStatus = "Pending"
    created_at: dt.datetime
    updated_at: dt.datetime
    email_sent: bool = False


class EntryCreate(CamelModel):
    """New entry form"""
    channel: NonEmptyStr
    provider: Provider
    change_type: ChangeType
    description: NonEmptyStr
    date: dt.date = Field(default_factory=lambda: utc_now().date())
    status: EntryStatus = "Pending"


class EntryUpdate(PartialUpdateModel):
    """Edit form; any subset of fields"""
    channel: NonEmptyStr | None = None
    provider: Provider | None = None
    change_type: ChangeType | None = None
    description: NonEmptyStr | None = None
    date: dt.date | None = None
    status: EntryStatus | None = None
    email_sent: bool | None = None


class StatusUpdate(CamelModel):
    status: EntryStatus


class BulkImportRequest(CamelModel):
    text: str = Field(..., description="One 'channel, description' pair per line")


class BulkImportResponse(CamelModel):
    imported: int
    skipped: int
    entries: list[EPGEntry]


# Links

class Link(CamelModel):
    """A stored reference link"""
    id: str
    title: str
    url: str
    category: str
    description: str | None = None
    created_at: dt.datetime


class LinkCreate(CamelModel):
    title: NonEmptyStr
    url: NonEmptyStr
    category: NonEmptyStr = "EPG Information"
    description: str | None = None


class LinkUpdate(PartialUpdateModel):
    nullable_fields: ClassVar[tuple[str, ...]] = ("description",)

    title: NonEmptyStr | None = None
    url: NonEmptyStr | None = None
    category: NonEmptyStr | None = None
    description: str | None = None


# Channel archives

class Channel(CamelModel):
    """A channel inside a lineup archive"""
    id: str
    number: str = Field("", description="Free-text channel number, e.g. '101a'")
    name: str = ""
    category: str = "General"
    description: str | None = None


class ChannelInput(CamelModel):
    number: str = ""
    name: str = ""
    category: str = "General"
    description: str | None = None


class ChannelArchive(CamelModel):
    """A provider's channel lineup at a given version"""
    id: str
    provider: ArchiveProvider
    version: str
    channels: list[Channel] = Field(default_factory=list)
    created_at: dt.datetime


class ArchiveCreate(CamelModel):
    provider: ArchiveProvider
    version: NonEmptyStr
    channels: list[ChannelInput] = Field(default_factory=list)
    channel_text: str | None = Field(
        None, description="Optional 'number, name, category, description' lines"
    )


class ChannelParseRequest(CamelModel):
    text: str


# Email

class EmailSettings(CamelModel):
    """Notification recipients (singleton)"""
    primary_recipient: str = ""
    secondary_recipient: str = ""


class EmailComposeRequest(CamelModel):
    entry_ids: list[str] | None = Field(
        None, description="Entries to include; all entries when omitted"
    )


class MailtoLink(CamelModel):
    recipient: str
    url: str
    delay_ms: int = 0


class EmailDraft(CamelModel):
    subject: str
    body: str
    entry_ids: list[str]
    mailto_links: list[MailtoLink]


class EmailSendResult(EmailDraft):
    marked_sent: int


# Analytics

class StatusBreakdown(CamelModel):
    pending: int = 0
    in_progress: int = 0
    completed: int = 0


class ProviderBreakdown(CamelModel):
    sky: int = 0
    virgin_media: int = 0
    freeview: int = 0
    other: int = 0


class ChangeTypeBreakdown(CamelModel):
    new_channel: int = 0
    channel_removal: int = 0
    epg_update: int = 0
    technical_change: int = 0


class EmailStats(CamelModel):
    sent: int = 0
    pending: int = 0


class DailyActivity(CamelModel):
    date: str = Field(..., description="en-GB short label, e.g. 'Mon 19'")
    count: int


class AnalyticsSummary(CamelModel):
    window_days: int
    total_entries: int
    status_breakdown: StatusBreakdown
    provider_breakdown: ProviderBreakdown
    change_type_breakdown: ChangeTypeBreakdown
    email_stats: EmailStats
    completion_rate: int = Field(..., description="Completed entries as a whole percentage")
    email_rate: int = Field(..., description="Emailed entries as a whole percentage")
    average_per_day: int
    daily_activity: list[DailyActivity]


class AnalyticsReport(CamelModel):
    """Downloadable analytics report"""
    generated_at: str
    date_range: str
    total_entries: int
    status_breakdown: StatusBreakdown
    provider_breakdown: ProviderBreakdown
    change_type_breakdown: ChangeTypeBreakdown
    email_stats: EmailStats
    completion_rate: str
    email_rate: str
    daily_activity: list[DailyActivity]


# Dashboard

class DashboardSummary(CamelModel):
    pending: int
    in_progress: int
    completed: int
    total_links: int
    recent_entries: list[EPGEntry]
    recent_links: list[Link]


class ErrorDetail(BaseModel):
    """Standard error detail"""
    code: str = Field(..., description="Error code (e.g., 'NOT_FOUND', 'CONFIRMATION_REQUIRED')")
    message: str = Field(..., description="Human-readable error message")
    context: dict | None = Field(None, description="Additional context about the error")


class StandardErrorResponse(BaseModel):
    """Standardized error response for all endpoints"""
    status: str = Field("error", description="Status indicator")
    timestamp: str = Field(..., description="ISO8601 timestamp of error")
    error: ErrorDetail = Field(..., description="Error details")
