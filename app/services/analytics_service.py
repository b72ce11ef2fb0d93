"""
Analytics Service

Aggregate counts over logged entries for a trailing window of days, and the
downloadable report built from them. Everything here is a pure function of
the entries and the reference time.
"""
from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from datetime import datetime, timedelta, tzinfo

from app.schemas import (
    AnalyticsReport,
    AnalyticsSummary,
    ChangeTypeBreakdown,
    DailyActivity,
    EmailStats,
    EPGEntry,
    ProviderBreakdown,
    StatusBreakdown,
    utc_now,
)
from app.utils.timezone import (
    ensure_utc,
    format_gb_date,
    format_gb_short_day,
    get_zone,
    local_day_bounds,
)


logger = logging.getLogger(__name__)

ACTIVITY_DAYS = 7


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def percentage(part: int, total: int) -> int:
    """Whole percentage, 0 for an empty total"""
    if total == 0:
        return 0
    return round_half_up(part / total * 100)


def entries_in_window(
    entries: Iterable[EPGEntry],
    window_days: int,
    now: datetime,
) -> list[EPGEntry]:
    """Entries created within [now - window_days, now]"""
    cutoff = now - timedelta(days=window_days)
    return [entry for entry in entries if cutoff <= ensure_utc(entry.created_at) <= now]


def daily_activity(
    entries: list[EPGEntry],
    now: datetime,
    zone: tzinfo,
    days: int = ACTIVITY_DAYS,
) -> list[DailyActivity]:
    """
    Per-day entry counts for the trailing `days` local calendar days

    Args:
        entries: Entries to bucket
        now: Reference time
        zone: Timezone defining day boundaries
        days: Number of buckets, ending today

    Returns:
        Buckets ordered oldest first
    """
    today = now.astimezone(zone).date()
    buckets = []
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        day_start, day_end = local_day_bounds(day, zone)
        count = sum(
            1 for entry in entries if day_start <= ensure_utc(entry.created_at) < day_end
        )
        buckets.append(DailyActivity(date=format_gb_short_day(day), count=count))
    return buckets


def compute_analytics(
    entries: Iterable[EPGEntry],
    window_days: int,
    *,
    now: datetime | None = None,
    tz_name: str = "UTC",
) -> AnalyticsSummary:
    """
    Aggregate entries created in the trailing window

    Args:
        entries: All entries
        window_days: Window length in days, at least 1
        now: Reference time (defaults to current UTC time)
        tz_name: Timezone for daily activity boundaries

    Returns:
        AnalyticsSummary

    Raises:
        ValueError: If window_days is smaller than 1
    """
    if window_days < 1:
        raise ValueError(f"window_days must be >= 1, got {window_days}")

    now = ensure_utc(now or utc_now())
    filtered = entries_in_window(entries, window_days, now)
    total = len(filtered)

    def count(predicate) -> int:
        return sum(1 for entry in filtered if predicate(entry))

    status = StatusBreakdown(
        pending=count(lambda e: e.status == "Pending"),
        in_progress=count(lambda e: e.status == "In Progress"),
        completed=count(lambda e: e.status == "Completed"),
    )
    providers = ProviderBreakdown(
        sky=count(lambda e: e.provider == "Sky"),
        virgin_media=count(lambda e: e.provider == "Virgin Media"),
        freeview=count(lambda e: e.provider == "Freeview"),
        other=count(lambda e: e.provider == "Other"),
    )
    change_types = ChangeTypeBreakdown(
        new_channel=count(lambda e: e.change_type == "New Channel"),
        channel_removal=count(lambda e: e.change_type == "Channel Removal"),
        epg_update=count(lambda e: e.change_type == "EPG Update"),
        technical_change=count(lambda e: e.change_type == "Technical Change"),
    )
    sent = count(lambda e: e.email_sent)
    email_stats = EmailStats(sent=sent, pending=total - sent)

    return AnalyticsSummary(
        window_days=window_days,
        total_entries=total,
        status_breakdown=status,
        provider_breakdown=providers,
        change_type_breakdown=change_types,
        email_stats=email_stats,
        completion_rate=percentage(status.completed, total),
        email_rate=percentage(sent, total),
        average_per_day=round_half_up(total / window_days),
        daily_activity=daily_activity(filtered, now, get_zone(tz_name)),
    )


def build_report(
    summary: AnalyticsSummary,
    *,
    now: datetime | None = None,
    tz_name: str = "UTC",
) -> AnalyticsReport:
    generated = ensure_utc(now or utc_now()).astimezone(get_zone(tz_name))
    return AnalyticsReport(
        generated_at=format_gb_date(generated),
        date_range=f"{summary.window_days} days",
        total_entries=summary.total_entries,
        status_breakdown=summary.status_breakdown,
        provider_breakdown=summary.provider_breakdown,
        change_type_breakdown=summary.change_type_breakdown,
        email_stats=summary.email_stats,
        completion_rate=f"{summary.completion_rate}%",
        email_rate=f"{summary.email_rate}%",
        daily_activity=summary.daily_activity,
    )


def report_filename(now: datetime | None = None) -> str:
    return f"epg-analytics-report-{(now or utc_now()).date().isoformat()}.json"
