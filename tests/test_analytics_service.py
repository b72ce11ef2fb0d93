"""Tests for analytics aggregation and the report export."""

from datetime import datetime, timedelta, timezone

import pytest

from app.services.analytics_service import (
    build_report,
    compute_analytics,
    percentage,
    report_filename,
    round_half_up,
)
from tests.conftest import make_entry


NOW = datetime(2026, 10, 19, 14, 0, tzinfo=timezone.utc)


def _days_ago(days: float) -> datetime:
    return NOW - timedelta(days=days)


@pytest.fixture
def entries():
    return [
        make_entry("a", status="Completed", provider="Sky", created_at=_days_ago(0.1), email_sent=True),
        make_entry("b", status="Pending", provider="Virgin Media", change_type="Channel Removal",
                   created_at=_days_ago(1)),
        make_entry("c", status="In Progress", provider="Freeview", change_type="EPG Update",
                   created_at=_days_ago(3)),
        make_entry("d", status="Completed", provider="Other", change_type="Technical Change",
                   created_at=_days_ago(6), email_sent=True),
        make_entry("old", status="Completed", created_at=_days_ago(40)),
    ]


class TestRounding:
    def test_half_up(self):
        assert round_half_up(0.5) == 1
        assert round_half_up(2.5) == 3
        assert round_half_up(2.49) == 2

    def test_percentage_of_empty_total(self):
        assert percentage(0, 0) == 0

    def test_percentage(self):
        assert percentage(1, 3) == 33
        assert percentage(2, 3) == 67


class TestComputeAnalytics:
    def test_window_filters_by_created_at(self, entries):
        summary = compute_analytics(entries, 30, now=NOW)

        assert summary.total_entries == 4
        assert summary.window_days == 30

    def test_breakdowns(self, entries):
        summary = compute_analytics(entries, 30, now=NOW)

        assert summary.status_breakdown.model_dump() == {
            "pending": 1, "in_progress": 1, "completed": 2,
        }
        assert summary.provider_breakdown.model_dump() == {
            "sky": 1, "virgin_media": 1, "freeview": 1, "other": 1,
        }
        assert summary.change_type_breakdown.model_dump() == {
            "new_channel": 1, "channel_removal": 1, "epg_update": 1, "technical_change": 1,
        }
        assert summary.email_stats.sent == 2
        assert summary.email_stats.pending == 2

    def test_rates(self, entries):
        summary = compute_analytics(entries, 30, now=NOW)

        assert summary.completion_rate == 50
        assert summary.email_rate == 50
        assert summary.average_per_day == 0

    def test_average_per_day(self, entries):
        assert compute_analytics(entries, 7, now=NOW).average_per_day == 1

    def test_empty_collection(self):
        summary = compute_analytics([], 30, now=NOW)

        assert summary.total_entries == 0
        assert summary.completion_rate == 0
        assert summary.email_rate == 0
        assert summary.average_per_day == 0

    def test_entries_after_now_excluded(self):
        summary = compute_analytics([make_entry("future", created_at=NOW + timedelta(hours=1))], 30, now=NOW)

        assert summary.total_entries == 0

    @pytest.mark.parametrize("window", [0, -1])
    def test_non_positive_window_rejected(self, window):
        with pytest.raises(ValueError):
            compute_analytics([], window, now=NOW)


class TestDailyActivity:
    def test_seven_buckets_oldest_first(self, entries):
        activity = compute_analytics(entries, 30, now=NOW).daily_activity

        assert [day.date for day in activity] == [
            "Tue 13", "Wed 14", "Thu 15", "Fri 16", "Sat 17", "Sun 18", "Mon 19",
        ]
        assert [day.count for day in activity] == [1, 0, 0, 1, 0, 1, 1]

    def test_local_day_boundaries(self):
        # 23:30 UTC on the 18th is 00:30 on the 19th in London (BST)
        late = make_entry("late", created_at=datetime(2026, 10, 18, 23, 30, tzinfo=timezone.utc))

        utc_days = compute_analytics([late], 7, now=NOW, tz_name="UTC").daily_activity
        london_days = compute_analytics([late], 7, now=NOW, tz_name="Europe/London").daily_activity

        assert utc_days[-2].count == 1 and utc_days[-1].count == 0
        assert london_days[-2].count == 0 and london_days[-1].count == 1


class TestReport:
    def test_report_shape(self, entries):
        summary = compute_analytics(entries, 30, now=NOW)
        report = build_report(summary, now=NOW)

        payload = report.model_dump(by_alias=True)
        assert list(payload) == [
            "generatedAt",
            "dateRange",
            "totalEntries",
            "statusBreakdown",
            "providerBreakdown",
            "changeTypeBreakdown",
            "emailStats",
            "completionRate",
            "emailRate",
            "dailyActivity",
        ]
        assert payload["generatedAt"] == "19/10/2026"
        assert payload["dateRange"] == "30 days"
        assert payload["completionRate"] == "50%"
        assert payload["statusBreakdown"] == {"pending": 1, "inProgress": 1, "completed": 2}
        assert payload["providerBreakdown"]["virginMedia"] == 1
        assert payload["changeTypeBreakdown"]["technicalChange"] == 1
        assert len(payload["dailyActivity"]) == 7

    def test_report_filename(self):
        assert report_filename(NOW) == "epg-analytics-report-2026-10-19.json"
