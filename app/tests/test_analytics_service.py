"""
Tests for the analytics service
"""

from datetime import date

import pytest

from app.services.analytics_service import AnalyticsService
from app.tests.conftest import make_record


@pytest.fixture
def analytics(report_store):
    return AnalyticsService(report_store, days=7, today=lambda: date(2024, 5, 17))


def seed(store, *records):
    for record in records:
        store.records[record["id"]] = record


class TestAnalytics:

    @pytest.mark.asyncio
    async def test_counts_only_approved_reports(self, analytics, report_store):
        seed(
            report_store,
            make_record("r1", approved=True, status="In Progress", report_type="Air"),
            make_record("r2", approved=True, status="Done", report_type="air "),
            make_record("r3", approved=True, status="In Progress", report_type="Water"),
            make_record("r4", approved=False, status="Pending", report_type="Noise"),
        )

        result = await analytics.get_analytics()

        assert result.total_reports == 3
        assert result.in_progress_count == 2
        assert result.done_count == 1
        assert result.pending_approval_count == 1
        assert result.counts_by_type == {"air": 2, "water": 1}

    @pytest.mark.asyncio
    async def test_barangay_filter_applies_to_pending_count(self, analytics, report_store):
        seed(
            report_store,
            make_record("r1", approved=True, status="In Progress"),
            make_record("r2", approved=False, barangay_id="b2"),
            make_record("r3", approved=False),
        )

        result = await analytics.get_analytics("b1")

        assert result.barangay_id == "b1"
        assert result.total_reports == 1
        assert result.pending_approval_count == 1

    @pytest.mark.asyncio
    async def test_last_days_window(self, analytics, report_store):
        first = make_record("r1", approved=True, status="In Progress")
        second = make_record("r2", approved=True, status="In Progress")
        old = make_record("r3", approved=True, status="In Progress")
        second["date"] = "2024-05-11"
        old["date"] = "2024-05-01"
        seed(report_store, first, second, old)

        result = await analytics.get_analytics()

        assert [d.label for d in result.last_days] == [
            "05-11", "05-12", "05-13", "05-14", "05-15", "05-16", "05-17"
        ]
        assert result.last_days[0].count == 1
        assert result.last_days[-1].count == 1
        assert sum(d.count for d in result.last_days) == 2

    @pytest.mark.asyncio
    async def test_empty_store(self, analytics):
        result = await analytics.get_analytics()
        assert result.total_reports == 0
        assert result.counts_by_type == {}
        assert len(result.last_days) == 7
