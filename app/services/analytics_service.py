"""
Analytics over approved reports
"""

from collections import Counter
from datetime import date, datetime, timedelta
from typing import Callable, List, Optional

from ..core.config import settings
from ..core.logging_config import get_logger
from ..models.report_models import AnalyticsResponse, DailyCount, Report, ReportStatus
from .report_store import ReportStore, report_store

logger = get_logger("analytics_service")


class AnalyticsService:
    """Dashboard counts for all barangays or a single one"""

    def __init__(self, store: ReportStore, days: Optional[int] = None,
                 today: Callable[[], date] = date.today):
        self.store = store
        self.days = days or settings.analytics_days
        self._today = today

    async def get_analytics(self, barangay_id: Optional[str] = None) -> AnalyticsResponse:
        reports = []
        for document in await self.store.list_all():
            try:
                reports.append(Report(**document))
            except ValueError as e:
                logger.warning(f"Skipping malformed report {document.get('id')}: {e}")

        if barangay_id:
            reports = [r for r in reports if r.barangay_id == barangay_id]

        approved = [r for r in reports if r.approved]
        pending_approval = [r for r in reports if not r.approved]

        counts_by_type = Counter(r.type.strip().lower() for r in approved if r.type)

        return AnalyticsResponse(
            barangay_id=barangay_id,
            total_reports=len(approved),
            in_progress_count=len([r for r in approved if r.status == ReportStatus.IN_PROGRESS]),
            done_count=len([r for r in approved if r.status == ReportStatus.DONE]),
            pending_approval_count=len(pending_approval),
            counts_by_type=dict(counts_by_type),
            last_days=self._daily_counts(approved)
        )

    def _daily_counts(self, reports: List[Report]) -> List[DailyCount]:
        """Per-day counts, oldest day first, ending today"""
        per_day = Counter(_report_day(r) for r in reports)
        today = self._today()
        days = [today - timedelta(days=offset) for offset in range(self.days - 1, -1, -1)]
        return [DailyCount(label=day.strftime("%m-%d"), count=per_day.get(day, 0)) for day in days]


def _report_day(report: Report) -> date:
    """Day the photo was taken, falling back to the submission day"""
    try:
        return datetime.strptime(report.date, "%Y-%m-%d").date()
    except ValueError:
        return report.created_at.date()


# Global analytics service instance
analytics_service = AnalyticsService(report_store)
