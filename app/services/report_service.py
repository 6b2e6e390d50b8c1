"""
Report service for pollution reports
Handles the admin workflow (approval, status, responses, comments),
upvotes, listing with visibility rules and deletion
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from ..core.exceptions import (
    AuthenticationRequiredException,
    DuplicateUpvoteException,
    InvalidStatusTransitionException,
    PermissionDeniedException,
    ReportNotFoundException,
    ReportValidationException,
)
from ..core.logging_config import get_logger
from ..core.permissions import ensure_admin_for
from ..models.notification_models import NotificationKind
from ..models.report_models import (
    AdminComment,
    AdminResponse,
    Report,
    ReportFilterRequest,
    ReportListResponse,
    ReportStatus,
)
from ..models.user_models import AppUser
from .blob_store import BlobStore, blob_store
from .event_service import EventService, event_service
from .notification_service import NotificationService, notification_service
from .report_store import ReportStore, report_store

logger = get_logger("report_service")


class ReportService:
    """Service for managing submitted pollution reports"""

    def __init__(
        self,
        store: ReportStore,
        blobs: BlobStore,
        notifications: NotificationService,
        events: EventService
    ):
        self.store = store
        self.blobs = blobs
        self.notifications = notifications
        self.events = events

    async def get_report(self, report_id: str, actor: Optional[AppUser] = None) -> Report:
        """Get a report by ID; unapproved reports are visible to admins and the owner only"""
        document = await self.store.get(report_id)
        if not document:
            raise ReportNotFoundException(f"Report {report_id} not found")
        report = Report(**document)
        if not self._visible_to(report, actor):
            raise ReportNotFoundException(f"Report {report_id} not found")
        return report

    async def list_reports(self, filters: ReportFilterRequest, actor: Optional[AppUser] = None) -> ReportListResponse:
        """List reports with filtering and sorting"""
        reports = []
        for document in await self.store.list_all():
            try:
                reports.append(Report(**document))
            except ValueError as e:
                logger.warning(f"Skipping malformed report {document.get('id')}: {e}")

        reports = [r for r in reports if self._visible_to(r, actor)]
        filtered_reports = self._apply_filters(reports, filters)
        filtered_reports = self._apply_sorting(filtered_reports, filters.sort_by)

        return ReportListResponse(
            reports=filtered_reports[:filters.limit],
            total_count=len(filtered_reports),
            filters_applied=filters.model_dump(mode="json", exclude_none=True)
        )

    async def approve(self, report_id: str, actor: Optional[AppUser]) -> Report:
        """Publish a report; a Pending report moves to In Progress"""
        report = await self._load_for_admin(report_id, actor)
        changes: Dict[str, Any] = {"approved": True}
        if report.status == ReportStatus.PENDING:
            changes["status"] = ReportStatus.IN_PROGRESS.value
        report = await self._save(report, changes)

        await self.notifications.notify_reporter(
            report, NotificationKind.REPORT_APPROVED,
            "Report approved",
            f"Your {report.type} report has been approved and is now in progress."
        )
        logger.info(f"✅ Report {report_id} approved by {actor.uid}")
        return report

    async def unapprove(self, report_id: str, actor: Optional[AppUser]) -> Report:
        """Hide a report from the public list again"""
        report = await self._load_for_admin(report_id, actor)
        report = await self._save(report, {"approved": False})
        logger.info(f"Report {report_id} unapproved by {actor.uid}")
        return report

    async def update_status(self, report_id: str, status: ReportStatus, actor: Optional[AppUser]) -> Report:
        """Move the report status forward; Done is final"""
        report = await self._load_for_admin(report_id, actor)
        if report.status == ReportStatus.DONE and status != ReportStatus.DONE:
            raise InvalidStatusTransitionException(
                "Cannot change status of a completed report",
                {"current": report.status.value, "requested": status.value}
            )
        if status.rank < report.status.rank:
            raise InvalidStatusTransitionException(
                f"Cannot move report from {report.status.value} back to {status.value}",
                {"current": report.status.value, "requested": status.value}
            )
        if status == report.status:
            return report

        report = await self._save(report, {"status": status.value})
        await self.notifications.notify_reporter(
            report, NotificationKind.STATUS_CHANGED,
            "Report status updated",
            f"Your {report.type} report is now {status.value}."
        )
        logger.info(f"✅ Report {report_id} status -> {status.value}")
        return report

    async def send_response(self, report_id: str, text: str, actor: Optional[AppUser]) -> Report:
        """Set the single official response on a report"""
        report = await self._load_for_admin(report_id, actor)
        response = AdminResponse(text=text.strip(), date=datetime.now())
        report = await self._save(report, {"admin_response": response.model_dump(mode="json")})
        await self.notifications.notify_reporter(
            report, NotificationKind.ADMIN_RESPONSE,
            "Admin responded to your report",
            response.text
        )
        return report

    async def add_comment(self, report_id: str, text: str, actor: Optional[AppUser]) -> Report:
        """Append an admin comment"""
        if not text or not text.strip():
            raise ReportValidationException("Comment text cannot be empty", {"field": "text"})
        report = await self._load_for_admin(report_id, actor)
        comment = AdminComment(
            author_id=actor.uid,
            author_name=actor.display_name,
            text=text.strip(),
            created_at=datetime.now()
        )
        comments = [c.model_dump(mode="json") for c in report.comments] + [comment.model_dump(mode="json")]
        report = await self._save(report, {"comments": comments})
        await self.notifications.notify_reporter(
            report, NotificationKind.ADMIN_COMMENT,
            "New comment on your report",
            comment.text
        )
        return report

    async def upvote(self, report_id: str, actor: Optional[AppUser]) -> Report:
        """Add the actor's upvote; once per user, not allowed for admins"""
        if actor is None:
            raise AuthenticationRequiredException("Please log in to upvote")
        if actor.is_admin:
            raise PermissionDeniedException("Admins cannot upvote reports")
        report = await self.get_report(report_id, actor)
        if actor.uid in report.upvoted_by:
            raise DuplicateUpvoteException("You have already upvoted this report")

        report = await self._save(report, {"upvoted_by": report.upvoted_by + [actor.uid]})
        if report.reporter_id != actor.uid:
            await self.notifications.notify_reporter(
                report, NotificationKind.REPORT_UPVOTED,
                "Your report was upvoted",
                f"Your {report.type} report now has {report.upvotes} upvote(s)."
            )
        return report

    async def delete_report(self, report_id: str, actor: Optional[AppUser], with_images: bool = True) -> None:
        """Delete a report, removing its images from blob storage first"""
        report = await self._load_for_admin(report_id, actor)
        if with_images:
            for url in report.images:
                if not await self.blobs.delete(url):
                    logger.warning(f"⚠️ Image not deleted for report {report_id}: {url}")
        await self.store.delete(report_id)
        await self.events.broadcast_report_deleted(report_id)
        logger.info(f"🗑️ Deleted report {report_id}")

    async def reject(self, report_id: str, reason: str, actor: Optional[AppUser]) -> None:
        """Notify the reporter and remove the report document"""
        report = await self._load_for_admin(report_id, actor)
        await self.notifications.notify_reporter(
            report, NotificationKind.REPORT_REJECTED,
            "Report rejected",
            f"Your {report.type} report was rejected: {reason}"
        )
        await self.store.delete(report_id)
        await self.events.broadcast_report_deleted(report_id)
        logger.info(f"Report {report_id} rejected by {actor.uid}: {reason}")

    async def _load_for_admin(self, report_id: str, actor: Optional[AppUser]) -> Report:
        if actor is None:
            raise AuthenticationRequiredException("You must be logged in")
        document = await self.store.get(report_id)
        if not document:
            raise ReportNotFoundException(f"Report {report_id} not found")
        report = Report(**document)
        ensure_admin_for(actor, report.barangay_id)
        return report

    async def _save(self, report: Report, changes: Dict[str, Any]) -> Report:
        changes = {**changes, "updated_at": datetime.now().isoformat()}
        await self.store.update(report.id, changes)
        updated = Report(**{**report.model_dump(mode="json"), **changes})
        await self.events.broadcast_report_updated(updated.model_dump(mode="json"))
        return updated

    def _visible_to(self, report: Report, actor: Optional[AppUser]) -> bool:
        if report.approved:
            return True
        if actor is None:
            return False
        return actor.is_admin or report.reporter_id == actor.uid

    def _apply_filters(self, reports: List[Report], filters: ReportFilterRequest) -> List[Report]:
        """Apply filtering to reports list"""
        filtered_reports = reports

        if filters.barangay_id:
            filtered_reports = [r for r in filtered_reports if r.barangay_id == filters.barangay_id]

        if filters.status:
            filtered_reports = [r for r in filtered_reports if r.status in filters.status]

        if filters.approved is not None:
            filtered_reports = [r for r in filtered_reports if r.approved == filters.approved]

        if filters.reporter_id:
            filtered_reports = [r for r in filtered_reports if r.reporter_id == filters.reporter_id]

        return filtered_reports

    def _apply_sorting(self, reports: List[Report], sort_by: str) -> List[Report]:
        """Newest first, or most upvoted first with newest breaking ties"""
        reports = sorted(reports, key=lambda r: r.created_at, reverse=True)
        if sort_by == "upvotes":
            reports = sorted(reports, key=lambda r: r.upvotes, reverse=True)
        return reports


# Global report service instance
report_service = ReportService(report_store, blob_store, notification_service, event_service)
