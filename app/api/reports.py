"""
Report API endpoints for pollution reports
"""

import time
import uuid
from typing import List, Optional
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from ..core.config import settings
from ..core.logging_config import get_logger
from ..models.report_models import (
    Report,
    ReportCommentRequest,
    ReportFilterRequest,
    ReportListResponse,
    ReportRejectRequest,
    ReportResponseRequest,
    ReportStatus,
    ReportStatusUpdateRequest,
    SubmissionResponse,
)
from ..models.upload_models import RawImage
from ..models.user_models import AppUser
from ..services.submission_service import SubmissionForm
from .dependencies import (
    get_barangay_service,
    get_current_user,
    get_event_service,
    get_preview_service,
    get_report_service,
    get_submission_service,
)

logger = get_logger("reports_api")

router = APIRouter(tags=["reports"])


@router.post("/reports", response_model=SubmissionResponse, status_code=201)
async def submit_report(
    files: List[UploadFile] = File(default=[]),
    report_type: str = Form("", alias="type"),
    description: str = Form(""),
    location: str = Form(""),
    lat: Optional[float] = Form(None),
    lng: Optional[float] = Form(None),
    street: Optional[str] = Form(None),
    date_taken: str = Form(""),
    time_taken: str = Form(""),
    submission_id: Optional[str] = Form(None),
    actor: Optional[AppUser] = Depends(get_current_user),
    submissions=Depends(get_submission_service),
    previews=Depends(get_preview_service),
    barangays=Depends(get_barangay_service),
    events=Depends(get_event_service),
) -> SubmissionResponse:
    """
    Submit a new pollution report

    Images are normalized, uploaded to blob storage and the report is
    stored unapproved. Upload progress is published on /events as
    upload_progress events tagged with submission_id.
    """
    start_time = time.time()
    submission_id = submission_id or str(uuid.uuid4())

    images = []
    for upload in files:
        data = await upload.read()
        images.append(RawImage(
            data=data,
            content_type=upload.content_type or "application/octet-stream",
            filename=upload.filename or "image"
        ))

    if street and actor is not None:
        location_text, coordinates = await barangays.resolve_street(actor.barangay, street)
        location = location or location_text
        if coordinates and (lat is None or lng is None):
            lat, lng = coordinates

    form = SubmissionForm(
        report_type=report_type,
        location=location,
        description=description,
        lat=lat,
        lng=lng,
        date_taken=date_taken,
        time_taken=time_taken,
        images=images,
    )
    if len(images) <= settings.max_files:
        form.previews = [p for p in (previews.create(image) for image in images) if p]

    try:
        result = await submissions.submit(
            form, actor,
            on_progress=lambda batch: events.publish_upload_progress(submission_id, actor.uid, batch)
        )
    finally:
        # The form does not outlive the request
        form.release_previews()
    if not result.succeeded:
        raise result.error

    report_dict = result.report.model_dump(mode="json")
    try:
        await events.broadcast_report_created(report_dict)
    except Exception as e:
        # Don't fail the request if SSE fails
        logger.warning(f"Failed to broadcast report creation event: {e}")

    processing_time = round((time.time() - start_time) * 1000, 2)
    logger.info(f"Created report {result.report.id} in {processing_time}ms")

    return SubmissionResponse(id=result.report.id, report=result.report, message=result.message)


@router.get("/reports", response_model=ReportListResponse)
async def list_reports(
    barangay_id: Optional[str] = None,
    status: Optional[str] = None,
    approved: Optional[bool] = None,
    reporter_id: Optional[str] = None,
    sort_by: str = "created_at",
    limit: int = 50,
    actor: Optional[AppUser] = Depends(get_current_user),
    reports=Depends(get_report_service),
) -> ReportListResponse:
    """
    List reports

    Regular users and anonymous callers see approved reports plus their own;
    admins see everything. status is a comma-separated list.
    """
    status_list = None
    if status:
        try:
            status_list = [ReportStatus(s.strip()) for s in status.split(',')]
        except ValueError as e:
            raise HTTPException(status_code=400, detail=f"Invalid status value: {e}")

    try:
        filters = ReportFilterRequest(
            barangay_id=barangay_id,
            status=status_list,
            approved=approved,
            reporter_id=reporter_id,
            sort_by=sort_by,
            limit=min(limit, settings.report_page_limit)
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid filter: {e}")

    return await reports.list_reports(filters, actor)


@router.get("/reports/{report_id}", response_model=Report)
async def get_report(
    report_id: str,
    actor: Optional[AppUser] = Depends(get_current_user),
    reports=Depends(get_report_service),
) -> Report:
    return await reports.get_report(report_id, actor)


@router.post("/reports/{report_id}/approve", response_model=Report)
async def approve_report(
    report_id: str,
    actor: Optional[AppUser] = Depends(get_current_user),
    reports=Depends(get_report_service),
) -> Report:
    """Approve a report; Pending reports move to In Progress"""
    return await reports.approve(report_id, actor)


@router.post("/reports/{report_id}/unapprove", response_model=Report)
async def unapprove_report(
    report_id: str,
    actor: Optional[AppUser] = Depends(get_current_user),
    reports=Depends(get_report_service),
) -> Report:
    return await reports.unapprove(report_id, actor)


@router.patch("/reports/{report_id}/status", response_model=Report)
async def update_report_status(
    report_id: str,
    request: ReportStatusUpdateRequest,
    actor: Optional[AppUser] = Depends(get_current_user),
    reports=Depends(get_report_service),
) -> Report:
    """Move a report forward in the workflow"""
    return await reports.update_status(report_id, request.status, actor)


@router.put("/reports/{report_id}/response", response_model=Report)
async def send_report_response(
    report_id: str,
    request: ReportResponseRequest,
    actor: Optional[AppUser] = Depends(get_current_user),
    reports=Depends(get_report_service),
) -> Report:
    return await reports.send_response(report_id, request.text, actor)


@router.post("/reports/{report_id}/comments", response_model=Report)
async def add_report_comment(
    report_id: str,
    request: ReportCommentRequest,
    actor: Optional[AppUser] = Depends(get_current_user),
    reports=Depends(get_report_service),
) -> Report:
    return await reports.add_comment(report_id, request.text, actor)


@router.post("/reports/{report_id}/upvote", response_model=Report)
async def upvote_report(
    report_id: str,
    actor: Optional[AppUser] = Depends(get_current_user),
    reports=Depends(get_report_service),
) -> Report:
    return await reports.upvote(report_id, actor)


@router.post("/reports/{report_id}/reject")
async def reject_report(
    report_id: str,
    request: ReportRejectRequest,
    actor: Optional[AppUser] = Depends(get_current_user),
    reports=Depends(get_report_service),
):
    """Notify the reporter and remove the report"""
    await reports.reject(report_id, request.reason, actor)
    return {"success": True, "message": f"Report {report_id} rejected"}


@router.delete("/reports/{report_id}")
async def delete_report(
    report_id: str,
    with_images: bool = True,
    actor: Optional[AppUser] = Depends(get_current_user),
    reports=Depends(get_report_service),
):
    """Delete a report and, by default, its images"""
    await reports.delete_report(report_id, actor, with_images=with_images)
    return {"success": True, "message": f"Report {report_id} deleted"}
