"""
Report data models for the Pollution Report API
"""

from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field


class ReportStatus(str, Enum):
    """Workflow status; moves forward only"""
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    DONE = "Done"

    @property
    def rank(self) -> int:
        return STATUS_ORDER.index(self)


STATUS_ORDER = [ReportStatus.PENDING, ReportStatus.IN_PROGRESS, ReportStatus.DONE]


class AdminResponse(BaseModel):
    """Single official response shown on the report"""
    text: str
    date: datetime = Field(default_factory=datetime.now)


class AdminComment(BaseModel):
    """Comment appended by an admin"""
    author_id: str
    author_name: str
    text: str
    created_at: datetime = Field(default_factory=datetime.now)


class Report(BaseModel):
    """Persisted pollution report"""
    id: str
    reporter_id: str
    reporter_name: str = "Anonymous"
    type: str
    location: str = ""
    description: str
    lat: Optional[float] = None
    lng: Optional[float] = None
    date: str
    time: str
    images: List[str] = Field(default_factory=list, description="Image URLs in submission order")
    barangay_id: Optional[str] = None
    approved: bool = False
    status: ReportStatus = ReportStatus.PENDING
    upvoted_by: List[str] = Field(default_factory=list)
    admin_response: Optional[AdminResponse] = None
    comments: List[AdminComment] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    @property
    def upvotes(self) -> int:
        return len(self.upvoted_by)


class ReportStatusUpdateRequest(BaseModel):
    status: ReportStatus


class ReportResponseRequest(BaseModel):
    text: str = Field(..., min_length=1)


class ReportCommentRequest(BaseModel):
    text: str = Field(..., min_length=1)


class ReportRejectRequest(BaseModel):
    reason: str = Field("Not related to pollution", min_length=1)


class ReportFilterRequest(BaseModel):
    """Filters for listing reports"""
    barangay_id: Optional[str] = None
    status: Optional[List[ReportStatus]] = None
    approved: Optional[bool] = None
    reporter_id: Optional[str] = None
    sort_by: str = Field("created_at", pattern="^(created_at|upvotes)$")
    limit: int = Field(50, ge=1, le=500)


class ReportListResponse(BaseModel):
    reports: List[Report]
    total_count: int
    filters_applied: Dict[str, Any]


class DailyCount(BaseModel):
    label: str = Field(..., description="MM-DD")
    count: int


class AnalyticsResponse(BaseModel):
    """Analytics over approved reports"""
    barangay_id: Optional[str] = None
    total_reports: int
    in_progress_count: int
    done_count: int
    pending_approval_count: int
    counts_by_type: Dict[str, int]
    last_days: List[DailyCount]


class SubmissionResponse(BaseModel):
    """Response for a successful report submission"""
    id: str
    report: Report
    message: str = "Report submitted successfully! It will be reviewed by an admin before it is published."
