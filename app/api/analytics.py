"""
Analytics API endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends

from ..models.report_models import AnalyticsResponse
from .dependencies import get_analytics_service

router = APIRouter(tags=["analytics"])


@router.get("/analytics", response_model=AnalyticsResponse)
async def get_analytics(
    barangay_id: Optional[str] = None,
    analytics=Depends(get_analytics_service),
) -> AnalyticsResponse:
    """Counts over approved reports, optionally for one barangay"""
    return await analytics.get_analytics(barangay_id)
