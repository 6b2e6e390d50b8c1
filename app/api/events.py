"""
Server-Sent Events endpoints for dashboards
"""

from typing import Optional
from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from ..core.logging_config import get_logger
from ..models.user_models import AppUser
from .dependencies import get_current_user, get_event_service

logger = get_logger("events_api")

router = APIRouter(tags=["events"])


@router.get("/events")
async def events_stream(
    actor: Optional[AppUser] = Depends(get_current_user),
    events=Depends(get_event_service),
):
    """
    Persistent SSE connection

    Streams report_created, report_updated, report_deleted and
    upload_progress events. Unapproved reports reach only the admins who
    may review them and their reporter; upload progress reaches only the
    submitter.
    """
    client_id = events.connect(actor)
    return StreamingResponse(
        events.stream(client_id),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
        }
    )


@router.get("/events/stats")
async def events_stats(events=Depends(get_event_service)):
    """Information about active connections"""
    return {"sse_stats": events.get_stats()}
