"""
Server-Sent Events for dashboards
Broadcasts report lifecycle changes and upload progress to connected clients

A report that is not approved yet is only streamed to main admins, admins of
its barangay and its reporter. Upload progress only goes to the submitter.
"""

import asyncio
import json
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Callable, Dict, Optional

from ..core.logging_config import get_logger
from ..models.upload_models import UploadBatch
from ..models.user_models import AppUser

logger = get_logger("event_service")

KEEPALIVE_SECONDS = 25.0


@dataclass
class EventClient:
    """Represents a connected SSE client"""
    id: str
    user: Optional[AppUser] = None
    queue: asyncio.Queue = field(default_factory=asyncio.Queue)
    connected_at: float = field(default_factory=time.time)

    @property
    def user_id(self) -> Optional[str]:
        return self.user.uid if self.user else None

    def can_see(self, report: Dict[str, Any]) -> bool:
        """Same visibility as GET /reports/{id}"""
        if report.get("approved"):
            return True
        if self.user is None:
            return False
        if self.user.uid == report.get("reporter_id"):
            return True
        if not self.user.is_admin:
            return False
        return self.user.is_global_admin or self.user.barangay == report.get("barangay_id")


Audience = Callable[[EventClient], bool]


class EventService:
    """Fan events out to connected client queues"""

    def __init__(self):
        self.clients: Dict[str, EventClient] = {}

    def connect(self, user: Optional[AppUser] = None) -> str:
        client_id = str(uuid.uuid4())
        self.clients[client_id] = EventClient(id=client_id, user=user)
        logger.info(f"📡 SSE client connected: {client_id} (total: {len(self.clients)})")
        self.publish_nowait("connection", {"clientId": client_id}, client_id=client_id)
        return client_id

    def disconnect(self, client_id: str) -> None:
        if self.clients.pop(client_id, None) is not None:
            logger.info(f"📡 SSE client disconnected: {client_id} (remaining: {len(self.clients)})")

    def publish_nowait(
        self,
        event_type: str,
        data: Dict[str, Any],
        client_id: Optional[str] = None,
        audience: Optional[Audience] = None
    ) -> int:
        """
        Queue an event without awaiting; safe to call from sync callbacks

        Args:
            event_type: SSE event type
            data: Event payload
            client_id: Only queue for this client
            audience: Only queue for clients it accepts

        Returns:
            Number of clients the event was queued for
        """
        event = {"type": event_type, "data": data, "timestamp": time.time()}
        if client_id is not None:
            targets = [self.clients[client_id]] if client_id in self.clients else []
        else:
            targets = list(self.clients.values())
        if audience is not None:
            targets = [client for client in targets if audience(client)]
        for client in targets:
            client.queue.put_nowait(event)
        return len(targets)

    async def broadcast_event(self, event_type: str, data: Dict[str, Any],
                              audience: Optional[Audience] = None) -> int:
        """Broadcast an event to the connected clients the audience accepts"""
        if not self.clients:
            logger.debug(f"No SSE clients to broadcast {event_type} event to")
            return 0
        sent = self.publish_nowait(event_type, data, audience=audience)
        logger.info(f"📡 Broadcasting SSE event '{event_type}' to {sent} clients")
        return sent

    async def broadcast_report_created(self, report: Dict[str, Any]) -> int:
        return await self.broadcast_event("report_created", {
            "report": report,
            "message": f"New {report.get('type', 'pollution')} report submitted"
        }, audience=lambda client: client.can_see(report))

    async def broadcast_report_updated(self, report: Dict[str, Any]) -> int:
        return await self.broadcast_event("report_updated", {
            "report": report,
            "message": f"Report {report.get('id', 'unknown')} updated"
        }, audience=lambda client: client.can_see(report))

    async def broadcast_report_deleted(self, report_id: str) -> int:
        return await self.broadcast_event("report_deleted", {
            "reportId": report_id,
            "message": f"Report {report_id} deleted"
        })

    def publish_upload_progress(self, submission_id: str, owner_id: str, batch: UploadBatch) -> int:
        return self.publish_nowait("upload_progress", {
            "submissionId": submission_id,
            "overallPercent": batch.overall_percent,
            "perImage": batch.percentages,
            "completed": batch.completed_count,
            "total": len(batch),
        }, audience=lambda client: client.user_id == owner_id)

    async def stream(self, client_id: str) -> AsyncIterator[str]:
        """Yield SSE-formatted frames for a client until it disconnects"""
        client = self.clients.get(client_id)
        if client is None:
            return
        try:
            while client_id in self.clients:
                try:
                    event = await asyncio.wait_for(client.queue.get(), timeout=KEEPALIVE_SECONDS)
                    yield f"data: {json.dumps(event, default=str)}\n\n"
                except asyncio.TimeoutError:
                    yield f"data: {json.dumps({'type': 'ping', 'timestamp': time.time()})}\n\n"
        finally:
            self.disconnect(client_id)

    def get_stats(self) -> Dict[str, Any]:
        return {"active_clients": len(self.clients)}


# Global event service instance
event_service = EventService()
