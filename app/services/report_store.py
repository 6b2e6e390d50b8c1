"""
Report store: persistence contract for report documents
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..core.exceptions import ReportNotFoundException, StoreRejectionException
from ..core.logging_config import get_logger
from .redis_service import RedisCollection, redis_service

logger = get_logger("report_store")

REQUIRED_FIELDS = ("reporter_id", "type", "description", "lat", "lng", "images", "status", "date", "time")


def check_required_fields(record: Dict[str, Any]) -> None:
    """Reject records that miss a required field"""
    missing = [name for name in REQUIRED_FIELDS if record.get(name) in (None, "", [])]
    if missing:
        raise StoreRejectionException(
            f"Report is missing required fields: {', '.join(missing)}",
            {"missing": missing}
        )


class ReportStore(ABC):
    """Document store for reports"""

    @abstractmethod
    async def create(self, record: Dict[str, Any]) -> str:
        """Persist a new report and return its id"""

    @abstractmethod
    async def update(self, report_id: str, changes: Dict[str, Any]) -> None:
        """Merge changes into an existing report"""

    @abstractmethod
    async def get(self, report_id: str) -> Optional[Dict[str, Any]]:
        """Fetch a report document"""

    @abstractmethod
    async def list_all(self) -> List[Dict[str, Any]]:
        """All reports, newest first"""

    @abstractmethod
    async def delete(self, report_id: str) -> bool:
        """Delete a report document"""


class RedisReportStore(ReportStore):
    """Reports stored as JSON in Redis under report:{id}"""

    def __init__(self, collection: Optional[RedisCollection] = None):
        self.collection = collection or RedisCollection("report", redis_service.get_redis)

    async def create(self, record: Dict[str, Any]) -> str:
        check_required_fields(record)
        report_id = self.collection.add(record)
        logger.info(f"✅ Stored report {report_id}")
        return report_id

    async def update(self, report_id: str, changes: Dict[str, Any]) -> None:
        if self.collection.update(report_id, changes) is None:
            raise ReportNotFoundException(f"Report {report_id} not found")

    async def get(self, report_id: str) -> Optional[Dict[str, Any]]:
        return self.collection.get(report_id)

    async def list_all(self) -> List[Dict[str, Any]]:
        return self.collection.all()

    async def delete(self, report_id: str) -> bool:
        return self.collection.delete(report_id)


# Global report store instance
report_store = RedisReportStore()
