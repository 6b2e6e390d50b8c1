"""
Barangay reference data: streets, pollution types and admin assignment
"""

from datetime import datetime
from typing import Any, List, Optional, Tuple

from ..core.exceptions import BarangayNotFoundException, ReportValidationException
from ..core.logging_config import get_logger
from ..core.permissions import ensure_admin_for
from ..models.barangay_models import Barangay, BarangayCreateRequest, parse_street
from ..models.user_models import AppUser
from .redis_service import RedisCollection, redis_service
from .user_service import UserService, user_service

logger = get_logger("barangay_service")


class BarangayService:
    """CRUD for barangays stored under barangay:{id}"""

    def __init__(self, users: UserService, collection: Optional[RedisCollection] = None):
        self.users = users
        self.collection = collection or RedisCollection("barangay", redis_service.get_redis)

    async def list_barangays(self) -> List[Barangay]:
        barangays = [Barangay(**doc) for doc in self.collection.all()]
        return sorted(barangays, key=lambda b: b.name.lower())

    async def get_barangay(self, barangay_id: str) -> Barangay:
        document = self.collection.get(barangay_id)
        if not document:
            raise BarangayNotFoundException(f"Barangay {barangay_id} not found")
        return Barangay(**document)

    async def create_barangay(self, request: BarangayCreateRequest, actor: Optional[AppUser]) -> Barangay:
        ensure_admin_for(actor, require_global=True)
        try:
            streets = [parse_street(raw) for raw in request.streets]
        except ValueError as e:
            raise ReportValidationException(f"Invalid street: {e}", {"field": "streets"}) from e

        barangay = Barangay(
            name=request.name.strip(),
            admin_ids=[request.admin_id] if request.admin_id else [],
            streets=streets,
            pollution_types=_dedupe(request.pollution_types),
            lat=request.lat,
            lng=request.lng,
            boundary=request.boundary,
            created_at=datetime.now()
        )
        barangay.id = self.collection.add(barangay.model_dump(mode="json", exclude={"id"}))
        if request.admin_id:
            await self.users.set_admin(request.admin_id, barangay.id)
        logger.info(f"✅ Created barangay {barangay.name} ({barangay.id})")
        return barangay

    async def delete_barangay(self, barangay_id: str, actor: Optional[AppUser]) -> None:
        ensure_admin_for(actor, require_global=True)
        await self.get_barangay(barangay_id)
        self.collection.delete(barangay_id)
        logger.info(f"🗑️ Deleted barangay {barangay_id}")

    async def add_street(self, barangay_id: str, raw_street: Any, actor: Optional[AppUser]) -> Barangay:
        ensure_admin_for(actor, barangay_id)
        barangay = await self.get_barangay(barangay_id)
        try:
            street = parse_street(raw_street)
        except ValueError as e:
            raise ReportValidationException(f"Invalid street: {e}", {"field": "street"}) from e
        streets = [s for s in barangay.streets if s.name != street.name] + [street]
        return self._save(barangay, streets=streets)

    async def remove_street(self, barangay_id: str, name: str, actor: Optional[AppUser]) -> Barangay:
        ensure_admin_for(actor, barangay_id)
        barangay = await self.get_barangay(barangay_id)
        return self._save(barangay, streets=[s for s in barangay.streets if s.name != name])

    async def add_pollution_type(self, barangay_id: str, pollution_type: str, actor: Optional[AppUser]) -> Barangay:
        ensure_admin_for(actor, barangay_id)
        barangay = await self.get_barangay(barangay_id)
        return self._save(barangay, pollution_types=_dedupe(barangay.pollution_types + [pollution_type]))

    async def remove_pollution_type(self, barangay_id: str, pollution_type: str, actor: Optional[AppUser]) -> Barangay:
        ensure_admin_for(actor, barangay_id)
        barangay = await self.get_barangay(barangay_id)
        wanted = pollution_type.strip().lower()
        return self._save(
            barangay,
            pollution_types=[t for t in barangay.pollution_types if t.lower() != wanted]
        )

    async def assign_admin(self, barangay_id: str, uid: str, actor: Optional[AppUser]) -> Barangay:
        ensure_admin_for(actor, require_global=True)
        barangay = await self.get_barangay(barangay_id)
        await self.users.set_admin(uid, barangay_id)
        if uid in barangay.admin_ids:
            return barangay
        return self._save(barangay, admin_ids=barangay.admin_ids + [uid])

    async def remove_admin(self, barangay_id: str, uid: str, actor: Optional[AppUser]) -> Barangay:
        ensure_admin_for(actor, require_global=True)
        barangay = await self.get_barangay(barangay_id)
        if uid in barangay.admin_ids:
            await self.users.revoke_admin(uid)
        return self._save(barangay, admin_ids=[a for a in barangay.admin_ids if a != uid])

    async def resolve_street(self, barangay_id: Optional[str], name: str) -> Tuple[str, Optional[Tuple[float, float]]]:
        """
        Resolve a street picked on the submit form

        Returns:
            (location text, coordinates or None)
        """
        if not barangay_id:
            return name, None
        barangay = await self.get_barangay(barangay_id)
        street = barangay.find_street(name)
        if street is None:
            return f"{name}, {barangay.name}", None
        return f"{street.name}, {barangay.name}", street.coordinates

    def _save(self, barangay: Barangay, **changes) -> Barangay:
        updated = barangay.model_copy(update=changes)
        self.collection.put(barangay.id, updated.model_dump(mode="json"))
        return updated


def _dedupe(types: List[str]) -> List[str]:
    """Trim and drop case-insensitive duplicates, keeping first spelling"""
    seen = set()
    result = []
    for value in types:
        value = value.strip()
        if value and value.lower() not in seen:
            seen.add(value.lower())
            result.append(value)
    return result


# Global barangay service instance
barangay_service = BarangayService(user_service)
