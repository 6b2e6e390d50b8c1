"""
User profiles and privileged user deletion
"""

from datetime import datetime
from typing import List, Optional

from ..core.exceptions import (
    AuthenticationRequiredException,
    PermissionDeniedException,
    ReportValidationException,
    UserNotFoundException,
)
from ..core.logging_config import get_logger
from ..models.user_models import AppUser, UserRegisterRequest, UserRole
from .redis_service import RedisCollection, redis_service

logger = get_logger("user_service")


class UserService:
    """Profiles stored under user:{uid}"""

    def __init__(self, collection: Optional[RedisCollection] = None):
        self.collection = collection or RedisCollection("user", redis_service.get_redis)

    async def register(self, uid: str, request: UserRegisterRequest) -> AppUser:
        """Create the caller's profile, or refresh email and barangay of an existing one"""
        if not uid:
            raise AuthenticationRequiredException("You must be logged in")
        existing = self.collection.get(uid)
        if existing:
            user = AppUser(**existing)
            user.email = request.email or user.email
            if not user.is_admin:
                user.barangay = request.barangay or user.barangay
            self.collection.put(uid, user.model_dump(mode="json"))
            return user

        user = AppUser(
            uid=uid,
            email=request.email,
            barangay=request.barangay,
            role=UserRole.USER,
            created_at=datetime.now()
        )
        self.collection.add(user.model_dump(mode="json"), doc_id=uid)
        logger.info(f"✅ Registered user {uid}")
        return user

    async def get_user(self, uid: str) -> Optional[AppUser]:
        document = self.collection.get(uid)
        return AppUser(**document) if document else None

    async def require_user(self, uid: str) -> AppUser:
        user = await self.get_user(uid)
        if user is None:
            raise UserNotFoundException(f"User {uid} not found")
        return user

    async def list_users(self, actor: Optional[AppUser]) -> List[AppUser]:
        """Main admins see everyone, district admins see their barangay"""
        if actor is None:
            raise AuthenticationRequiredException("You must be logged in")
        if not actor.is_admin:
            raise PermissionDeniedException("Unauthorized: admin required")
        users = [AppUser(**doc) for doc in self.collection.all()]
        if not actor.is_global_admin:
            users = [u for u in users if u.barangay == actor.barangay]
        return users

    async def set_admin(self, uid: str, barangay_id: Optional[str]) -> AppUser:
        """Promote a user to admin of a barangay, or to main admin when barangay_id is None"""
        user = await self.require_user(uid)
        updated = self.collection.update(uid, {"role": UserRole.ADMIN.value, "barangay": barangay_id})
        logger.info(f"👮 {uid} is now admin for {barangay_id or 'all barangays'}")
        return AppUser(**updated) if updated else user

    async def revoke_admin(self, uid: str) -> AppUser:
        user = await self.require_user(uid)
        updated = self.collection.update(uid, {"role": UserRole.USER.value})
        return AppUser(**updated) if updated else user

    async def delete_user(self, actor: Optional[AppUser], uid: Optional[str]) -> None:
        """
        Delete another user's profile

        Only admins may delete. Nobody may delete themselves. District admins
        may only delete regular users of their own barangay.
        """
        if actor is None:
            raise AuthenticationRequiredException("You must be logged in")
        if not actor.is_admin:
            raise PermissionDeniedException("Only admins can delete users")
        if not uid:
            raise ReportValidationException("User id is required", {"field": "uid"})
        if uid == actor.uid:
            raise PermissionDeniedException("You cannot delete your own account")

        target = await self.require_user(uid)
        if not actor.is_global_admin:
            if target.is_admin:
                raise PermissionDeniedException("Barangay admins cannot delete other admins")
            if target.barangay != actor.barangay:
                raise PermissionDeniedException("You can only delete users in your barangay")

        self.collection.delete(uid)
        logger.info(f"🗑️ User {uid} deleted by {actor.uid}")


# Global user service instance
user_service = UserService()
