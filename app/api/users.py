"""
User profile API endpoints
"""

from typing import List, Optional
from fastapi import APIRouter, Depends

from ..core.exceptions import AuthenticationRequiredException
from ..models.user_models import AppUser, UserRegisterRequest
from .dependencies import get_current_user, get_user_id, get_user_service, require_user

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/register", response_model=AppUser)
async def register_user(
    request: UserRegisterRequest,
    uid: Optional[str] = Depends(get_user_id),
    users=Depends(get_user_service),
) -> AppUser:
    """Create or refresh the caller's profile"""
    if uid is None:
        raise AuthenticationRequiredException("You must be logged in")
    return await users.register(uid, request)


@router.get("/me", response_model=AppUser)
async def get_me(actor: AppUser = Depends(require_user)) -> AppUser:
    return actor


@router.get("", response_model=List[AppUser])
async def list_users(
    actor: Optional[AppUser] = Depends(get_current_user),
    users=Depends(get_user_service),
) -> List[AppUser]:
    return await users.list_users(actor)


@router.delete("/{uid}")
async def delete_user(
    uid: str,
    actor: Optional[AppUser] = Depends(get_current_user),
    users=Depends(get_user_service),
):
    """Delete another user's profile (admins only)"""
    await users.delete_user(actor, uid)
    return {"success": True, "message": f"User {uid} deleted"}
