"""
Shared request dependencies

The caller is identified by the X-User-Id header set by the upstream auth
proxy. Services are provided through functions so tests can override them
with app.dependency_overrides.
"""

from typing import Optional
from fastapi import Depends, Header

from ..core.exceptions import AuthenticationRequiredException, PermissionDeniedException
from ..models.user_models import AppUser
from ..services.analytics_service import analytics_service
from ..services.barangay_service import barangay_service
from ..services.event_service import event_service
from ..services.notification_service import notification_service
from ..services.preview_service import preview_service
from ..services.report_service import report_service
from ..services.submission_service import submission_service
from ..services.user_service import user_service


def get_user_service():
    return user_service


def get_report_service():
    return report_service


def get_submission_service():
    return submission_service


def get_preview_service():
    return preview_service


def get_barangay_service():
    return barangay_service


def get_analytics_service():
    return analytics_service


def get_notification_service():
    return notification_service


def get_event_service():
    return event_service


def get_user_id(x_user_id: Optional[str] = Header(None)) -> Optional[str]:
    return x_user_id.strip() if x_user_id and x_user_id.strip() else None


async def get_current_user(
    uid: Optional[str] = Depends(get_user_id),
    users=Depends(get_user_service)
) -> Optional[AppUser]:
    """Stored profile of the caller; callers without a profile act as regular users"""
    if uid is None:
        return None
    user = await users.get_user(uid)
    if user is None:
        return AppUser(uid=uid)
    if user.suspended:
        raise PermissionDeniedException("Your account is suspended")
    return user


async def require_user(user: Optional[AppUser] = Depends(get_current_user)) -> AppUser:
    if user is None:
        raise AuthenticationRequiredException("You must be logged in")
    return user
