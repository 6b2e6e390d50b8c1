"""
Role and district checks shared by the admin services
"""

from typing import Optional

from ..models.user_models import AppUser
from .exceptions import AuthenticationRequiredException, PermissionDeniedException


def ensure_admin_for(
    actor: Optional[AppUser],
    barangay_id: Optional[str] = None,
    require_global: bool = False
) -> None:
    """
    Ensure the actor may act on a barangay.

    Main admins (no barangay) may act everywhere. District admins may act
    only on their own barangay. With require_global=True only main admins pass.
    """
    if actor is None:
        raise AuthenticationRequiredException("You must be logged in")
    if not actor.is_admin:
        raise PermissionDeniedException("Unauthorized: admin required")
    if require_global:
        if not actor.is_global_admin:
            raise PermissionDeniedException("Unauthorized: main-admin required")
        return
    if actor.is_global_admin:
        return
    if barangay_id and actor.barangay == barangay_id:
        return
    raise PermissionDeniedException(
        "Unauthorized: admin for this barangay required",
        {"barangay_id": barangay_id}
    )
