"""
User profile models
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class UserRole(str, Enum):
    """User role enumeration"""
    USER = "user"
    ADMIN = "admin"


class AppUser(BaseModel):
    """Stored user profile; the barangay doubles as the admin district"""
    uid: str
    email: Optional[str] = None
    role: UserRole = UserRole.USER
    barangay: Optional[str] = Field(None, description="Barangay id, empty for main admins")
    suspended: bool = False
    created_at: datetime = Field(default_factory=datetime.now)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_global_admin(self) -> bool:
        """Main admins have no barangay assigned"""
        return self.is_admin and not self.barangay

    @property
    def display_name(self) -> str:
        return self.email or "Anonymous"


class UserRegisterRequest(BaseModel):
    """Request model for registering the caller's profile"""
    email: Optional[str] = None
    barangay: Optional[str] = None
