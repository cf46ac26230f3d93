"""
User management schemas.
"""

from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from typing import List, Optional
from transport_backend.app.models.enums import UserRole


class ProfileFields(BaseModel):
    """Role profile fields accepted alongside user data."""
    license_number: Optional[str] = Field(default=None, description="Driver license number")
    experience_years: Optional[int] = Field(default=None, ge=0)
    company_name: Optional[str] = Field(default=None, description="Client company name")
    address: Optional[str] = None
    vat_number: Optional[str] = None


class UserUpdate(ProfileFields):
    """
    Schema for editing a user (admin-only).

    Empty strings clear optional fields.
    """
    name: str = Field(..., min_length=1, description="Name is required!")
    email: Optional[str] = None
    username: Optional[str] = None
    phone: Optional[str] = None
    role: UserRole
    image: Optional[str] = Field(default=None, description="Profile image URL from the image host")


class InviteUserRequest(ProfileFields):
    """
    Schema for inviting a new user.

    The username is used for sign-in; the email is only needed to send the
    temporary password.
    """
    name: str = Field(..., min_length=1)
    username: str = Field(..., min_length=1)
    email: Optional[EmailStr] = None
    role: UserRole
    phone: Optional[str] = None


class AssignUserRoleRequest(ProfileFields):
    identifier: str = Field(..., min_length=1, description="Email or username")
    role: UserRole


class UserResponse(BaseModel):
    id: str
    name: str
    email: Optional[str] = None
    username: Optional[str] = None
    phone: Optional[str] = None
    image: Optional[str] = None
    role: UserRole
    is_active: bool
    requires_password_change: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class UserListResponse(BaseModel):
    users: List[UserResponse]
    total: int
    page: int
    page_size: int
