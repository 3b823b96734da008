"""Schemas for account management and admin user operations."""

from datetime import datetime
from typing import TYPE_CHECKING

from pydantic import Field

from app.core.security import NAME_MAX_LEN, PASSWORD_MAX_LEN, PASSWORD_MIN_LEN
from app.schemas.base import CamelModel

if TYPE_CHECKING:
    from app.models.user import User


class UserPublic(CamelModel):
    """User as returned by the API (no password hash)."""

    id: int
    name: str
    email: str
    role: str
    blocked: bool
    packages: list[int] = Field(default_factory=list)
    profile_image_url: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_user(cls, user: "User") -> "UserPublic":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            blocked=user.blocked,
            packages=user.package_ids,
            profile_image_url=user.profile_image_url,
            created_at=user.created_at,
        )


class EditNameRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=NAME_MAX_LEN)


class UpdatePasswordRequest(CamelModel):
    current_password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN)
    new_password: str = Field(..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)


class DeleteAccountRequest(CamelModel):
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN)


class EditRoleRequest(CamelModel):
    # Validated against ROLES in app.services.users.change_role.
    role: str | None = None


class UserMessageResponse(CamelModel):
    message: str
    user: UserPublic


class BlockResponse(CamelModel):
    message: str
    blocked: bool


class ProfileImageResponse(CamelModel):
    profile_image_url: str
