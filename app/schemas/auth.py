"""Request/response schemas for registration, login and the authenticated identity."""

from typing import TYPE_CHECKING

from pydantic import EmailStr, Field

from app.core.security import NAME_MAX_LEN, PASSWORD_MAX_LEN, PASSWORD_MIN_LEN
from app.schemas.base import CamelModel

if TYPE_CHECKING:
    from app.models.user import User


class RegisterRequest(CamelModel):
    """New account details."""

    name: str = Field(..., min_length=1, max_length=NAME_MAX_LEN, description="Display name")
    email: EmailStr = Field(..., description="Login email")
    password: str = Field(
        ...,
        min_length=PASSWORD_MIN_LEN,
        max_length=PASSWORD_MAX_LEN,
        description="Password",
    )


class LoginRequest(CamelModel):
    """Credentials for login."""

    email: EmailStr = Field(..., description="Login email")
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN, description="Password")


class LoginResponse(CamelModel):
    """Session token plus the minimal public profile."""

    message: str = "Login successful!"
    token: str = Field(..., description="JWT access token, also set as the 'token' cookie")
    user_id: int
    role: str
    name: str
    email: str
    blocked: bool
    packages: list[int]


class CurrentUser(CamelModel):
    """Authenticated user for dependency injection. Never carries the password hash."""

    id: int
    name: str
    email: str
    role: str
    blocked: bool
    profile_image_url: str | None = None

    @classmethod
    def from_user(cls, user: "User") -> "CurrentUser":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            blocked=user.blocked,
            profile_image_url=user.profile_image_url,
        )

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
