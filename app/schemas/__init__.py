"""Pydantic request/response schemas."""

from app.schemas.auth import CurrentUser, LoginRequest, LoginResponse, RegisterRequest
from app.schemas.base import MessageResponse, MessageWithEmailResponse
from app.schemas.health import HealthResponse
from app.schemas.image import EditImageRequest, ImageUploadResponse
from app.schemas.package import PackageOut, PurchaseRequest
from app.schemas.user import (
    BlockResponse,
    DeleteAccountRequest,
    EditNameRequest,
    EditRoleRequest,
    ProfileImageResponse,
    UpdatePasswordRequest,
    UserMessageResponse,
    UserPublic,
)

__all__ = [
    "BlockResponse",
    "CurrentUser",
    "DeleteAccountRequest",
    "EditImageRequest",
    "EditNameRequest",
    "EditRoleRequest",
    "HealthResponse",
    "ImageUploadResponse",
    "LoginRequest",
    "LoginResponse",
    "MessageResponse",
    "MessageWithEmailResponse",
    "PackageOut",
    "ProfileImageResponse",
    "PurchaseRequest",
    "RegisterRequest",
    "UpdatePasswordRequest",
    "UserMessageResponse",
    "UserPublic",
]
