"""Account routes: registration, login, profile edits, admin block/role management, profile images."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, Response, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from app.api.deps import (
    TOKEN_COOKIE,
    ensure_self_or_admin,
    get_current_user,
    path_email,
    read_image_file,
    require_active_user,
    require_admin,
)
from app.core.config import Settings, get_settings
from app.core.database import get_db
from app.core.exceptions import UpstreamFailure
from app.core.security import TokenService, get_token_service
from app.schemas.auth import CurrentUser, LoginRequest, LoginResponse, RegisterRequest
from app.schemas.base import MessageResponse, MessageWithEmailResponse
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
from app.services import mailer, users
from app.services.object_store import (
    FOLDER_PROFILES,
    ObjectStoreError,
    ObjectStoreNotConfiguredError,
    upload_image,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/register", response_model=MessageWithEmailResponse, status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> MessageWithEmailResponse:
    """
    Create an account with role 'user'. A welcome email is sent afterwards;
    delivery failure does not undo the registration and is reported as emailSent=false.
    """
    user = await run_in_threadpool(users.register_user, db, body.name, body.email, body.password)
    email_sent = await mailer.send_welcome_email(user.name, user.email, settings)
    return MessageWithEmailResponse(message="User registered successfully!", email_sent=email_sent)


@router.post("/login", response_model=LoginResponse)
def login(
    body: LoginRequest,
    response: Response,
    db: Annotated[Session, Depends(get_db)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> LoginResponse:
    """
    Authenticate with email and password; returns a JWT and sets it as the 'token' cookie.
    The token may also be sent back as: Authorization: Bearer <token>
    """
    user = users.authenticate(db, body.email, body.password)
    token = tokens.issue(user.id, user.role)
    response.set_cookie(
        TOKEN_COOKIE,
        token,
        max_age=int(tokens.lifetime.total_seconds()),
        httponly=True,
        secure=settings.APP_ENV == "prod",
        samesite="lax",
    )
    return LoginResponse(
        token=token,
        user_id=user.id,
        role=user.role,
        name=user.name,
        email=user.email,
        blocked=user.blocked,
        packages=user.package_ids,
    )


@router.get("/all", response_model=list[UserPublic])
def list_all_users(
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
) -> list[UserPublic]:
    """List all users (admin only)."""
    return [UserPublic.from_user(u) for u in users.list_users(db)]


@router.get("/by-email/{email}", response_model=UserPublic)
def get_by_email(
    email: Annotated[str, Depends(path_email)],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> UserPublic:
    ensure_self_or_admin(current_user, email)
    return UserPublic.from_user(users.require_user_by_email(db, email))


@router.patch("/edit-name/{email}", response_model=UserMessageResponse)
def edit_name(
    email: Annotated[str, Depends(path_email)],
    body: EditNameRequest,
    current_user: Annotated[CurrentUser, Depends(require_active_user)],
    db: Annotated[Session, Depends(get_db)],
) -> UserMessageResponse:
    ensure_self_or_admin(current_user, email)
    user = users.edit_name(db, email, body.name)
    return UserMessageResponse(message="Name updated successfully!", user=UserPublic.from_user(user))


@router.patch("/update-password/{email}", response_model=MessageResponse)
def update_password(
    email: Annotated[str, Depends(path_email)],
    body: UpdatePasswordRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> MessageResponse:
    """Change the password; the current one must be supplied even by admins."""
    ensure_self_or_admin(current_user, email)
    users.update_password(db, email, body.current_password, body.new_password)
    return MessageResponse(message="Password updated successfully!")


@router.delete("/delete-account/{email}", response_model=MessageResponse)
def delete_account(
    email: Annotated[str, Depends(path_email)],
    body: DeleteAccountRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> MessageResponse:
    ensure_self_or_admin(current_user, email)
    users.delete_account(db, email, body.password)
    return MessageResponse(message="Account deleted successfully!")


@router.patch("/{user_id}/block", response_model=BlockResponse)
def toggle_block(
    user_id: int,
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
) -> BlockResponse:
    """Flip the blocked flag (admin only)."""
    user = users.toggle_block(db, user_id)
    state = "blocked" if user.blocked else "unblocked"
    return BlockResponse(message=f"User {state} successfully!", blocked=user.blocked)


@router.patch("/edit-role/{user_id}", response_model=MessageWithEmailResponse)
async def edit_role(
    user_id: int,
    body: EditRoleRequest,
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> MessageWithEmailResponse:
    """
    Set a user's role (admin only). Promotion to admin sends a notification;
    the role change is committed whether or not the email goes out.
    """
    user, promoted = await run_in_threadpool(users.change_role, db, user_id, body.role)
    email_sent = False
    if promoted:
        email_sent = await mailer.send_admin_promotion_email(user.email, settings)
    message = (
        "User role updated successfully and email sent!"
        if email_sent
        else "User role updated successfully."
    )
    return MessageWithEmailResponse(message=message, email_sent=email_sent)


def _save_profile_image_url(db: Session, user_id: int, url: str) -> UserPublic:
    return UserPublic.from_user(users.set_profile_image(db, user_id, url))


async def _store_profile_image(
    image: UploadFile | None,
    current_user: CurrentUser,
    db: Session,
    settings: Settings,
) -> UserPublic:
    """Upload first, then save the URL; a failed upload leaves the stored URL untouched."""
    image_file = await read_image_file(image)
    try:
        url = await upload_image(image_file, settings, folder=FOLDER_PROFILES)
    except (ObjectStoreError, ObjectStoreNotConfiguredError) as e:
        logger.error("Profile image upload failed", extra={"user_id": current_user.id, "reason": e.message[:500]})
        raise UpstreamFailure("Error uploading image to the object store.") from e
    return await run_in_threadpool(_save_profile_image_url, db, current_user.id, url)


@router.post("/upload-image", response_model=UserMessageResponse)
async def upload_profile_image(
    current_user: Annotated[CurrentUser, Depends(require_active_user)],
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    image: Annotated[UploadFile | None, File()] = None,
) -> UserMessageResponse:
    user = await _store_profile_image(image, current_user, db, settings)
    return UserMessageResponse(message="Profile image uploaded successfully!", user=user)


@router.patch("/update-profile-image", response_model=UserMessageResponse)
async def update_profile_image(
    current_user: Annotated[CurrentUser, Depends(require_active_user)],
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    image: Annotated[UploadFile | None, File()] = None,
) -> UserMessageResponse:
    user = await _store_profile_image(image, current_user, db, settings)
    return UserMessageResponse(message="Profile image updated successfully!", user=user)


@router.get("/profile-image", response_model=ProfileImageResponse)
def get_profile_image(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> ProfileImageResponse:
    return ProfileImageResponse(profile_image_url=users.get_profile_image(db, current_user.id))


@router.delete("/remove-profile-image", response_model=MessageResponse)
def remove_profile_image(
    current_user: Annotated[CurrentUser, Depends(require_active_user)],
    db: Annotated[Session, Depends(get_db)],
) -> MessageResponse:
    users.remove_profile_image(db, current_user.id)
    return MessageResponse(message="Profile image removed successfully!")
