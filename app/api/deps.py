"""Auth dependencies (get_current_user, require_admin, require_active_user) and request helpers."""

import logging
from typing import Annotated

from email_validator import EmailNotValidError, validate_email
from fastapi import Depends, Request, UploadFile
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.exceptions import Forbidden, Unauthenticated, ValidationError
from app.core.security import TokenError, TokenService, get_token_service
from app.models.user import User
from app.schemas.auth import CurrentUser
from app.services.object_store import ALLOWED_IMAGE_CONTENT_TYPES, MAX_IMAGE_BYTES, ImageFile

logger = logging.getLogger(__name__)
security = HTTPBearer(auto_error=False)

TOKEN_COOKIE = "token"


def extract_token(request: Request, credentials: HTTPAuthorizationCredentials | None) -> str | None:
    """Cookie 'token' wins over the Authorization: Bearer header when both are sent."""
    cookie_token = request.cookies.get(TOKEN_COOKIE)
    if cookie_token:
        return cookie_token
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    return None


def get_current_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
) -> CurrentUser:
    """Dependency: require a valid token and return the current user. Raises 401 if missing or invalid."""
    token = extract_token(request, credentials)
    if token is None:
        raise Unauthenticated("Authentication required.")
    try:
        claims = tokens.verify(token)
    except TokenError as e:
        logger.info("Token rejected", extra={"reason": e.message})
        raise Unauthenticated("Invalid or expired token.") from e
    try:
        user_id = int(claims.subject)
    except (TypeError, ValueError):
        raise Unauthenticated("Invalid or expired token.")
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        logger.info("Token subject no longer exists", extra={"user_id": user_id})
        raise Unauthenticated("User not found.")
    return CurrentUser.from_user(user)


def require_admin(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> CurrentUser:
    """Dependency: require authenticated user with role 'admin'. Raises 403 for non-admin."""
    if not current_user.is_admin:
        logger.warning("Admin route denied", extra={"user_id": current_user.id})
        raise Forbidden("Admin access required.")
    return current_user


def require_active_user(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> CurrentUser:
    """Dependency: authenticated and not blocked. Blocked users can still log in and read."""
    if current_user.blocked:
        raise Forbidden("Account is blocked.")
    return current_user


def path_email(email: str) -> str:
    """Dependency: the {email} path segment, normalized the same way EmailStr normalizes request bodies."""
    try:
        return validate_email(email, check_deliverability=False).normalized
    except EmailNotValidError as e:
        raise ValidationError("Invalid email address.") from e


def ensure_self_or_admin(current_user: CurrentUser, email: str) -> None:
    """Account routes addressed by email may only touch the caller's own account unless the caller is admin."""
    if current_user.email != email and not current_user.is_admin:
        logger.warning("Cross-account access denied", extra={"user_id": current_user.id})
        raise Forbidden("You can only manage your own account.")


async def read_image_file(upload: UploadFile | None) -> ImageFile:
    """Validate and read one uploaded image."""
    if upload is None or not getattr(upload, "filename", None):
        raise ValidationError("No file uploaded.")
    content_type = (upload.content_type or "").split(";")[0].strip().lower()
    if content_type not in ALLOWED_IMAGE_CONTENT_TYPES:
        raise ValidationError("Only JPEG, PNG, WebP or GIF images are allowed.")
    content = await upload.read()
    if not content:
        raise ValidationError("Uploaded file is empty.")
    if len(content) > MAX_IMAGE_BYTES:
        raise ValidationError(
            f"File size must not exceed {MAX_IMAGE_BYTES // (1024 * 1024)} MB."
        )
    return ImageFile(filename=upload.filename, content_type=content_type, content=content)
