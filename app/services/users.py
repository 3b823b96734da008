"""Account workflow over the users table: register, authenticate, and profile/role/block mutations."""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import Conflict, NotFound, Unauthenticated, ValidationError
from app.core.security import ROLE_ADMIN, ROLE_USER, ROLES, verify_password
from app.models.user import User

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials."
USER_EXISTS = "User already exists."
USER_NOT_FOUND = "User not found."


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == email).first()


def get_user_by_id(db: Session, user_id: int) -> User | None:
    return db.query(User).filter(User.id == user_id).first()


def require_user_by_email(db: Session, email: str) -> User:
    user = get_user_by_email(db, email)
    if user is None:
        raise NotFound(USER_NOT_FOUND)
    return user


def require_user_by_id(db: Session, user_id: int) -> User:
    user = get_user_by_id(db, user_id)
    if user is None:
        raise NotFound(USER_NOT_FOUND)
    return user


def list_users(db: Session) -> list[User]:
    return db.query(User).order_by(User.id).all()


def register_user(db: Session, name: str, email: str, password: str) -> User:
    """
    Create a user with role 'user' and blocked=False.

    The pre-check gives the common case a clean error; the unique index on
    email is what actually prevents duplicates under concurrent requests.
    """
    if get_user_by_email(db, email) is not None:
        logger.info("Registration rejected: email exists")
        raise Conflict(USER_EXISTS)

    user = User(name=name.strip(), email=email, role=ROLE_USER, blocked=False)
    user.password = password
    db.add(user)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.info("Registration rejected: unique constraint on email")
        raise Conflict(USER_EXISTS) from e
    db.refresh(user)
    logger.info("User registered", extra={"user_id": user.id})
    return user


def authenticate(db: Session, email: str, password: str) -> User:
    """Return the user for valid credentials; one generic error for unknown email or wrong password."""
    user = get_user_by_email(db, email)
    # Always run one bcrypt check so an unknown email costs the same as a wrong password.
    password_ok = verify_password(password, user.password_hash if user else None)
    if user is None or not password_ok:
        logger.warning("Login failed", extra={"user_id": user.id if user else None})
        raise Unauthenticated(INVALID_CREDENTIALS)
    logger.info("Login succeeded", extra={"user_id": user.id})
    return user


def edit_name(db: Session, email: str, name: str) -> User:
    user = require_user_by_email(db, email)
    user.name = name.strip()
    db.commit()
    db.refresh(user)
    return user


def update_password(db: Session, email: str, current_password: str, new_password: str) -> None:
    """Replace the password after re-verifying the current one; the stored hash is untouched on mismatch."""
    user = require_user_by_email(db, email)
    if not user.check_password(current_password):
        raise ValidationError("Current password is incorrect.")
    user.password = new_password
    db.commit()
    logger.info("Password updated", extra={"user_id": user.id})


def delete_account(db: Session, email: str, password: str) -> None:
    user = require_user_by_email(db, email)
    if not user.check_password(password):
        raise ValidationError("Password is incorrect.")
    user_id = user.id
    db.delete(user)
    db.commit()
    logger.info("Account deleted", extra={"user_id": user_id})


def toggle_block(db: Session, user_id: int) -> User:
    user = require_user_by_id(db, user_id)
    user.blocked = not user.blocked
    db.commit()
    db.refresh(user)
    logger.info("Block toggled", extra={"user_id": user.id, "blocked": user.blocked})
    return user


def change_role(db: Session, user_id: int, role: str | None) -> tuple[User, bool]:
    """
    Set the user's role. Returns (user, promoted) where promoted is True
    when the user went from a non-admin role to admin.
    """
    if role not in ROLES:
        raise ValidationError('Invalid role. Role must be either "user" or "admin".')
    user = require_user_by_id(db, user_id)
    promoted = role == ROLE_ADMIN and user.role != ROLE_ADMIN
    user.role = role
    db.commit()
    db.refresh(user)
    logger.info("Role changed", extra={"user_id": user.id, "role": role})
    return user, promoted


def set_profile_image(db: Session, user_id: int, url: str) -> User:
    user = require_user_by_id(db, user_id)
    user.profile_image_url = url
    db.commit()
    db.refresh(user)
    return user


def get_profile_image(db: Session, user_id: int) -> str:
    user = get_user_by_id(db, user_id)
    if user is None or not user.profile_image_url:
        raise NotFound("Profile image not found.")
    return user.profile_image_url


def remove_profile_image(db: Session, user_id: int) -> None:
    user = get_user_by_id(db, user_id)
    if user is None or not user.profile_image_url:
        raise NotFound("No profile image to remove.")
    user.profile_image_url = None
    db.commit()
