"""Purchase ledger: append a package to a user's purchased list."""

import logging

from sqlalchemy.orm import Session

from app.core.exceptions import NotFound, ValidationError
from app.models import Package, Purchase, User

logger = logging.getLogger(__name__)


def purchase_package(db: Session, user_id: int | None, package_id: int | None) -> User:
    """
    Record that user_id bought package_id and return the updated user.

    Not idempotent: each call appends a new row, so buying the same package
    twice lists it twice. Stock and payment are handled elsewhere.
    """
    if not user_id or not package_id:
        raise ValidationError("User ID and Package ID are required.")

    user = db.query(User).filter(User.id == user_id).first()
    package = db.query(Package).filter(Package.id == package_id).first()
    if user is None or package is None:
        raise NotFound("User or Package not found.")

    user.purchases.append(Purchase(package_id=package.id))
    db.commit()
    db.refresh(user)
    logger.info(
        "Package purchased",
        extra={"user_id": user.id, "package_id": package.id, "purchase_count": len(user.purchases)},
    )
    return user
