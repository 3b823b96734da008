"""Catalog management: package CRUD with image uploads to the object store."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from app.core.exceptions import Conflict, NotFound, UpstreamFailure, ValidationError
from app.models import Package, Purchase
from app.services.object_store import (
    FOLDER_PACKAGES,
    ImageFile,
    ObjectStoreError,
    ObjectStoreNotConfiguredError,
    upload_images,
)

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

MAX_IMAGES_PER_PACKAGE = 10
PACKAGE_NOT_FOUND = "Package not found."
PACKAGE_PURCHASED = "Package has been purchased and cannot be deleted."


def list_packages(db: Session) -> list[Package]:
    return db.query(Package).order_by(Package.id).all()


def get_package(db: Session, package_id: int) -> Package:
    package = db.query(Package).filter(Package.id == package_id).first()
    if package is None:
        raise NotFound(PACKAGE_NOT_FOUND)
    return package


def check_image_count(count: int) -> None:
    if count > MAX_IMAGES_PER_PACKAGE:
        raise ValidationError(f"At most {MAX_IMAGES_PER_PACKAGE} images per package.")


async def _upload_package_images(images: list[ImageFile], settings: Settings) -> list[str]:
    """All-or-nothing: returns every URL or raises UpstreamFailure."""
    check_image_count(len(images))
    try:
        return await upload_images(images, settings, folder=FOLDER_PACKAGES)
    except (ObjectStoreError, ObjectStoreNotConfiguredError) as e:
        raise UpstreamFailure(f"Image upload failed: {e.message}") from e


def _insert_package(db: Session, fields: dict[str, object]) -> Package:
    package = Package(**fields)
    db.add(package)
    db.commit()
    db.refresh(package)
    return package


def _apply_package_update(db: Session, package: Package, fields: dict[str, object]) -> Package:
    for key, value in fields.items():
        setattr(package, key, value)
    db.commit()
    db.refresh(package)
    return package


async def create_package(
    db: Session,
    settings: Settings,
    *,
    name: str,
    price: float,
    version: str | None = None,
    description: str | None = None,
    images: list[ImageFile] | None = None,
) -> Package:
    """Upload every image, then insert the package. Nothing is written if any upload fails."""
    urls = await _upload_package_images(images or [], settings)
    fields = {
        "name": name.strip(),
        "version": version,
        "description": description,
        "price": price,
        "images": urls,
    }
    package = await run_in_threadpool(_insert_package, db, fields)
    logger.info("Package created", extra={"package_id": package.id, "image_count": len(urls)})
    return package


async def update_package(
    db: Session,
    settings: Settings,
    package_id: int,
    *,
    name: str | None = None,
    price: float | None = None,
    version: str | None = None,
    description: str | None = None,
    images: list[ImageFile] | None = None,
) -> Package:
    """
    Apply the provided fields. Images are replaced only when new ones are
    given; a failed upload leaves the stored package unchanged.
    """
    package = await run_in_threadpool(get_package, db, package_id)
    urls = await _upload_package_images(images, settings) if images else None

    fields: dict[str, object] = {}
    if name is not None:
        fields["name"] = name.strip()
    if version is not None:
        fields["version"] = version
    if description is not None:
        fields["description"] = description
    if price is not None:
        fields["price"] = price
    if urls:
        fields["images"] = urls
    package = await run_in_threadpool(_apply_package_update, db, package, fields)
    logger.info("Package updated", extra={"package_id": package.id, "images_replaced": bool(urls)})
    return package


def delete_package(db: Session, package_id: int) -> None:
    """Delete a package nobody has bought; purchased packages raise Conflict."""
    package = get_package(db, package_id)
    purchase_count = db.query(Purchase).filter(Purchase.package_id == package_id).count()
    if purchase_count:
        logger.info("Package delete refused", extra={"package_id": package_id, "purchase_count": purchase_count})
        raise Conflict(PACKAGE_PURCHASED)
    db.delete(package)
    db.commit()
    logger.info("Package deleted", extra={"package_id": package_id})
