"""Catalog routes: package CRUD (writes admin-only) and purchase recording."""

from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.orm import Session

from app.api.deps import read_image_file, require_active_user, require_admin
from app.core.config import Settings, get_settings
from app.core.database import get_db
from app.core.exceptions import Forbidden
from app.schemas.auth import CurrentUser
from app.schemas.base import MessageResponse
from app.schemas.package import PackageOut, PurchaseRequest
from app.schemas.user import UserMessageResponse, UserPublic
from app.services import catalog, purchases
from app.services.object_store import ImageFile

router = APIRouter()


async def _read_images(images: list[UploadFile] | None) -> list[ImageFile]:
    uploads = [f for f in (images or []) if getattr(f, "filename", None)]
    # Checked before reading so oversized batches are not buffered.
    catalog.check_image_count(len(uploads))
    return [await read_image_file(f) for f in uploads]


@router.get("", response_model=list[PackageOut])
def list_packages(db: Annotated[Session, Depends(get_db)]) -> list[PackageOut]:
    return [PackageOut.from_package(p) for p in catalog.list_packages(db)]


@router.post("", response_model=PackageOut, status_code=status.HTTP_201_CREATED)
async def create_package(
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    name: Annotated[str, Form(min_length=1, max_length=255)],
    price: Annotated[float, Form(ge=0)],
    version: Annotated[str | None, Form(max_length=64)] = None,
    description: Annotated[str | None, Form()] = None,
    images: Annotated[list[UploadFile] | None, File()] = None,
) -> PackageOut:
    """
    Create a package with up to 10 images (multipart/form-data).

    Images are uploaded concurrently; if any upload fails the request fails
    and no package is stored.
    """
    image_files = await _read_images(images)
    package = await catalog.create_package(
        db,
        settings,
        name=name,
        price=price,
        version=version,
        description=description,
        images=image_files,
    )
    return PackageOut.from_package(package)


@router.post("/purchase", response_model=UserMessageResponse)
def purchase(
    body: PurchaseRequest,
    current_user: Annotated[CurrentUser, Depends(require_active_user)],
    db: Annotated[Session, Depends(get_db)],
) -> UserMessageResponse:
    """Append a package to a user's purchases. Buying the same package again adds it again."""
    if body.user_id and body.user_id != current_user.id and not current_user.is_admin:
        raise Forbidden("You can only purchase for your own account.")
    user = purchases.purchase_package(db, body.user_id, body.package_id)
    return UserMessageResponse(message="Package purchased successfully!", user=UserPublic.from_user(user))


@router.get("/{package_id}", response_model=PackageOut)
def get_package(package_id: int, db: Annotated[Session, Depends(get_db)]) -> PackageOut:
    return PackageOut.from_package(catalog.get_package(db, package_id))


@router.put("/{package_id}", response_model=PackageOut)
async def update_package(
    package_id: int,
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    name: Annotated[str | None, Form(min_length=1, max_length=255)] = None,
    price: Annotated[float | None, Form(ge=0)] = None,
    version: Annotated[str | None, Form(max_length=64)] = None,
    description: Annotated[str | None, Form()] = None,
    images: Annotated[list[UploadFile] | None, File()] = None,
) -> PackageOut:
    """Update provided fields; images are replaced only when new ones are sent."""
    image_files = await _read_images(images)
    package = await catalog.update_package(
        db,
        settings,
        package_id,
        name=name,
        price=price,
        version=version,
        description=description,
        images=image_files,
    )
    return PackageOut.from_package(package)


@router.delete("/{package_id}", response_model=MessageResponse)
def delete_package(
    package_id: int,
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
) -> MessageResponse:
    catalog.delete_package(db, package_id)
    return MessageResponse(message="Package deleted successfully")
