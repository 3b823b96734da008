"""Image ingest and avatar edit-request endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from app.api.deps import read_image_file
from app.core.config import Settings, get_settings
from app.core.database import get_db
from app.core.exceptions import UpstreamFailure
from app.models import Image
from app.schemas.base import MessageWithEmailResponse
from app.schemas.image import EditImageRequest, ImageUploadResponse
from app.services import mailer
from app.services.object_store import (
    FOLDER_IMAGES,
    ObjectStoreError,
    ObjectStoreNotConfiguredError,
    upload_image,
)

logger = logging.getLogger(__name__)
router = APIRouter()


def _record_image(db: Session, url: str, email: str | None) -> None:
    db.add(Image(image_url=url, email=email))
    db.commit()


@router.post("/upload", response_model=ImageUploadResponse)
async def upload(
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    image: Annotated[UploadFile | None, File()] = None,
    email: Annotated[str | None, Form(max_length=320)] = None,
) -> ImageUploadResponse:
    """Upload one image (field 'image') and record it with the submitter's email."""
    image_file = await read_image_file(image)
    try:
        url = await upload_image(image_file, settings, folder=FOLDER_IMAGES)
    except (ObjectStoreError, ObjectStoreNotConfiguredError) as e:
        logger.error("Image ingest upload failed", extra={"reason": e.message[:500]})
        raise UpstreamFailure("Image upload failed.") from e

    await run_in_threadpool(_record_image, db, url, email or None)
    return ImageUploadResponse(message="Image uploaded successfully.", image_url=url)


@router.post("/edit", response_model=MessageWithEmailResponse)
async def request_edit(
    body: EditImageRequest,
    settings: Annotated[Settings, Depends(get_settings)],
) -> MessageWithEmailResponse:
    """Email an avatar edit request for an uploaded image; delivery status is reported, not raised."""
    email_sent = await mailer.send_edit_request_email(body.email, body.image_url, settings)
    message = "Edit request sent via email." if email_sent else "Edit request recorded; email could not be sent."
    return MessageWithEmailResponse(message=message, email_sent=email_sent)
