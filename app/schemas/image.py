"""Schemas for the image ingest and avatar edit-request endpoints."""

from pydantic import EmailStr, Field

from app.schemas.base import CamelModel


class ImageUploadResponse(CamelModel):
    message: str
    image_url: str


class EditImageRequest(CamelModel):
    """Ask support to edit an avatar model built from an uploaded image."""

    email: EmailStr = Field(..., description="Requester email, used as reply-to")
    image_url: str = Field(..., min_length=1, max_length=2048)
