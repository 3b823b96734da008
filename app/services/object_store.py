"""Upload images to Cloudinary with the official SDK and return their secure URLs."""

from __future__ import annotations

import asyncio
import io
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError
from fastapi.concurrency import run_in_threadpool

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_CONTENT_TYPES = frozenset({"image/jpeg", "image/png", "image/webp", "image/gif"})
MAX_IMAGE_BYTES = 10 * 1024 * 1024  # 10 MB

FOLDER_PACKAGES = "packages"
FOLDER_PROFILES = "profiles"
FOLDER_IMAGES = "images"


class ObjectStoreNotConfiguredError(Exception):
    """Raised when an upload is attempted but Cloudinary credentials are missing."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ObjectStoreError(Exception):
    """Raised when Cloudinary rejects an upload or cannot be reached."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


@dataclass(frozen=True)
class ImageFile:
    """An image read from a multipart request, ready to upload."""

    filename: str
    content_type: str
    content: bytes


def _is_configured(settings: Settings) -> bool:
    if not settings.CLOUDINARY_CLOUD_NAME or not settings.CLOUDINARY_CLOUD_NAME.strip():
        return False
    if not settings.CLOUDINARY_API_KEY or not settings.CLOUDINARY_API_KEY.strip():
        return False
    if settings.CLOUDINARY_API_SECRET is None:
        return False
    return bool(settings.CLOUDINARY_API_SECRET.get_secret_value().strip())


def _upload_options(folder: str, settings: Settings) -> dict[str, Any]:
    """Per-call credentials; the SDK's global config is never touched."""
    options: dict[str, Any] = {
        "folder": folder,
        "resource_type": "image",
        "cloud_name": settings.CLOUDINARY_CLOUD_NAME.strip(),
        "api_key": settings.CLOUDINARY_API_KEY.strip(),
        "api_secret": settings.CLOUDINARY_API_SECRET.get_secret_value(),
        "timeout": max(1.0, min(300.0, settings.UPLOAD_REQUEST_TIMEOUT_SEC)),
    }
    if settings.CLOUDINARY_UPLOAD_PREFIX:
        options["upload_prefix"] = settings.CLOUDINARY_UPLOAD_PREFIX
    return options


def _upload_one(image: ImageFile, folder: str, settings: Settings) -> str:
    """Upload one image (blocking). Returns its secure URL. Raises ObjectStoreError on failure."""
    stream = io.BytesIO(image.content)
    stream.name = image.filename or "upload"
    try:
        result = cloudinary.uploader.upload(stream, **_upload_options(folder, settings))
    except CloudinaryError as e:
        raise ObjectStoreError(f"Object store rejected {image.filename}: {e!s}") from e

    secure_url = result.get("secure_url") if isinstance(result, dict) else None
    if not secure_url:
        raise ObjectStoreError("Object store response missing secure_url.")
    return secure_url


async def upload_images(
    images: list[ImageFile],
    settings: Settings,
    folder: str = FOLDER_PACKAGES,
) -> list[str]:
    """
    Upload all images concurrently and return their URLs in input order.

    Each SDK call runs in the threadpool. Every upload is awaited before
    returning. If any upload fails the first error is raised and no URLs are
    returned, so callers never persist a partial set.
    """
    if not images:
        return []
    if not _is_configured(settings):
        raise ObjectStoreNotConfiguredError(
            "Object store is not configured; set CLOUDINARY_CLOUD_NAME, CLOUDINARY_API_KEY, CLOUDINARY_API_SECRET."
        )

    results = await asyncio.gather(
        *(run_in_threadpool(_upload_one, image, folder, settings) for image in images),
        return_exceptions=True,
    )

    failures = [r for r in results if isinstance(r, BaseException)]
    if failures:
        logger.error(
            "Image upload failed",
            extra={"folder": folder, "image_count": len(images), "failure_count": len(failures)},
        )
        first = failures[0]
        if isinstance(first, ObjectStoreError):
            raise first
        raise ObjectStoreError(f"Image upload failed: {first!s}") from first

    logger.info("Uploaded images", extra={"folder": folder, "image_count": len(images)})
    return [str(r) for r in results]


async def upload_image(image: ImageFile, settings: Settings, folder: str) -> str:
    """Upload a single image and return its URL."""
    urls = await upload_images([image], settings, folder=folder)
    return urls[0]
