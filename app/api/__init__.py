"""HTTP routes."""

from fastapi import APIRouter

from app.api import health, images, packages, users

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(users.router, prefix="/user", tags=["users"])
router.include_router(packages.router, prefix="/api/packages", tags=["packages"])
router.include_router(images.router, prefix="/api/images", tags=["images"])
