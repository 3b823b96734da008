"""SQLAlchemy ORM models."""

from app.models.base import Base
from app.models.image import Image
from app.models.package import Package
from app.models.purchase import Purchase
from app.models.user import User

__all__ = ["Base", "Image", "Package", "Purchase", "User"]
