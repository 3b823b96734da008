"""Schemas for catalog packages and purchases."""

from datetime import datetime
from typing import TYPE_CHECKING

from pydantic import Field

from app.schemas.base import CamelModel

if TYPE_CHECKING:
    from app.models.package import Package


class PackageOut(CamelModel):
    """Full package representation including ID."""

    id: int
    name: str
    version: str | None = None
    description: str | None = None
    price: float
    images: list[str] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_package(cls, package: "Package") -> "PackageOut":
        return cls(
            id=package.id,
            name=package.name,
            version=package.version,
            description=package.description,
            price=package.price,
            images=list(package.images or []),
            created_at=package.created_at,
            updated_at=package.updated_at,
        )


class PurchaseRequest(CamelModel):
    """Missing ids are rejected by the purchase service, not here."""

    user_id: int | None = None
    package_id: int | None = None
