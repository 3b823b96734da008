"""ORM model for catalog packages (products)."""

from sqlalchemy import JSON, CheckConstraint, Column, DateTime, Float, Integer, String, Text, func
from sqlalchemy.orm import relationship

from app.models.base import Base, CreatedAtMixin


class Package(CreatedAtMixin, Base):
    """Catalog entry. images holds object-store URLs in upload order."""

    __tablename__ = "packages"
    __table_args__ = (CheckConstraint("price >= 0", name="ck_packages_price_non_negative"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, index=True)
    version = Column(String(64), nullable=True)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=False, default=0.0)
    images = Column(JSON, nullable=False, default=list)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    # Purchased packages cannot be deleted; see catalog.delete_package.
    purchases = relationship(
        "Purchase",
        back_populates="package",
        passive_deletes="all",
    )
