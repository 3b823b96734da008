"""ORM model linking users to the packages they bought."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, func
from sqlalchemy.orm import relationship

from app.models.base import Base


class Purchase(Base):
    """
    One purchase of one package by one user.

    No unique constraint on (user_id, package_id): buying the same package
    twice records two rows. Row id gives the order of User.package_ids.
    """

    __tablename__ = "user_packages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    package_id = Column(
        Integer, ForeignKey("packages.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    purchased_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    user = relationship("User", back_populates="purchases")
    package = relationship("Package", back_populates="purchases")
