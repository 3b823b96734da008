"""ORM model for application users (auth, RBAC, purchased packages)."""

from sqlalchemy import Boolean, Column, Integer, String, false
from sqlalchemy.orm import relationship

from app.core.security import hash_password, verify_password
from app.models.base import Base, CreatedAtMixin


class User(CreatedAtMixin, Base):
    """
    User account for JWT authentication and role-based access control.

    role: 'admin' or 'user'. The password is write-only: assigning
    ``user.password`` stores a bcrypt hash in ``password_hash``, once per
    assignment; other updates never touch the hash.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    email = Column(String(320), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(32), nullable=False, default="user", server_default="user")
    blocked = Column(Boolean, nullable=False, default=False, server_default=false())
    profile_image_url = Column(String(2048), nullable=True)

    purchases = relationship(
        "Purchase",
        back_populates="user",
        order_by="Purchase.id",
        cascade="all, delete-orphan",
    )

    @property
    def password(self) -> str:
        raise AttributeError("password is write-only; compare with check_password()")

    @password.setter
    def password(self, plain_password: str) -> None:
        self.password_hash = hash_password(plain_password)

    def check_password(self, plain_password: str) -> bool:
        return verify_password(plain_password, self.password_hash)

    @property
    def package_ids(self) -> list[int]:
        """Purchased package ids in purchase order (duplicates kept)."""
        return [p.package_id for p in self.purchases]
