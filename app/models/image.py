"""ORM model for images submitted through the image ingest endpoint."""

from sqlalchemy import Column, Integer, String

from app.models.base import Base, CreatedAtMixin


class Image(CreatedAtMixin, Base):
    __tablename__ = "images"

    id = Column(Integer, primary_key=True, autoincrement=True)
    image_url = Column(String(2048), nullable=False)
    email = Column(String(320), nullable=True, index=True)
