"""Settings, database session and the error taxonomy shared by routes and services."""

from app.core.config import get_settings, settings
from app.core.database import get_db
from app.core.exceptions import AppError

__all__ = ["AppError", "get_db", "get_settings", "settings"]
