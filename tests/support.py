"""Shared scaffolding: app client on in-memory SQLite, settings and user factories."""

import asyncio
import unittest
from collections.abc import Callable
from typing import Any

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import Settings, get_settings
from app.core.database import get_db
from app.core.security import TokenService, get_token_service
from app.main import app
from app.models import Base, Package, User

TEST_JWT_SECRET = "test-secret-key-for-testing-only"
DEFAULT_PASSWORD = "secret123"


def make_settings(**overrides: object) -> Settings:
    """Settings with every outbound service configured (calls are mocked in tests)."""
    values: dict[str, object] = {
        "APP_ENV": "dev",
        "DATABASE_URL": "sqlite://",
        "JWT_SECRET": TEST_JWT_SECRET,
        "CLOUDINARY_CLOUD_NAME": "demo",
        "CLOUDINARY_API_KEY": "123456",
        "CLOUDINARY_API_SECRET": "cloud-secret",
        "MAIL_API_URL": "https://mail.test/v3/mg.test",
        "MAIL_API_KEY": "mail-key",
        "MAIL_SUPPORT_ADDRESS": "support@tech-e.test",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_session_factory() -> sessionmaker:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


def running_on_event_loop() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


def loop_spy(target: Callable[..., Any]) -> tuple[Callable[..., Any], list[bool]]:
    """Wrap target; each call appends whether it ran on the event loop thread."""
    calls: list[bool] = []

    def wrapper(*args: Any, **kwargs: Any) -> Any:
        calls.append(running_on_event_loop())
        return target(*args, **kwargs)

    return wrapper, calls


class DatabaseTestCase(unittest.TestCase):
    """Fresh in-memory database per test."""

    def setUp(self) -> None:
        self.SessionLocal = make_session_factory()
        self.engine = self.SessionLocal.kw["bind"]

    def tearDown(self) -> None:
        Base.metadata.drop_all(self.engine)
        self.engine.dispose()

    def create_user(
        self,
        name: str = "Alice",
        email: str = "alice@example.com",
        password: str = DEFAULT_PASSWORD,
        role: str = "user",
        blocked: bool = False,
    ) -> int:
        with self.SessionLocal() as db:
            user = User(name=name, email=email, role=role, blocked=blocked)
            user.password = password
            db.add(user)
            db.commit()
            return user.id

    def create_package(self, name: str = "Starter", price: float = 9.99, images: list[str] | None = None) -> int:
        with self.SessionLocal() as db:
            package = Package(name=name, version="1.0", description="A package", price=price, images=images or [])
            db.add(package)
            db.commit()
            return package.id


class ApiTestCase(DatabaseTestCase):
    """DatabaseTestCase plus a TestClient wired to it through dependency overrides."""

    def setUp(self) -> None:
        super().setUp()
        self.settings = make_settings()
        self.tokens = TokenService(TEST_JWT_SECRET)

        def override_get_db():
            db = self.SessionLocal()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_settings] = lambda: self.settings
        app.dependency_overrides[get_token_service] = lambda: self.tokens
        self.client = TestClient(app)

    def tearDown(self) -> None:
        app.dependency_overrides.clear()
        super().tearDown()

    def auth_headers(self, user_id: int, role: str = "user") -> dict[str, str]:
        return {"Authorization": f"Bearer {self.tokens.issue(user_id, role)}"}
