"""Password hashing and JWT creation/verification for authentication."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
import jwt

from app.core.config import Settings, get_settings

# Bcrypt cost (rounds).
BCRYPT_ROUNDS = 10

# Min/max lengths for name and password validation.
NAME_MAX_LEN = 255
PASSWORD_MIN_LEN = 6
PASSWORD_MAX_LEN = 128

ROLE_USER = "user"
ROLE_ADMIN = "admin"
ROLES = (ROLE_USER, ROLE_ADMIN)

# Checked against when the login email is unknown so both failure paths cost one bcrypt verify.
_DUMMY_HASH = bcrypt.hashpw(b"not-a-real-password", bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def hash_password(plain_password: str) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    # bcrypt has a 72-byte limit; truncate to avoid errors (validation already limits length).
    pw_bytes = plain_password.encode("utf-8")[:72]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(plain_password: str, hashed: str | None) -> bool:
    """Verify a plain password against a stored hash."""
    pw_bytes = plain_password.encode("utf-8")[:72]
    if hashed is None:
        bcrypt.checkpw(pw_bytes, _DUMMY_HASH.encode("utf-8"))
        return False
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


class TokenError(Exception):
    """Base for token verification failures."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class TokenExpiredError(TokenError):
    """Token signature is valid but exp is in the past."""


class TokenMalformedError(TokenError):
    """Bad signature, bad structure, or missing claims."""


class TokenConfigurationError(Exception):
    """Raised when no signing secret is configured; tokens are never issued unsigned."""


@dataclass(frozen=True)
class TokenClaims:
    subject: str
    role: str


class TokenService:
    """Issues and verifies HMAC-signed session tokens carrying subject and role."""

    def __init__(self, secret: str | None, algorithm: str = "HS256", expire_minutes: int = 60) -> None:
        if not secret or not secret.strip():
            raise TokenConfigurationError("JWT_SECRET is not set; authentication is disabled.")
        self._secret = secret
        self.algorithm = algorithm
        self.expire_minutes = expire_minutes

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenService":
        secret = settings.JWT_SECRET.get_secret_value() if settings.JWT_SECRET else None
        return cls(
            secret,
            algorithm=settings.JWT_ALGORITHM,
            expire_minutes=settings.JWT_EXPIRE_MINUTES,
        )

    @property
    def lifetime(self) -> timedelta:
        return timedelta(minutes=self.expire_minutes)

    def issue(self, subject: str | int, role: str, issued_at: datetime | None = None) -> str:
        """Create a JWT with sub, role, iat and exp (iat + lifetime)."""
        now = issued_at or datetime.now(UTC)
        payload: dict[str, Any] = {
            "sub": str(subject),
            "role": role,
            "iat": now,
            "exp": now + self.lifetime,
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenClaims:
        """
        Decode and validate a JWT; return its subject and role.
        Raises TokenExpiredError or TokenMalformedError.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={"require": ["sub", "exp"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenExpiredError("Token has expired.") from e
        except jwt.PyJWTError as e:
            raise TokenMalformedError("Token is invalid.") from e
        sub = payload.get("sub")
        role = payload.get("role")
        if not sub or not isinstance(role, str):
            raise TokenMalformedError("Token payload is missing claims.")
        return TokenClaims(subject=str(sub), role=role)


def get_token_service() -> TokenService:
    """Dependency: token service built from settings. Raises TokenConfigurationError without a secret."""
    return TokenService.from_settings(get_settings())
