"""Password hashing and bearer token helpers."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from functools import lru_cache

import bcrypt
import jwt

from .errors import AuthenticationError
from .settings import CRMSettings

__all__ = [
    "hash_password",
    "verify_password",
    "burn_password_check",
    "TokenManager",
    "IssuedToken",
]


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt())
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against a bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # malformed stored hash
        return False


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return hash_password("crm-dummy-password")


def burn_password_check(password: str) -> None:
    """Spend one bcrypt verification so unknown emails cost as much as known ones."""
    verify_password(password, _dummy_hash())


@dataclass(slots=True)
class IssuedToken:
    token: str
    expires_at: dt.datetime


class TokenManager:
    """Issue and verify signed bearer tokens carrying a user id."""

    def __init__(self, settings: CRMSettings):
        self.secret_key = settings.secret_key
        self.algorithm = settings.token_algorithm
        self.ttl = dt.timedelta(minutes=settings.token_ttl_minutes)

    def issue(self, user_id: int, *, now: dt.datetime | None = None) -> IssuedToken:
        issued_at = now or dt.datetime.now(dt.timezone.utc)
        expires_at = issued_at + self.ttl
        payload = {
            "sub": str(user_id),
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        token = jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
        return IssuedToken(token=token, expires_at=expires_at)

    def verify(self, token: str) -> int:
        """Return the user id carried by *token*.

        Raises:
            AuthenticationError: if the token is malformed, tampered with, or expired.
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"require": ["sub", "exp"]},
            )
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token has expired") from None
        except jwt.InvalidTokenError:
            raise AuthenticationError("Invalid token") from None

        try:
            return int(payload["sub"])
        except (TypeError, ValueError):
            raise AuthenticationError("Invalid token") from None
