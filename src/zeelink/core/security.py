"""Password hashing and access-token helpers built on bcrypt and JOSE."""
from __future__ import annotations

import re
import secrets
import string
from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
from jose import JWTError, jwt

from zeelink.core.settings import settings

MOBILE_PATTERN = re.compile(r"^1[3-9]\d{9}$")
CODE_PATTERN = re.compile(r"^\d{6}$")

MIN_PASSWORD_LENGTH = 6
# bcrypt only considers the first 72 bytes of its input.
MAX_PASSWORD_BYTES = 72

_RANDOM_PASSWORD_ALPHABET = string.ascii_letters + string.digits + "!@#$%^&*()-_=+"


def is_valid_mobile(mobile: str | None) -> bool:
    """Return True for mainland China mobile numbers (11 digits, 1[3-9] prefix)."""
    return bool(mobile) and MOBILE_PATTERN.match(mobile) is not None


def is_valid_code(code: str | None) -> bool:
    """Return True if `code` looks like a six-digit verification code."""
    return bool(code) and CODE_PATTERN.match(code) is not None


def hash_password(password: str) -> str:
    """Return a bcrypt hash of `password` using the configured work factor."""
    salt = bcrypt.gensalt(rounds=settings.password_hash_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, hashed_password: str | None) -> bool:
    """Check a plaintext password against a stored bcrypt hash.

    Users provisioned through code login have no password; those never match.
    """
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        return False


def generate_random_password(length: int = 8) -> str:
    """Return a random password drawn from letters, digits and punctuation."""
    return "".join(secrets.choice(_RANDOM_PASSWORD_ALPHABET) for _ in range(length))


def create_access_token(claims: dict[str, Any], expires_minutes: int | None = None) -> str:
    """Create a signed JWT carrying `claims`.

    The user id is mirrored into the registered `sub` claim as a string.
    """
    to_encode: dict[str, Any] = dict(claims)
    if "id" in to_encode and "sub" not in to_encode:
        to_encode["sub"] = str(to_encode["id"])
    minutes = expires_minutes if expires_minutes is not None else settings.access_token_expire_minutes
    to_encode["exp"] = datetime.now(UTC) + timedelta(minutes=minutes)
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Return the token payload, or None if the signature or expiry is invalid."""
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        return None
    return payload
