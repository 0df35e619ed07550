"""
JWT Service — token generation and verification for the admin endpoints.

Access token lifetime: 1 hour (configurable via JWT_ACCESS_EXPIRES)
Algorithm:             HS256

Token payload:
{
    "sub": <user_id>,
    "role": "admin" | "user" | "supervisor",
    "iat": <issued_at>,
    "exp": <expires_at>,
    "jti": <unique_id>
}
"""

import uuid
from datetime import datetime, timedelta, timezone

import jwt
from flask import current_app

DEFAULT_ACCESS_EXPIRES = 3600
ALGORITHM = "HS256"


def _get_secret():
    """Get the JWT secret key from app config."""
    return current_app.config.get("JWT_SECRET_KEY") or current_app.config["SECRET_KEY"]


def _get_access_expires():
    return current_app.config.get("JWT_ACCESS_EXPIRES", DEFAULT_ACCESS_EXPIRES)


def generate_access_token(user_id: str, role: str = "user", expires_in: int | None = None) -> str:
    now = datetime.now(timezone.utc)
    seconds = _get_access_expires() if expires_in is None else expires_in
    payload = {
        "sub": str(user_id),
        "role": role,
        "iat": now,
        "exp": now + timedelta(seconds=seconds),
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(payload, _get_secret(), algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """
    Decode and verify a token.

    Raises jwt.exceptions on failure (ExpiredSignatureError, InvalidTokenError, etc.)
    """
    return jwt.decode(token, _get_secret(), algorithms=[ALGORITHM])
