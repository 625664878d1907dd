"""Signed access and refresh tokens (HS256 JWTs)."""

import time
import uuid

from jose import JWTError, jwt

from vortexstream.config import Settings
from vortexstream.db.models import User

ALGORITHM = "HS256"


def create_access_token(settings: Settings, user: User) -> str:
    """Create a short-lived token carrying the user's identity claims."""
    now = int(time.time())
    payload = {
        "sub": user.id,
        "email": user.email,
        "username": user.username,
        "full_name": user.full_name,
        "iat": now,
        "exp": now + settings.access_token_ttl_seconds,
    }
    return jwt.encode(payload, settings.access_token_secret, algorithm=ALGORITHM)


def create_refresh_token(settings: Settings, user: User) -> str:
    """Create a long-lived token; ``jti`` makes every issued token distinct."""
    now = int(time.time())
    payload = {
        "sub": user.id,
        "iat": now,
        "exp": now + settings.refresh_token_ttl_seconds,
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(payload, settings.refresh_token_secret, algorithm=ALGORITHM)


def _subject(token: str, secret: str) -> str | None:
    try:
        payload = jwt.decode(token, secret, algorithms=[ALGORITHM])
    except JWTError:
        return None
    return payload.get("sub")


def verify_access_token(settings: Settings, token: str) -> str | None:
    """Return the user id of a valid access token, or None."""
    return _subject(token, settings.access_token_secret)


def verify_refresh_token(settings: Settings, token: str) -> str | None:
    """Return the user id of a valid refresh token, or None."""
    return _subject(token, settings.refresh_token_secret)
