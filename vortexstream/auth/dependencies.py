"""FastAPI dependencies resolving the requesting user from its access token."""

import logging
from typing import Annotated

from fastapi import Cookie, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from vortexstream.auth.tokens import verify_access_token
from vortexstream.config import Settings, get_settings
from vortexstream.db import crud
from vortexstream.db.models import User
from vortexstream.db.session import get_session
from vortexstream.errors import Unauthorized

logger = logging.getLogger(__name__)

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"


def bearer_token(request: Request) -> str | None:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


async def optional_user(
    request: Request,
    access_cookie: Annotated[str | None, Cookie(alias=ACCESS_COOKIE)] = None,
    db: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> User | None:
    """
    Resolve the caller from the access token, if one was sent.

    The token is read from the ``accessToken`` cookie or an
    ``Authorization: Bearer`` header.

    Returns:
        The authenticated User, or None for anonymous callers

    Raises:
        Unauthorized: A token was sent but is invalid, expired, or its user is gone
    """
    token = access_cookie or bearer_token(request)
    if not token:
        return None

    user_id = verify_access_token(settings, token)
    if not user_id:
        logger.info(f"Rejected invalid access token from ip={client_ip(request)}")
        raise Unauthorized("Invalid access token")

    user = await crud.get_user_by_id(db, user_id)
    if user is None:
        raise Unauthorized("Invalid access token")
    return user


async def require_user(user: User | None = Depends(optional_user)) -> User:
    """FastAPI dependency that requires an authenticated user."""
    if user is None:
        raise Unauthorized("Unauthorized request")
    return user
