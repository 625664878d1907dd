"""Account operations: registration, sessions, profile and asset updates."""

import logging
from dataclasses import dataclass

from fastapi import UploadFile
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from vortexstream.auth.security import (
    MIN_PASSWORD_LENGTH,
    decrypt_refresh_token,
    encrypt_refresh_token,
    hash_password,
    tokens_match,
    validate_encryption_key,
    verify_password,
)
from vortexstream.auth.tokens import (
    create_access_token,
    create_refresh_token,
    verify_refresh_token,
)
from vortexstream.config import Settings
from vortexstream.db import crud
from vortexstream.db.models import User
from vortexstream.errors import Conflict, InternalError, InvalidArgument, NotFound, Unauthorized
from vortexstream.media import MediaHostClient, UploadStager
from vortexstream.validation import require_text

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


def _encryption_key(settings: Settings) -> bytes:
    try:
        return validate_encryption_key(settings.token_enc_key)
    except ValueError:
        logger.error("Invalid encryption key configuration", exc_info=True)
        raise InternalError("Service configuration error")


def _check_email(email: str) -> str:
    email = require_text(email, "email").lower()
    local, _, domain = email.partition("@")
    if not local or "." not in domain:
        raise InvalidArgument("email is invalid")
    return email


def _check_password(password: str | None, name: str = "password") -> str:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise InvalidArgument(f"{name} must be at least {MIN_PASSWORD_LENGTH} characters")
    return password


async def register_user(
    db: AsyncSession,
    media: MediaHostClient,
    stager: UploadStager,
    *,
    full_name: str,
    email: str,
    username: str,
    password: str,
    avatar: UploadFile | None,
    cover_image: UploadFile | None = None,
) -> User:
    """Create an account. The avatar is required, the cover image optional.

    Raises:
        InvalidArgument: Missing/invalid fields or files
        Conflict: Username or email already taken
    """
    full_name = require_text(full_name, "fullName")
    email = _check_email(email)
    username = require_text(username, "username").lower()
    password = _check_password(password)

    if await crud.find_user_by_username_or_email(db, username=username, email=email):
        raise Conflict("User with email or username already exists")
    if avatar is None:
        raise InvalidArgument("Avatar file is required")

    avatar_asset = await stager.stage_and_upload(avatar, "image", "avatar", media)
    cover_asset = None
    if cover_image is not None:
        try:
            cover_asset = await stager.stage_and_upload(
                cover_image, "image", "coverImage", media
            )
        except Exception:
            await media.destroy(avatar_asset.public_id)
            raise

    try:
        user = await crud.create_user(
            db,
            username=username,
            email=email,
            password_hash=hash_password(password),
            full_name=full_name,
            avatar_public_id=avatar_asset.public_id,
            avatar=avatar_asset.url,
            cover_image_public_id=cover_asset.public_id if cover_asset else None,
            cover_image=cover_asset.url if cover_asset else None,
        )
    except IntegrityError:
        await db.rollback()
        await media.destroy(avatar_asset.public_id)
        if cover_asset:
            await media.destroy(cover_asset.public_id)
        raise Conflict("User with email or username already exists")

    logger.info(f"User registered: user_id={user.id}")
    return user


async def issue_tokens(db: AsyncSession, settings: Settings, user: User) -> TokenPair:
    """Create a token pair and store the encrypted refresh token on the user."""
    pair = TokenPair(
        access_token=create_access_token(settings, user),
        refresh_token=create_refresh_token(settings, user),
    )
    user.refresh_token_enc = encrypt_refresh_token(
        _encryption_key(settings), pair.refresh_token
    )
    await crud.save(db, user)
    return pair


async def login_user(
    db: AsyncSession,
    settings: Settings,
    *,
    username: str | None,
    email: str | None,
    password: str | None,
) -> tuple[User, TokenPair]:
    if not username and not email:
        raise InvalidArgument("username or email is required")
    if not password:
        raise InvalidArgument("password is required")

    user = await crud.find_user_by_username_or_email(
        db, username=(username or "").strip() or None, email=(email or "").strip() or None
    )
    if user is None:
        raise NotFound("User does not exist")
    if not verify_password(password, user.password_hash):
        raise Unauthorized("Invalid user credentials")

    return user, await issue_tokens(db, settings, user)


async def logout_user(db: AsyncSession, user: User) -> None:
    user.refresh_token_enc = None
    await crud.save(db, user)


async def refresh_session(
    db: AsyncSession, settings: Settings, incoming: str | None
) -> TokenPair:
    """Exchange a refresh token for a new pair, rotating the stored one.

    Only the most recently issued refresh token is accepted.
    """
    if not incoming:
        raise Unauthorized("Unauthorized request")

    user_id = verify_refresh_token(settings, incoming)
    if not user_id:
        raise Unauthorized("Invalid refresh token")

    user = await crud.get_user_by_id(db, user_id)
    if user is None or user.refresh_token_enc is None:
        raise Unauthorized("Invalid refresh token")

    try:
        stored = decrypt_refresh_token(_encryption_key(settings), user.refresh_token_enc)
    except InternalError:
        raise
    except Exception:
        logger.error("Failed to decrypt refresh token", exc_info=True)
        raise Unauthorized("Invalid refresh token")

    if not tokens_match(incoming, stored):
        logger.info(f"Rejected stale refresh token: user_id={user.id}")
        raise Unauthorized("Refresh token is expired or used")

    return await issue_tokens(db, settings, user)


async def change_password(
    db: AsyncSession, user: User, old_password: str | None, new_password: str | None
) -> None:
    if not old_password or not verify_password(old_password, user.password_hash):
        raise InvalidArgument("Invalid old password")
    user.password_hash = hash_password(_check_password(new_password, "newPassword"))
    await crud.save(db, user)
    logger.info(f"Password changed: user_id={user.id}")


async def update_account(
    db: AsyncSession, user: User, full_name: str | None, email: str | None
) -> User:
    """Update the full name and email. Email must stay unique."""
    full_name = require_text(full_name, "fullName")
    email = _check_email(email or "")

    if email != user.email:
        other = await crud.find_user_by_username_or_email(db, email=email)
        if other is not None and other.id != user.id:
            raise Conflict("Email is already in use")

    user.full_name = full_name
    user.email = email
    try:
        return await crud.save(db, user)
    except IntegrityError:
        await db.rollback()
        raise Conflict("Email is already in use")


async def _replace_image(
    db: AsyncSession,
    media: MediaHostClient,
    stager: UploadStager,
    user: User,
    upload: UploadFile | None,
    attr: str,
    field: str,
) -> User:
    # Upload new, persist, then delete old; never delete before the upload succeeds
    if upload is None:
        raise InvalidArgument(f"{field} file is missing")
    asset = await stager.stage_and_upload(upload, "image", field, media)
    old_public_id = getattr(user, f"{attr}_public_id")

    setattr(user, attr, asset.url)
    setattr(user, f"{attr}_public_id", asset.public_id)
    user = await crud.save(db, user)

    if old_public_id:
        await media.destroy(old_public_id)
    return user


async def update_avatar(
    db: AsyncSession,
    media: MediaHostClient,
    stager: UploadStager,
    user: User,
    avatar: UploadFile | None,
) -> User:
    return await _replace_image(db, media, stager, user, avatar, "avatar", "avatar")


async def update_cover_image(
    db: AsyncSession,
    media: MediaHostClient,
    stager: UploadStager,
    user: User,
    cover_image: UploadFile | None,
) -> User:
    return await _replace_image(
        db, media, stager, user, cover_image, "cover_image", "coverImage"
    )
