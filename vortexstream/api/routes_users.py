"""User account and channel endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Cookie, Depends, File, Form, Request, UploadFile, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from vortexstream.api.dependencies import (
    CamelModel,
    Pagination,
    get_media_client,
    get_pagination,
    get_upload_stager,
)
from vortexstream.auth.dependencies import (
    ACCESS_COOKIE,
    REFRESH_COOKIE,
    client_ip,
    require_user,
)
from vortexstream.config import Settings, get_settings
from vortexstream.db.models import User
from vortexstream.db.session import get_session
from vortexstream.errors import respond
from vortexstream.media import MediaHostClient, UploadStager
from vortexstream.readmodel import assembler
from vortexstream.readmodel.views import PublicUser
from vortexstream.services import users as user_service
from vortexstream.services.users import TokenPair

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/users", tags=["users"])


class LoginRequest(CamelModel):
    username: str | None = None
    email: str | None = None
    password: str | None = None


class RefreshRequest(CamelModel):
    refresh_token: str | None = None


class ChangePasswordRequest(CamelModel):
    old_password: str | None = None
    new_password: str | None = None


class UpdateAccountRequest(CamelModel):
    full_name: str | None = None
    email: str | None = None


def _public(user: User) -> PublicUser:
    return PublicUser.model_validate(user, from_attributes=True)


def _set_session_cookies(response: JSONResponse, settings: Settings, tokens: TokenPair) -> None:
    secure = settings.env == "prod"
    response.set_cookie(
        key=ACCESS_COOKIE,
        value=tokens.access_token,
        httponly=True,
        samesite="lax",
        secure=secure,
        max_age=settings.access_token_ttl_seconds,
    )
    response.set_cookie(
        key=REFRESH_COOKIE,
        value=tokens.refresh_token,
        httponly=True,
        samesite="lax",
        secure=secure,
        max_age=settings.refresh_token_ttl_seconds,
    )


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    full_name: Annotated[str | None, Form(alias="fullName")] = None,
    email: Annotated[str | None, Form()] = None,
    username: Annotated[str | None, Form()] = None,
    password: Annotated[str | None, Form()] = None,
    avatar: Annotated[UploadFile | None, File()] = None,
    cover_image: Annotated[UploadFile | None, File(alias="coverImage")] = None,
    db: AsyncSession = Depends(get_session),
    media: MediaHostClient = Depends(get_media_client),
    stager: UploadStager = Depends(get_upload_stager),
):
    """
    Register a new account (multipart form).

    The ``avatar`` image is required; ``coverImage`` is optional. The response
    never includes the password hash or refresh token.
    """
    user = await user_service.register_user(
        db,
        media,
        stager,
        full_name=full_name or "",
        email=email or "",
        username=username or "",
        password=password or "",
        avatar=avatar,
        cover_image=cover_image,
    )
    return respond(status.HTTP_201_CREATED, "User registered successfully", _public(user))


@router.post("/login")
async def login(
    request: Request,
    body: LoginRequest,
    db: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    """Log in by username or email; sets the session cookies."""
    user, tokens = await user_service.login_user(
        db, settings, username=body.username, email=body.email, password=body.password
    )
    logger.info(f"User logged in: user_id={user.id}, ip={client_ip(request)}")

    response = respond(
        status.HTTP_200_OK,
        "User logged in successfully",
        {
            "user": _public(user),
            "accessToken": tokens.access_token,
            "refreshToken": tokens.refresh_token,
        },
    )
    _set_session_cookies(response, settings, tokens)
    return response


@router.post("/logout")
async def logout(
    request: Request,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    """Invalidate the stored refresh token and clear the session cookies."""
    await user_service.logout_user(db, user)
    logger.info(f"User logged out: user_id={user.id}, ip={client_ip(request)}")

    response = respond(status.HTTP_200_OK, "User logged out", {})
    response.delete_cookie(key=ACCESS_COOKIE, httponly=True, samesite="lax")
    response.delete_cookie(key=REFRESH_COOKIE, httponly=True, samesite="lax")
    return response


@router.post("/refresh-token")
async def refresh_token(
    request: Request,
    body: RefreshRequest | None = None,
    refresh_cookie: Annotated[str | None, Cookie(alias=REFRESH_COOKIE)] = None,
    db: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    """Rotate the refresh token (from cookie or body) and issue a new access token."""
    incoming = refresh_cookie or (body.refresh_token if body else None)
    tokens = await user_service.refresh_session(db, settings, incoming)

    response = respond(
        status.HTTP_200_OK,
        "Access token refreshed",
        {"accessToken": tokens.access_token, "refreshToken": tokens.refresh_token},
    )
    _set_session_cookies(response, settings, tokens)
    return response


@router.get("/current-user")
async def current_user(user: User = Depends(require_user)):
    return respond(status.HTTP_200_OK, "Current user fetched successfully", _public(user))


@router.patch("/change-password")
async def change_password(
    body: ChangePasswordRequest,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    await user_service.change_password(db, user, body.old_password, body.new_password)
    return respond(status.HTTP_200_OK, "Password changed successfully", {})


@router.patch("/update-account")
async def update_account(
    body: UpdateAccountRequest,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    user = await user_service.update_account(db, user, body.full_name, body.email)
    return respond(status.HTTP_200_OK, "Account details updated successfully", _public(user))


@router.patch("/avatar")
async def update_avatar(
    avatar: Annotated[UploadFile | None, File()] = None,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
    media: MediaHostClient = Depends(get_media_client),
    stager: UploadStager = Depends(get_upload_stager),
):
    user = await user_service.update_avatar(db, media, stager, user, avatar)
    return respond(status.HTTP_200_OK, "Avatar updated successfully", _public(user))


@router.patch("/cover-image")
async def update_cover_image(
    cover_image: Annotated[UploadFile | None, File(alias="coverImage")] = None,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
    media: MediaHostClient = Depends(get_media_client),
    stager: UploadStager = Depends(get_upload_stager),
):
    user = await user_service.update_cover_image(db, media, stager, user, cover_image)
    return respond(status.HTTP_200_OK, "Cover image updated successfully", _public(user))


@router.get("/c/{username}")
async def channel_profile(
    username: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    profile = await assembler.channel_profile(db, username, user.id)
    return respond(status.HTTP_200_OK, "User channel fetched successfully", profile)


@router.get("/history")
async def watch_history(
    pagination: Pagination = Depends(get_pagination),
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    page = await assembler.watch_history(db, user.id, pagination.page, pagination.limit)
    return respond(status.HTTP_200_OK, "Watch history fetched successfully", page)
