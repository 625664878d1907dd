"""Playlist endpoints."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from vortexstream.api.dependencies import CamelModel, Pagination, get_pagination
from vortexstream.auth.dependencies import require_user
from vortexstream.db.models import User
from vortexstream.db.session import get_session
from vortexstream.errors import respond
from vortexstream.readmodel import assembler
from vortexstream.services import playlists as playlist_service

router = APIRouter(prefix="/api/v1/playlists", tags=["playlists"])


class PlaylistRequest(CamelModel):
    name: str | None = None
    description: str | None = None


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_playlist(
    body: PlaylistRequest,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    playlist = await playlist_service.create_playlist(
        db, user, body.name or "", body.description or ""
    )
    detail = await assembler.playlist_detail(db, playlist.id, user.id)
    return respond(status.HTTP_201_CREATED, "Playlist created successfully", detail)


@router.get("/user/{user_id}")
async def user_playlists(
    user_id: str,
    pagination: Pagination = Depends(get_pagination),
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    page = await assembler.user_playlists(
        db, user_id, user.id, pagination.page, pagination.limit
    )
    return respond(status.HTTP_200_OK, "User playlists fetched successfully", page)


@router.get("/{playlist_id}")
async def playlist_detail(
    playlist_id: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    detail = await assembler.playlist_detail(db, playlist_id, user.id)
    return respond(status.HTTP_200_OK, "Playlist fetched successfully", detail)


@router.patch("/{playlist_id}")
async def update_playlist(
    playlist_id: str,
    body: PlaylistRequest,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    playlist = await playlist_service.update_playlist(
        db, user, playlist_id, body.name, body.description
    )
    detail = await assembler.playlist_detail(db, playlist.id, user.id)
    return respond(status.HTTP_200_OK, "Playlist updated successfully", detail)


@router.delete("/{playlist_id}")
async def delete_playlist(
    playlist_id: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    await playlist_service.delete_playlist(db, user, playlist_id)
    return respond(status.HTTP_200_OK, "Playlist deleted successfully", {})


@router.patch("/add/{video_id}/{playlist_id}")
async def add_video_to_playlist(
    video_id: str,
    playlist_id: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    viewer_id = user.id
    await playlist_service.add_video(db, user, video_id, playlist_id)
    detail = await assembler.playlist_detail(db, playlist_id, viewer_id)
    return respond(status.HTTP_200_OK, "Video added to playlist", detail)


@router.patch("/remove/{video_id}/{playlist_id}")
async def remove_video_from_playlist(
    video_id: str,
    playlist_id: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    await playlist_service.remove_video(db, user, video_id, playlist_id)
    detail = await assembler.playlist_detail(db, playlist_id, user.id)
    return respond(status.HTTP_200_OK, "Video removed from playlist", detail)
