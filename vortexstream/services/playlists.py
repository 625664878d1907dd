"""Playlist mutations. Only the playlist's owner may change it."""

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from vortexstream.db import crud
from vortexstream.db.models import Playlist, User
from vortexstream.errors import InvalidArgument, NotFound
from vortexstream.services.ownership import ensure_owner
from vortexstream.validation import parse_id, require_text


async def create_playlist(
    db: AsyncSession, user: User, name: str, description: str
) -> Playlist:
    return await crud.create_playlist(
        db,
        owner_id=user.id,
        name=require_text(name, "name"),
        description=require_text(description, "description"),
    )


async def _owned_playlist(
    db: AsyncSession, user: User, playlist_id: str, action: str
) -> Playlist:
    playlist = await crud.get_playlist(db, parse_id(playlist_id, "playlistId"))
    if playlist is None:
        raise NotFound("Playlist not found")
    ensure_owner(playlist, user.id, action)
    return playlist


async def update_playlist(
    db: AsyncSession,
    user: User,
    playlist_id: str,
    name: str | None = None,
    description: str | None = None,
) -> Playlist:
    if name is None and description is None:
        raise InvalidArgument("Provide a name or description to update")
    playlist = await _owned_playlist(db, user, playlist_id, "update")
    if name is not None:
        playlist.name = require_text(name, "name")
    if description is not None:
        playlist.description = require_text(description, "description")
    return await crud.save(db, playlist)


async def delete_playlist(db: AsyncSession, user: User, playlist_id: str) -> None:
    playlist = await _owned_playlist(db, user, playlist_id, "delete")
    await crud.delete_playlist(db, playlist)


async def _visible_video_id(db: AsyncSession, user: User, video_id: str) -> str:
    video = await crud.get_video(db, parse_id(video_id, "videoId"))
    if video is None or (not video.is_published and video.owner_id != user.id):
        raise NotFound("Video not found")
    return video.id


async def add_video(
    db: AsyncSession, user: User, video_id: str, playlist_id: str
) -> None:
    """Append a video to the end of the playlist; adding twice is a no-op."""
    playlist = await _owned_playlist(db, user, playlist_id, "update")
    vid = await _visible_video_id(db, user, video_id)
    try:
        await crud.add_playlist_entry(db, playlist, vid)
    except IntegrityError:
        await db.rollback()


async def remove_video(
    db: AsyncSession, user: User, video_id: str, playlist_id: str
) -> None:
    """Remove a video from the playlist.

    The video need not be visible any more; entries for videos unpublished
    since they were added can still be removed.
    """
    playlist = await _owned_playlist(db, user, playlist_id, "update")
    await crud.remove_playlist_entry(db, playlist, parse_id(video_id, "videoId"))
