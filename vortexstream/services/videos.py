"""Video publishing, editing and deletion."""

import logging

from fastapi import UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from vortexstream.db import crud
from vortexstream.db.models import User, Video
from vortexstream.errors import InvalidArgument, NotFound
from vortexstream.media import MediaHostClient, UploadStager
from vortexstream.services.ownership import ensure_owner
from vortexstream.validation import parse_id, require_text

logger = logging.getLogger(__name__)

TITLE_MIN_LENGTH = 3
DESCRIPTION_MIN_LENGTH = 10


async def get_owned_video(db: AsyncSession, user: User, video_id: str, action: str) -> Video:
    video = await crud.get_video(db, parse_id(video_id, "videoId"))
    if video is None:
        raise NotFound("Video not found")
    ensure_owner(video, user.id, action)
    return video


async def publish_video(
    db: AsyncSession,
    media: MediaHostClient,
    stager: UploadStager,
    owner: User,
    *,
    title: str,
    description: str,
    video_file: UploadFile | None,
    thumbnail: UploadFile | None,
) -> Video:
    """Upload the video file and thumbnail and create a published video.

    The duration is taken from the media host's upload result.
    """
    title = require_text(title, "title", TITLE_MIN_LENGTH)
    description = require_text(description, "description", DESCRIPTION_MIN_LENGTH)
    if video_file is None:
        raise InvalidArgument("videoFile is required")
    if thumbnail is None:
        raise InvalidArgument("thumbnail is required")

    video_asset = await stager.stage_and_upload(video_file, "video", "videoFile", media)
    try:
        thumbnail_asset = await stager.stage_and_upload(
            thumbnail, "image", "thumbnail", media
        )
    except Exception:
        await media.destroy(video_asset.public_id, "video")
        raise

    video = await crud.create_video(
        db,
        owner_id=owner.id,
        title=title,
        description=description,
        video_file_public_id=video_asset.public_id,
        video_file=video_asset.url,
        thumbnail_public_id=thumbnail_asset.public_id,
        thumbnail=thumbnail_asset.url,
        duration=video_asset.duration,
        is_published=True,
    )
    logger.info(f"Video published: video_id={video.id}, owner_id={owner.id}")
    return video


async def update_video(
    db: AsyncSession,
    media: MediaHostClient,
    stager: UploadStager,
    user: User,
    video_id: str,
    *,
    title: str | None = None,
    description: str | None = None,
    thumbnail: UploadFile | None = None,
) -> Video:
    """Change title/description and optionally replace the thumbnail.

    A new thumbnail is uploaded and saved before the old one is deleted.
    """
    if title is None and description is None and thumbnail is None:
        raise InvalidArgument("Provide a title, description or thumbnail to update")

    video = await get_owned_video(db, user, video_id, "update")
    if title is not None:
        video.title = require_text(title, "title", TITLE_MIN_LENGTH)
    if description is not None:
        video.description = require_text(description, "description", DESCRIPTION_MIN_LENGTH)

    old_thumbnail = None
    if thumbnail is not None:
        asset = await stager.stage_and_upload(thumbnail, "image", "thumbnail", media)
        old_thumbnail = video.thumbnail_public_id
        video.thumbnail = asset.url
        video.thumbnail_public_id = asset.public_id

    video = await crud.save(db, video)
    if old_thumbnail:
        await media.destroy(old_thumbnail)
    return video


async def delete_video(
    db: AsyncSession, media: MediaHostClient, user: User, video_id: str
) -> None:
    """Delete a video and its dependents, then its media (best-effort)."""
    video = await get_owned_video(db, user, video_id, "delete")
    vid = video.id
    video_public_id = video.video_file_public_id
    thumbnail_public_id = video.thumbnail_public_id

    await crud.delete_video_cascade(db, video)
    logger.info(f"Video deleted with its likes and comments: video_id={vid}")

    await media.destroy(video_public_id, "video")
    await media.destroy(thumbnail_public_id)


async def toggle_publish(db: AsyncSession, user: User, video_id: str) -> Video:
    video = await get_owned_video(db, user, video_id, "update")
    video.is_published = not video.is_published
    return await crud.save(db, video)
