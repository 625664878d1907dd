"""Video endpoints: feed, detail, publish, update, delete."""

from typing import Annotated, Literal

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from vortexstream.api.dependencies import (
    Pagination,
    get_media_client,
    get_pagination,
    get_upload_stager,
)
from vortexstream.auth.dependencies import optional_user, require_user
from vortexstream.db.models import User, Video
from vortexstream.db.session import get_session
from vortexstream.errors import respond
from vortexstream.media import MediaHostClient, UploadStager
from vortexstream.readmodel import assembler
from vortexstream.readmodel.views import VideoCard
from vortexstream.services import videos as video_service

router = APIRouter(prefix="/api/v1/videos", tags=["videos"])


def _card(video: Video) -> VideoCard:
    return VideoCard.model_validate(video, from_attributes=True)


@router.get("")
async def video_feed(
    query: str | None = Query(default=None, description="Search title and description"),
    user_id: str | None = Query(default=None, alias="userId"),
    sort_by: Literal["views", "createdAt", "duration"] | None = Query(
        default=None, alias="sortBy"
    ),
    sort_type: Literal["asc", "desc"] | None = Query(default=None, alias="sortType"),
    pagination: Pagination = Depends(get_pagination),
    user: User | None = Depends(optional_user),
    db: AsyncSession = Depends(get_session),
):
    """
    List published videos, newest activity first.

    ``sortBy``/``sortType`` override the default order only when both are
    given. Anonymous callers are allowed.
    """
    page = await assembler.video_feed(
        db,
        query=query,
        user_id=user_id,
        sort_by=sort_by,
        sort_type=sort_type,
        page=pagination.page,
        limit=pagination.limit,
        viewer_id=user.id if user else None,
    )
    return respond(status.HTTP_200_OK, "Videos fetched successfully", page)


@router.post("", status_code=status.HTTP_201_CREATED)
async def publish_video(
    title: Annotated[str | None, Form()] = None,
    description: Annotated[str | None, Form()] = None,
    video_file: Annotated[UploadFile | None, File(alias="videoFile")] = None,
    thumbnail: Annotated[UploadFile | None, File()] = None,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
    media: MediaHostClient = Depends(get_media_client),
    stager: UploadStager = Depends(get_upload_stager),
):
    video = await video_service.publish_video(
        db,
        media,
        stager,
        user,
        title=title or "",
        description=description or "",
        video_file=video_file,
        thumbnail=thumbnail,
    )
    return respond(status.HTTP_201_CREATED, "Video published successfully", _card(video))


@router.get("/{video_id}")
async def video_detail(
    video_id: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    """Fetch a video; counts this as a view and records it in watch history."""
    detail = await assembler.video_detail(db, video_id, user.id)
    return respond(status.HTTP_200_OK, "Video fetched successfully", detail)


@router.patch("/{video_id}")
async def update_video(
    video_id: str,
    title: Annotated[str | None, Form()] = None,
    description: Annotated[str | None, Form()] = None,
    thumbnail: Annotated[UploadFile | None, File()] = None,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
    media: MediaHostClient = Depends(get_media_client),
    stager: UploadStager = Depends(get_upload_stager),
):
    video = await video_service.update_video(
        db,
        media,
        stager,
        user,
        video_id,
        title=title,
        description=description,
        thumbnail=thumbnail,
    )
    return respond(status.HTTP_200_OK, "Video updated successfully", _card(video))


@router.delete("/{video_id}")
async def delete_video(
    video_id: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
    media: MediaHostClient = Depends(get_media_client),
):
    await video_service.delete_video(db, media, user, video_id)
    return respond(status.HTTP_200_OK, "Video deleted successfully", {})


@router.patch("/toggle/publish/{video_id}")
async def toggle_publish(
    video_id: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    video = await video_service.toggle_publish(db, user, video_id)
    return respond(
        status.HTTP_200_OK,
        "Publish status toggled successfully",
        {"isPublished": video.is_published},
    )
