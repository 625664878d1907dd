"""Like toggles and the liked-videos list."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from vortexstream.api.dependencies import Pagination, get_pagination
from vortexstream.auth.dependencies import require_user
from vortexstream.db.models import User
from vortexstream.db.session import get_session
from vortexstream.errors import respond
from vortexstream.readmodel import assembler
from vortexstream.services.likes import toggle_like

router = APIRouter(prefix="/api/v1/likes", tags=["likes"])


def _toggled(liked: bool):
    message = "Liked successfully" if liked else "Unliked successfully"
    return respond(status.HTTP_200_OK, message, {"isLiked": liked})


@router.post("/toggle/v/{video_id}")
async def toggle_video_like(
    video_id: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    return _toggled(await toggle_like(db, user, "video", video_id))


@router.post("/toggle/c/{comment_id}")
async def toggle_comment_like(
    comment_id: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    return _toggled(await toggle_like(db, user, "comment", comment_id))


@router.post("/toggle/t/{tweet_id}")
async def toggle_tweet_like(
    tweet_id: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    return _toggled(await toggle_like(db, user, "tweet", tweet_id))


@router.get("/videos")
async def liked_videos(
    pagination: Pagination = Depends(get_pagination),
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    page = await assembler.liked_videos(db, user.id, pagination.page, pagination.limit)
    return respond(status.HTTP_200_OK, "Liked videos fetched successfully", page)
