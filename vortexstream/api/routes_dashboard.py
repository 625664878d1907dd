"""Channel dashboard for the authenticated owner."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from vortexstream.api.dependencies import Pagination, get_pagination
from vortexstream.auth.dependencies import require_user
from vortexstream.db.models import User
from vortexstream.db.session import get_session
from vortexstream.errors import respond
from vortexstream.readmodel import assembler

router = APIRouter(prefix="/api/v1/dashboard", tags=["dashboard"])


@router.get("/stats")
async def channel_stats(
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    """Totals across the caller's channel: subscribers, likes, views, videos."""
    stats = await assembler.channel_stats(db, user.id)
    return respond(status.HTTP_200_OK, "Channel stats fetched successfully", stats)


@router.get("/videos")
async def channel_videos(
    pagination: Pagination = Depends(get_pagination),
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    """All of the caller's videos, published or not, with like counts."""
    page = await assembler.channel_videos(db, user.id, pagination.page, pagination.limit)
    return respond(status.HTTP_200_OK, "Channel videos fetched successfully", page)
