"""Subscription toggle and subscriber/subscription lists."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from vortexstream.api.dependencies import Pagination, get_pagination
from vortexstream.auth.dependencies import require_user
from vortexstream.db.models import User
from vortexstream.db.session import get_session
from vortexstream.errors import respond
from vortexstream.readmodel import assembler
from vortexstream.services.subscriptions import toggle_subscription

router = APIRouter(prefix="/api/v1/subscriptions", tags=["subscriptions"])


@router.post("/c/{channel_id}")
async def toggle_channel_subscription(
    channel_id: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    subscribed = await toggle_subscription(db, user, channel_id)
    message = "Subscribed successfully" if subscribed else "Unsubscribed successfully"
    return respond(status.HTTP_200_OK, message, {"subscribed": subscribed})


@router.get("/c/{channel_id}")
async def channel_subscribers(
    channel_id: str,
    pagination: Pagination = Depends(get_pagination),
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    """Subscribers of a channel, with whether the channel subscribes back."""
    page = await assembler.channel_subscribers(
        db, channel_id, pagination.page, pagination.limit
    )
    return respond(status.HTTP_200_OK, "Subscribers fetched successfully", page)


@router.get("/u/{subscriber_id}")
async def subscribed_channels(
    subscriber_id: str,
    pagination: Pagination = Depends(get_pagination),
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    """Channels a user follows, each with its latest published video."""
    page = await assembler.subscribed_channels(
        db, subscriber_id, pagination.page, pagination.limit
    )
    return respond(status.HTTP_200_OK, "Subscribed channels fetched successfully", page)
