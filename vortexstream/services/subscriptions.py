"""Subscription toggling."""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from vortexstream.db import crud
from vortexstream.db.models import User
from vortexstream.errors import InvalidArgument, NotFound
from vortexstream.validation import parse_id

logger = logging.getLogger(__name__)


async def toggle_subscription(db: AsyncSession, subscriber: User, channel_id: str) -> bool:
    """Subscribe to or unsubscribe from a channel.

    Returns:
        True if now subscribed, False if the subscription was removed
    """
    cid = parse_id(channel_id, "channelId")
    subscriber_id = subscriber.id
    if cid == subscriber_id:
        raise InvalidArgument("You cannot subscribe to your own channel")
    if await crud.get_user_by_id(db, cid) is None:
        raise NotFound("Channel does not exist")

    existing = await crud.find_subscription(db, subscriber_id, cid)
    if existing is not None:
        await crud.delete_row(db, existing)
        return False

    try:
        await crud.create_subscription(db, subscriber_id, cid)
    except IntegrityError:
        await db.rollback()
        logger.info(f"Concurrent subscription to {cid} by user_id={subscriber_id}")
    return True
