"""Like toggling for videos, comments and tweets."""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from vortexstream.db import crud
from vortexstream.db.crud import LikeSubject
from vortexstream.db.models import User
from vortexstream.errors import NotFound
from vortexstream.validation import parse_id

logger = logging.getLogger(__name__)

_GETTERS = {
    "video": crud.get_video,
    "comment": crud.get_comment,
    "tweet": crud.get_tweet,
}


async def toggle_like(
    db: AsyncSession, user: User, subject: LikeSubject, subject_id: str
) -> bool:
    """Like the subject if the user hasn't yet, otherwise remove the like.

    Returns:
        True if the subject is now liked by the user, False otherwise
    """
    sid = parse_id(subject_id, f"{subject}Id")
    user_id = user.id
    target = await _GETTERS[subject](db, sid)
    if target is None:
        raise NotFound(f"{subject.capitalize()} not found")
    if subject == "video" and not target.is_published and target.owner_id != user_id:
        raise NotFound("Video not found")

    existing = await crud.find_like(db, subject, sid, user_id)
    if existing is not None:
        await crud.delete_row(db, existing)
        return False

    try:
        await crud.create_like(db, subject, sid, user_id)
    except IntegrityError:
        # A concurrent toggle inserted the same like first
        await db.rollback()
        logger.info(f"Concurrent like on {subject} {sid} by user_id={user_id}")
    return True
