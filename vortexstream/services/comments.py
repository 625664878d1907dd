"""Comment mutations."""

from sqlalchemy.ext.asyncio import AsyncSession

from vortexstream.db import crud
from vortexstream.db.models import Comment, User
from vortexstream.errors import NotFound
from vortexstream.services.ownership import ensure_owner
from vortexstream.validation import parse_id, require_text

MAX_COMMENT_LENGTH = 500


async def add_comment(db: AsyncSession, user: User, video_id: str, content: str) -> Comment:
    content = require_text(content, "content", max_length=MAX_COMMENT_LENGTH)
    video = await crud.get_video(db, parse_id(video_id, "videoId"))
    if video is None or (not video.is_published and video.owner_id != user.id):
        raise NotFound("Video not found")
    return await crud.create_comment(db, video_id=video.id, owner_id=user.id, content=content)


async def _owned_comment(db: AsyncSession, user: User, comment_id: str, action: str) -> Comment:
    comment = await crud.get_comment(db, parse_id(comment_id, "commentId"))
    if comment is None:
        raise NotFound("Comment not found")
    ensure_owner(comment, user.id, action)
    return comment


async def update_comment(
    db: AsyncSession, user: User, comment_id: str, content: str
) -> Comment:
    content = require_text(content, "content", max_length=MAX_COMMENT_LENGTH)
    comment = await _owned_comment(db, user, comment_id, "update")
    comment.content = content
    return await crud.save(db, comment)


async def delete_comment(db: AsyncSession, user: User, comment_id: str) -> None:
    """Delete a comment together with its likes."""
    comment = await _owned_comment(db, user, comment_id, "delete")
    await crud.delete_comment_cascade(db, comment)
