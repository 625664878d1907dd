"""Comment endpoints."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from vortexstream.api.dependencies import CamelModel, Pagination, get_pagination
from vortexstream.auth.dependencies import require_user
from vortexstream.db.models import Comment, User
from vortexstream.db.session import get_session
from vortexstream.errors import respond
from vortexstream.readmodel import assembler
from vortexstream.readmodel.views import CommentView
from vortexstream.services import comments as comment_service

router = APIRouter(prefix="/api/v1/comments", tags=["comments"])


class CommentRequest(CamelModel):
    content: str | None = None


def _view(comment: Comment) -> CommentView:
    return CommentView.model_validate(comment, from_attributes=True)


@router.get("/{video_id}")
async def video_comments(
    video_id: str,
    pagination: Pagination = Depends(get_pagination),
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    page = await assembler.video_comments(
        db, video_id, user.id, pagination.page, pagination.limit
    )
    return respond(status.HTTP_200_OK, "Comments fetched successfully", page)


@router.post("/{video_id}", status_code=status.HTTP_201_CREATED)
async def add_comment(
    video_id: str,
    body: CommentRequest,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    comment = await comment_service.add_comment(db, user, video_id, body.content or "")
    return respond(status.HTTP_201_CREATED, "Comment added successfully", _view(comment))


@router.patch("/c/{comment_id}")
async def update_comment(
    comment_id: str,
    body: CommentRequest,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    comment = await comment_service.update_comment(db, user, comment_id, body.content or "")
    return respond(status.HTTP_200_OK, "Comment updated successfully", _view(comment))


@router.delete("/c/{comment_id}")
async def delete_comment(
    comment_id: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    await comment_service.delete_comment(db, user, comment_id)
    return respond(status.HTTP_200_OK, "Comment deleted successfully", {})
