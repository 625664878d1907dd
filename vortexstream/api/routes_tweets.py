"""Tweet endpoints."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from vortexstream.api.dependencies import CamelModel, Pagination, get_pagination
from vortexstream.auth.dependencies import require_user
from vortexstream.db.models import Tweet, User
from vortexstream.db.session import get_session
from vortexstream.errors import respond
from vortexstream.readmodel import assembler
from vortexstream.readmodel.views import TweetView
from vortexstream.services import tweets as tweet_service

router = APIRouter(prefix="/api/v1/tweets", tags=["tweets"])


class TweetRequest(CamelModel):
    content: str | None = None


def _view(tweet: Tweet) -> TweetView:
    return TweetView.model_validate(tweet, from_attributes=True)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_tweet(
    body: TweetRequest,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    tweet = await tweet_service.create_tweet(db, user, body.content or "")
    return respond(status.HTTP_201_CREATED, "Tweet created successfully", _view(tweet))


@router.get("/user/{user_id}")
async def user_tweets(
    user_id: str,
    pagination: Pagination = Depends(get_pagination),
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    page = await assembler.user_tweets(db, user_id, user.id, pagination.page, pagination.limit)
    return respond(status.HTTP_200_OK, "Tweets fetched successfully", page)


@router.patch("/{tweet_id}")
async def update_tweet(
    tweet_id: str,
    body: TweetRequest,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    tweet = await tweet_service.update_tweet(db, user, tweet_id, body.content or "")
    return respond(status.HTTP_200_OK, "Tweet updated successfully", _view(tweet))


@router.delete("/{tweet_id}")
async def delete_tweet(
    tweet_id: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    await tweet_service.delete_tweet(db, user, tweet_id)
    return respond(status.HTTP_200_OK, "Tweet deleted successfully", {})
