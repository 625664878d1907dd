"""Tweet mutations."""

from sqlalchemy.ext.asyncio import AsyncSession

from vortexstream.db import crud
from vortexstream.db.models import Tweet, User
from vortexstream.errors import NotFound
from vortexstream.services.ownership import ensure_owner
from vortexstream.validation import parse_id, require_text

MAX_TWEET_LENGTH = 280


async def create_tweet(db: AsyncSession, user: User, content: str) -> Tweet:
    content = require_text(content, "content", max_length=MAX_TWEET_LENGTH)
    return await crud.create_tweet(db, owner_id=user.id, content=content)


async def _owned_tweet(db: AsyncSession, user: User, tweet_id: str, action: str) -> Tweet:
    tweet = await crud.get_tweet(db, parse_id(tweet_id, "tweetId"))
    if tweet is None:
        raise NotFound("Tweet not found")
    ensure_owner(tweet, user.id, action)
    return tweet


async def update_tweet(db: AsyncSession, user: User, tweet_id: str, content: str) -> Tweet:
    content = require_text(content, "content", max_length=MAX_TWEET_LENGTH)
    tweet = await _owned_tweet(db, user, tweet_id, "update")
    tweet.content = content
    return await crud.save(db, tweet)


async def delete_tweet(db: AsyncSession, user: User, tweet_id: str) -> None:
    tweet = await _owned_tweet(db, user, tweet_id, "delete")
    await crud.delete_tweet_cascade(db, tweet)
