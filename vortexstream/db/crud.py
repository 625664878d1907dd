"""CRUD utilities for the identity, content and relationship stores."""

from datetime import datetime, timezone
from typing import Literal

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from vortexstream.db.models import (
    Comment,
    Like,
    Playlist,
    PlaylistEntry,
    Subscription,
    Tweet,
    User,
    Video,
    WatchHistoryEntry,
)

LikeSubject = Literal["video", "comment", "tweet"]

_LIKE_COLUMNS = {
    "video": Like.video_id,
    "comment": Like.comment_id,
    "tweet": Like.tweet_id,
}


# Identity store


async def get_user_by_id(db: AsyncSession, user_id: str) -> User | None:
    """Get a user by their ID."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_username(db: AsyncSession, username: str) -> User | None:
    result = await db.execute(select(User).where(User.username == username.lower()))
    return result.scalar_one_or_none()


async def find_user_by_username_or_email(
    db: AsyncSession, username: str | None = None, email: str | None = None
) -> User | None:
    """Find a user matching either the username or the email."""
    clauses = []
    if username:
        clauses.append(User.username == username.lower())
    if email:
        clauses.append(User.email == email.lower())
    if not clauses:
        return None
    result = await db.execute(select(User).where(or_(*clauses)).limit(1))
    return result.scalar_one_or_none()


async def create_user(
    db: AsyncSession,
    username: str,
    email: str,
    password_hash: str,
    full_name: str,
    avatar_public_id: str,
    avatar: str,
    cover_image_public_id: str | None = None,
    cover_image: str | None = None,
) -> User:
    """Create a new user."""
    user = User(
        username=username,
        email=email,
        password_hash=password_hash,
        full_name=full_name,
        avatar_public_id=avatar_public_id,
        avatar=avatar,
        cover_image_public_id=cover_image_public_id,
        cover_image=cover_image,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def save(db: AsyncSession, instance):
    """Commit pending attribute changes on ``instance`` and reload it."""
    db.add(instance)
    await db.commit()
    await db.refresh(instance)
    return instance


async def record_watch(db: AsyncSession, user_id: str, video_id: str) -> WatchHistoryEntry:
    """Add a video to a user's watch history (upsert).

    Re-watching a video refreshes ``watched_at`` instead of adding a row.
    """
    result = await db.execute(
        select(WatchHistoryEntry).where(
            WatchHistoryEntry.user_id == user_id,
            WatchHistoryEntry.video_id == video_id,
        )
    )
    entry = result.scalar_one_or_none()

    if entry:
        entry.watched_at = datetime.now(timezone.utc)
    else:
        entry = WatchHistoryEntry(user_id=user_id, video_id=video_id)
        db.add(entry)

    await db.commit()
    await db.refresh(entry)
    return entry


# Content store


async def get_video(db: AsyncSession, video_id: str) -> Video | None:
    result = await db.execute(select(Video).where(Video.id == video_id))
    return result.scalar_one_or_none()


async def create_video(db: AsyncSession, **fields) -> Video:
    video = Video(**fields)
    db.add(video)
    await db.commit()
    await db.refresh(video)
    return video


async def increment_video_views(db: AsyncSession, video_id: str) -> None:
    """Atomically bump a video's view counter by one."""
    await db.execute(
        update(Video)
        .where(Video.id == video_id)
        .values(views=Video.views + 1)
        .execution_options(synchronize_session=False)
    )
    await db.commit()


async def delete_video_cascade(db: AsyncSession, video: Video) -> None:
    """Delete a video together with everything that references it.

    Removes, in one transaction: likes on the video, likes on its comments,
    its comments, its playlist entries and watch-history rows.
    """
    comment_ids = select(Comment.id).where(Comment.video_id == video.id)
    await db.execute(
        delete(Like).where(
            or_(Like.video_id == video.id, Like.comment_id.in_(comment_ids))
        )
    )
    await db.execute(delete(Comment).where(Comment.video_id == video.id))
    await db.execute(delete(PlaylistEntry).where(PlaylistEntry.video_id == video.id))
    await db.execute(
        delete(WatchHistoryEntry).where(WatchHistoryEntry.video_id == video.id)
    )
    await db.delete(video)
    await db.commit()


async def get_comment(db: AsyncSession, comment_id: str) -> Comment | None:
    result = await db.execute(select(Comment).where(Comment.id == comment_id))
    return result.scalar_one_or_none()


async def create_comment(
    db: AsyncSession, video_id: str, owner_id: str, content: str
) -> Comment:
    comment = Comment(video_id=video_id, owner_id=owner_id, content=content)
    db.add(comment)
    await db.commit()
    await db.refresh(comment)
    return comment


async def delete_comment_cascade(db: AsyncSession, comment: Comment) -> None:
    """Delete a comment and its likes in one transaction."""
    await db.execute(delete(Like).where(Like.comment_id == comment.id))
    await db.delete(comment)
    await db.commit()


async def get_tweet(db: AsyncSession, tweet_id: str) -> Tweet | None:
    result = await db.execute(select(Tweet).where(Tweet.id == tweet_id))
    return result.scalar_one_or_none()


async def create_tweet(db: AsyncSession, owner_id: str, content: str) -> Tweet:
    tweet = Tweet(owner_id=owner_id, content=content)
    db.add(tweet)
    await db.commit()
    await db.refresh(tweet)
    return tweet


async def delete_tweet_cascade(db: AsyncSession, tweet: Tweet) -> None:
    """Delete a tweet and its likes in one transaction."""
    await db.execute(delete(Like).where(Like.tweet_id == tweet.id))
    await db.delete(tweet)
    await db.commit()


async def get_playlist(db: AsyncSession, playlist_id: str) -> Playlist | None:
    result = await db.execute(select(Playlist).where(Playlist.id == playlist_id))
    return result.scalar_one_or_none()


async def create_playlist(
    db: AsyncSession, owner_id: str, name: str, description: str
) -> Playlist:
    playlist = Playlist(owner_id=owner_id, name=name, description=description)
    db.add(playlist)
    await db.commit()
    await db.refresh(playlist)
    return playlist


async def delete_playlist(db: AsyncSession, playlist: Playlist) -> None:
    await db.execute(delete(PlaylistEntry).where(PlaylistEntry.playlist_id == playlist.id))
    await db.delete(playlist)
    await db.commit()


async def add_playlist_entry(db: AsyncSession, playlist: Playlist, video_id: str) -> bool:
    """Append a video to a playlist unless it is already there.

    Returns:
        True if the video was added, False if it was already present
    """
    existing = await db.execute(
        select(PlaylistEntry.id).where(
            PlaylistEntry.playlist_id == playlist.id,
            PlaylistEntry.video_id == video_id,
        )
    )
    if existing.scalar_one_or_none() is not None:
        return False

    last = await db.execute(
        select(func.max(PlaylistEntry.position)).where(
            PlaylistEntry.playlist_id == playlist.id
        )
    )
    position = (last.scalar_one_or_none() or 0) + 1
    db.add(PlaylistEntry(playlist_id=playlist.id, video_id=video_id, position=position))
    playlist.updated_at = datetime.now(timezone.utc)
    await db.commit()
    return True


async def remove_playlist_entry(db: AsyncSession, playlist: Playlist, video_id: str) -> bool:
    """Remove a video from a playlist.

    Returns:
        True if the video was removed, False if it wasn't in the playlist
    """
    result = await db.execute(
        delete(PlaylistEntry).where(
            PlaylistEntry.playlist_id == playlist.id,
            PlaylistEntry.video_id == video_id,
        )
    )
    if result.rowcount > 0:
        playlist.updated_at = datetime.now(timezone.utc)
    await db.commit()
    return result.rowcount > 0


# Relationship store


async def find_like(
    db: AsyncSession, subject: LikeSubject, subject_id: str, liked_by_id: str
) -> Like | None:
    """Look up a like by its natural key (subject, liked_by)."""
    result = await db.execute(
        select(Like).where(
            _LIKE_COLUMNS[subject] == subject_id,
            Like.liked_by_id == liked_by_id,
        )
    )
    return result.scalar_one_or_none()


async def create_like(
    db: AsyncSession, subject: LikeSubject, subject_id: str, liked_by_id: str
) -> Like:
    like = Like(liked_by_id=liked_by_id, **{f"{subject}_id": subject_id})
    db.add(like)
    await db.commit()
    await db.refresh(like)
    return like


async def find_subscription(
    db: AsyncSession, subscriber_id: str, channel_id: str
) -> Subscription | None:
    result = await db.execute(
        select(Subscription).where(
            Subscription.subscriber_id == subscriber_id,
            Subscription.channel_id == channel_id,
        )
    )
    return result.scalar_one_or_none()


async def create_subscription(
    db: AsyncSession, subscriber_id: str, channel_id: str
) -> Subscription:
    subscription = Subscription(subscriber_id=subscriber_id, channel_id=channel_id)
    db.add(subscription)
    await db.commit()
    await db.refresh(subscription)
    return subscription


async def delete_row(db: AsyncSession, instance) -> None:
    """Delete a single join record (like or subscription)."""
    await db.delete(instance)
    await db.commit()
