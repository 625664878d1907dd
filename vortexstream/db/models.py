"""SQLAlchemy models for VortexStream."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    LargeBinary,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


def uid() -> str:
    """Generate a UUID string for primary keys."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Current UTC time with microsecond precision."""
    return datetime.now(timezone.utc)


class TimestampMixin:
    """created_at/updated_at columns maintained from application code."""

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )


class User(TimestampMixin, Base):
    """A registered user. Every user is also a channel."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=uid)
    username: Mapped[str] = mapped_column(String, unique=True, index=True)
    email: Mapped[str] = mapped_column(String, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String)
    full_name: Mapped[str] = mapped_column(String)
    avatar_public_id: Mapped[str] = mapped_column(String)
    avatar: Mapped[str] = mapped_column(String)
    cover_image_public_id: Mapped[str | None] = mapped_column(String, nullable=True)
    cover_image: Mapped[str | None] = mapped_column(String, nullable=True)
    refresh_token_enc: Mapped[bytes | None] = mapped_column(LargeBinary, nullable=True)


class WatchHistoryEntry(Base):
    """A video in a user's watch history (one row per user/video pair)."""

    __tablename__ = "watch_history"
    __table_args__ = (UniqueConstraint("user_id", "video_id", name="uq_watch_history"),)

    id: Mapped[str] = mapped_column(String, primary_key=True, default=uid)
    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    video_id: Mapped[str] = mapped_column(
        ForeignKey("videos.id", ondelete="CASCADE"), index=True
    )
    watched_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class Video(TimestampMixin, Base):
    """An uploaded video owned by a user."""

    __tablename__ = "videos"
    __table_args__ = (CheckConstraint("duration >= 0", name="ck_video_duration"),)

    id: Mapped[str] = mapped_column(String, primary_key=True, default=uid)
    owner_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    video_file_public_id: Mapped[str] = mapped_column(String)
    video_file: Mapped[str] = mapped_column(String)
    thumbnail_public_id: Mapped[str] = mapped_column(String)
    thumbnail: Mapped[str] = mapped_column(String)
    title: Mapped[str] = mapped_column(String)
    description: Mapped[str] = mapped_column(Text)
    duration: Mapped[float] = mapped_column(Float, default=0)
    views: Mapped[int] = mapped_column(Integer, default=0)
    is_published: Mapped[bool] = mapped_column(Boolean, default=False)


class Comment(TimestampMixin, Base):
    """A comment left on a video."""

    __tablename__ = "comments"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=uid)
    video_id: Mapped[str] = mapped_column(
        ForeignKey("videos.id", ondelete="CASCADE"), index=True
    )
    owner_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    content: Mapped[str] = mapped_column(String(500))


class Tweet(TimestampMixin, Base):
    """A short text post."""

    __tablename__ = "tweets"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=uid)
    owner_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    content: Mapped[str] = mapped_column(String(280))


class Like(TimestampMixin, Base):
    """A like on exactly one of a video, comment or tweet."""

    __tablename__ = "likes"
    __table_args__ = (
        # Natural keys; NULL subjects never collide
        UniqueConstraint("video_id", "liked_by_id", name="uq_like_video"),
        UniqueConstraint("comment_id", "liked_by_id", name="uq_like_comment"),
        UniqueConstraint("tweet_id", "liked_by_id", name="uq_like_tweet"),
        CheckConstraint(
            "(CASE WHEN video_id IS NULL THEN 0 ELSE 1 END"
            " + CASE WHEN comment_id IS NULL THEN 0 ELSE 1 END"
            " + CASE WHEN tweet_id IS NULL THEN 0 ELSE 1 END) = 1",
            name="ck_like_single_subject",
        ),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=uid)
    video_id: Mapped[str | None] = mapped_column(
        ForeignKey("videos.id", ondelete="CASCADE"), index=True, nullable=True
    )
    comment_id: Mapped[str | None] = mapped_column(
        ForeignKey("comments.id", ondelete="CASCADE"), index=True, nullable=True
    )
    tweet_id: Mapped[str | None] = mapped_column(
        ForeignKey("tweets.id", ondelete="CASCADE"), index=True, nullable=True
    )
    liked_by_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True
    )


class Subscription(TimestampMixin, Base):
    """A subscriber following a channel (another user)."""

    __tablename__ = "subscriptions"
    __table_args__ = (
        UniqueConstraint("subscriber_id", "channel_id", name="uq_subscription"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=uid)
    subscriber_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    channel_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True
    )


class Playlist(TimestampMixin, Base):
    """A named, ordered set of videos owned by a user."""

    __tablename__ = "playlists"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=uid)
    owner_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    name: Mapped[str] = mapped_column(String, index=True)
    description: Mapped[str] = mapped_column(Text)


class PlaylistEntry(Base):
    """Membership of a video in a playlist."""

    __tablename__ = "playlist_entries"
    __table_args__ = (
        UniqueConstraint("playlist_id", "video_id", name="uq_playlist_entry"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=uid)
    playlist_id: Mapped[str] = mapped_column(
        ForeignKey("playlists.id", ondelete="CASCADE"), index=True
    )
    video_id: Mapped[str] = mapped_column(
        ForeignKey("videos.id", ondelete="CASCADE"), index=True
    )
    position: Mapped[int] = mapped_column(Integer)
    added_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
