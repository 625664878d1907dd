"""Pydantic read models returned by the assembler.

Field names match the labels produced by ``SqlReadAdapter`` so rows validate
directly; JSON output uses camelCase aliases.
"""

from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from vortexstream.readmodel.query import PageResult


class View(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UserSummary(View):
    """Public identity of a user embedded in other read models."""

    id: str
    username: str
    full_name: str
    avatar: str


class ChannelOwner(UserSummary):
    subscribers_count: int = 0
    is_subscribed: bool = False


class PublicUser(View):
    """A user's own account data, minus credentials."""

    id: str
    username: str
    email: str
    full_name: str
    avatar: str
    cover_image: str | None = None
    created_at: datetime
    updated_at: datetime


class VideoSummary(View):
    id: str
    title: str
    description: str
    video_file: str
    thumbnail: str
    duration: float
    views: int
    created_at: datetime


class VideoCard(VideoSummary):
    is_published: bool
    updated_at: datetime
    owner: UserSummary | None = None


class LikedVideo(VideoCard):
    liked_at: datetime


class WatchedVideo(VideoCard):
    watched_at: datetime


class CommentView(View):
    id: str
    content: str
    video_id: str
    created_at: datetime
    updated_at: datetime
    owner: UserSummary | None = None
    likes_count: int = 0
    is_liked: bool = False


class VideoDetail(VideoSummary):
    is_published: bool
    updated_at: datetime
    owner: ChannelOwner
    likes_count: int = 0
    is_liked: bool = False
    comments: list[CommentView] = []


class TweetView(View):
    id: str
    content: str
    created_at: datetime
    updated_at: datetime
    owner: UserSummary | None = None
    likes_count: int = 0
    is_liked: bool = False


class ChannelProfile(View):
    id: str
    username: str
    full_name: str
    email: str
    avatar: str
    cover_image: str | None = None
    created_at: datetime
    subscribers_count: int = 0
    channels_subscribed_to_count: int = 0
    is_subscribed: bool = False


class ChannelStats(View):
    total_subscribers: int = 0
    total_likes: int = 0
    total_views: int = 0
    total_videos: int = 0


class DateParts(View):
    year: int
    month: int
    day: int


class ChannelVideo(VideoSummary):
    is_published: bool
    updated_at: datetime
    likes_count: int = 0
    created: DateParts | None = None

    def model_post_init(self, __context) -> None:
        if self.created is None:
            self.created = DateParts(
                year=self.created_at.year,
                month=self.created_at.month,
                day=self.created_at.day,
            )


class SubscriberView(UserSummary):
    subscribers_count: int = 0
    subscribed_to_subscriber: bool = False


class SubscribedChannelView(UserSummary):
    latest_video: VideoSummary | None = None


class PlaylistView(View):
    id: str
    name: str
    description: str
    created_at: datetime
    updated_at: datetime
    total_videos: int = 0
    total_views: int = 0
    videos: list[VideoCard] = []
    owner: UserSummary | None = None


T = TypeVar("T")


class Page(View, Generic[T]):
    """A page of read models plus navigation metadata."""

    docs: list[T]
    total_docs: int
    limit: int
    page: int
    total_pages: int
    has_prev_page: bool
    has_next_page: bool
    prev_page: int | None = None
    next_page: int | None = None

    @classmethod
    def from_result(cls, result: PageResult, view: type[View]) -> "Page":
        return cls(
            docs=[view.model_validate(doc) for doc in result.docs],
            total_docs=result.total_docs,
            limit=result.limit,
            page=result.page,
            total_pages=result.total_pages,
            has_prev_page=result.has_prev_page,
            has_next_page=result.has_next_page,
            prev_page=result.page - 1 if result.has_prev_page else None,
            next_page=result.page + 1 if result.has_next_page else None,
        )
