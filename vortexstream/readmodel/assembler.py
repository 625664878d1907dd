"""Read-model assembly: one function per API read view.

Each function describes its view as a ``ReadQuery`` (root entity, embedded
owner, derived counts and flags, ordering) and runs it through
``SqlReadAdapter``. Counts and "by requester" flags are always computed from
the live relationship tables at read time.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from vortexstream.db import crud
from vortexstream.errors import InvalidArgument, NotFound
from vortexstream.readmodel.compiler import SqlReadAdapter
from vortexstream.readmodel.query import (
    Aggregate,
    AnyOf,
    Computed,
    Filter,
    Join,
    Op,
    ReadQuery,
    Related,
    Sort,
)
from vortexstream.readmodel.views import (
    ChannelProfile,
    ChannelStats,
    ChannelVideo,
    CommentView,
    LikedVideo,
    Page,
    PlaylistView,
    SubscribedChannelView,
    SubscriberView,
    TweetView,
    VideoCard,
    VideoDetail,
    WatchedVideo,
)
from vortexstream.validation import parse_id

USER_SUMMARY_FIELDS = ("id", "username", "full_name", "avatar")
VIDEO_SUMMARY_FIELDS = (
    "id",
    "title",
    "description",
    "video_file",
    "thumbnail",
    "duration",
    "views",
    "created_at",
)
VIDEO_FIELDS = VIDEO_SUMMARY_FIELDS + ("is_published", "updated_at")
COMMENT_FIELDS = ("id", "content", "video_id", "created_at", "updated_at")
TWEET_FIELDS = ("id", "content", "created_at", "updated_at")
PLAYLIST_FIELDS = ("id", "name", "description", "created_at", "updated_at")

OWNER = Join("owner", "owner", USER_SUMMARY_FIELDS)

# Public sort keys accepted by the feed
SORT_FIELDS = {"views": "views", "createdAt": "created_at", "duration": "duration"}
SORT_TYPES = ("asc", "desc")


def _likes(viewer_id: str | None) -> tuple[Computed, ...]:
    computed = (Computed("likes_count", Aggregate.COUNT, "likes"),)
    if viewer_id is not None:
        computed += (Computed("is_liked", Aggregate.EXISTS, "likes", actor=viewer_id),)
    return computed


def _visible_videos(viewer_id: str | None) -> Filter | AnyOf:
    """Published videos, plus the viewer's own."""
    if viewer_id is None:
        return Filter("is_published", True)
    return AnyOf((Filter("is_published", True), Filter("owner_id", viewer_id)))


async def video_feed(
    db: AsyncSession,
    *,
    query: str | None = None,
    user_id: str | None = None,
    sort_by: str | None = None,
    sort_type: str | None = None,
    page: int = 1,
    limit: int = 10,
    viewer_id: str | None = None,
) -> Page:
    """Paginated feed of published videos with their owners.

    Ordered by ``updated_at`` descending unless both ``sort_by`` and
    ``sort_type`` are given.
    """
    q = ReadQuery(
        "video",
        VIDEO_FIELDS,
        filters=(Filter("is_published", True),),
        joins=(OWNER,),
        sort=(Sort("updated_at", descending=True),),
        viewer_id=viewer_id,
    )
    if query:
        q = q.where(
            AnyOf(
                (
                    Filter("title", query, Op.CONTAINS),
                    Filter("description", query, Op.CONTAINS),
                )
            )
        )
    if user_id:
        q = q.where(Filter("owner_id", parse_id(user_id, "userId")))
    if sort_by and sort_type:
        if sort_by not in SORT_FIELDS or sort_type not in SORT_TYPES:
            raise InvalidArgument("Invalid sort parameters")
        q = q.ordered_by(Sort(SORT_FIELDS[sort_by], descending=sort_type == "desc"))

    result = await SqlReadAdapter(db).fetch_page(q.paginate(page, limit))
    return Page.from_result(result, VideoCard)


def _comment_query(video_id: str, viewer_id: str | None) -> ReadQuery:
    return ReadQuery(
        "comment",
        COMMENT_FIELDS,
        filters=(Filter("video_id", video_id),),
        joins=(OWNER,),
        computed=_likes(viewer_id),
        sort=(Sort("created_at", descending=True),),
        viewer_id=viewer_id,
    )


async def video_detail(db: AsyncSession, video_id: str, viewer_id: str | None) -> VideoDetail:
    """Single video with likes, comments and owner channel info.

    After a successful read the view counter is incremented and the video is
    recorded in the viewer's watch history; the returned ``views`` includes
    this view.
    """
    vid = parse_id(video_id, "videoId")
    computed = _likes(viewer_id) + (
        Computed("subscribers_count", Aggregate.COUNT, "subscribers", on="owner"),
    )
    if viewer_id is not None:
        computed += (
            Computed(
                "is_subscribed", Aggregate.EXISTS, "subscribers", actor=viewer_id, on="owner"
            ),
        )
    q = ReadQuery(
        "video",
        VIDEO_FIELDS,
        filters=(Filter("id", vid), _visible_videos(viewer_id)),
        joins=(OWNER,),
        computed=computed,
        viewer_id=viewer_id,
    )
    adapter = SqlReadAdapter(db)
    row = await adapter.fetch_one(q)
    if row is None:
        raise NotFound("Video not found")
    row["comments"] = await adapter.fetch_all(_comment_query(vid, viewer_id))

    await crud.increment_video_views(db, vid)
    row["views"] += 1
    if viewer_id is not None:
        await crud.record_watch(db, viewer_id, vid)

    return VideoDetail.model_validate(row)


async def _require_visible_video(db: AsyncSession, video_id: str, viewer_id: str | None):
    video = await crud.get_video(db, video_id)
    if video is None or (not video.is_published and video.owner_id != viewer_id):
        raise NotFound("Video not found")
    return video


async def video_comments(
    db: AsyncSession,
    video_id: str,
    viewer_id: str | None,
    page: int = 1,
    limit: int = 10,
) -> Page:
    vid = parse_id(video_id, "videoId")
    await _require_visible_video(db, vid, viewer_id)
    result = await SqlReadAdapter(db).fetch_page(
        _comment_query(vid, viewer_id).paginate(page, limit)
    )
    return Page.from_result(result, CommentView)


async def channel_profile(
    db: AsyncSession, username: str, viewer_id: str | None
) -> ChannelProfile:
    """Public channel page for ``username`` with subscription counts."""
    username = (username or "").strip().lower()
    if not username:
        raise InvalidArgument("Username is missing")

    computed = (
        Computed("subscribers_count", Aggregate.COUNT, "subscribers"),
        Computed("channels_subscribed_to_count", Aggregate.COUNT, "subscriptions"),
    )
    if viewer_id is not None:
        computed += (
            Computed("is_subscribed", Aggregate.EXISTS, "subscribers", actor=viewer_id),
        )
    q = ReadQuery(
        "user",
        ("id", "username", "full_name", "email", "avatar", "cover_image", "created_at"),
        filters=(Filter("username", username),),
        computed=computed,
        viewer_id=viewer_id,
    )
    row = await SqlReadAdapter(db).fetch_one(q)
    if row is None:
        raise NotFound("Channel does not exist")
    return ChannelProfile.model_validate(row)


async def channel_stats(db: AsyncSession, owner_id: str) -> ChannelStats:
    q = ReadQuery(
        "user",
        ("id",),
        filters=(Filter("id", owner_id),),
        computed=(
            Computed("total_subscribers", Aggregate.COUNT, "subscribers"),
            Computed("total_likes", Aggregate.COUNT, "video_likes"),
            Computed("total_views", Aggregate.SUM, "videos", field="views"),
            Computed("total_videos", Aggregate.COUNT, "videos"),
        ),
    )
    row = await SqlReadAdapter(db).fetch_one(q)
    if row is None:
        raise NotFound("Channel does not exist")
    return ChannelStats.model_validate(row)


async def channel_videos(
    db: AsyncSession, owner_id: str, page: int = 1, limit: int = 10
) -> Page:
    """All of the owner's videos, published or not, newest first."""
    q = ReadQuery(
        "video",
        VIDEO_FIELDS,
        filters=(Filter("owner_id", owner_id),),
        computed=_likes(None),
        sort=(Sort("created_at", descending=True),),
    )
    result = await SqlReadAdapter(db).fetch_page(q.paginate(page, limit))
    return Page.from_result(result, ChannelVideo)


async def liked_videos(
    db: AsyncSession, viewer_id: str, page: int = 1, limit: int = 10
) -> Page:
    """Videos the viewer has liked, most recently liked first."""
    q = ReadQuery(
        "video",
        VIDEO_FIELDS,
        filters=(Related("likes", viewer_id), _visible_videos(viewer_id)),
        joins=(OWNER,),
        computed=(
            Computed("liked_at", Aggregate.MAX, "likes", field="updated_at", actor=viewer_id),
        ),
        sort=(Sort("liked_at", descending=True),),
        viewer_id=viewer_id,
    )
    result = await SqlReadAdapter(db).fetch_page(q.paginate(page, limit))
    return Page.from_result(result, LikedVideo)


async def watch_history(
    db: AsyncSession, viewer_id: str, page: int = 1, limit: int = 10
) -> Page:
    q = ReadQuery(
        "video",
        VIDEO_FIELDS,
        filters=(Related("watchers", viewer_id), _visible_videos(viewer_id)),
        joins=(OWNER,),
        computed=(
            Computed(
                "watched_at", Aggregate.MAX, "watchers", field="watched_at", actor=viewer_id
            ),
        ),
        sort=(Sort("watched_at", descending=True),),
        viewer_id=viewer_id,
    )
    result = await SqlReadAdapter(db).fetch_page(q.paginate(page, limit))
    return Page.from_result(result, WatchedVideo)


async def user_tweets(
    db: AsyncSession,
    user_id: str,
    viewer_id: str | None,
    page: int = 1,
    limit: int = 10,
) -> Page:
    uid = parse_id(user_id, "userId")
    if await crud.get_user_by_id(db, uid) is None:
        raise NotFound("User not found")
    q = ReadQuery(
        "tweet",
        TWEET_FIELDS,
        filters=(Filter("owner_id", uid),),
        joins=(OWNER,),
        computed=_likes(viewer_id),
        sort=(Sort("created_at", descending=True),),
        viewer_id=viewer_id,
    )
    result = await SqlReadAdapter(db).fetch_page(q.paginate(page, limit))
    return Page.from_result(result, TweetView)


async def channel_subscribers(
    db: AsyncSession, channel_id: str, page: int = 1, limit: int = 10
) -> Page:
    """Users subscribed to ``channel_id``, most recent subscription first.

    ``subscribed_to_subscriber`` is true when the channel subscribes back.
    """
    cid = parse_id(channel_id, "channelId")
    if await crud.get_user_by_id(db, cid) is None:
        raise NotFound("Channel does not exist")
    q = ReadQuery(
        "user",
        USER_SUMMARY_FIELDS,
        filters=(Related("subscriptions", cid),),
        computed=(
            Computed("subscribers_count", Aggregate.COUNT, "subscribers"),
            Computed("subscribed_to_subscriber", Aggregate.EXISTS, "subscribers", actor=cid),
            Computed(
                "subscribed_at", Aggregate.MAX, "subscriptions", field="created_at", actor=cid
            ),
        ),
        sort=(Sort("subscribed_at", descending=True),),
    )
    result = await SqlReadAdapter(db).fetch_page(q.paginate(page, limit))
    return Page.from_result(result, SubscriberView)


async def subscribed_channels(
    db: AsyncSession, subscriber_id: str, page: int = 1, limit: int = 10
) -> Page:
    """Channels ``subscriber_id`` follows, each with its latest published video."""
    sid = parse_id(subscriber_id, "subscriberId")
    if await crud.get_user_by_id(db, sid) is None:
        raise NotFound("Subscriber does not exist")
    q = ReadQuery(
        "user",
        USER_SUMMARY_FIELDS,
        filters=(Related("subscribers", sid),),
        joins=(Join("latest_video", "latest_video", VIDEO_SUMMARY_FIELDS),),
        computed=(
            Computed(
                "subscribed_at", Aggregate.MAX, "subscribers", field="created_at", actor=sid
            ),
        ),
        sort=(Sort("subscribed_at", descending=True),),
    )
    result = await SqlReadAdapter(db).fetch_page(q.paginate(page, limit))
    return Page.from_result(result, SubscribedChannelView)


def _playlist_totals() -> tuple[Computed, ...]:
    return (
        Computed("total_videos", Aggregate.COUNT, "videos"),
        Computed("total_views", Aggregate.SUM, "videos", field="views"),
    )


async def _playlist_videos(
    adapter: SqlReadAdapter, playlist_id: str, viewer_id: str | None
) -> list[dict]:
    q = ReadQuery(
        "video",
        VIDEO_FIELDS,
        filters=(Related("playlist_entries", playlist_id), _visible_videos(viewer_id)),
        joins=(OWNER,),
        computed=(
            Computed(
                "position",
                Aggregate.MAX,
                "playlist_entries",
                field="position",
                actor=playlist_id,
            ),
        ),
        sort=(Sort("position"),),
        viewer_id=viewer_id,
    )
    return await adapter.fetch_all(q)


async def user_playlists(
    db: AsyncSession,
    user_id: str,
    viewer_id: str | None,
    page: int = 1,
    limit: int = 10,
) -> Page:
    uid = parse_id(user_id, "userId")
    if await crud.get_user_by_id(db, uid) is None:
        raise NotFound("User not found")
    adapter = SqlReadAdapter(db)
    q = ReadQuery(
        "playlist",
        PLAYLIST_FIELDS,
        filters=(Filter("owner_id", uid),),
        computed=_playlist_totals(),
        sort=(Sort("updated_at", descending=True),),
        viewer_id=viewer_id,
    )
    result = await adapter.fetch_page(q.paginate(page, limit))
    for doc in result.docs:
        doc["videos"] = await _playlist_videos(adapter, doc["id"], viewer_id)
    return Page.from_result(result, PlaylistView)


async def playlist_detail(
    db: AsyncSession, playlist_id: str, viewer_id: str | None
) -> PlaylistView:
    pid = parse_id(playlist_id, "playlistId")
    adapter = SqlReadAdapter(db)
    q = ReadQuery(
        "playlist",
        PLAYLIST_FIELDS,
        filters=(Filter("id", pid),),
        joins=(OWNER,),
        computed=_playlist_totals(),
        viewer_id=viewer_id,
    )
    row = await adapter.fetch_one(q)
    if row is None:
        raise NotFound("Playlist not found")
    row["videos"] = await _playlist_videos(adapter, pid, viewer_id)
    return PlaylistView.model_validate(row)
