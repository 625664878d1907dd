"""Tests for the read-model assembler."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select, update

from vortexstream.db import crud
from vortexstream.db.models import Like, Subscription, Video, WatchHistoryEntry
from vortexstream.errors import InvalidArgument, NotFound
from vortexstream.readmodel import assembler


@pytest.mark.asyncio
@pytest.mark.parametrize("subscriber_count", [0, 1, 4])
async def test_channel_profile_counts_subscribers(db_session, make_user, subscriber_count):
    channel = await make_user(db_session, "channel")
    viewer = await make_user(db_session, "viewer")
    for i in range(subscriber_count):
        fan = await make_user(db_session, f"fan{i}")
        await crud.create_subscription(db_session, fan.id, channel.id)
    # Subscriptions *by* the channel count separately
    await crud.create_subscription(db_session, channel.id, viewer.id)

    profile = await assembler.channel_profile(db_session, "  Channel ", viewer.id)

    assert profile.id == channel.id
    assert profile.subscribers_count == subscriber_count
    assert profile.channels_subscribed_to_count == 1
    assert profile.is_subscribed is False
    dumped = profile.model_dump(by_alias=True)
    assert "passwordHash" not in dumped and "password_hash" not in dumped


@pytest.mark.asyncio
async def test_channel_profile_flags_viewer_subscription(db_session, make_user):
    channel = await make_user(db_session, "channel")
    viewer = await make_user(db_session, "viewer")
    await crud.create_subscription(db_session, viewer.id, channel.id)

    profile = await assembler.channel_profile(db_session, "channel", viewer.id)

    assert profile.is_subscribed is True
    assert profile.subscribers_count == 1


@pytest.mark.asyncio
async def test_channel_profile_unknown_user(db_session):
    with pytest.raises(NotFound):
        await assembler.channel_profile(db_session, "ghost", None)


@pytest.mark.asyncio
async def test_video_detail_side_effects(db_session, make_user, make_video):
    owner = await make_user(db_session, "owner")
    viewer = await make_user(db_session, "viewer")
    video = await make_video(db_session, owner, views=5)
    await crud.create_like(db_session, "video", video.id, viewer.id)
    await crud.create_subscription(db_session, viewer.id, owner.id)
    first = await crud.create_comment(db_session, video.id, owner.id, "first!")
    second = await crud.create_comment(db_session, video.id, viewer.id, "second")

    detail = await assembler.video_detail(db_session, video.id, viewer.id)

    assert detail.views == 6
    assert detail.likes_count == 1
    assert detail.is_liked is True
    assert detail.owner.id == owner.id
    assert detail.owner.subscribers_count == 1
    assert detail.owner.is_subscribed is True
    assert [c.id for c in detail.comments] == [second.id, first.id]
    assert detail.comments[0].owner.username == "viewer"

    stored_views = await db_session.scalar(select(Video.views).where(Video.id == video.id))
    assert stored_views == 6

    # Watching again refreshes the single history row
    await assembler.video_detail(db_session, video.id, viewer.id)
    history_rows = await db_session.scalar(
        select(func.count()).select_from(WatchHistoryEntry).where(
            WatchHistoryEntry.user_id == viewer.id
        )
    )
    assert history_rows == 1


@pytest.mark.asyncio
async def test_unpublished_video_visible_only_to_owner(db_session, make_user, make_video):
    owner = await make_user(db_session, "owner")
    other = await make_user(db_session, "other")
    draft = await make_video(db_session, owner, is_published=False)

    with pytest.raises(NotFound):
        await assembler.video_detail(db_session, draft.id, other.id)
    # No side effects on a failed read
    assert await db_session.scalar(select(Video.views).where(Video.id == draft.id)) == 0

    detail = await assembler.video_detail(db_session, draft.id, owner.id)
    assert detail.is_published is False


@pytest.mark.asyncio
async def test_malformed_id_is_invalid_argument(db_session):
    with pytest.raises(InvalidArgument):
        await assembler.video_detail(db_session, "not-a-uuid", None)


@pytest.mark.asyncio
async def test_feed_filters_and_sorts(db_session, make_user, make_video):
    alice = await make_user(db_session, "alice")
    bob = await make_user(db_session, "bob")
    short = await make_video(db_session, alice, title="Guitar basics", duration=30.0)
    long = await make_video(db_session, alice, title="Guitar masterclass", duration=600.0)
    await make_video(db_session, bob, title="Guitar draft", is_published=False)
    await make_video(db_session, bob, title="Drums", description="Not about strings at all")

    page = await assembler.video_feed(
        db_session, query="guitar", sort_by="duration", sort_type="desc"
    )
    assert [v.id for v in page.docs] == [long.id, short.id]
    assert page.docs[0].owner.username == "alice"

    page = await assembler.video_feed(db_session, user_id=bob.id)
    assert [v.title for v in page.docs] == ["Drums"]


@pytest.mark.asyncio
async def test_feed_default_order_ignores_half_sort(db_session, make_user, make_video):
    alice = await make_user(db_session, "alice")
    older = await make_video(db_session, alice, views=100)
    newer = await make_video(db_session, alice, views=1)
    await db_session.execute(
        update(Video).where(Video.id == older.id).values(updated_at=datetime(2024, 1, 1))
    )
    await db_session.commit()

    page = await assembler.video_feed(db_session, sort_by="views")
    assert [v.id for v in page.docs] == [newer.id, older.id]

    page = await assembler.video_feed(db_session, sort_by="views", sort_type="desc")
    assert [v.id for v in page.docs] == [older.id, newer.id]


@pytest.mark.asyncio
async def test_feed_page_metadata(db_session, make_user, make_video):
    alice = await make_user(db_session, "alice")
    for _ in range(12):
        await make_video(db_session, alice)

    page = await assembler.video_feed(db_session, page=2, limit=5)
    body = page.model_dump(by_alias=True)

    assert len(body["docs"]) == 5
    assert body["totalDocs"] == 12
    assert body["totalPages"] == 3
    assert body["hasPrevPage"] is True
    assert body["hasNextPage"] is True
    assert body["prevPage"] == 1
    assert body["nextPage"] == 3


@pytest.mark.asyncio
async def test_channel_subscribers_reciprocal_flag(db_session, make_user):
    channel = await make_user(db_session, "channel")
    mutual = await make_user(db_session, "mutual")
    fan = await make_user(db_session, "fan")
    await crud.create_subscription(db_session, mutual.id, channel.id)
    await crud.create_subscription(db_session, fan.id, channel.id)
    await crud.create_subscription(db_session, channel.id, mutual.id)

    page = await assembler.channel_subscribers(db_session, channel.id)
    rows = {row.username: row for row in page.docs}

    assert set(rows) == {"mutual", "fan"}
    assert rows["mutual"].subscribed_to_subscriber is True
    assert rows["mutual"].subscribers_count == 1
    assert rows["fan"].subscribed_to_subscriber is False
    assert rows["fan"].subscribers_count == 0


@pytest.mark.asyncio
async def test_subscribed_channels_latest_video(db_session, make_user, make_video):
    viewer = await make_user(db_session, "viewer")
    busy = await make_user(db_session, "busy")
    quiet = await make_user(db_session, "quiet")
    await crud.create_subscription(db_session, viewer.id, busy.id)
    await crud.create_subscription(db_session, viewer.id, quiet.id)
    await make_video(db_session, busy, title="Old one")
    latest = await make_video(db_session, busy, title="New one")
    await make_video(db_session, busy, title="Unreleased", is_published=False)

    page = await assembler.subscribed_channels(db_session, viewer.id)
    rows = {row.username: row for row in page.docs}

    assert rows["busy"].latest_video.id == latest.id
    assert rows["quiet"].latest_video is None


@pytest.mark.asyncio
async def test_liked_videos_visibility_and_order(db_session, make_user, make_video):
    viewer = await make_user(db_session, "viewer")
    other = await make_user(db_session, "other")
    first = await make_video(db_session, other)
    second = await make_video(db_session, other)
    hidden = await make_video(db_session, other, is_published=False)
    own_draft = await make_video(db_session, viewer, is_published=False)
    for video in (first, hidden, own_draft, second):
        await crud.create_like(db_session, "video", video.id, viewer.id)
    await db_session.execute(
        update(Like)
        .where(Like.video_id == first.id)
        .values(updated_at=datetime.now(timezone.utc) + timedelta(hours=1))
    )
    await db_session.commit()

    page = await assembler.liked_videos(db_session, viewer.id)
    ids = [v.id for v in page.docs]

    assert ids[0] == first.id
    assert set(ids) == {first.id, second.id, own_draft.id}
    assert page.docs[0].owner.username == "other"


@pytest.mark.asyncio
async def test_watch_history_most_recent_first(db_session, make_user, make_video):
    viewer = await make_user(db_session, "viewer")
    owner = await make_user(db_session, "owner")
    a = await make_video(db_session, owner)
    b = await make_video(db_session, owner)
    await crud.record_watch(db_session, viewer.id, a.id)
    await crud.record_watch(db_session, viewer.id, b.id)
    await crud.record_watch(db_session, viewer.id, a.id)

    page = await assembler.watch_history(db_session, viewer.id)

    assert [v.id for v in page.docs] == [a.id, b.id]


@pytest.mark.asyncio
async def test_user_tweets_with_likes(db_session, make_user):
    author = await make_user(db_session, "author")
    viewer = await make_user(db_session, "viewer")
    tweet = await crud.create_tweet(db_session, author.id, "hello")
    await crud.create_like(db_session, "tweet", tweet.id, viewer.id)

    page = await assembler.user_tweets(db_session, author.id, viewer.id)

    assert page.total_docs == 1
    assert page.docs[0].likes_count == 1
    assert page.docs[0].is_liked is True
    assert page.docs[0].owner.username == "author"

    with pytest.raises(NotFound):
        await assembler.user_tweets(db_session, "7b0c3b2e-8f52-4a0e-9d1c-2a55b8e5a001", None)


@pytest.mark.asyncio
async def test_playlist_totals_follow_visibility(db_session, make_user, make_video):
    owner = await make_user(db_session, "owner")
    other = await make_user(db_session, "other")
    v1 = await make_video(db_session, other, views=10)
    v2 = await make_video(db_session, owner, views=5, is_published=False)
    v3 = await make_video(db_session, other, views=100, is_published=False)
    playlist = await crud.create_playlist(db_session, owner.id, "Mix", "Things I like")
    for video in (v2, v1, v3):
        await crud.add_playlist_entry(db_session, playlist, video.id)

    detail = await assembler.playlist_detail(db_session, playlist.id, owner.id)
    assert [v.id for v in detail.videos] == [v2.id, v1.id]
    assert detail.total_videos == 2
    assert detail.total_views == 15
    assert detail.owner.username == "owner"

    # Someone else does not see the owner's draft either
    detail = await assembler.playlist_detail(db_session, playlist.id, other.id)
    assert [v.id for v in detail.videos] == [v1.id, v3.id]
    assert detail.total_views == 110

    page = await assembler.user_playlists(db_session, owner.id, owner.id)
    assert page.total_docs == 1
    assert page.docs[0].total_videos == 2


@pytest.mark.asyncio
async def test_channel_stats_and_videos(db_session, make_user, make_video):
    owner = await make_user(db_session, "owner")
    fan = await make_user(db_session, "fan")
    v1 = await make_video(db_session, owner, views=10)
    v2 = await make_video(db_session, owner, views=3, is_published=False)
    await crud.create_like(db_session, "video", v1.id, fan.id)
    await crud.create_like(db_session, "video", v2.id, fan.id)
    await crud.create_like(db_session, "video", v1.id, owner.id)
    await crud.create_subscription(db_session, fan.id, owner.id)

    stats = await assembler.channel_stats(db_session, owner.id)
    assert stats.total_subscribers == 1
    assert stats.total_likes == 3
    assert stats.total_views == 13
    assert stats.total_videos == 2

    page = await assembler.channel_videos(db_session, owner.id)
    assert [v.id for v in page.docs] == [v2.id, v1.id]
    assert {v.id: v.likes_count for v in page.docs} == {v1.id: 2, v2.id: 1}
    created = page.docs[0].model_dump(by_alias=True)["created"]
    assert created == {
        "year": v2.created_at.year,
        "month": v2.created_at.month,
        "day": v2.created_at.day,
    }


@pytest.mark.asyncio
async def test_channel_stats_for_empty_channel(db_session, make_user):
    owner = await make_user(db_session, "owner")

    stats = await assembler.channel_stats(db_session, owner.id)

    assert stats.model_dump() == {
        "total_subscribers": 0,
        "total_likes": 0,
        "total_views": 0,
        "total_videos": 0,
    }
