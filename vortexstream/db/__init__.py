"""Database module for VortexStream."""

from vortexstream.db.models import (
    Base,
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
from vortexstream.db.session import get_engine, get_session, get_sessionmaker, init_models

__all__ = [
    "Base",
    "Comment",
    "Like",
    "Playlist",
    "PlaylistEntry",
    "Subscription",
    "Tweet",
    "User",
    "Video",
    "WatchHistoryEntry",
    "get_session",
    "get_engine",
    "get_sessionmaker",
    "init_models",
]
