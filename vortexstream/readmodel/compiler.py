"""Compile ``ReadQuery`` descriptions to SQLAlchemy and run them."""

from dataclasses import dataclass, replace
from typing import Any, Callable

from sqlalchemy import Select, and_, func, literal, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

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
from vortexstream.readmodel.query import (
    Aggregate,
    AnyOf,
    Computed,
    Filter,
    Op,
    PageResult,
    ReadQuery,
    Related,
)

ENTITIES = {
    "user": User,
    "video": Video,
    "comment": Comment,
    "tweet": Tweet,
    "playlist": Playlist,
}

# Fields that no read model may ever select, root or embedded
REDACTED_FIELDS = {
    "user": frozenset({"password_hash", "refresh_token_enc"}),
}


@dataclass(frozen=True)
class RelationSpec:
    source: Any
    condition: Any
    actor: Any = None
    model: Any = None


@dataclass(frozen=True)
class JoinSpec:
    target: Any
    onclause: Any
    entity: str
    isouter: bool = False


RelationBuilder = Callable[[Any, str | None], RelationSpec]
JoinBuilder = Callable[[Any, str, str | None], JoinSpec]


def _likes_on(column) -> RelationBuilder:
    def build(parent, viewer_id):
        return RelationSpec(Like, column == parent.id, Like.liked_by_id, Like)

    return build


def _playlist_videos(parent, viewer_id):
    visible = Video.is_published.is_(True)
    if viewer_id is not None:
        visible = or_(visible, Video.owner_id == viewer_id)
    return RelationSpec(
        PlaylistEntry.__table__.join(Video.__table__, PlaylistEntry.video_id == Video.id),
        and_(PlaylistEntry.playlist_id == parent.id, visible),
        None,
        Video,
    )


RELATIONS: dict[tuple[str, str], RelationBuilder] = {
    ("video", "likes"): _likes_on(Like.video_id),
    ("comment", "likes"): _likes_on(Like.comment_id),
    ("tweet", "likes"): _likes_on(Like.tweet_id),
    ("video", "comments"): lambda parent, viewer_id: RelationSpec(
        Comment, Comment.video_id == parent.id, Comment.owner_id, Comment
    ),
    ("video", "watchers"): lambda parent, viewer_id: RelationSpec(
        WatchHistoryEntry,
        WatchHistoryEntry.video_id == parent.id,
        WatchHistoryEntry.user_id,
        WatchHistoryEntry,
    ),
    ("video", "playlist_entries"): lambda parent, viewer_id: RelationSpec(
        PlaylistEntry,
        PlaylistEntry.video_id == parent.id,
        PlaylistEntry.playlist_id,
        PlaylistEntry,
    ),
    ("user", "subscribers"): lambda parent, viewer_id: RelationSpec(
        Subscription,
        Subscription.channel_id == parent.id,
        Subscription.subscriber_id,
        Subscription,
    ),
    ("user", "subscriptions"): lambda parent, viewer_id: RelationSpec(
        Subscription,
        Subscription.subscriber_id == parent.id,
        Subscription.channel_id,
        Subscription,
    ),
    ("user", "videos"): lambda parent, viewer_id: RelationSpec(
        Video, Video.owner_id == parent.id, None, Video
    ),
    ("user", "video_likes"): lambda parent, viewer_id: RelationSpec(
        Like.__table__.join(Video.__table__, Like.video_id == Video.id),
        Video.owner_id == parent.id,
        Like.liked_by_id,
        Like,
    ),
    ("playlist", "videos"): _playlist_videos,
}


def _owner_join(parent, alias, viewer_id):
    owner = aliased(User, name=alias)
    return JoinSpec(owner, owner.id == parent.owner_id, "user")


def _latest_video_join(parent, alias, viewer_id):
    video = aliased(Video, name=alias)
    latest_id = (
        select(Video.id)
        .where(Video.owner_id == parent.id, Video.is_published.is_(True))
        .order_by(Video.created_at.desc(), Video.id.desc())
        .limit(1)
        .correlate(parent)
        .scalar_subquery()
    )
    return JoinSpec(video, video.id == latest_id, "video", isouter=True)


JOINS: dict[tuple[str, str], JoinBuilder] = {
    ("video", "owner"): _owner_join,
    ("comment", "owner"): _owner_join,
    ("tweet", "owner"): _owner_join,
    ("playlist", "owner"): _owner_join,
    ("user", "latest_video"): _latest_video_join,
}


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def column_for(entity: str, model, name: str):
    """Resolve a projectable column, refusing redacted and unknown fields."""
    if name in REDACTED_FIELDS.get(entity, ()):
        raise ValueError(f"{entity}.{name} cannot be selected")
    if name not in ENTITIES[entity].__table__.columns:
        raise ValueError(f"Unknown field {entity}.{name}")
    return getattr(model, name)


def nest(row: dict[str, Any]) -> dict[str, Any]:
    """Turn ``alias__field`` keys into nested dicts.

    An embedded entity whose fields are all NULL (unmatched outer join)
    becomes None.
    """
    out: dict[str, Any] = {}
    nested: dict[str, dict[str, Any]] = {}
    for key, value in row.items():
        if "__" in key:
            alias, name = key.split("__", 1)
            nested.setdefault(alias, {})[name] = value
        else:
            out[key] = value
    for alias, values in nested.items():
        out[alias] = values if any(v is not None for v in values.values()) else None
    return out


class SqlCompiler:
    """Translate a ``ReadQuery`` into a SQLAlchemy ``Select``."""

    def compile(self, query: ReadQuery) -> Select:
        root = ENTITIES[query.entity]
        columns = [column_for(query.entity, root, name).label(name) for name in query.fields]

        joined: dict[str, JoinSpec] = {}
        for join in query.joins:
            spec = JOINS[(query.entity, join.relation)](root, join.alias, query.viewer_id)
            joined[join.alias] = spec
            columns.extend(
                column_for(spec.entity, spec.target, name).label(f"{join.alias}__{name}")
                for name in join.fields
            )

        root_computed = {}
        for computed in query.computed:
            if computed.on:
                spec = joined[computed.on]
                expr = self._aggregate(spec.entity, spec.target, computed, query.viewer_id)
                columns.append(expr.label(f"{computed.on}__{computed.name}"))
            else:
                expr = self._aggregate(query.entity, root, computed, query.viewer_id)
                root_computed[computed.name] = expr.label(computed.name)
                columns.append(root_computed[computed.name])

        stmt = select(*columns).select_from(root)
        for spec in joined.values():
            stmt = stmt.join(spec.target, spec.onclause, isouter=spec.isouter)

        for flt in query.filters:
            stmt = stmt.where(self._predicate(query.entity, root, flt, query.viewer_id))

        order = []
        for key in query.ordering():
            if key.field in root_computed:
                expr = root_computed[key.field]
            else:
                expr = column_for(query.entity, root, key.field)
            order.append(expr.desc() if key.descending else expr.asc())
        return stmt.order_by(*order)

    def _relation(self, entity, parent, relation, actor, viewer_id):
        try:
            builder = RELATIONS[(entity, relation)]
        except KeyError:
            raise ValueError(f"Unknown relation {entity}.{relation}") from None
        spec = builder(parent, viewer_id)
        conditions = [spec.condition]
        if actor is not None:
            if spec.actor is None:
                raise ValueError(f"Relation {entity}.{relation} has no actor column")
            conditions.append(spec.actor == actor)
        return spec, conditions

    def _aggregate(self, entity: str, parent, computed: Computed, viewer_id):
        spec, conditions = self._relation(
            entity, parent, computed.relation, computed.actor, viewer_id
        )

        def rows(*cols):
            return select(*cols).select_from(spec.source).where(*conditions).correlate(parent)

        if computed.kind is Aggregate.COUNT:
            return rows(func.count()).scalar_subquery()
        if computed.kind is Aggregate.EXISTS:
            return rows(literal(1)).exists()
        target = getattr(spec.model, computed.field)
        if computed.kind is Aggregate.SUM:
            return func.coalesce(rows(func.sum(target)).scalar_subquery(), 0)
        return rows(func.max(target)).scalar_subquery()

    def _predicate(self, entity: str, root, flt, viewer_id):
        if isinstance(flt, AnyOf):
            return or_(*(self._predicate(entity, root, f, viewer_id) for f in flt.filters))
        if isinstance(flt, Related):
            spec, conditions = self._relation(
                entity, root, flt.relation, flt.actor, viewer_id
            )
            return (
                select(literal(1))
                .select_from(spec.source)
                .where(*conditions)
                .correlate(root)
                .exists()
            )
        if not isinstance(flt, Filter):
            raise TypeError(f"Unsupported filter {flt!r}")

        column = column_for(entity, root, flt.field)
        if flt.op is Op.EQ:
            return column.is_(None) if flt.value is None else column == flt.value
        if flt.op is Op.NE:
            return column.is_not(None) if flt.value is None else column != flt.value
        if flt.op is Op.IN:
            return column.in_(list(flt.value))
        return column.ilike(f"%{_escape_like(str(flt.value))}%", escape="\\")


class SqlReadAdapter:
    """Run read queries against an async SQLAlchemy session."""

    def __init__(self, db: AsyncSession, compiler: SqlCompiler | None = None):
        self.db = db
        self.compiler = compiler or SqlCompiler()

    async def fetch_all(self, query: ReadQuery) -> list[dict[str, Any]]:
        stmt = self.compiler.compile(replace(query, page=None))
        result = await self.db.execute(stmt)
        return [nest(dict(row)) for row in result.mappings().all()]

    async def fetch_one(self, query: ReadQuery) -> dict[str, Any] | None:
        stmt = self.compiler.compile(replace(query, page=None)).limit(1)
        result = await self.db.execute(stmt)
        row = result.mappings().first()
        return nest(dict(row)) if row is not None else None

    async def fetch_page(self, query: ReadQuery) -> PageResult:
        if query.page is None:
            raise ValueError("fetch_page requires a page request")
        stmt = self.compiler.compile(query)

        total = await self.db.execute(
            select(func.count()).select_from(stmt.order_by(None).subquery())
        )
        result = await self.db.execute(
            stmt.limit(query.page.limit).offset(query.page.offset)
        )
        return PageResult(
            docs=[nest(dict(row)) for row in result.mappings().all()],
            total_docs=total.scalar_one(),
            page=query.page.page,
            limit=query.page.limit,
        )
