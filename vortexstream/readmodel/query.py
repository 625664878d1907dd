"""Storage-independent description of a read-model query.

A ``ReadQuery`` names a root entity, the fields to project, filters, embedded
single-entity joins, derived fields and ordering. Store adapters compile it
into their native query language (see ``compiler.SqlReadAdapter``).
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any


class Op(str, Enum):
    EQ = "eq"
    NE = "ne"
    IN = "in"
    CONTAINS = "contains"


class Aggregate(str, Enum):
    COUNT = "count"
    EXISTS = "exists"
    SUM = "sum"
    MAX = "max"


@dataclass(frozen=True)
class Filter:
    """Compare a root field against a value."""

    field: str
    value: Any
    op: Op = Op.EQ


@dataclass(frozen=True)
class AnyOf:
    """Disjunction of filters."""

    filters: tuple[Filter, ...]


@dataclass(frozen=True)
class Related:
    """Keep roots having at least one row in ``relation`` for ``actor``."""

    relation: str
    actor: str


@dataclass(frozen=True)
class Join:
    """Embed a single related entity under ``alias``."""

    relation: str
    alias: str
    fields: tuple[str, ...]


@dataclass(frozen=True)
class Computed:
    """A field derived from a relation at read time.

    COUNT and EXISTS count/test the relation rows (restricted to ``actor``
    when given); SUM and MAX aggregate ``field`` of the relation's rows.
    ``on`` evaluates the relation from a join alias instead of the root.
    """

    name: str
    kind: Aggregate
    relation: str
    field: str | None = None
    actor: str | None = None
    on: str | None = None


@dataclass(frozen=True)
class Sort:
    field: str
    descending: bool = False


@dataclass(frozen=True)
class PageRequest:
    page: int = 1
    limit: int = 10

    def __post_init__(self):
        if self.page < 1:
            raise ValueError("page must be >= 1")
        if self.limit < 1:
            raise ValueError("limit must be >= 1")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class ReadQuery:
    entity: str
    fields: tuple[str, ...]
    filters: tuple[Filter | AnyOf | Related, ...] = ()
    joins: tuple[Join, ...] = ()
    computed: tuple[Computed, ...] = ()
    sort: tuple[Sort, ...] = ()
    page: PageRequest | None = None
    viewer_id: str | None = None

    def where(self, *filters: Filter | AnyOf | Related) -> "ReadQuery":
        return replace(self, filters=self.filters + tuple(filters))

    def paginate(self, page: int, limit: int) -> "ReadQuery":
        return replace(self, page=PageRequest(page=page, limit=limit))

    def ordered_by(self, *sort: Sort) -> "ReadQuery":
        return replace(self, sort=tuple(sort))

    def ordering(self) -> tuple[Sort, ...]:
        """Sort keys with the id tiebreak appended.

        The tiebreak makes page boundaries deterministic when sort keys tie.
        """
        if any(s.field == "id" for s in self.sort):
            return self.sort
        return self.sort + (Sort("id"),)


@dataclass
class PageResult:
    """One page of rows plus the bookkeeping clients need to walk pages."""

    docs: list[dict[str, Any]]
    total_docs: int
    page: int
    limit: int
    total_pages: int = field(init=False)

    def __post_init__(self):
        self.total_pages = max(1, -(-self.total_docs // self.limit))

    @property
    def has_prev_page(self) -> bool:
        return self.page > 1

    @property
    def has_next_page(self) -> bool:
        return self.page < self.total_pages
