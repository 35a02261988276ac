"""
Entity handles.

A repository works against exactly one of two handle states:

* ``QueryHandle`` - a chainable SQLAlchemy ``Query`` that can be narrowed
  repeatedly. Conditions added through ``Repository.where`` are folded into a
  separate predicate so that ``or`` conditions combine with earlier ``where``
  conditions instead of with every filter on the query.
* ``ResolvedHandle`` - a concrete list of entities. Narrowing it is invalid.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Type, Union

from sqlalchemy import and_, or_
from sqlalchemy.orm import Query, Session

from .exceptions import RepositoryError

# Query capabilities returning a further Query
CHAINABLE_METHODS = frozenset({
    "filter",
    "filter_by",
    "where",
    "order_by",
    "limit",
    "offset",
    "join",
    "outerjoin",
    "distinct",
    "group_by",
    "having",
    "options",
    "select_from",
    "execution_options",
})

# Query capabilities that execute the query
NON_CHAINABLE_METHODS = frozenset({
    "count",
    "first",
    "all",
    "one",
    "one_or_none",
    "scalar",
})

BOOLEANS = ("and", "or")


def combine(left, right, boolean: str = "and"):
    """Combine two predicates, either of which may be None."""
    if left is None:
        return right
    if right is None:
        return left
    if boolean == "or":
        return or_(left, right)
    return and_(left, right)


def normalize_boolean(boolean: str) -> str:
    normalized = (boolean or "and").lower()
    if normalized not in BOOLEANS:
        raise RepositoryError(f"Invalid boolean '{boolean}', expected one of {BOOLEANS}")
    return normalized


@dataclass
class QueryHandle:
    model: Type[Any]
    query: Query
    predicate: Any = None
    # conditions from before the scope currently running; still part of build()
    base: Any = None
    narrowed: bool = False

    @classmethod
    def fresh(cls, db: Session, model: Type[Any]) -> "QueryHandle":
        return cls(model=model, query=db.query(model).enable_assertions(False))

    @property
    def session(self) -> Session:
        return self.query.session

    def narrow(self, condition, boolean: str = "and") -> None:
        self.predicate = combine(self.predicate, condition, normalize_boolean(boolean))
        self.narrowed = True

    def adopt(self, query: Query) -> None:
        # limit/offset set by random() or forwarded calls must not block filtering
        self.query = query.enable_assertions(False)
        self.narrowed = True

    def detach_predicate(self):
        """
        Start a new condition group.

        Earlier conditions move into ``base`` and keep narrowing ``build()``.
        Returns a token for ``merge_predicate``.
        """
        outer = (self.base, self.predicate)
        self.base = combine(self.base, self.predicate)
        self.predicate = None
        return outer

    def merge_predicate(self, outer, boolean: str = "and") -> None:
        """Combine the group opened by ``detach_predicate`` with the conditions before it."""
        base, previous = outer
        self.base = base
        self.predicate = combine(previous, self.predicate, normalize_boolean(boolean))

    def build(self) -> Query:
        query = self.query.enable_assertions(False)
        condition = combine(self.base, self.predicate)
        if condition is None:
            return query
        return query.filter(condition)

    def capability(self, name: str) -> Optional[Callable[..., Any]]:
        if name in CHAINABLE_METHODS or name in NON_CHAINABLE_METHODS:
            return getattr(self.query, name)
        return None

    def model_scope(self, name: str) -> Optional[Callable[..., Any]]:
        scope = getattr(self.model, f"scope_{name}", None)
        if callable(scope):
            return scope
        return None


@dataclass
class ResolvedHandle:
    model: Type[Any]
    items: List[Any] = field(default_factory=list)

    narrowed = True

    def capability(self, name: str) -> None:
        return None


def is_windowed(query: Query) -> bool:
    """Whether ``query`` already carries a LIMIT or OFFSET."""
    return query._limit_clause is not None or query._offset_clause is not None


EntityHandle = Union[QueryHandle, ResolvedHandle]


def require_query(handle: EntityHandle, operation: str) -> QueryHandle:
    """Return ``handle`` if it is still chainable, otherwise fail."""
    if isinstance(handle, QueryHandle):
        return handle
    if isinstance(handle, ResolvedHandle):
        raise RepositoryError(
            f"Cannot {operation} on resolved {handle.model.__name__} results"
        )
    raise RepositoryError(f"Unknown entity handle {handle!r}")
