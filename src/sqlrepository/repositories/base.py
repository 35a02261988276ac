"""
Base repository implementation.

This module provides the generic repository: a stateful facade over one
SQLAlchemy mapped class that composes where conditions, scopes and criteria
into a query, runs one terminal operation and then resets itself.
"""

import logging
from contextlib import contextmanager
from enum import Enum
from typing import Any, Dict, Generic, Iterable, List, Optional, Sequence, TypeVar, Union

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session, load_only, selectinload

from ..model.entity import (
    column_attribute_names,
    fill,
    identity_of,
    primary_key_attribute,
    relationship_names,
    resolve_attribute,
)
from ..settings import settings
from .accumulator import CriteriaDescriptor, QueryAccumulator, ScopeDescriptor
from .composer import apply_conditions, apply_criteria, apply_scopes
from .exceptions import NotFoundError, ProvisioningError, RepositoryError
from .handle import (
    NON_CHAINABLE_METHODS,
    EntityHandle,
    QueryHandle,
    ResolvedHandle,
    is_windowed,
    normalize_boolean,
    require_query,
)
from .pagination import Page
from .provisioner import Provisioner, default_provisioner

# Type variable for generic entity type
T = TypeVar('T')

ALL_COLUMNS = ("*",)
ID_COLLECTIONS = (list, tuple, set, frozenset)

logger = logging.getLogger(__name__)


class RepositoryState(str, Enum):
    IDLE = "idle"
    CONFIGURING = "configuring"
    APPLYING = "applying"


class Repository(Generic[T]):
    """
    Generic repository over a single SQLAlchemy mapped class.

    Chaining calls (``where``, ``find_by``, ``with_``, ``scopes``,
    ``criteria``, ``random``, ``order_by``, ``forward``) configure the next
    terminal call (``first``, ``find``, ``get``/``all``, ``paginate``,
    ``exists``, ``create``, ``update``, ``delete``). Every terminal call runs
    the boot hook, the pending scopes and the pending criteria, delegates to
    the session and finally resets the repository, whether it succeeded or not.

    Subclasses declare the managed model through the ``model`` class
    attribute (a mapped class or an import string) and may define a ``boot``
    method that runs before composition on every terminal call.

    A repository instance is owned by one caller at a time; it holds mutable
    per-call state and is not safe for concurrent use. Use one instance per
    session or request.
    """

    model: Any = None

    def __init__(self, db: Session, model: Any = None, provisioner: Optional[Provisioner] = None):
        """
        Initialize repository with database session and model identifier.

        Args:
            db: SQLAlchemy database session
            model: Mapped class or import string, defaults to the class attribute
            provisioner: Resolves the model and criteria classes

        Raises:
            ProvisioningError: If the model is not a mapped class
        """
        self.db = db
        self.provisioner = provisioner or default_provisioner
        self._model_identifier = model if model is not None else type(self).model
        self._accumulator = QueryAccumulator()
        self._boot = True
        self._state = RepositoryState.IDLE
        self.model_class = None
        self.handle: EntityHandle = None
        self.reset()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> RepositoryState:
        return self._state

    @property
    def boot_enabled(self) -> bool:
        return self._boot

    @property
    def query(self) -> Query:
        """The live query, without the conditions added through ``where``."""
        return require_query(self.handle, "access the query").query

    @query.setter
    def query(self, query: Query) -> None:
        if not isinstance(query, Query):
            raise RepositoryError(f"Expected a Query, got {type(query).__name__}")
        require_query(self.handle, "replace the query").adopt(query)

    def reset(self) -> None:
        """Discard pending scopes and criteria and start from a fresh query."""
        self._accumulator.clear()
        self._boot = True
        self.model_class = self.provisioner.make_model(self._model_identifier)
        self.handle = QueryHandle.fresh(self.db, self.model_class)
        self._state = RepositoryState.IDLE

    def _configuring(self) -> "Repository[T]":
        if self._state is RepositoryState.IDLE:
            self._state = RepositoryState.CONFIGURING
        return self

    # ------------------------------------------------------------------
    # Scopes and criteria
    # ------------------------------------------------------------------

    def get_scopes(self) -> Sequence[ScopeDescriptor]:
        return self._accumulator.list_scopes()

    def get_criteria(self) -> Sequence[CriteriaDescriptor]:
        return self._accumulator.list_criteria()

    def add_scope(self, descriptor: ScopeDescriptor) -> "Repository[T]":
        self._accumulator.add_scope(descriptor)
        return self._configuring()

    def add_criteria(self, descriptor: CriteriaDescriptor) -> "Repository[T]":
        self._accumulator.add_criteria(descriptor)
        return self._configuring()

    def scopes(self, scopes: Any, boolean: str = "and") -> "Repository[T]":
        """
        Queue scopes for the next terminal call.

        Args:
            scopes: A callable receiving the repository, the name of a model
                scope (``scope_<name>`` on the model class), or a list of those
            boolean: How the conditions a scope adds combine with earlier ones
        """
        boolean = normalize_boolean(boolean)
        if not isinstance(scopes, (list, tuple)):
            scopes = [scopes]
        for scope in scopes:
            self.add_scope(ScopeDescriptor(scope, boolean))
        return self._configuring()

    def criteria(self, criteria: Any, *args, **kwargs) -> "Repository[T]":
        """Queue a criteria class (or import string) with its constructor arguments."""
        return self.add_criteria(CriteriaDescriptor(criteria, tuple(args), dict(kwargs)))

    def with_boot(self) -> "Repository[T]":
        self._boot = True
        return self

    def without_boot(self) -> "Repository[T]":
        self._boot = False
        return self

    # ------------------------------------------------------------------
    # Chaining
    # ------------------------------------------------------------------

    def where(self, conditions: Any, boolean: str = "and") -> "Repository[T]":
        """
        Narrow the query immediately.

        Args:
            conditions: ``{attribute: value}`` or a list of
                ``(attribute, operator, value)`` / ``(attribute, value)`` entries
            boolean: ``and`` or ``or``, applied to every condition

        Returns:
            The repository
        """
        apply_conditions(self.handle, conditions, boolean)
        return self._configuring()

    def find_by(self, attribute: str, value: Any) -> "Repository[T]":
        return self.where([(attribute, "=", value)])

    def with_(self, relations: Union[str, Iterable[str]]) -> "Repository[T]":
        """Eager load relations, dotted paths load nested relations."""
        handle = require_query(self.handle, "eager load relations")
        if isinstance(relations, str):
            relations = [relations]
        options = [self._eager_loader(path) for path in relations]
        handle.adopt(handle.query.options(*options))
        return self._configuring()

    def _eager_loader(self, path: str):
        model = self.model_class
        loader = None
        for name in path.split("."):
            if name not in relationship_names(model):
                raise RepositoryError(f"Relation {name} not exists in {model.__name__}")
            attribute = getattr(model, name)
            loader = selectinload(attribute) if loader is None else loader.selectinload(attribute)
            model = attribute.property.mapper.class_
        return loader

    def random(self, qty: Optional[int] = None) -> "Repository[T]":
        handle = require_query(self.handle, "order randomly")
        random_function = getattr(func, settings.REPOSITORY_RANDOM_FUNCTION)
        handle.adopt(handle.query.order_by(random_function()).limit(qty or settings.REPOSITORY_RANDOM_LIMIT))
        return self._configuring()

    def order_by(self, column: str, direction: str = "asc") -> "Repository[T]":
        handle = require_query(self.handle, "order results")
        attribute = resolve_attribute(self.model_class, column)
        if attribute is None:
            raise RepositoryError(f"Attribute {column} not exists in {self.model_class.__name__}")
        direction = str(direction).lower()
        if direction not in ("asc", "desc"):
            raise RepositoryError(f"Invalid order direction '{direction}'")
        ordering = attribute.desc() if direction == "desc" else attribute.asc()
        handle.adopt(handle.query.order_by(ordering))
        return self._configuring()

    def forward(self, method: str, *args, **kwargs) -> "Repository[T]":
        """
        Call a query capability and adopt the resulting query.

        Raises:
            RepositoryError: If the handle has no such capability or the call
                does not return a chainable query
        """
        capability = self.handle.capability(method)

        if capability is None:
            raise RepositoryError(f"Method {method} not exists in {self.model_class.__name__}")

        if method in NON_CHAINABLE_METHODS:
            raise RepositoryError(f"Method {method} can not be called in {type(self).__name__}")

        result = capability(*args, **kwargs)

        if not isinstance(result, Query):
            raise RepositoryError(f"Method {method} can not be called in {type(self).__name__}")

        self.query = result
        return self._configuring()

    # ------------------------------------------------------------------
    # Terminal operations
    # ------------------------------------------------------------------

    @contextmanager
    def _applying(self, compose: bool = True):
        self._state = RepositoryState.APPLYING
        try:
            if compose:
                self._apply_boot()
                apply_scopes(self, self._accumulator.drain_scopes())
                apply_criteria(self, self._accumulator.drain_criteria(), self.provisioner)
            yield
        finally:
            self.reset()

    def _apply_boot(self) -> None:
        boot = getattr(self, "boot", None)
        if self._boot and callable(boot):
            logger.debug(f"Booting {type(self).__name__}")
            boot()

    def _select_columns(self, query: Query, columns: Any) -> Query:
        if isinstance(columns, str):
            columns = [columns]
        if columns is None or tuple(columns) == ALL_COLUMNS:
            return query

        known = column_attribute_names(self.model_class)
        attributes = []
        for name in columns:
            if name not in known:
                raise RepositoryError(f"Column {name} not exists in {self.model_class.__name__}")
            attributes.append(getattr(self.model_class, name))

        return query.options(load_only(*attributes))

    def first(self, columns: Any = ALL_COLUMNS, fail: bool = True) -> Optional[T]:
        """
        Get the first entity of the composed query.

        Raises:
            NotFoundError: If nothing matches and ``fail`` is set
        """
        with self._applying():
            handle = self.handle
            if isinstance(handle, ResolvedHandle):
                result = handle.items[0] if handle.items else None
            else:
                query = require_query(handle, "fetch").build()
                result = self._select_columns(query, columns).first()

            if result is None and fail:
                raise NotFoundError(self.model_class.__name__)

        return result

    def find(self, id: Any, columns: Any = ALL_COLUMNS, fail: bool = True) -> Union[Optional[T], List[T]]:
        """
        Get an entity by primary key within the composed query.

        Args:
            id: Primary key value, or a collection of them
            columns: Attribute names to load
            fail: Raise if the entity (or any of the entities) is missing

        Returns:
            The entity (None if missing), or a list for a collection of ids

        Raises:
            NotFoundError: If an entity is missing and ``fail`` is set
        """
        ids = list(id) if isinstance(id, ID_COLLECTIONS) else None

        with self._applying():
            handle = self.handle
            name = self.model_class.__name__

            if isinstance(handle, ResolvedHandle):
                wanted = ids if ids is not None else [id]
                found = [item for item in handle.items if identity_of(item) in wanted]
            else:
                key = primary_key_attribute(self.model_class)
                query = self._select_columns(require_query(handle, "find").build(), columns)
                if ids is None:
                    found = query.filter(key == id).limit(1).all()
                else:
                    found = query.filter(key.in_(ids)).all() if ids else []

            if ids is None:
                result = found[0] if found else None
                if result is None and fail:
                    raise NotFoundError(name, id)
                return result

            missing = set(ids) - {identity_of(item) for item in found}
            if missing and fail:
                raise NotFoundError(name, sorted(missing, key=str))
            return found

    def get(self, columns: Any = ALL_COLUMNS) -> List[T]:
        with self._applying():
            handle = self.handle
            if isinstance(handle, ResolvedHandle):
                results = list(handle.items)
            else:
                query = require_query(handle, "fetch").build()
                results = self._select_columns(query, columns).all()

        return results

    def all(self, columns: Any = ALL_COLUMNS) -> List[T]:
        return self.get(columns)

    def paginate(
        self,
        limit: Optional[int] = None,
        columns: Any = ALL_COLUMNS,
        page_name: Optional[str] = None,
        page: int = 1
    ) -> Page:
        """
        Get one page of the composed query.

        Args:
            limit: Entities per page, defaults to ``REPOSITORY_PER_PAGE``
            columns: Attribute names to load
            page_name: Name of the page cursor, defaults to ``REPOSITORY_PAGE_NAME``
            page: 1-based page number

        Returns:
            Page with the entities and pagination metadata
        """
        per_page = limit or settings.REPOSITORY_PER_PAGE
        page_name = page_name or settings.REPOSITORY_PAGE_NAME
        page = max(int(page or 1), 1)
        offset = Page.offset_for(page, per_page)

        with self._applying():
            handle = self.handle
            if isinstance(handle, ResolvedHandle):
                total = len(handle.items)
                items = handle.items[offset:offset + per_page]
            else:
                query = self._select_columns(require_query(handle, "paginate").build(), columns)
                if is_windowed(query):
                    # a window from random() or forward("limit") bounds the pages
                    rows = query.all()
                    total = len(rows)
                    items = rows[offset:offset + per_page]
                else:
                    total = query.order_by(None).count()
                    items = query.limit(per_page).offset(offset).all() if total else []

        return Page(items=items, total=total, per_page=per_page, current_page=page, page_name=page_name)

    def exists(self) -> bool:
        with self._applying():
            handle = self.handle
            if isinstance(handle, ResolvedHandle):
                result = bool(handle.items)
            else:
                query = require_query(handle, "check existence").build()
                result = bool(query.session.query(query.exists()).scalar())

        return result

    def create(self, data: Dict[str, Any], force: bool = False) -> T:
        """
        Create and persist a new entity.

        Args:
            data: Attribute values
            force: Bypass mass assignment protection

        Returns:
            Created entity with updated fields (e.g., ID)
        """
        with self._applying(compose=False):
            entity = self.model_class()
            fill(entity, data, force)
            self.db.add(entity)
            self._persist("create", entity)

        return entity

    def update(self, id: Any, data: Dict[str, Any], force: bool = False) -> T:
        """
        Update the entity with the given primary key.

        Raises:
            NotFoundError: If the entity is not found
        """
        with self._applying(compose=False):
            if isinstance(id, ID_COLLECTIONS):
                raise RepositoryError("update expects a single id")
            entity = self.find(id)
            fill(entity, data, force)
            self._persist("update", entity)

        return entity

    def delete(self, id: Any = None) -> Union[int, bool, None]:
        """
        Delete entities.

        Args:
            id: A collection of ids (bulk delete), a single id, or None to
                delete the first entity of the composed query

        Returns:
            Number of deleted entities for a collection, True for a single
            deletion, None if there was nothing to delete

        Raises:
            NotFoundError: If a single entity is not found
        """
        with self._applying(compose=False):
            if isinstance(id, ID_COLLECTIONS):
                result = self._destroy(list(id))
            elif id is not None:
                result = self._remove(self.find(id))
            elif self.handle.narrowed or len(self._accumulator) > 0:
                result = self._remove(self.first())
            else:
                result = None

        return result

    def _destroy(self, ids: List[Any]) -> int:
        if not ids:
            return 0

        key = primary_key_attribute(self.model_class)
        entities = self.db.query(self.model_class).filter(key.in_(ids)).all()
        for entity in entities:
            self.db.delete(entity)

        self._persist("delete")
        return len(entities)

    def _remove(self, entity: T) -> bool:
        self.db.delete(entity)
        self._persist("delete")
        return True

    def _persist(self, action: str, entity: Optional[T] = None) -> None:
        try:
            if settings.REPOSITORY_AUTOCOMMIT:
                self.db.commit()
            else:
                self.db.flush()
            if entity is not None:
                self.db.refresh(entity)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to {action} {self.model_class.__name__}: {e}")
            raise


__all__ = [
    "Repository",
    "RepositoryState",
    "RepositoryError",
    "NotFoundError",
    "ProvisioningError",
]
