"""
Query composition.

Translates where conditions, scopes and criteria into mutations of a
repository's entity handle.
"""

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Iterable, List, Tuple

from sqlalchemy.orm import Query

from ..model.entity import is_entity_instance, resolve_attribute
from .accumulator import CriteriaDescriptor, ScopeDescriptor
from .exceptions import RepositoryError
from .handle import QueryHandle, ResolvedHandle, require_query
from .provisioner import Provisioner

if TYPE_CHECKING:
    from .base import Repository

logger = logging.getLogger(__name__)


def _equals(column, value):
    if isinstance(value, (list, tuple, set, frozenset)):
        return column.in_(list(value))
    if value is None:
        return column.is_(None)
    return column == value


def _not_equals(column, value):
    if isinstance(value, (list, tuple, set, frozenset)):
        return column.not_in(list(value))
    if value is None:
        return column.is_not(None)
    return column != value


def _between(column, value):
    try:
        low, high = value
    except (TypeError, ValueError) as e:
        raise RepositoryError(f"between expects a (low, high) pair, got {value!r}") from e
    return column.between(low, high)


OPERATORS = {
    "=": _equals,
    "==": _equals,
    "!=": _not_equals,
    "<>": _not_equals,
    "<": lambda column, value: column < value,
    "<=": lambda column, value: column <= value,
    ">": lambda column, value: column > value,
    ">=": lambda column, value: column >= value,
    "like": lambda column, value: column.like(value),
    "not like": lambda column, value: column.not_like(value),
    "ilike": lambda column, value: column.ilike(value),
    "not ilike": lambda column, value: column.not_ilike(value),
    "in": lambda column, value: column.in_(list(value)),
    "not in": lambda column, value: column.not_in(list(value)),
    "between": _between,
    "is": lambda column, value: column.is_(value),
    "is not": lambda column, value: column.is_not(value),
}


def build_condition(model, attribute: str, operator: str, value: Any):
    """
    Build a SQL expression for one condition.

    Args:
        model: SQLAlchemy mapped class
        attribute: Attribute name on the model
        operator: Comparison operator (see OPERATORS)
        value: Right hand side value

    Returns:
        SQLAlchemy boolean expression

    Raises:
        RepositoryError: On unknown attribute or operator
    """
    column = resolve_attribute(model, attribute)
    if column is None:
        raise RepositoryError(f"Attribute {attribute} not exists in {model.__name__}")

    factory = OPERATORS.get(str(operator).strip().lower())
    if factory is None:
        raise RepositoryError(f"Unsupported operator '{operator}'")

    return factory(column, value)


def iter_conditions(conditions: Any) -> Iterable[Tuple[str, str, Any]]:
    """
    Normalize conditions into ``(attribute, operator, value)`` triples.

    Accepts a mapping of attribute to value (equality) or a sequence whose
    entries are each a triple, an ``(attribute, value)`` pair or a mapping.
    """
    if isinstance(conditions, Mapping):
        for attribute, value in conditions.items():
            yield attribute, "=", value
        return

    if isinstance(conditions, (str, bytes)) or not isinstance(conditions, Iterable):
        raise RepositoryError(f"Invalid where conditions {conditions!r}")

    for entry in conditions:
        if isinstance(entry, Mapping):
            yield from iter_conditions(entry)
        elif isinstance(entry, (list, tuple)) and len(entry) == 3:
            attribute, operator, value = entry
            yield attribute, operator, value
        elif isinstance(entry, (list, tuple)) and len(entry) == 2:
            attribute, value = entry
            yield attribute, "=", value
        else:
            raise RepositoryError(f"Invalid where condition {entry!r}")


def apply_conditions(handle, conditions: Any, boolean: str = "and") -> None:
    query_handle = require_query(handle, "apply where conditions")

    for attribute, operator, value in iter_conditions(conditions):
        condition = build_condition(query_handle.model, attribute, operator, value)
        query_handle.narrow(condition, boolean)


def adopt_result(repository: "Repository", result: Any, source: str) -> None:
    """Adopt whatever a scope returned as the repository's new handle."""
    if result is None or result is repository:
        return

    model = repository.model_class

    if isinstance(result, Query):
        repository.query = result
    elif is_entity_instance(result):
        repository.handle = ResolvedHandle(model=model, items=[result])
    elif isinstance(result, (list, tuple)) and all(is_entity_instance(item) for item in result):
        repository.handle = ResolvedHandle(model=model, items=list(result))
    else:
        raise RepositoryError(f"Scope {source} returned unsupported value {type(result).__name__}")


def _scope_name(scope: Any) -> str:
    if isinstance(scope, str):
        return scope
    return getattr(scope, "__qualname__", repr(scope))


def apply_scope(repository: "Repository", descriptor: ScopeDescriptor) -> None:
    handle = repository.handle
    outer = None

    if descriptor.is_named:
        query_handle = require_query(handle, f"apply scope {descriptor.scope}")
        model_scope = query_handle.model_scope(descriptor.scope)
        if model_scope is None:
            raise RepositoryError(f"Scope {descriptor.scope} not exists in {query_handle.model.__name__}")
        outer = query_handle.detach_predicate()
        result = model_scope(query_handle.query)
    elif callable(descriptor.scope):
        if isinstance(handle, QueryHandle):
            outer = handle.detach_predicate()
        result = descriptor.scope(repository)
    else:
        raise RepositoryError(f"Scope {descriptor.scope!r} is not callable")

    adopt_result(repository, result, _scope_name(descriptor.scope))

    if outer is not None and isinstance(repository.handle, QueryHandle):
        repository.handle.merge_predicate(outer, descriptor.boolean)


def apply_scopes(repository: "Repository", scopes: List[ScopeDescriptor]) -> None:
    for descriptor in scopes:
        logger.debug(f"Applying scope {_scope_name(descriptor.scope)} ({descriptor.boolean})")
        apply_scope(repository, descriptor)


def apply_criteria(
    repository: "Repository",
    criteria: List[CriteriaDescriptor],
    provisioner: Provisioner
) -> None:
    for descriptor in criteria:
        instance = provisioner.make_criteria(descriptor.identifier, descriptor.args, descriptor.kwargs)
        logger.debug(f"Applying criteria {type(instance).__name__}")
        instance.apply(repository)
