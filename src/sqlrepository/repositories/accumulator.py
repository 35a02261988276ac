"""
Pending scopes and criteria.

Both queues are owned by a single repository instance, keep insertion order
and are drained as a whole when a terminal operation applies them.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Tuple, Union

ScopeCallable = Callable[[Any], Any]


@dataclass(frozen=True)
class ScopeDescriptor:
    """A scope callable (or the name of a model scope) and how it combines."""
    scope: Union[ScopeCallable, str]
    boolean: str = "and"

    @property
    def is_named(self) -> bool:
        return isinstance(self.scope, str)


@dataclass(frozen=True)
class CriteriaDescriptor:
    """A criteria class identifier with its constructor arguments, resolved on apply."""
    identifier: Any
    args: Tuple[Any, ...] = ()
    kwargs: Dict[str, Any] = field(default_factory=dict)


class QueryAccumulator:

    def __init__(self):
        self._scopes: List[ScopeDescriptor] = []
        self._criteria: List[CriteriaDescriptor] = []

    def add_scope(self, descriptor: ScopeDescriptor) -> None:
        self._scopes.append(descriptor)

    def add_criteria(self, descriptor: CriteriaDescriptor) -> None:
        self._criteria.append(descriptor)

    def list_scopes(self) -> Tuple[ScopeDescriptor, ...]:
        return tuple(self._scopes)

    def list_criteria(self) -> Tuple[CriteriaDescriptor, ...]:
        return tuple(self._criteria)

    def drain_scopes(self) -> List[ScopeDescriptor]:
        scopes, self._scopes = self._scopes, []
        return scopes

    def drain_criteria(self) -> List[CriteriaDescriptor]:
        criteria, self._criteria = self._criteria, []
        return criteria

    def clear(self) -> None:
        self._scopes = []
        self._criteria = []

    def __len__(self) -> int:
        return len(self._scopes) + len(self._criteria)
