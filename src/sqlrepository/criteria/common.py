from typing import TYPE_CHECKING, Any

from .base import Criteria

if TYPE_CHECKING:
    from ..repositories.base import Repository


class WhereCriteria(Criteria):
    """Apply a fixed set of where conditions."""

    def __init__(self, conditions: Any, boolean: str = "and"):
        self.conditions = conditions
        self.boolean = boolean

    def apply(self, repository: "Repository") -> None:
        repository.where(self.conditions, self.boolean)


class OrderByCriteria(Criteria):
    """
    Order results by a model attribute.

    The column and direction are validated by ``Repository.order_by`` when
    the criteria is applied.
    """

    def __init__(self, column: str, direction: str = "asc"):
        self.column = column
        self.direction = direction

    def apply(self, repository: "Repository") -> None:
        repository.order_by(self.column, self.direction)
