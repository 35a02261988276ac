from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..repositories.base import Repository


class Criteria(ABC):
    """
    Reusable unit of query logic.

    A criteria narrows the live query of the repository it is applied to,
    e.g. through ``repository.where(...)`` or by assigning ``repository.query``.
    """

    @abstractmethod
    def apply(self, repository: "Repository") -> None:
        pass
