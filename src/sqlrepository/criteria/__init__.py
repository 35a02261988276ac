from .base import Criteria
from .common import WhereCriteria, OrderByCriteria

__all__ = [
    "Criteria",
    "WhereCriteria",
    "OrderByCriteria",
]
