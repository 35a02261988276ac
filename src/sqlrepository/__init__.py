from .repositories import (
    Repository,
    RepositoryState,
    RepositoryError,
    NotFoundError,
    ProvisioningError,
    ScopeDescriptor,
    CriteriaDescriptor,
    Page,
    Provisioner,
)
from .criteria import Criteria, WhereCriteria, OrderByCriteria

__version__ = "0.1.0"

__all__ = [
    "Repository",
    "RepositoryState",
    "RepositoryError",
    "NotFoundError",
    "ProvisioningError",
    "ScopeDescriptor",
    "CriteriaDescriptor",
    "Page",
    "Provisioner",
    "Criteria",
    "WhereCriteria",
    "OrderByCriteria",
]
