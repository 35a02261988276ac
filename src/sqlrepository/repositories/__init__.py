"""
Repository pattern implementation over SQLAlchemy.

This package provides the generic repository together with the pieces it
composes queries from: entity handles, pending scope/criteria queues, the
provisioner resolving models and criteria, and pagination results.
"""

from .base import (
    Repository,
    RepositoryState,
)
from .exceptions import (
    RepositoryError,
    NotFoundError,
    ProvisioningError
)
from .accumulator import ScopeDescriptor, CriteriaDescriptor, QueryAccumulator
from .handle import EntityHandle, QueryHandle, ResolvedHandle
from .pagination import Page
from .provisioner import Provisioner, default_provisioner

__all__ = [
    "Repository",
    "RepositoryState",
    "RepositoryError",
    "NotFoundError",
    "ProvisioningError",
    "ScopeDescriptor",
    "CriteriaDescriptor",
    "QueryAccumulator",
    "EntityHandle",
    "QueryHandle",
    "ResolvedHandle",
    "Page",
    "Provisioner",
    "default_provisioner"
]
