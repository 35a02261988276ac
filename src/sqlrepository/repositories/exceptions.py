"""
Exceptions raised by repositories.
"""

from typing import Any


class RepositoryError(Exception):
    """Base exception for repository operations."""
    pass


class NotFoundError(RepositoryError):
    """Exception raised when entity is not found."""

    def __init__(self, entity_type: str, entity_id: Any = None):
        if entity_id is None:
            message = f"No query results for {entity_type}"
        else:
            message = f"{entity_type} with id {entity_id} not found"
        super().__init__(message)
        self.entity_type = entity_type
        self.entity_id = entity_id


class ProvisioningError(RepositoryError):
    """Exception raised when a model or criteria class cannot be provisioned."""

    def __init__(self, identifier: Any, reason: str):
        super().__init__(f"Cannot provision {identifier!r}: {reason}")
        self.identifier = identifier
        self.reason = reason
