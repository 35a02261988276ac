"""
Provisioning of model classes and criteria objects.

Identifiers are either the class itself or an import string in the form
``package.module:ClassName`` or ``package.module.ClassName``.
"""

import importlib
import logging
from typing import Any, Dict, Optional, Sequence, Type

from ..criteria.base import Criteria
from ..model.entity import is_entity
from .exceptions import ProvisioningError

logger = logging.getLogger(__name__)


class Provisioner:
    """
    Resolves identifiers to classes and instantiates criteria.

    Resolved import strings are cached per provisioner.
    """

    def __init__(self):
        self._resolved: Dict[str, Any] = {}

    def resolve(self, identifier: Any) -> Any:
        """
        Resolve an identifier to the object it names.

        Args:
            identifier: A class or an import string

        Returns:
            The resolved object

        Raises:
            ProvisioningError: If the import string cannot be resolved
        """
        if not isinstance(identifier, str):
            return identifier

        if identifier in self._resolved:
            return self._resolved[identifier]

        if ":" in identifier:
            module_name, _, attribute = identifier.partition(":")
        else:
            module_name, _, attribute = identifier.rpartition(".")

        if not module_name or not attribute:
            raise ProvisioningError(identifier, "expected 'module:ClassName' or 'module.ClassName'")

        try:
            module = importlib.import_module(module_name)
        except ImportError as e:
            raise ProvisioningError(identifier, f"module {module_name} cannot be imported ({e})") from e

        target = module
        for part in attribute.split("."):
            try:
                target = getattr(target, part)
            except AttributeError as e:
                raise ProvisioningError(identifier, f"{part} not found in {module_name}") from e

        self._resolved[identifier] = target
        logger.debug(f"Resolved {identifier} to {target!r}")
        return target

    def make_model(self, identifier: Any) -> Type[Any]:
        """
        Resolve the entity type a repository manages.

        Raises:
            ProvisioningError: If the identifier does not name a mapped class
        """
        if identifier is None:
            raise ProvisioningError(identifier, "no model declared for repository")

        model = self.resolve(identifier)

        if not is_entity(model):
            raise ProvisioningError(identifier, "must be a SQLAlchemy mapped class")

        return model

    def make_criteria(
        self,
        identifier: Any,
        args: Sequence[Any] = (),
        kwargs: Optional[Dict[str, Any]] = None
    ) -> Criteria:
        """
        Instantiate a criteria object.

        Args:
            identifier: Criteria class, import string or ready-made instance
            args: Positional constructor arguments
            kwargs: Keyword constructor arguments

        Returns:
            Criteria instance

        Raises:
            ProvisioningError: If the identifier does not produce a Criteria
        """
        kwargs = kwargs or {}

        if isinstance(identifier, Criteria):
            if args or kwargs:
                raise ProvisioningError(identifier, "criteria instance does not take arguments")
            return identifier

        criteria_class = self.resolve(identifier)

        if not (isinstance(criteria_class, type) and issubclass(criteria_class, Criteria)):
            raise ProvisioningError(identifier, f"must be a subclass of {Criteria.__name__}")

        return criteria_class(*args, **kwargs)


default_provisioner = Provisioner()
