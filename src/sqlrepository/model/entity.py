"""
Entity capability helpers.

A persisted entity is any SQLAlchemy mapped class. Models may restrict
mass assignment by declaring ``__fillable__`` (whitelist) and/or
``__guarded__`` (blacklist, defaults to the primary key attributes).
"""

import logging
from typing import Any, Dict, List, Optional, Set, Type

from sqlalchemy import inspect
from sqlalchemy.orm import Mapper
from sqlalchemy.orm.attributes import InstrumentedAttribute

logger = logging.getLogger(__name__)


def entity_mapper(model: Any) -> Optional[Mapper]:
    """Return the mapper of ``model`` or None if it is not a mapped class."""
    if not isinstance(model, type):
        return None
    mapper = inspect(model, raiseerr=False)
    if isinstance(mapper, Mapper):
        return mapper
    return None


def is_entity(model: Any) -> bool:
    return entity_mapper(model) is not None


def is_entity_instance(value: Any) -> bool:
    return is_entity(type(value))


def primary_key_attribute(model: Type[Any]) -> InstrumentedAttribute:
    """
    Get the primary key attribute of a mapped class.

    Args:
        model: SQLAlchemy mapped class

    Returns:
        The instrumented primary key attribute (e.g. ``User.id``)
    """
    mapper = entity_mapper(model)
    column = mapper.primary_key[0]
    return getattr(model, mapper.get_property_by_column(column).key)


def column_attribute_names(model: Type[Any]) -> List[str]:
    return [attr.key for attr in entity_mapper(model).column_attrs]


def relationship_names(model: Type[Any]) -> List[str]:
    return list(entity_mapper(model).relationships.keys())


def guarded_attributes(model: Type[Any]) -> Set[str]:
    guarded = getattr(model, "__guarded__", None)
    if guarded is None:
        mapper = entity_mapper(model)
        return {mapper.get_property_by_column(column).key for column in mapper.primary_key}
    return set(guarded)


def fillable_attributes(model: Type[Any]) -> Set[str]:
    columns = set(column_attribute_names(model))
    fillable = getattr(model, "__fillable__", None)
    if fillable:
        columns &= set(fillable)
    return columns - guarded_attributes(model)


def assignable_data(model: Type[Any], data: Dict[str, Any], force: bool = False) -> Dict[str, Any]:
    """
    Filter ``data`` down to the attributes that may be mass assigned.

    Args:
        model: SQLAlchemy mapped class
        data: Attribute values keyed by attribute name
        force: Bypass the fillable/guarded protection

    Returns:
        Dictionary of assignable attribute values
    """
    columns = set(column_attribute_names(model))
    allowed = columns if force else fillable_attributes(model)

    assignable = {}
    discarded = []
    for key, value in data.items():
        if key in allowed:
            assignable[key] = value
        elif key in columns:
            discarded.append(key)

    if discarded:
        logger.warning(f"Discarded non fillable attributes {sorted(discarded)} for {model.__name__}")

    return assignable


def fill(entity: Any, data: Dict[str, Any], force: bool = False) -> Any:
    for key, value in assignable_data(type(entity), data, force).items():
        setattr(entity, key, value)
    return entity


def identity_of(entity: Any) -> Any:
    return getattr(entity, primary_key_attribute(type(entity)).key)


def resolve_attribute(model: Type[Any], name: str) -> Optional[Any]:
    """Return the class-level attribute (column, relationship or hybrid) named ``name``."""
    if name not in entity_mapper(model).all_orm_descriptors.keys():
        return None
    return getattr(model, name)
