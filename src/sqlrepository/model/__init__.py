from .entity import (
    entity_mapper,
    is_entity,
    is_entity_instance,
    primary_key_attribute,
    column_attribute_names,
    relationship_names,
    fillable_attributes,
    guarded_attributes,
    assignable_data,
    fill,
    identity_of,
    resolve_attribute,
)

__all__ = [
    "entity_mapper",
    "is_entity",
    "is_entity_instance",
    "primary_key_attribute",
    "column_attribute_names",
    "relationship_names",
    "fillable_attributes",
    "guarded_attributes",
    "assignable_data",
    "fill",
    "identity_of",
    "resolve_attribute",
]
