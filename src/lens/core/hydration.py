# src/lens/core/hydration.py
"""Turns loaded entities into plain nested dicts."""

from typing import Any, Dict, FrozenSet, Optional, Tuple

from sqlalchemy import inspect

CollectionIndex = Dict[Tuple[str, ...], str]


def to_array(
    entity: Any,
    index_by: Optional[CollectionIndex] = None,
    _path: Optional[FrozenSet[int]] = None,
    _keys: Tuple[str, ...] = (),
) -> Dict[str, Any]:
    """
    Converts an entity to a dict of its loaded columns and relationships.

    Nothing is lazy loaded: attributes left out by a partial select, or
    relationships that were not joined, are omitted. Back references to an
    entity already on the current path are omitted as well.

    `index_by` maps a relationship path from the root (`("comments",)`) to a
    field; that collection becomes a dict keyed by the field.
    """
    index_by = index_by or {}
    state = inspect(entity)
    path = (_path or frozenset()) | {id(entity)}
    unloaded = state.unloaded
    data: Dict[str, Any] = {}

    for attr in state.mapper.column_attrs:
        if attr.key not in unloaded:
            data[attr.key] = getattr(entity, attr.key)

    for rel in state.mapper.relationships:
        if rel.key in unloaded:
            continue
        value = getattr(entity, rel.key)
        keys = _keys + (rel.key,)
        if value is None:
            data[rel.key] = None
        elif rel.uselist:
            items = [item for item in value if id(item) not in path]
            field = index_by.get(keys)
            if field is None:
                data[rel.key] = [to_array(item, index_by, path, keys) for item in items]
            else:
                data[rel.key] = {
                    getattr(item, field): to_array(item, index_by, path, keys) for item in items
                }
        elif id(value) not in path:
            data[rel.key] = to_array(value, index_by, path, keys)

    return data
