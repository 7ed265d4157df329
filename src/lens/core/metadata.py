# src/lens/core/metadata.py
"""Schema metadata for mapped entities, read from SQLAlchemy's mapper."""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Optional, Tuple, Type

from sqlalchemy import inspect
from sqlalchemy.exc import NoInspectionAvailable

from .exceptions import InvalidArgumentError


def root_alias(root_entity_name: str, namespace: str) -> str:
    """
    Derives the alias used for the root entity of every query.

    `app.models.Article` in namespace `app.models` becomes `article`.
    """
    prefix = f"{namespace}."
    if namespace and root_entity_name.startswith(prefix):
        short_name = root_entity_name[len(prefix):]
    else:
        short_name = root_entity_name.rsplit(".", 1)[-1]
    return short_name.lower()


@dataclass(frozen=True)
class EntityMetadata:
    """What the query builder needs to know about one mapped class."""

    entity: Type[Any]
    name: str
    namespace: str
    root_entity_name: str
    alias: str
    field_names: FrozenSet[str]
    associations: Dict[str, Type[Any]] = field(default_factory=dict)
    primary_key: Tuple[str, ...] = ()

    def has_field(self, name: str) -> bool:
        return name in self.field_names

    def has_association(self, name: str) -> bool:
        return name in self.associations

    def association_target(self, name: str) -> Optional[Type[Any]]:
        """Target class of a relationship, or None when there is no such relationship."""
        return self.associations.get(name)

    @classmethod
    def from_entity(cls, entity: Type[Any]) -> "EntityMetadata":
        try:
            mapper = inspect(entity)
        except NoInspectionAvailable:
            raise InvalidArgumentError(f"{entity!r} is not a mapped entity") from None

        mapper = getattr(mapper, "mapper", mapper)  # aliased classes
        entity = mapper.class_
        root = mapper.base_mapper.class_
        namespace = entity.__module__
        root_entity_name = f"{root.__module__}.{root.__qualname__}"

        return cls(
            entity=entity,
            name=f"{namespace}.{entity.__qualname__}",
            namespace=namespace,
            root_entity_name=root_entity_name,
            alias=root_alias(root_entity_name, root.__module__),
            field_names=frozenset(prop.key for prop in mapper.column_attrs),
            associations={
                rel.key: rel.mapper.class_ for rel in mapper.relationships
            },
            primary_key=tuple(
                mapper.get_property_by_column(col).key for col in mapper.primary_key
            ),
        )


class MetadataRegistry:
    """Caches `EntityMetadata` per mapped class, like an ORM metadata factory."""

    def __init__(self):
        self._cache: Dict[Type[Any], EntityMetadata] = {}

    def get(self, entity: Type[Any]) -> EntityMetadata:
        meta = self._cache.get(entity)
        if meta is None:
            meta = EntityMetadata.from_entity(entity)
            self._cache[entity] = meta
        return meta

    def clear(self) -> None:
        self._cache.clear()

    def __contains__(self, entity: Type[Any]) -> bool:
        return entity in self._cache

    def __len__(self) -> int:
        return len(self._cache)


# Shared registry, used when a repository is not given its own.
registry = MetadataRegistry()
