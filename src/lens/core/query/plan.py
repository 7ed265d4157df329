# src/lens/core/query/plan.py
"""Intermediate representation of a query, compiled to a SQLAlchemy `Select`."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import contains_eager, load_only
from sqlalchemy.sql import Select
from sqlalchemy.sql.elements import ColumnElement

from ..exceptions import InvalidArgumentError
from ..metadata import EntityMetadata
from .info import ConditionType, JoinType, SortDirection


@dataclass
class JoinClause:
    alias: str
    source_alias: str
    relation: str
    target: Any  # aliased entity
    join_type: JoinType = JoinType.LEFT
    condition: Optional[ColumnElement] = None
    condition_type: Optional[ConditionType] = None
    index_by: Optional[str] = None
    fields: List[str] = field(default_factory=list)

    @property
    def join(self) -> str:
        """The joined path, `<source alias>.<relation>`."""
        return f"{self.source_alias}.{self.relation}"


@dataclass
class OrderClause:
    alias: str
    field: str
    direction: SortDirection = SortDirection.ASC

    @property
    def path(self) -> str:
        return f"{self.alias}.{self.field}"


@dataclass
class QueryPlan:
    """
    Accumulates the parts of one query while it is being built.

    Entities are registered by alias, the root entity under its metadata
    alias and every join under its join alias, so filters and sort fields
    written as `<alias>.<field>` resolve against the same objects that end up
    in the statement.
    """

    metadata: EntityMetadata
    root: Any
    aliases: Dict[str, Any] = field(default_factory=dict)
    entities: Dict[str, EntityMetadata] = field(default_factory=dict)
    fields: List[str] = field(default_factory=list)
    joins: List[JoinClause] = field(default_factory=list)
    predicates: List[ColumnElement] = field(default_factory=list)
    order_by: List[OrderClause] = field(default_factory=list)
    limit: Optional[int] = None
    offset: Optional[int] = None
    index_by: Optional[str] = None
    unresolved_sort: Dict[str, SortDirection] = field(default_factory=dict)

    def __post_init__(self):
        self.aliases.setdefault(self.root_alias, self.root)
        self.entities.setdefault(self.root_alias, self.metadata)

    @property
    def root_alias(self) -> str:
        return self.metadata.alias

    def find_join(self, alias: str) -> Optional[JoinClause]:
        return next((join for join in self.joins if join.alias == alias), None)

    def collection_index(self) -> Dict[Tuple[str, ...], str]:
        """Join `index_by` fields keyed by relationship path from the root, e.g. `("comments",)`."""
        paths: Dict[str, Tuple[str, ...]] = {self.root_alias: ()}
        index: Dict[Tuple[str, ...], str] = {}
        for join in self.joins:
            path = paths[join.source_alias] + (join.relation,)
            paths[join.alias] = path
            if join.index_by:
                index[path] = join.index_by.split(".", 1)[1]
        return index

    def column(self, path: str):
        """Resolves `<alias>.<field>` (or a bare root field) to a column attribute."""
        alias, _, name = path.rpartition(".")
        alias = alias or self.root_alias
        if alias not in self.aliases:
            raise InvalidArgumentError(f"Unknown alias '{alias}' in '{path}'")
        meta = self.entities[alias]
        if not meta.has_field(name):
            raise InvalidArgumentError(f"'{meta.name}' has no field named '{name}'")
        return getattr(self.aliases[alias], name)

    # --- Compilation ---

    def _apply_joins(self, stmt: Select) -> Select:
        for join in self.joins:
            relationship = getattr(self.aliases[join.source_alias], join.relation)
            is_outer = join.join_type == JoinType.LEFT
            if join.condition is not None and join.condition_type == ConditionType.ON:
                stmt = stmt.join(join.target, join.condition, isouter=is_outer)
                continue
            target = relationship.of_type(join.target)
            if join.condition is not None:
                target = target.and_(join.condition)
            stmt = stmt.join(target, isouter=is_outer)
        return stmt

    def _loader_options(self) -> List[Any]:
        options = []
        if self.fields:
            options.append(load_only(*(getattr(self.root, name) for name in self.fields)))

        # Joined entities are fetch-joined into their parent's relationship
        loaders: Dict[str, Any] = {}
        for join in self.joins:
            relationship = getattr(self.aliases[join.source_alias], join.relation)
            parent = loaders.get(join.source_alias)
            attr = relationship.of_type(join.target)
            loader = parent.contains_eager(attr) if parent is not None else contains_eager(attr)
            loaders[join.alias] = loader
            if join.fields:
                options.append(
                    loader.load_only(*(getattr(join.target, name) for name in join.fields))
                )
            else:
                options.append(loader)
        return options

    def statement(self) -> Select:
        stmt = select(self.root)
        stmt = self._apply_joins(stmt)
        options = self._loader_options()
        if options:
            stmt = stmt.options(*options)
        if self.predicates:
            stmt = stmt.where(*self.predicates)
        for clause in self.order_by:
            column = getattr(self.aliases[clause.alias], clause.field)
            stmt = stmt.order_by(
                column.desc() if clause.direction == SortDirection.DESC else column.asc()
            )
        # A numerical default would truncate the result, so only explicit values apply
        if self.limit is not None:
            stmt = stmt.limit(self.limit)
        if self.offset is not None:
            stmt = stmt.offset(self.offset)
        return stmt

    def count_statement(self) -> Select:
        """Counts distinct root rows, ignoring projection, sort and pagination."""
        keys = [getattr(self.root, name) for name in self.metadata.primary_key]
        inner = select(*keys).select_from(self.root)
        inner = self._apply_joins(inner)
        if self.predicates:
            inner = inner.where(*self.predicates)
        return select(func.count()).select_from(inner.distinct().subquery())
