# src/lens/core/query/builder.py
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Type

from sqlalchemy.orm import aliased
from sqlalchemy.sql.elements import ClauseElement

from ..exceptions import InvalidArgumentError
from ..logging import log
from ..metadata import EntityMetadata, MetadataRegistry, registry as default_registry
from .info import QueryInfo, RelationOptions, SortDirection
from .operators import NOT_LIKE, NULL_CHECK, get_operator, not_like, null_check
from .plan import JoinClause, OrderClause, QueryPlan


@dataclass
class SortResolution:
    """Order clauses that could be attached, and the sort entries that could not."""

    clauses: List[OrderClause] = field(default_factory=list)
    remaining: Dict[str, SortDirection] = field(default_factory=dict)


class QueryBuilder:
    """
    Builds a `QueryPlan` for one mapped entity from a `QueryInfo` descriptor.

    The stages run in a fixed order: base query, relations, parameters, sort.
    Sort must come last since qualified sort fields resolve against joins.
    """

    def __init__(self, entity: Type[Any], registry: Optional[MetadataRegistry] = None):
        self.entity = entity
        self.registry = registry or default_registry
        self.metadata = self.registry.get(entity)

    def build(self, info: QueryInfo) -> QueryPlan:
        """Applies joins, filters, sorting and pagination from the descriptor."""
        alias = self.metadata.alias
        plan = QueryPlan(metadata=self.metadata, root=aliased(self.entity, name=alias))

        if info.limit is not None:
            plan.limit = info.limit
        if info.offset is not None:
            plan.offset = info.offset

        if info.index_by is not None:
            if not self.metadata.has_field(info.index_by):
                raise InvalidArgumentError(
                    f"Cannot index by '{info.index_by}', it is not a field of {self.metadata.name}"
                )
            plan.index_by = info.index_by

        plan.fields = self._checked_fields(self.metadata, info.fields)

        self.add_relations(plan, info.relations)
        self.add_parameters(plan, info.parameters)

        resolution = self.resolve_sort(plan, info.sort)
        plan.order_by.extend(resolution.clauses)
        plan.unresolved_sort = resolution.remaining
        if resolution.remaining:
            log.debug(
                f"Dropped unresolved sort fields for {alias}: {', '.join(resolution.remaining)}"
            )
        return plan

    @staticmethod
    def _checked_fields(meta: EntityMetadata, fields: List[str]) -> List[str]:
        unknown = [name for name in fields if not meta.has_field(name)]
        if unknown:
            raise InvalidArgumentError(
                f"Cannot select {', '.join(unknown)}, not a field of {meta.name}"
            )
        return list(fields)

    # --- Relations ---

    def add_relations(self, plan: QueryPlan, relations: Dict[str, RelationOptions]) -> None:
        for relation, options in relations.items():
            join_alias = options.join_alias or relation.split(".")[-1]

            if "." not in relation:
                relation = f"{plan.root_alias}.{relation}"
            source_alias, relation_name = relation.split(".", 1)

            source_meta = plan.entities[source_alias]
            if not source_meta.has_association(relation_name):
                raise AttributeError(f"{source_meta.name}.{relation_name} is not a relationship")
            target_entity = source_meta.association_target(relation_name)
            target_meta = self.registry.get(target_entity)

            if options.index_by is not None and not target_meta.has_field(options.index_by):
                raise InvalidArgumentError(
                    f"Cannot index {relation} by '{options.index_by}', it is not a field of {target_meta.name}"
                )

            target = aliased(target_entity, name=join_alias)
            plan.aliases[join_alias] = target
            plan.entities[join_alias] = target_meta

            condition = options.join_condition
            if callable(condition) and not isinstance(condition, ClauseElement):
                condition = condition(plan.aliases)

            plan.joins.append(
                JoinClause(
                    alias=join_alias,
                    source_alias=source_alias,
                    relation=relation_name,
                    target=target,
                    join_type=options.join_type,
                    condition=condition,
                    condition_type=options.join_condition_type if condition is not None else None,
                    index_by=f"{join_alias}.{options.index_by}" if options.index_by else None,
                    fields=self._checked_fields(target_meta, options.fields or []),
                )
            )
            log.debug(f"{options.join_type.value} JOIN {relation} {join_alias}")

    # --- Parameters ---

    def add_parameters(self, plan: QueryPlan, parameters: Dict[str, Any]) -> None:
        for param, value in parameters.items():
            # Parameter matches a field of the entity, so just do a simple eq
            if self.metadata.has_field(param):
                plan.predicates.append(getattr(plan.root, param) == value)
                continue

            parts = param.split(":")
            if len(parts) != 2:
                raise InvalidArgumentError(
                    f"Invalid build parameters syntax for parameter {param}"
                )
            path, method = parts

            if method == NOT_LIKE:
                predicate = not_like
            elif method == NULL_CHECK:
                predicate = null_check
            else:
                predicate = get_operator(method)

            plan.predicates.append(predicate(plan.column(path), value))

    # --- Sort ---

    def resolve_sort(self, plan: QueryPlan, sort: Dict[str, SortDirection]) -> SortResolution:
        """
        Resolves sort fields against the root entity and the attached joins.

        Fields that cannot be resolved are returned in `remaining` instead of
        raising, the query is simply not ordered by them.
        """
        resolution = SortResolution()

        for name, direction in sort.items():
            clause = self._resolve_sort_field(plan, name, direction)
            if clause is None:
                resolution.remaining[name] = direction
            else:
                resolution.clauses.append(clause)

        return resolution

    def _resolve_sort_field(
        self, plan: QueryPlan, name: str, direction: SortDirection
    ) -> Optional[OrderClause]:
        if "." not in name:
            if self.metadata.has_field(name):
                return OrderClause(plan.root_alias, name, direction)
            return None

        sort_alias, _, field_name = name.partition(".")
        join = plan.find_join(sort_alias)
        if join is None:
            return None

        source = plan.entities.get(join.source_alias)
        if source is None:
            return None
        target_entity = source.association_target(join.relation)
        if target_entity is None:
            return None
        if not self.registry.get(target_entity).has_field(field_name):
            return None

        return OrderClause(sort_alias, field_name, direction)
