"""Query descriptors and their translation into SQLAlchemy statements."""

from lens.core.query.builder import QueryBuilder, SortResolution
from lens.core.query.info import (
    CacheOptions,
    ConditionType,
    Hydration,
    JoinType,
    QueryInfo,
    RelationOptions,
    SortDirection,
)
from lens.core.query.operators import OPERATOR_MAP, register_operator
from lens.core.query.plan import JoinClause, OrderClause, QueryPlan

__all__ = [
    "CacheOptions",
    "ConditionType",
    "Hydration",
    "JoinClause",
    "JoinType",
    "OPERATOR_MAP",
    "OrderClause",
    "QueryBuilder",
    "QueryInfo",
    "QueryPlan",
    "RelationOptions",
    "SortDirection",
    "SortResolution",
    "register_operator",
]
