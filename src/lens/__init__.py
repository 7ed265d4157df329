"""
lens: build SQLAlchemy queries from declarative query descriptors.
"""
from lens.core import (
    BadMethodCallError,
    InvalidArgumentError,
    LensError,
    Pagination,
    Repository,
    ResultCache,
    log,
)
from lens.core.query import (
    Hydration,
    JoinType,
    QueryBuilder,
    QueryInfo,
    QueryPlan,
    RelationOptions,
    SortDirection,
)
from lens.db import DbClient, DbConfig

__version__ = "0.1.0"

__all__ = [
    "BadMethodCallError",
    "DbClient",
    "DbConfig",
    "Hydration",
    "InvalidArgumentError",
    "JoinType",
    "LensError",
    "Pagination",
    "QueryBuilder",
    "QueryInfo",
    "QueryPlan",
    "RelationOptions",
    "Repository",
    "ResultCache",
    "SortDirection",
    "log",
]
