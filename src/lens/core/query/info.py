# src/lens/core/query/info.py
"""The query descriptor: a plain value object describing what to fetch."""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class JoinType(str, Enum):
    LEFT = "LEFT"
    INNER = "INNER"


class ConditionType(str, Enum):
    WITH = "WITH"  # narrows the relationship's own ON clause
    ON = "ON"      # replaces it


class SortDirection(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


class Hydration(str, Enum):
    OBJECT = "object"  # mapped entity instances
    ARRAY = "array"    # nested dicts of the loaded attributes


def _upper(value: Any) -> Any:
    return value.upper() if isinstance(value, str) else value


class _Descriptor(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


class RelationOptions(_Descriptor):
    """
    How a single relation is joined into the query.

    `index_by` keys the joined collection by one of its fields in ARRAY
    hydration; OBJECT hydration keeps the mapped collection as is.
    """

    join_alias: Optional[str] = None
    join_type: JoinType = JoinType.LEFT
    # A SQLAlchemy expression, or a callable receiving the alias registry.
    join_condition: Any = None
    join_condition_type: Optional[ConditionType] = None
    index_by: Optional[str] = None
    fields: Optional[List[str]] = None

    @field_validator("join_type", "join_condition_type", mode="before")
    @classmethod
    def _upper_enums(cls, value: Any) -> Any:
        return _upper(value)


class CacheOptions(_Descriptor):
    ttl: Optional[int] = Field(default=None, ge=0)
    name: Optional[str] = None


class QueryInfo(_Descriptor):
    """
    Everything a repository needs to build one read query.

    Can be built from a plain mapping, camelCase keys are accepted:

        QueryInfo.model_validate({
            "parameters": {"views:gt": 10},
            "relations": {"comments": {"joinType": "inner"}},
            "sort": {"title": "asc"},
            "limit": 20,
            "countAvailableRows": True,
        })
    """

    parameters: Dict[str, Any] = Field(default_factory=dict)
    relations: Dict[str, RelationOptions] = Field(default_factory=dict)
    sort: Dict[str, SortDirection] = Field(default_factory=dict)
    limit: Optional[int] = Field(default=None, ge=0)
    offset: Optional[int] = Field(default=None, ge=0)
    fields: List[str] = Field(default_factory=list)
    index_by: Optional[str] = None
    hydration: Hydration = Hydration.OBJECT
    cache: Optional[CacheOptions] = None
    count_available_rows: bool = False

    @field_validator("relations", mode="before")
    @classmethod
    def _normalize_relations(cls, value: Any) -> Any:
        # ["comments"] and {"comments": "inner"} are shorthands
        if isinstance(value, (list, tuple)):
            return {name: {} for name in value}
        if isinstance(value, dict):
            return {
                name: (
                    {} if options is None
                    else {"join_type": options} if isinstance(options, (str, JoinType))
                    else options
                )
                for name, options in value.items()
            }
        return value

    @field_validator("sort", mode="before")
    @classmethod
    def _normalize_sort(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            return {name: SortDirection.ASC for name in value}
        if isinstance(value, dict):
            return {name: _upper(direction) for name, direction in value.items()}
        return value

    @field_validator("hydration", mode="before")
    @classmethod
    def _lower_hydration(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value

    def use_cache(self) -> bool:
        return self.cache is not None
