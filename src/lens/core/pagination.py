# src/lens/core/pagination.py
from math import ceil
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, computed_field

from .query.info import QueryInfo


class Pagination(BaseModel):
    """A page of results together with the total number of matching rows."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    items: Any  # list, or dict when the query was indexed
    total: int
    limit: Optional[int] = None
    offset: Optional[int] = None

    @computed_field
    @property
    def pages(self) -> int:
        if self.limit is None:
            return 1
        if self.limit == 0:
            return 0
        return max(1, ceil(self.total / self.limit))

    @computed_field
    @property
    def page(self) -> int:
        if not self.limit:
            return 1
        return (self.offset or 0) // self.limit + 1

    @computed_field
    @property
    def has_next(self) -> bool:
        if self.limit is None:
            return False
        return (self.offset or 0) + self.limit < self.total

    @classmethod
    def create(cls, items: Any, total: int, info: QueryInfo) -> "Pagination":
        return cls(items=items, total=total, limit=info.limit, offset=info.offset)

