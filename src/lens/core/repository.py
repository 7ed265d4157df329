# src/lens/core/repository.py
"""Read-side repository: runs descriptor queries against one mapped entity."""

from collections.abc import Mapping
from typing import Any, Callable, List, Optional, Type, Union

from pydantic import ValidationError
from sqlalchemy.exc import MultipleResultsFound, NoResultFound
from sqlalchemy.orm import Session
from sqlalchemy.sql import Select

from .cache import ResultCache
from .exceptions import InvalidArgumentError
from .hydration import to_array
from .logging import color_palette, log
from .metadata import EntityMetadata, MetadataRegistry
from .pagination import Pagination
from .query.builder import QueryBuilder
from .query.info import Hydration, QueryInfo
from .query.plan import QueryPlan

QueryInput = Union[QueryInfo, Mapping, None]


class Repository:
    """
    Fetches entities described by a `QueryInfo` (or an equivalent mapping).

        repo = Repository(session, Article)
        repo.fetch_all({"parameters": {"views:gte": 100}, "sort": {"title": "asc"}})
    """

    def __init__(
        self,
        session: Session,
        entity: Type[Any],
        *,
        cache: Optional[ResultCache] = None,
        registry: Optional[MetadataRegistry] = None,
    ):
        self.session = session
        self.entity = entity
        self.cache = cache
        self.builder = QueryBuilder(entity, registry)

    @property
    def metadata(self) -> EntityMetadata:
        return self.builder.metadata

    def _query_info(self, qi: QueryInput, method: str, allow_none: bool = False) -> QueryInfo:
        if qi is None and allow_none:
            return QueryInfo()
        if isinstance(qi, QueryInfo):
            return qi
        if isinstance(qi, Mapping):
            try:
                return QueryInfo.model_validate(dict(qi))
            except ValidationError as e:
                raise InvalidArgumentError(f"Invalid query information: {e}") from e
        raise InvalidArgumentError(
            f"{type(self).__name__}.{method} requires the first argument be a mapping "
            "or an instance of QueryInfo"
        )

    def _execute(
        self, info: QueryInfo, plan: QueryPlan, stmt: Select, kind: str, run: Callable[[], Any]
    ) -> Any:
        """Runs the query, going through the result cache when it was asked for."""
        if not info.use_cache():
            return run()
        if self.cache is None:
            log.warn(
                f"Caching requested for {color_palette['entity'](self.metadata.name)} "
                "but no result cache is configured"
            )
            return run()

        # everything that shapes the result after the query runs is part of the key
        key = self.cache.key_for(
            stmt, info.cache.name, kind, info.hydration.value, plan.index_by,
            sorted(plan.collection_index().items()),
        )
        hit, value = self.cache.get(key)
        if hit:
            return value
        value = run()
        self.cache.set(key, value, info.cache.ttl)
        return value

    def _hydrate(self, plan: QueryPlan, entity: Any, hydration: Hydration) -> Any:
        if hydration == Hydration.ARRAY:
            return to_array(entity, plan.collection_index())
        return entity

    def _rows(self, plan: QueryPlan, stmt: Select, hydration: Hydration) -> Any:
        with log.timed(f"fetch_all {color_palette['alias'](plan.root_alias)}"):
            entities = self.session.execute(stmt).unique().scalars().all()

        if plan.index_by is not None:
            return {
                getattr(entity, plan.index_by): self._hydrate(plan, entity, hydration)
                for entity in entities
            }
        return [self._hydrate(plan, entity, hydration) for entity in entities]

    def _single(self, plan: QueryPlan, stmt: Select, hydration: Hydration) -> Any:
        try:
            entity = self.session.execute(stmt).unique().scalar_one()
        except (NoResultFound, MultipleResultsFound):
            return None
        return self._hydrate(plan, entity, hydration)

    def _count(self, plan: QueryPlan) -> int:
        with log.timed(f"count {color_palette['alias'](plan.root_alias)}"):
            return self.session.execute(plan.count_statement()).scalar_one()

    def explain(self, qi: QueryInput = None) -> QueryPlan:
        """Builds the query plan without running it."""
        return self.builder.build(self._query_info(qi, "explain", allow_none=True))

    def fetch_one(self, qi: QueryInput) -> Any:
        """
        Retrieves a single object using the specified query information.

        Returns None when nothing matches, and also when more than one row does.
        """
        info = self._query_info(qi, "fetch_one")
        plan = self.builder.build(info)
        stmt = plan.statement()
        return self._execute(info, plan, stmt, "one", lambda: self._single(plan, stmt, info.hydration))

    def fetch_all(self, qi: QueryInput) -> Union[List[Any], dict, Pagination]:
        """
        Retrieves every object matching the query information.

        With `count_available_rows` the rows come back wrapped in a `Pagination`
        carrying the total number of matches, independent of limit and offset.
        """
        info = self._query_info(qi, "fetch_all")
        plan = self.builder.build(info)
        stmt = plan.statement()

        result = self._execute(info, plan, stmt, "all", lambda: self._rows(plan, stmt, info.hydration))

        if not info.count_available_rows:
            return result

        return Pagination.create(result, self._count(plan), info)

    def count(self, qi: QueryInput = None) -> int:
        """Number of matching rows, projection and hydration are ignored."""
        info = self._query_info(qi, "count", allow_none=True)
        return self._count(self.builder.build(info))
