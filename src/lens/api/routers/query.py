# src/lens/api/routers/query.py
"""Read-only HTTP routes for a mapped entity, driven by query descriptors."""

import re
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Type, Union

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, create_model
from sqlalchemy.orm import Session

from ...core.cache import ResultCache
from ...core.exceptions import LogicError
from ...core.logging import color_palette, log
from ...core.pagination import Pagination
from ...core.query.info import QueryInfo
from ...core.repository import Repository

# `filter[views:gt]=10` -> ("filter", "views:gt")
_BRACKETED = re.compile(r"^(filter|sort|join)\[(.+)\]$")
_TRUE = {"1", "true", "yes", "on"}


def parse_query_params(items: Iterable[Tuple[str, str]]) -> Dict[str, Any]:
    """
    Converts query string pairs into a descriptor mapping.

    Supported keys: `filter[<key>]` (repeat it to pass a list), `sort[<field>]`,
    `join[<relation>]`, `fields` (comma separated), `limit`, `offset`,
    `index_by` and `count`.
    """
    parameters: Dict[str, Any] = {}
    sort: Dict[str, str] = {}
    relations: Dict[str, Any] = {}
    descriptor: Dict[str, Any] = {}

    for key, value in items:
        match = _BRACKETED.match(key)
        if match:
            kind, name = match.groups()
            if kind == "filter":
                if name in parameters:
                    previous = parameters[name]
                    parameters[name] = (previous if isinstance(previous, list) else [previous]) + [value]
                else:
                    parameters[name] = value
            elif kind == "sort":
                sort[name] = value or "asc"
            else:
                relations[name] = {"join_type": value or "left"}
        elif key == "fields":
            descriptor["fields"] = [f.strip() for f in value.split(",") if f.strip()]
        elif key in ("limit", "offset", "index_by"):
            descriptor[key] = value
        elif key == "count":
            descriptor["count_available_rows"] = value.lower() in _TRUE

    descriptor.update(parameters=parameters, sort=sort, relations=relations)
    return descriptor


class QueryRouter:
    """Registers list, single and count routes for one entity."""

    def __init__(
        self,
        entity: Type[Any],
        schema: Type[BaseModel],
        db_dependency: Callable[..., Session],
        router: APIRouter,
        prefix: str = "",
        name: Optional[str] = None,
        cache: Optional[ResultCache] = None,
    ):
        self.entity = entity
        self.schema = schema
        self.db_dependency = db_dependency
        self.router = router
        self.prefix = prefix
        self.name = name or entity.__tablename__
        self.cache = cache

        self.page_model = create_model(
            f"{entity.__name__}Page",
            items=(List[schema], ...),
            total=(int, ...),
            limit=(Optional[int], None),
            offset=(Optional[int], None),
            page=(int, 1),
            pages=(int, 1),
            has_next=(bool, False),
        )

    def _get_route_path(self, operation: str = "") -> str:
        base_path = f"/{self.name.lower()}"
        if operation:
            base_path = f"{base_path}/{operation}"
        return f"{self.prefix}{base_path}"

    def _repository(self, db: Session) -> Repository:
        return Repository(db, self.entity, cache=self.cache)

    @staticmethod
    def _query_info(request: Request) -> QueryInfo:
        try:
            return QueryInfo.model_validate(parse_query_params(request.query_params.multi_items()))
        except ValueError as e:
            raise HTTPException(status_code=400, detail=f"Invalid query: {e}")

    def _run(self, operation: Callable[[], Any]) -> Any:
        # unknown relations and aliases surface as KeyError/AttributeError
        try:
            return operation()
        except (LogicError, KeyError, AttributeError) as e:
            raise HTTPException(status_code=400, detail=f"Invalid query: {e}")

    def generate_routes(self) -> None:
        log.section(f"Query routes for {color_palette['entity'](self.name)}")
        with log.indented():
            self._add_list_route()
            self._add_one_route()
            self._add_count_route()

    def _add_list_route(self) -> None:
        page_model = self.page_model

        log.info(f"GET {self._get_route_path()}")

        @self.router.get(
            self._get_route_path(),
            response_model=Union[page_model, List[self.schema], Dict[Any, self.schema]],
            summary=f"Query {self.name} records",
        )
        def read_resources(
            request: Request, db: Session = Depends(self.db_dependency)
        ) -> Any:
            info = self._query_info(request)
            result = self._run(lambda: self._repository(db).fetch_all(info))
            if isinstance(result, Pagination):
                items = result.items
                return {
                    **result.model_dump(exclude={"items"}),
                    "items": list(items.values()) if isinstance(items, dict) else items,
                }
            return result

    def _add_one_route(self) -> None:
        log.info(f"GET {self._get_route_path('one')}")

        @self.router.get(
            self._get_route_path("one"),
            response_model=self.schema,
            summary=f"Fetch a single {self.name} record",
        )
        def read_resource(request: Request, db: Session = Depends(self.db_dependency)) -> Any:
            info = self._query_info(request)
            result = self._run(lambda: self._repository(db).fetch_one(info))
            if result is None:
                raise HTTPException(status_code=404, detail=f"No single {self.name} record matches")
            return result

    def _add_count_route(self) -> None:
        log.info(f"GET {self._get_route_path('count')}")

        @self.router.get(
            self._get_route_path("count"),
            response_model=Dict[str, int],
            summary=f"Count {self.name} records",
        )
        def count_resources(request: Request, db: Session = Depends(self.db_dependency)) -> Any:
            info = self._query_info(request)
            return {"count": self._run(lambda: self._repository(db).count(info))}
