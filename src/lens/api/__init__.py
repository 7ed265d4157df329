"""FastAPI integration."""

from lens.api.routers.query import QueryRouter, parse_query_params

__all__ = ["QueryRouter", "parse_query_params"]
