# src/lens/core/cache.py
"""Result cache backed by a redis client."""

import hashlib
import pickle
from typing import Any, Optional, Tuple

from redis import Redis
from sqlalchemy.sql import Select

from .logging import color_palette, log


class ResultCache:
    """
    Stores hydrated query results under a named or computed key.

    `client` only needs redis' `get(name)` and `set(name, value, ex=None)`,
    `serializer` anything with `dumps`/`loads`.

    A named key is the caller's identifier for one result and is only
    separated per fetch kind (`all`, `one`). Cached OBJECT results come back
    as instances detached from any session, so relationships that were not
    fetch-joined raise `DetachedInstanceError` when accessed.
    """

    def __init__(self, client: Any, prefix: str = "lens", serializer: Any = pickle):
        self.client = client
        self.prefix = prefix
        self.serializer = serializer

    @classmethod
    def from_url(cls, url: str, prefix: str = "lens") -> "ResultCache":
        return cls(Redis.from_url(url), prefix=prefix)

    def key_for(self, stmt: Select, name: Optional[str] = None, kind: str = "", *extra: Any) -> str:
        """`<prefix>:<name>[:<kind>]` or `<prefix>:<digest of the statement, kind and extra>`."""
        if name:
            return f"{self.prefix}:{name}:{kind}" if kind else f"{self.prefix}:{name}"
        compiled = stmt.compile()
        params = sorted(compiled.params.items(), key=lambda i: i[0])
        payload = repr((str(compiled), params, kind, extra))
        return f"{self.prefix}:{hashlib.sha1(payload.encode()).hexdigest()}"

    def get(self, key: str) -> Tuple[bool, Any]:
        raw = self.client.get(key)
        if raw is None:
            log.debug(f"cache miss {color_palette['cache'](key)}")
            return False, None
        log.debug(f"cache hit {color_palette['cache'](key)}")
        return True, self.serializer.loads(raw)

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        self.client.set(key, self.serializer.dumps(value), ex=ttl or None)
