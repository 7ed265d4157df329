# src/lens/db/client.py
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..core.config import DbConfig, PoolConfig
from ..core.logging import color_palette, log


class DbClient:
    """Owns the engine and hands out sessions."""

    def __init__(self, config: Optional[DbConfig] = None, engine: Optional[Engine] = None):
        self.config = config or DbConfig()
        self.engine = engine or self._create_engine()
        self.SessionLocal = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)

    def _create_engine(self) -> Engine:
        kwargs = self.config.engine_kwargs()
        if self.config.url in ("sqlite://", "sqlite:///:memory:"):
            # every connection must see the same in-memory database
            kwargs.update(poolclass=StaticPool, connect_args={"check_same_thread": False})
        return create_engine(self.config.url, **kwargs)

    def get_db(self) -> Iterator[Session]:
        """Session per request, usable as a FastAPI dependency."""
        db = self.SessionLocal()
        try:
            yield db
        finally:
            db.close()

    @contextmanager
    def session(self) -> Iterator[Session]:
        db = self.SessionLocal()
        try:
            yield db
        finally:
            db.close()

    def test_connection(self) -> bool:
        with self.engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        log.success(f"Connected to {color_palette['entity'](self.engine.dialect.name)} at {self.config.host}")
        return True

    def close(self) -> None:
        self.engine.dispose()


__all__ = ["DbClient", "DbConfig", "PoolConfig"]
