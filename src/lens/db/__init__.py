"""Database connection components."""

from lens.db.client import DbClient, DbConfig, PoolConfig

__all__ = ["DbClient", "DbConfig", "PoolConfig"]
