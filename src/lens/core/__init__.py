"""Core of lens: descriptors, query assembly and the repository."""

from lens.core.cache import ResultCache
from lens.core.config import DbConfig, PoolConfig, Settings
from lens.core.exceptions import BadMethodCallError, InvalidArgumentError, LensError, LogicError
from lens.core.logging import Logger, color_palette, log, setup_logging
from lens.core.metadata import EntityMetadata, MetadataRegistry
from lens.core.pagination import Pagination
from lens.core.repository import Repository

__all__ = [
    "BadMethodCallError",
    "DbConfig",
    "EntityMetadata",
    "InvalidArgumentError",
    "LensError",
    "Logger",
    "LogicError",
    "MetadataRegistry",
    "Pagination",
    "PoolConfig",
    "Repository",
    "ResultCache",
    "Settings",
    "color_palette",
    "log",
    "setup_logging",
]
