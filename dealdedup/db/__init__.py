"""Database management for the duplicate cleanup engine."""

from .articles import PostgresArticleStore
from .connection import build_conninfo, close_connection_pool, get_connection, get_connection_pool
from .init import init_database, validate_connection
from .memory import InMemoryArticleStore
from .runs import CleanupRunRecorder
from .store import ArticleStore

__all__ = [
    "ArticleStore",
    "CleanupRunRecorder",
    "InMemoryArticleStore",
    "PostgresArticleStore",
    "build_conninfo",
    "close_connection_pool",
    "get_connection",
    "get_connection_pool",
    "init_database",
    "validate_connection",
]
