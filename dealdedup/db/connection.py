"""Pooled Postgres connections, one pool per connection target."""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Generator

import psycopg
from psycopg.conninfo import make_conninfo
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

logger = logging.getLogger(__name__)

_pools: Dict[str, ConnectionPool] = {}


def build_conninfo(db_config: Dict[str, Any]) -> str:
    """
    libpq connection string for a ``postgres`` config section.

    Expects the dict from ``Config.get_db_config``, where the password has
    already been resolved from its environment variable. Unset values are
    left to libpq defaults.
    """
    params = {
        "host": db_config.get("host"),
        "port": db_config.get("port"),
        "dbname": db_config.get("database"),
        "user": db_config.get("user"),
        "password": db_config.get("password"),
    }
    return make_conninfo(
        "",
        application_name="dealdedup",
        **{key: value for key, value in params.items() if value not in (None, "")},
    )


def get_connection_pool(db_config: Dict[str, Any]) -> ConnectionPool:
    """Pool for the target described by ``db_config``, opened on first use."""
    conninfo = build_conninfo(db_config)
    pool = _pools.get(conninfo)
    if pool is None:
        logger.debug("Opening connection pool for %s/%s", db_config.get("host"), db_config.get("database"))
        pool = ConnectionPool(
            conninfo,
            min_size=1,
            max_size=10,
            kwargs={"row_factory": dict_row},
            open=True,
        )
        _pools[conninfo] = pool
    return pool


def close_connection_pool() -> None:
    """Close every pool opened so far."""
    while _pools:
        _, pool = _pools.popitem()
        pool.close()


@contextmanager
def get_connection(db_config: Dict[str, Any]) -> Generator[psycopg.Connection, None, None]:
    """Borrow a dict-row connection; it returns to the pool on exit."""
    with get_connection_pool(db_config).connection() as conn:
        yield conn
