"""Engine factory and thin helpers over SQLAlchemy used by every service."""

from __future__ import annotations

from functools import lru_cache

import pandas as pd
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.sql.elements import ClauseElement

from .database_url import get_database_url, is_sqlite_memory
from .settings import AppSettings

SETTINGS = AppSettings.load()
DATABASE_URL = SETTINGS.database_url or get_database_url()
POOL_SIZE = SETTINGS.db_pool_size
POOL_MAX_OVERFLOW = SETTINGS.db_pool_max_overflow


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    """Return the process-wide SQLAlchemy engine (cached)."""

    kwargs: dict = {"pool_pre_ping": True}
    if DATABASE_URL.startswith("sqlite"):
        # sqlite refuses pool_size/max_overflow; an in-memory database must keep one connection.
        kwargs["connect_args"] = {"check_same_thread": False}
        if is_sqlite_memory(DATABASE_URL):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs.update(
            {
                "pool_size": max(1, POOL_SIZE),
                "max_overflow": max(0, POOL_MAX_OVERFLOW),
            }
        )
    return create_engine(DATABASE_URL, **kwargs)


def _normalize_statement(sql: str | ClauseElement) -> ClauseElement:
    if isinstance(sql, str):
        return text(sql)
    if isinstance(sql, ClauseElement):
        return sql
    raise TypeError("sql must be a string or SQLAlchemy ClauseElement")


def query_df(sql: str | ClauseElement, params=None, *, conn=None) -> pd.DataFrame:
    """Run a SELECT and return the rows as a pandas DataFrame.

    When ``conn`` is given the query joins that connection's transaction instead of
    opening a new one.
    """

    statement = _normalize_statement(sql)
    if params is not None and not isinstance(params, dict):
        raise TypeError("params must be a mapping when provided")

    if conn is not None:
        result = conn.execute(statement, params or {})
        return _frame(result)

    with get_engine().begin() as own_conn:
        result = own_conn.execute(statement, params or {})
        return _frame(result)


def _frame(result) -> pd.DataFrame:
    columns = list(result.keys())
    rows = result.fetchall()
    if not rows:
        return pd.DataFrame(columns=columns)
    # object dtype keeps driver values (ints, Decimals, None) untouched; reports cast explicitly.
    return pd.DataFrame([tuple(row) for row in rows], columns=columns, dtype=object)


def records(df: pd.DataFrame) -> list[dict]:
    """DataFrame rows as plain dicts, with NaN/NaT turned into None."""

    if df.empty:
        return []
    cleaned = df.astype(object).where(pd.notna(df), None)
    return cleaned.to_dict("records")


def first_record(df: pd.DataFrame) -> dict | None:
    rows = records(df.head(1))
    return rows[0] if rows else None


def exec_sql(sql: str | ClauseElement, params=None) -> int:
    """
    Run a write statement (INSERT, UPDATE, DELETE) in its own transaction.
    A list of mappings triggers an executemany. Returns the affected row count.
    """

    statement = _normalize_statement(sql)
    with get_engine().begin() as conn:
        if isinstance(params, list):
            result = conn.execute(statement, params)
        elif params is None:
            result = conn.execute(statement)
        else:
            result = conn.execute(statement, params)
        return result.rowcount


def exec_sql_return_id(sql: str | ClauseElement, params=None):
    """
    Run an ``INSERT ... RETURNING id`` and return the generated id.
    Batches are not supported since only one id is returned.
    """

    statement = _normalize_statement(sql)
    with get_engine().begin() as conn:
        result = conn.execute(statement, params)
        row = result.fetchone()
        return row[0] if row else None


__all__ = [
    "DATABASE_URL",
    "exec_sql",
    "exec_sql_return_id",
    "first_record",
    "get_engine",
    "query_df",
    "records",
]
