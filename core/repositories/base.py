"""
Shared data-access building blocks: paging container and unit of work.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Sequence, TypeVar

from sqlalchemy.engine import Connection, Engine

T = TypeVar("T")

MAX_PAGE_SIZE = 200


@dataclass
class PagedResult(Generic[T]):
    """Container for paginated results."""

    items: Sequence[T]
    total: int
    page: int
    per_page: int

    @property
    def total_pages(self) -> int:
        if self.per_page <= 0:
            return 0
        return (self.total + self.per_page - 1) // self.per_page

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": list(self.items),
            "total_count": self.total,
            "page": self.page,
            "page_size": self.per_page,
            "total_pages": self.total_pages,
        }


def page_window(page: int, page_size: int) -> tuple[int, int]:
    """Validate paging input and return ``(limit, offset)``."""

    if page < 1:
        raise ValueError("Page must be 1 or greater")
    if page_size < 1 or page_size > MAX_PAGE_SIZE:
        raise ValueError(f"Page size must be between 1 and {MAX_PAGE_SIZE}")
    return page_size, (page - 1) * page_size


class SqlUnitOfWork:
    """
    Single database transaction shared by several statements.

    Usage:
        with SqlUnitOfWork(engine) as uow:
            uow.connection.execute(...)
            uow.commit()

    Leaving the block without ``commit()`` (or through an exception) rolls back.
    """

    def __init__(self, engine: Engine):
        self._engine = engine
        self._connection: Connection | None = None
        self._transaction = None

    def __enter__(self) -> "SqlUnitOfWork":
        self._connection = self._engine.connect()
        self._transaction = self._connection.begin()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._transaction is not None and self._transaction.is_active:
            self._transaction.rollback()
        if self._connection:
            self._connection.close()
        self._connection = None
        self._transaction = None

    @property
    def connection(self) -> Connection:
        if self._connection is None:
            raise RuntimeError("UnitOfWork not started. Use 'with' statement.")
        return self._connection

    def commit(self) -> None:
        if self._transaction is not None:
            self._transaction.commit()

    def rollback(self) -> None:
        if self._transaction is not None:
            self._transaction.rollback()
