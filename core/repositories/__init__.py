"""
Data-access helpers shared by the service layer.

- Paged result container and paging validation
- Unit of Work for multi-statement transactions
"""

from .base import MAX_PAGE_SIZE, PagedResult, SqlUnitOfWork, page_window

__all__ = [
    "MAX_PAGE_SIZE",
    "PagedResult",
    "SqlUnitOfWork",
    "page_window",
]
