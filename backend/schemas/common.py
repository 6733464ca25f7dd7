"""Uniform response envelope shared by every JSON endpoint."""

from __future__ import annotations

from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    data: Optional[T] = None
    message: Optional[str] = None
    errors: Optional[List[str]] = None

    @classmethod
    def ok(cls, data: Any = None, message: str | None = None) -> "ApiResponse":
        return cls(success=True, data=data, message=message)

    @classmethod
    def fail(cls, errors: List[str] | str, message: str | None = None) -> "ApiResponse":
        if isinstance(errors, str):
            errors = [errors]
        return cls(success=False, data=None, message=message or (errors[0] if errors else None), errors=errors)


class PagedData(BaseModel, Generic[T]):
    items: List[T]
    total_count: int = Field(ge=0)
    page: int = Field(ge=1)
    page_size: int = Field(ge=1)
    total_pages: int = Field(ge=0)


class DeletedPayload(BaseModel):
    id: int
    deleted: bool = True


__all__ = ["ApiResponse", "DeletedPayload", "PagedData"]
