from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class CategoryPayload(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    display_order: int
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    display_order: Optional[int] = Field(default=None, ge=0)


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    display_order: Optional[int] = Field(default=None, ge=0)


class CategoryReorderRequest(BaseModel):
    category_ids: List[int] = Field(..., min_length=1)


class CategoryUsage(BaseModel):
    id: int
    name: str
    item_count: int
    available_count: int
    sold_count: int


__all__ = ["CategoryCreate", "CategoryPayload", "CategoryReorderRequest", "CategoryUpdate", "CategoryUsage"]
