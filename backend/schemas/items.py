"""Inventory item payloads."""

from __future__ import annotations

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator


class ItemPayload(BaseModel):
    id: int
    consignor_id: int
    consignor_name: str
    consignor_number: str
    category_id: Optional[int] = None
    category_name: Optional[str] = None
    sku: str
    title: str
    description: Optional[str] = None
    brand: Optional[str] = None
    size: Optional[str] = None
    condition: Optional[str] = None
    price: float
    original_price: Optional[float] = None
    split_percentage: Optional[float] = None
    status: str
    received_date: date
    sold_date: Optional[date] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ItemCreate(BaseModel):
    consignor_id: int
    category_id: Optional[int] = None
    sku: Optional[str] = Field(default=None, max_length=50)
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    brand: Optional[str] = Field(default=None, max_length=100)
    size: Optional[str] = Field(default=None, max_length=50)
    condition: Optional[str] = Field(default=None, max_length=30)
    price: float = Field(..., ge=0)
    original_price: Optional[float] = Field(default=None, ge=0)
    split_percentage: Optional[float] = Field(default=None, ge=0, le=100, description="Overrides the consignor rate")
    received_date: Optional[date] = None
    notes: Optional[str] = None

    @field_validator("title", mode="before")
    def _strip_title(cls, value: str) -> str:
        return str(value or "").strip()


class ItemUpdate(BaseModel):
    consignor_id: Optional[int] = None
    category_id: Optional[int] = None
    sku: Optional[str] = Field(default=None, max_length=50)
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    brand: Optional[str] = Field(default=None, max_length=100)
    size: Optional[str] = Field(default=None, max_length=50)
    condition: Optional[str] = Field(default=None, max_length=30)
    price: Optional[float] = Field(default=None, ge=0)
    original_price: Optional[float] = Field(default=None, ge=0)
    split_percentage: Optional[float] = Field(default=None, ge=0, le=100)
    received_date: Optional[date] = None
    notes: Optional[str] = None


class ItemStatusUpdate(BaseModel):
    status: Literal["Available", "Removed"]


class InventoryMetrics(BaseModel):
    total_items: int
    available_items: int
    sold_items: int
    removed_items: int
    available_value: float


__all__ = ["InventoryMetrics", "ItemCreate", "ItemPayload", "ItemStatusUpdate", "ItemUpdate"]
