from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ConsignorPayload(BaseModel):
    id: int
    organization_id: int
    user_id: Optional[int] = None
    consignor_number: str
    full_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    commission_rate: float = Field(description="Consignor share of each sale, in percent")
    status: str
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ConsignorCreate(BaseModel):
    full_name: str = Field(..., min_length=2, max_length=200)
    email: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)
    address: Optional[str] = None
    commission_rate: Optional[float] = Field(default=None, ge=0, le=100)
    notes: Optional[str] = None


class ConsignorUpdate(BaseModel):
    full_name: Optional[str] = Field(default=None, min_length=2, max_length=200)
    email: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)
    address: Optional[str] = None
    commission_rate: Optional[float] = Field(default=None, ge=0, le=100)
    notes: Optional[str] = None


class ConsignorSummary(BaseModel):
    consignor: ConsignorPayload
    items_available: int
    items_sold: int
    items_removed: int
    total_sales: float
    total_earnings: float
    pending_balance: float
    total_paid: float


__all__ = ["ConsignorCreate", "ConsignorPayload", "ConsignorSummary", "ConsignorUpdate"]
