"""Shop settings and store code payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class OrganizationPayload(BaseModel):
    id: int
    name: str
    slug: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    status: str
    store_code: Optional[str] = None
    store_code_enabled: bool
    auto_approve_consignors: bool
    default_split_percentage: float
    tax_rate: float
    currency: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class OrganizationSettingsUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=200)
    email: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)
    address: Optional[str] = None
    default_split_percentage: Optional[float] = Field(default=None, ge=0, le=100)
    auto_approve_consignors: Optional[bool] = None
    store_code_enabled: Optional[bool] = None
    tax_rate: Optional[float] = Field(default=None, ge=0, lt=1)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)


class StoreCodePayload(BaseModel):
    store_code: Optional[str] = None
    is_enabled: bool


class StoreCodeToggleRequest(BaseModel):
    enabled: bool


__all__ = ["OrganizationPayload", "OrganizationSettingsUpdate", "StoreCodePayload", "StoreCodeToggleRequest"]
