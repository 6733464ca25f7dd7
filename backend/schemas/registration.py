"""Sign-up and approval payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


def _normalize_email(value) -> str:
    cleaned = str(value or "").strip().lower()
    if "@" not in cleaned or cleaned.startswith("@") or cleaned.endswith("@"):
        raise ValueError("Invalid email address")
    return cleaned


class StoreCodeValidation(BaseModel):
    is_valid: bool
    shop_name: Optional[str] = None
    error_message: Optional[str] = None


class OwnerRegistrationRequest(BaseModel):
    full_name: str = Field(..., min_length=2, max_length=200)
    email: str = Field(..., min_length=5, max_length=255)
    password: str = Field(..., min_length=8, max_length=128)
    phone: Optional[str] = Field(default=None, max_length=50)
    shop_name: str = Field(..., min_length=2, max_length=200)
    subdomain: str = Field(..., min_length=3, max_length=100, description="Unique shop slug")
    address: Optional[str] = None

    @field_validator("email", mode="before")
    def _clean_email(cls, value: str) -> str:
        return _normalize_email(value)

    @field_validator("subdomain", mode="before")
    def _lower_subdomain(cls, value: str) -> str:
        return str(value or "").strip().lower()


class ConsignorRegistrationRequest(BaseModel):
    store_code: str = Field(..., min_length=4, max_length=10)
    full_name: str = Field(..., min_length=2, max_length=200)
    email: str = Field(..., min_length=5, max_length=255)
    password: str = Field(..., min_length=8, max_length=128)
    phone: Optional[str] = Field(default=None, max_length=50)
    address: Optional[str] = None

    @field_validator("email", mode="before")
    def _clean_email(cls, value: str) -> str:
        return _normalize_email(value)

    @field_validator("store_code", mode="before")
    def _clean_code(cls, value: str) -> str:
        return str(value or "").strip().upper()


class RegistrationResult(BaseModel):
    user_id: int
    organization_id: int
    consignor_id: Optional[int] = None
    approval_status: str
    message: str


class PendingUser(BaseModel):
    id: int
    organization_id: Optional[int] = None
    email: str
    full_name: str
    phone: Optional[str] = None
    role: str
    approval_status: str
    store_code_used: Optional[str] = None
    shop_name: Optional[str] = None
    subdomain: Optional[str] = None
    created_at: Optional[datetime] = None


class RejectionRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)


class UserAccount(BaseModel):
    id: int
    organization_id: Optional[int] = None
    email: str
    full_name: str
    role: str
    approval_status: str
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    rejected_reason: Optional[str] = None
    store_code: Optional[str] = None


__all__ = [
    "ConsignorRegistrationRequest",
    "OwnerRegistrationRequest",
    "PendingUser",
    "RegistrationResult",
    "RejectionRequest",
    "StoreCodeValidation",
    "UserAccount",
]
