"""Payout payloads."""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


class PayoutLine(BaseModel):
    id: int
    item_id: int
    item_title: str
    item_sku: str
    sale_date: date
    sale_price: float
    split_percentage: float
    consignor_amount: float
    shop_amount: float
    payment_method: str


class PayoutPayload(BaseModel):
    id: int
    consignor_id: int
    consignor_name: str
    consignor_number: str
    payout_number: str
    payout_date: date
    amount: float
    status: str
    payment_method: str
    payment_reference: Optional[str] = None
    period_start: date
    period_end: date
    transaction_count: int
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PayoutDetail(PayoutPayload):
    transactions: List[PayoutLine] = []


class PayoutCreate(BaseModel):
    consignor_id: int
    transaction_ids: List[int] = Field(..., min_length=1)
    payment_method: str = Field(..., min_length=1, max_length=50)
    payment_reference: Optional[str] = Field(default=None, max_length=100)
    payout_date: Optional[date] = None
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    notes: Optional[str] = None

    @field_validator("payment_method", mode="before")
    def _strip_method(cls, value: str) -> str:
        return str(value or "").strip()


class PayoutUpdate(BaseModel):
    payout_date: Optional[date] = None
    status: Optional[Literal["Pending", "Paid"]] = None
    payment_method: Optional[str] = Field(default=None, min_length=1, max_length=50)
    payment_reference: Optional[str] = Field(default=None, max_length=100)
    notes: Optional[str] = None


class PendingPayoutGroup(BaseModel):
    consignor_id: int
    consignor_name: str
    consignor_number: str
    consignor_email: Optional[str] = None
    pending_amount: float
    transaction_count: int
    earliest_sale: date
    latest_sale: date
    transactions: List[PayoutLine]


class PayoutDeleteResult(BaseModel):
    id: int
    released_transactions: int


__all__ = [
    "PayoutCreate",
    "PayoutDeleteResult",
    "PayoutDetail",
    "PayoutLine",
    "PayoutPayload",
    "PayoutUpdate",
    "PendingPayoutGroup",
]
