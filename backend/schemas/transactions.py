"""Sale payloads."""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class TransactionPayload(BaseModel):
    id: int
    item_id: int
    item_title: str
    item_sku: str
    consignor_id: int
    consignor_name: str
    consignor_number: str
    sale_date: date
    sale_price: float
    split_percentage: float
    consignor_amount: float
    shop_amount: float
    sales_tax_amount: float
    payment_method: str
    notes: Optional[str] = None
    status: str
    payout_status: str
    payout_id: Optional[int] = None
    consignor_paid_out: bool
    paid_out_date: Optional[date] = None
    payout_method: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SaleCreate(BaseModel):
    item_id: int
    sale_price: Optional[float] = Field(default=None, ge=0, description="Defaults to the item price")
    sale_date: Optional[date] = None
    payment_method: str = Field(..., min_length=1, max_length=50)
    sales_tax_amount: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = None

    @field_validator("payment_method", mode="before")
    def _strip_method(cls, value: str) -> str:
        return str(value or "").strip()


class TransactionUpdate(BaseModel):
    payment_method: Optional[str] = Field(default=None, min_length=1, max_length=50)
    notes: Optional[str] = None


class PaymentMethodTotal(BaseModel):
    payment_method: str
    count: int
    total: float


class SalesMetrics(BaseModel):
    total_sales: float
    total_shop_revenue: float
    total_consignor_earnings: float
    total_tax: float
    transaction_count: int
    average_sale: float
    by_payment_method: List[PaymentMethodTotal]


__all__ = ["SaleCreate", "SalesMetrics", "TransactionPayload", "TransactionUpdate"]
