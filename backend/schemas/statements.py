"""Statement payloads."""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator


class StatementPayload(BaseModel):
    id: int
    consignor_id: int
    consignor_name: str
    consignor_number: str
    statement_number: str
    period_start: date
    period_end: date
    period_label: str
    opening_balance: float
    total_sales: float
    total_earnings: float
    total_payouts: float
    closing_balance: float
    items_sold: int
    payout_count: int
    status: str
    generated_at: datetime
    viewed_at: Optional[datetime] = None


class StatementSaleLine(BaseModel):
    id: int
    sale_date: date
    item_title: str
    item_sku: str
    sale_price: float
    split_percentage: float
    consignor_amount: float
    payout_status: str


class StatementPayoutLine(BaseModel):
    id: int
    payout_number: str
    payout_date: date
    amount: float
    payment_method: str
    transaction_count: int


class StatementDetail(StatementPayload):
    sales: List[StatementSaleLine] = []
    payouts: List[StatementPayoutLine] = []


class StatementGenerateRequest(BaseModel):
    consignor_id: int
    period_start: date
    period_end: date

    @model_validator(mode="after")
    def _check_period(self) -> "StatementGenerateRequest":
        if self.period_end < self.period_start:
            raise ValueError("period_end must not be before period_start")
        return self


class MonthlyGenerationRequest(BaseModel):
    year: int = Field(..., ge=2000, le=2100)
    month: int = Field(..., ge=1, le=12)


class MonthlyGenerationResult(BaseModel):
    period_start: date
    period_end: date
    generated: int
    failed: int


__all__ = [
    "MonthlyGenerationRequest",
    "MonthlyGenerationResult",
    "StatementDetail",
    "StatementGenerateRequest",
    "StatementPayload",
]
