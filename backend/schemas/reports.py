"""Pydantic schemas for reporting endpoints."""

from __future__ import annotations

import datetime as dt
from typing import List, Optional

from pydantic import BaseModel, Field

from backend.schemas.items import InventoryMetrics


class DashboardPayload(BaseModel):
    inventory: InventoryMetrics
    sales_this_month: float = 0.0
    shop_revenue_this_month: float = 0.0
    transactions_this_month: int = Field(0, ge=0)
    pending_payouts_total: float = 0.0
    pending_payouts_count: int = Field(0, ge=0)
    active_consignors: int = Field(0, ge=0)
    pending_approvals: int = Field(0, ge=0)


class DailySales(BaseModel):
    date: dt.date
    sales: float
    shop_revenue: float
    transactions: int


class CategorySales(BaseModel):
    category: str
    sales: float
    items_sold: int


class SalesReport(BaseModel):
    start_date: dt.date
    end_date: dt.date
    total_sales: float
    shop_revenue: float
    consignor_earnings: float
    transaction_count: int
    by_day: List[DailySales]
    by_category: List[CategorySales]


class ConsignorPerformance(BaseModel):
    consignor_id: int
    consignor_name: str
    consignor_number: str
    items_sold: int
    total_sales: float
    total_earnings: float
    average_days_to_sell: float


class PayoutChartPoint(BaseModel):
    date: dt.date
    amount: float
    payouts: int


class ConsignorPayoutSummary(BaseModel):
    consignor_id: int
    consignor_name: str
    total_paid: float
    payout_count: int
    pending_amount: float


class PayoutSummaryReport(BaseModel):
    start_date: dt.date
    end_date: dt.date
    total_paid: float
    total_pending: float
    payout_count: int
    average_payout: float
    chart: List[PayoutChartPoint]
    consignors: List[ConsignorPayoutSummary]


__all__ = [
    "ConsignorPerformance",
    "DashboardPayload",
    "PayoutSummaryReport",
    "SalesReport",
]


class AgingBucket(BaseModel):
    bucket: str
    count: int = Field(..., ge=0)
    value: float


class AgingItem(BaseModel):
    item_id: int
    title: str
    sku: str
    category: str
    consignor_name: str
    price: float
    received_date: dt.date
    days_listed: int = Field(..., ge=0)
    suggested_action: str


class InventoryAgingReport(BaseModel):
    as_of: dt.date
    total_available: int
    over_30_days: int
    over_60_days: int
    over_90_days: int
    average_age: float
    buckets: List[AgingBucket]
    items: List[AgingItem]


class ReconciliationLine(BaseModel):
    transaction_id: int
    item_title: str
    payment_method: str
    amount: float


class DailyReconciliation(BaseModel):
    date: dt.date
    opening_balance: float
    cash_sales: float
    card_sales: float
    check_sales: float
    other_sales: float
    total_sales: float
    expected_cash: float
    actual_cash: Optional[float] = None
    variance: Optional[float] = None
    notes: str = ""
    transactions: List[ReconciliationLine]


class ReconciliationRequest(BaseModel):
    date: dt.date
    opening_balance: float = Field(0.0, ge=0)
    actual_cash: float = Field(..., ge=0)
    notes: Optional[str] = Field(default=None, max_length=1000)
