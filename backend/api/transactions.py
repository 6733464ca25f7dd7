"""Sales endpoints."""

from __future__ import annotations

from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, Query, status

from backend.dependencies.organization import Organization, get_current_organization
from backend.schemas.common import ApiResponse, DeletedPayload, PagedData
from backend.schemas.transactions import SaleCreate, SalesMetrics, TransactionPayload, TransactionUpdate
from backend.services import transactions as transactions_service

router = APIRouter(prefix="/transactions", tags=["transactions"])


@router.get("", response_model=ApiResponse[PagedData[TransactionPayload]])
def list_transactions(
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    consignor_id: int | None = Query(default=None),
    payment_method: str | None = Query(default=None, max_length=50),
    payout_status: Literal["Pending", "Paid"] | None = Query(default=None),
    sort_by: str = Query(default="saledate"),
    sort_direction: Literal["asc", "desc"] = Query(default="desc"),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=25, ge=1, le=200),
    org: Organization = Depends(get_current_organization),
):
    result = transactions_service.list_transactions(
        org.id,
        start_date=start_date,
        end_date=end_date,
        consignor_id=consignor_id,
        payment_method=payment_method,
        payout_status=payout_status,
        sort_by=sort_by,
        sort_direction=sort_direction,
        page=page,
        page_size=page_size,
    )
    return ApiResponse.ok(result)


@router.post("", response_model=ApiResponse[TransactionPayload], status_code=status.HTTP_201_CREATED)
def record_sale(payload: SaleCreate, org: Organization = Depends(get_current_organization)):
    sale = transactions_service.record_sale(org.id, payload.model_dump())
    return ApiResponse.ok(sale, "Sale recorded")


@router.get("/metrics", response_model=ApiResponse[SalesMetrics])
def sales_metrics(
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    consignor_id: int | None = Query(default=None),
    org: Organization = Depends(get_current_organization),
):
    metrics = transactions_service.sales_metrics(
        org.id, start_date=start_date, end_date=end_date, consignor_id=consignor_id
    )
    return ApiResponse.ok(metrics)


@router.get("/{transaction_id}", response_model=ApiResponse[TransactionPayload])
def read_transaction(transaction_id: int, org: Organization = Depends(get_current_organization)):
    return ApiResponse.ok(transactions_service.get_transaction(org.id, transaction_id))


@router.put("/{transaction_id}", response_model=ApiResponse[TransactionPayload])
def update_transaction(
    transaction_id: int, payload: TransactionUpdate, org: Organization = Depends(get_current_organization)
):
    updated = transactions_service.update_transaction(org.id, transaction_id, payload.model_dump(exclude_unset=True))
    return ApiResponse.ok(updated, "Transaction updated")


@router.delete("/{transaction_id}", response_model=ApiResponse[DeletedPayload])
def void_transaction(transaction_id: int, org: Organization = Depends(get_current_organization)):
    transactions_service.void_transaction(org.id, transaction_id)
    return ApiResponse.ok(DeletedPayload(id=transaction_id), "Transaction deleted")
