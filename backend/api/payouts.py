"""Payout endpoints: pending balances, payout batches and their CSV export."""

from __future__ import annotations

from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import StreamingResponse

from backend.dependencies.organization import Organization, get_current_organization
from backend.dependencies.security import AuthenticatedUser, require_roles
from backend.schemas.common import ApiResponse, PagedData
from backend.schemas.payouts import (
    PayoutCreate,
    PayoutDeleteResult,
    PayoutDetail,
    PayoutPayload,
    PayoutUpdate,
    PendingPayoutGroup,
)
from backend.schemas.reports import PayoutSummaryReport
from backend.services import payouts as payouts_service
from backend.services import reports as reports_service

router = APIRouter(prefix="/payouts", tags=["payouts"])

require_payout_manager = require_roles("owner", "manager")


def _csv_response(filename: str, payload: bytes) -> StreamingResponse:
    return StreamingResponse(
        iter([payload]),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("", response_model=ApiResponse[PagedData[PayoutPayload]])
def list_payouts(
    consignor_id: int | None = Query(default=None),
    status_filter: Literal["Pending", "Paid"] | None = Query(default=None, alias="status"),
    start_date: date | None = Query(default=None, description="Payout date from"),
    end_date: date | None = Query(default=None, description="Payout date to"),
    period_start: date | None = Query(default=None),
    period_end: date | None = Query(default=None),
    sort_by: str = Query(default="payoutdate"),
    sort_direction: Literal["asc", "desc"] = Query(default="desc"),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=25, ge=1, le=200),
    org: Organization = Depends(get_current_organization),
):
    result = payouts_service.list_payouts(
        org.id,
        consignor_id=consignor_id,
        status=status_filter,
        start_date=start_date,
        end_date=end_date,
        period_start=period_start,
        period_end=period_end,
        sort_by=sort_by,
        sort_direction=sort_direction,
        page=page,
        page_size=page_size,
    )
    return ApiResponse.ok(result)


@router.get("/pending", response_model=ApiResponse[list[PendingPayoutGroup]])
def pending_payouts(
    consignor_id: int | None = Query(default=None),
    period_end_before: date | None = Query(default=None),
    minimum_amount: float | None = Query(default=None, ge=0),
    org: Organization = Depends(get_current_organization),
):
    groups = payouts_service.get_pending_payouts(
        org.id,
        consignor_id=consignor_id,
        period_end_before=period_end_before,
        minimum_amount=minimum_amount,
    )
    return ApiResponse.ok(groups)


@router.get("/summary", response_model=ApiResponse[PayoutSummaryReport])
def payout_summary(
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    consignor_id: int | None = Query(default=None),
    org: Organization = Depends(get_current_organization),
):
    report = reports_service.payout_summary(
        org.id, start_date=start_date, end_date=end_date, consignor_id=consignor_id
    )
    return ApiResponse.ok(report)


@router.post("", response_model=ApiResponse[PayoutDetail], status_code=status.HTTP_201_CREATED)
def create_payout(
    payload: PayoutCreate,
    org: Organization = Depends(get_current_organization),
    _: AuthenticatedUser = Depends(require_payout_manager),
):
    created = payouts_service.create_payout(org.id, payload.model_dump())
    return ApiResponse.ok(created, f"Payout {created['payout_number']} created")


@router.get("/{payout_id}", response_model=ApiResponse[PayoutDetail])
def read_payout(payout_id: int, org: Organization = Depends(get_current_organization)):
    return ApiResponse.ok(payouts_service.get_payout(org.id, payout_id))


@router.put("/{payout_id}", response_model=ApiResponse[PayoutDetail])
def update_payout(
    payout_id: int,
    payload: PayoutUpdate,
    org: Organization = Depends(get_current_organization),
    _: AuthenticatedUser = Depends(require_payout_manager),
):
    updated = payouts_service.update_payout(org.id, payout_id, payload.model_dump(exclude_unset=True))
    return ApiResponse.ok(updated, "Payout updated")


@router.delete("/{payout_id}", response_model=ApiResponse[PayoutDeleteResult])
def delete_payout(
    payout_id: int,
    org: Organization = Depends(get_current_organization),
    _: AuthenticatedUser = Depends(require_payout_manager),
):
    released = payouts_service.delete_payout(org.id, payout_id)
    return ApiResponse.ok(PayoutDeleteResult(id=payout_id, released_transactions=released), "Payout deleted")


@router.get("/{payout_id}/export")
def export_payout(payout_id: int, org: Organization = Depends(get_current_organization)):
    """Stream the payout as CSV."""

    filename, payload = payouts_service.export_payout_csv(org.id, payout_id)
    return _csv_response(filename, payload)
