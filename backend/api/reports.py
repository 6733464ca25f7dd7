"""Reports API router."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse

from backend.dependencies.organization import Organization, get_current_organization
from backend.schemas.common import ApiResponse
from backend.schemas.reports import (
    ConsignorPerformance,
    DailyReconciliation,
    InventoryAgingReport,
    PayoutSummaryReport,
    ReconciliationRequest,
    SalesReport,
)
from backend.services import reports as reports_service

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/sales", response_model=ApiResponse[SalesReport])
def sales_report(
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    org: Organization = Depends(get_current_organization),
):
    return ApiResponse.ok(reports_service.sales_report(org.id, start_date=start_date, end_date=end_date))


@router.get("/consignor-performance", response_model=ApiResponse[list[ConsignorPerformance]])
def consignor_performance(
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    org: Organization = Depends(get_current_organization),
):
    rows = reports_service.consignor_performance(org.id, start_date=start_date, end_date=end_date)
    return ApiResponse.ok(rows)


@router.get("/payouts", response_model=ApiResponse[PayoutSummaryReport])
def payout_report(
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    consignor_id: int | None = Query(default=None),
    org: Organization = Depends(get_current_organization),
):
    report = reports_service.payout_summary(
        org.id, start_date=start_date, end_date=end_date, consignor_id=consignor_id
    )
    return ApiResponse.ok(report)


@router.get("/inventory-aging", response_model=ApiResponse[InventoryAgingReport])
def inventory_aging_report(
    age_threshold: int = Query(default=0, ge=0),
    category_id: int | None = Query(default=None),
    consignor_id: int | None = Query(default=None),
    min_price: float | None = Query(default=None, ge=0),
    max_price: float | None = Query(default=None, ge=0),
    org: Organization = Depends(get_current_organization),
):
    report = reports_service.inventory_aging(
        org.id,
        age_threshold=age_threshold,
        category_id=category_id,
        consignor_id=consignor_id,
        min_price=min_price,
        max_price=max_price,
    )
    return ApiResponse.ok(report)


@router.get("/reconciliation", response_model=ApiResponse[DailyReconciliation])
def daily_reconciliation(
    day: date | None = Query(default=None, alias="date"),
    org: Organization = Depends(get_current_organization),
):
    return ApiResponse.ok(reports_service.daily_reconciliation(org.id, day))


@router.post("/reconciliation", response_model=ApiResponse[DailyReconciliation])
def reconcile_day(payload: ReconciliationRequest, org: Organization = Depends(get_current_organization)):
    """Compare the counted cash with the day's expected cash."""

    result = reports_service.daily_reconciliation(
        org.id,
        payload.date,
        opening_balance=payload.opening_balance,
        actual_cash=payload.actual_cash,
        notes=payload.notes,
    )
    return ApiResponse.ok(result, "Reconciliation computed")


@router.get("/export/{report_type}")
def export_report_dataset(
    report_type: str,
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    org: Organization = Depends(get_current_organization),
):
    """Stream a CSV export for the requested dataset."""

    try:
        filename, payload = reports_service.export_dataset(
            report_type, organization_id=org.id, start_date=start_date, end_date=end_date
        )
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc

    return StreamingResponse(
        iter([payload]),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
