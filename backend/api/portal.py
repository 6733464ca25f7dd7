"""Self-service endpoints for logged-in consignor accounts.

Every query is pinned to the consignor id carried by the token.
"""

from __future__ import annotations

from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import StreamingResponse

from backend.dependencies.organization import Organization, get_current_consignor_id, get_current_organization
from backend.dependencies.security import AuthenticatedUser, get_current_user
from backend.schemas.common import ApiResponse, PagedData
from backend.schemas.consignors import ConsignorPayload, ConsignorSummary
from backend.schemas.items import ItemPayload
from backend.schemas.notifications import NotificationPayload
from backend.schemas.payouts import PayoutDetail, PayoutPayload
from backend.schemas.statements import StatementDetail, StatementPayload
from backend.schemas.transactions import TransactionPayload
from backend.services import consignors as consignors_service
from backend.services import items as items_service
from backend.services import notifications as notifications_service
from backend.services import payouts as payouts_service
from backend.services import statements as statements_service
from backend.services import transactions as transactions_service

router = APIRouter(prefix="/portal", tags=["portal"])


def _csv(filename: str, payload: bytes) -> StreamingResponse:
    return StreamingResponse(
        iter([payload]),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/profile", response_model=ApiResponse[ConsignorPayload])
def read_profile(
    consignor_id: int = Depends(get_current_consignor_id),
    org: Organization = Depends(get_current_organization),
):
    return ApiResponse.ok(consignors_service.get_consignor(org.id, consignor_id))


@router.get("/dashboard", response_model=ApiResponse[ConsignorSummary])
def read_dashboard(
    consignor_id: int = Depends(get_current_consignor_id),
    org: Organization = Depends(get_current_organization),
):
    return ApiResponse.ok(consignors_service.consignor_summary(org.id, consignor_id))


@router.get("/items", response_model=ApiResponse[PagedData[ItemPayload]])
def my_items(
    status_filter: Literal["Available", "Sold", "Removed"] | None = Query(default=None, alias="status"),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=25, ge=1, le=200),
    consignor_id: int = Depends(get_current_consignor_id),
    org: Organization = Depends(get_current_organization),
):
    result = items_service.list_items(
        org.id, consignor_id=consignor_id, status=status_filter, page=page, page_size=page_size
    )
    return ApiResponse.ok(result)


@router.get("/sales", response_model=ApiResponse[PagedData[TransactionPayload]])
def my_sales(
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=25, ge=1, le=200),
    consignor_id: int = Depends(get_current_consignor_id),
    org: Organization = Depends(get_current_organization),
):
    result = transactions_service.list_transactions(
        org.id,
        consignor_id=consignor_id,
        start_date=start_date,
        end_date=end_date,
        page=page,
        page_size=page_size,
    )
    return ApiResponse.ok(result)


@router.get("/payouts", response_model=ApiResponse[PagedData[PayoutPayload]])
def my_payouts(
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=25, ge=1, le=200),
    consignor_id: int = Depends(get_current_consignor_id),
    org: Organization = Depends(get_current_organization),
):
    return ApiResponse.ok(
        payouts_service.list_payouts(org.id, consignor_id=consignor_id, page=page, page_size=page_size)
    )


@router.get("/payouts/{payout_id}", response_model=ApiResponse[PayoutDetail])
def my_payout(
    payout_id: int,
    consignor_id: int = Depends(get_current_consignor_id),
    org: Organization = Depends(get_current_organization),
):
    return ApiResponse.ok(payouts_service.get_payout(org.id, payout_id, consignor_id=consignor_id))


@router.get("/payouts/{payout_id}/export")
def export_my_payout(
    payout_id: int,
    consignor_id: int = Depends(get_current_consignor_id),
    org: Organization = Depends(get_current_organization),
):
    return _csv(*payouts_service.export_payout_csv(org.id, payout_id, consignor_id=consignor_id))


@router.get("/statements", response_model=ApiResponse[list[StatementPayload]])
def my_statements(
    consignor_id: int = Depends(get_current_consignor_id),
    org: Organization = Depends(get_current_organization),
):
    return ApiResponse.ok(statements_service.list_statements(org.id, consignor_id))


@router.get("/statements/{statement_id}", response_model=ApiResponse[StatementDetail])
def my_statement(
    statement_id: int,
    consignor_id: int = Depends(get_current_consignor_id),
    org: Organization = Depends(get_current_organization),
):
    return ApiResponse.ok(statements_service.get_statement(org.id, statement_id, consignor_id=consignor_id))


@router.post("/statements/{statement_id}/view", response_model=ApiResponse[StatementDetail])
def view_statement(
    statement_id: int,
    consignor_id: int = Depends(get_current_consignor_id),
    org: Organization = Depends(get_current_organization),
):
    return ApiResponse.ok(statements_service.mark_viewed(org.id, statement_id, consignor_id=consignor_id))


@router.get("/statements/{statement_id}/export")
def export_my_statement(
    statement_id: int,
    consignor_id: int = Depends(get_current_consignor_id),
    org: Organization = Depends(get_current_organization),
):
    return _csv(*statements_service.export_statement_csv(org.id, statement_id, consignor_id=consignor_id))


@router.get("/notifications", response_model=ApiResponse[list[NotificationPayload]])
def my_notifications(
    unread_only: bool = Query(default=False),
    user: AuthenticatedUser = Depends(get_current_user),
):
    return ApiResponse.ok(notifications_service.list_notifications(user.id, unread_only=unread_only))


@router.post("/notifications/{notification_id}/read", response_model=ApiResponse[None])
def read_notification(notification_id: int, user: AuthenticatedUser = Depends(get_current_user)):
    if not notifications_service.mark_read(user.id, notification_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    return ApiResponse.ok(message="Notification marked as read")
