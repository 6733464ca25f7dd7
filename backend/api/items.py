"""Inventory endpoints."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, Query, status

from backend.dependencies.organization import Organization, get_current_organization
from backend.schemas.common import ApiResponse, DeletedPayload, PagedData
from backend.schemas.items import InventoryMetrics, ItemCreate, ItemPayload, ItemStatusUpdate, ItemUpdate
from backend.services import items as items_service

router = APIRouter(prefix="/items", tags=["items"])


@router.get("", response_model=ApiResponse[PagedData[ItemPayload]])
def list_items(
    status_filter: Literal["Available", "Sold", "Removed"] | None = Query(default=None, alias="status"),
    consignor_id: int | None = Query(default=None),
    category_id: int | None = Query(default=None),
    search: str | None = Query(default=None, max_length=100),
    min_price: float | None = Query(default=None, ge=0),
    max_price: float | None = Query(default=None, ge=0),
    sort_by: str = Query(default="received"),
    sort_direction: Literal["asc", "desc"] = Query(default="desc"),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=25, ge=1, le=200),
    org: Organization = Depends(get_current_organization),
):
    result = items_service.list_items(
        org.id,
        status=status_filter,
        consignor_id=consignor_id,
        category_id=category_id,
        search=search,
        min_price=min_price,
        max_price=max_price,
        sort_by=sort_by,
        sort_direction=sort_direction,
        page=page,
        page_size=page_size,
    )
    return ApiResponse.ok(result)


@router.post("", response_model=ApiResponse[ItemPayload], status_code=status.HTTP_201_CREATED)
def create_item(payload: ItemCreate, org: Organization = Depends(get_current_organization)):
    return ApiResponse.ok(items_service.create_item(org.id, payload.model_dump()), "Item created")


@router.get("/metrics", response_model=ApiResponse[InventoryMetrics])
def inventory_metrics(org: Organization = Depends(get_current_organization)):
    return ApiResponse.ok(items_service.inventory_metrics(org.id))


@router.get("/{item_id}", response_model=ApiResponse[ItemPayload])
def read_item(item_id: int, org: Organization = Depends(get_current_organization)):
    return ApiResponse.ok(items_service.get_item(org.id, item_id))


@router.put("/{item_id}", response_model=ApiResponse[ItemPayload])
def update_item(item_id: int, payload: ItemUpdate, org: Organization = Depends(get_current_organization)):
    updated = items_service.update_item(org.id, item_id, payload.model_dump(exclude_unset=True))
    return ApiResponse.ok(updated, "Item updated")


@router.put("/{item_id}/status", response_model=ApiResponse[ItemPayload])
def change_item_status(item_id: int, payload: ItemStatusUpdate, org: Organization = Depends(get_current_organization)):
    return ApiResponse.ok(items_service.change_status(org.id, item_id, payload.status))


@router.delete("/{item_id}", response_model=ApiResponse[DeletedPayload])
def delete_item(item_id: int, org: Organization = Depends(get_current_organization)):
    items_service.delete_item(org.id, item_id)
    return ApiResponse.ok(DeletedPayload(id=item_id), "Item deleted")
