"""Item categories of the current shop."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from backend.dependencies.organization import Organization, get_current_organization
from backend.schemas.categories import (
    CategoryCreate,
    CategoryPayload,
    CategoryReorderRequest,
    CategoryUpdate,
    CategoryUsage,
)
from backend.schemas.common import ApiResponse, DeletedPayload
from backend.services import categories as categories_service

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("", response_model=ApiResponse[list[CategoryPayload]])
def list_categories(org: Organization = Depends(get_current_organization)):
    return ApiResponse.ok(categories_service.list_categories(org.id))


@router.post("", response_model=ApiResponse[CategoryPayload], status_code=status.HTTP_201_CREATED)
def create_category(payload: CategoryCreate, org: Organization = Depends(get_current_organization)):
    created = categories_service.create_category(
        org.id, payload.name, description=payload.description, display_order=payload.display_order
    )
    return ApiResponse.ok(created, "Category created")


@router.get("/usage", response_model=ApiResponse[list[CategoryUsage]])
def category_usage(org: Organization = Depends(get_current_organization)):
    return ApiResponse.ok(categories_service.category_usage(org.id))


@router.put("/reorder", response_model=ApiResponse[list[CategoryPayload]])
def reorder_categories(payload: CategoryReorderRequest, org: Organization = Depends(get_current_organization)):
    return ApiResponse.ok(categories_service.reorder_categories(org.id, payload.category_ids))


@router.get("/{category_id}", response_model=ApiResponse[CategoryPayload])
def read_category(category_id: int, org: Organization = Depends(get_current_organization)):
    return ApiResponse.ok(categories_service.get_category(org.id, category_id))


@router.put("/{category_id}", response_model=ApiResponse[CategoryPayload])
def update_category(category_id: int, payload: CategoryUpdate, org: Organization = Depends(get_current_organization)):
    updated = categories_service.update_category(
        org.id,
        category_id,
        name=payload.name,
        description=payload.description,
        display_order=payload.display_order,
    )
    return ApiResponse.ok(updated, "Category updated")


@router.delete("/{category_id}", response_model=ApiResponse[DeletedPayload])
def delete_category(category_id: int, org: Organization = Depends(get_current_organization)):
    categories_service.delete_category(org.id, category_id)
    return ApiResponse.ok(DeletedPayload(id=category_id), "Category deleted")
