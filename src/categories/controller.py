from fastapi import APIRouter, status
from typing import List
from uuid import UUID

from . import model
from .service import CategoryServiceDep

router = APIRouter(prefix="/categories", tags=["Categories"])


@router.post(
    "/", response_model=model.CategoryResponse, status_code=status.HTTP_201_CREATED
)
async def create_category(service: CategoryServiceDep, category: model.CategoryCreate):
    return await service.create_category(category)


@router.get("/", response_model=List[model.CategoryResponse])
async def get_categories(service: CategoryServiceDep, populate_children: bool = True):
    return await service.list_categories(populate_children)


@router.get("/{category_id}", response_model=model.CategoryResponse)
async def get_category(service: CategoryServiceDep, category_id: UUID):
    return await service.get_category(category_id)


@router.get("/{category_id}/ancestors", response_model=List[model.CategoryResponse])
async def get_category_ancestors(service: CategoryServiceDep, category_id: UUID):
    return await service.get_category_ancestors(category_id)


@router.put("/{category_id}", response_model=model.CategoryResponse)
async def update_category(
    service: CategoryServiceDep,
    category_id: UUID,
    category_update: model.CategoryUpdate,
):
    return await service.update_category(category_id, category_update)


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(service: CategoryServiceDep, category_id: UUID):
    await service.delete_category(category_id)
