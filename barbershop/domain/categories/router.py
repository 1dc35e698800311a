"""Category router - FastAPI endpoints for categories and client tiers"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, is_staff, require_admin
from ...database import get_db
from ...deduplication import standard_deduplication
from ...models import User
from ...rate_limiter import modification_limiter
from .loyalty import LoyaltyService
from .schemas import (
    CategoryAssignmentResponse,
    CategoryAssignRequest,
    CategoryClientsResponse,
    CategoryCreate,
    CategoryDeleteRequest,
    CategoryDeleteResponse,
    CategoryResponse,
    CategoryUpdate,
    SemesterReviewResponse,
)
from .service import CategoryService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/categories", tags=["Categories"])


def get_category_service(db: Session = Depends(get_db)) -> CategoryService:
    """Dependency injection for CategoryService"""
    return CategoryService(db)


def get_loyalty_service(db: Session = Depends(get_db)) -> LoyaltyService:
    return LoyaltyService(db)


# ============================================================================
# CORE CRUD OPERATIONS
# ============================================================================


@router.get("", response_model=list[CategoryResponse])
async def get_categories(
    current_user: User = Depends(get_current_user),
    service: CategoryService = Depends(get_category_service),
):
    return [CategoryResponse.from_model(c) for c in service.get_categories()]


@router.get("/{category_id}", response_model=CategoryResponse)
async def get_category(
    category_id: str,
    current_user: User = Depends(get_current_user),
    service: CategoryService = Depends(get_category_service),
):
    return CategoryResponse.from_model(service.get_category(category_id))


@router.post(
    "",
    response_model=CategoryResponse,
    status_code=201,
    dependencies=[Depends(modification_limiter), Depends(standard_deduplication)],
)
async def create_category(
    data: CategoryCreate,
    current_user: User = Depends(require_admin),
    service: CategoryService = Depends(get_category_service),
):
    return CategoryResponse.from_model(service.create_category(data))


@router.put("/{category_id}", response_model=CategoryResponse, dependencies=[Depends(modification_limiter)])
async def update_category(
    category_id: str,
    data: CategoryUpdate,
    current_user: User = Depends(require_admin),
    service: CategoryService = Depends(get_category_service),
):
    return CategoryResponse.from_model(service.update_category(category_id, data))


@router.delete("/{category_id}", response_model=CategoryResponse, dependencies=[Depends(modification_limiter)])
async def delete_category(
    category_id: str,
    current_user: User = Depends(require_admin),
    service: CategoryService = Depends(get_category_service),
):
    """Delete an unused category"""
    return service.delete_category(category_id)


# ============================================================================
# CLIENT REASSIGNMENT
# ============================================================================


@router.get("/{category_id}/clients", response_model=CategoryClientsResponse)
async def list_clients_for_category(
    category_id: str,
    current_user: User = Depends(require_admin),
    service: CategoryService = Depends(get_category_service),
):
    """Clients whose current tier is this category, with appointment stats"""
    return service.list_clients_for_category(category_id)


@router.post(
    "/{category_id}/delete-with-reassignment",
    response_model=CategoryDeleteResponse,
    dependencies=[Depends(modification_limiter)],
)
async def destroy_with_reassignment(
    category_id: str,
    data: CategoryDeleteRequest,
    current_user: User = Depends(require_admin),
    service: CategoryService = Depends(get_category_service),
):
    """Delete a category after moving its current clients one tier up or down"""
    return service.destroy_with_reassignment(category_id, data)


# ============================================================================
# CLIENT TIERS
# ============================================================================


@router.get("/clients/{client_id}/history", response_model=list[CategoryAssignmentResponse])
async def client_history(
    client_id: str,
    current_user: User = Depends(get_current_user),
    service: CategoryService = Depends(get_category_service),
):
    """Tier history of a client, newest first"""
    if not is_staff(current_user) and current_user.id != client_id:
        raise HTTPException(status_code=403, detail="No tiene permiso para acceder a este usuario")
    return [CategoryAssignmentResponse.from_model(a) for a in service.client_history(client_id)]


@router.post(
    "/assign",
    response_model=CategoryAssignmentResponse,
    status_code=201,
    dependencies=[Depends(modification_limiter)],
)
async def assign_category(
    data: CategoryAssignRequest,
    current_user: User = Depends(require_admin),
    service: CategoryService = Depends(get_category_service),
):
    assignment = service.assign_category(data.codCliente, data.codCategoria)
    return CategoryAssignmentResponse.from_model(assignment)


@router.post("/semester-review", response_model=SemesterReviewResponse)
async def semester_review(
    today: Optional[date] = Query(None, description="Reference date, defaults to today"),
    current_user: User = Depends(require_admin),
    loyalty: LoyaltyService = Depends(get_loyalty_service),
):
    """Demote Medium/Premium clients that missed the visit minimum last semester"""
    logger.info(f"📊 Semester review requested by {current_user.email}")
    return loyalty.semester_review(today)
