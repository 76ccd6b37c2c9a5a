"""Admin back-office API router."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from storefront.auth import CurrentUser, require_admin
from storefront.database import get_db
from storefront.dependencies import get_admin_service
from storefront.errors import NotFoundError, ValidationError
from storefront.schemas import (
    AdminOrderListResponse,
    AdminOrderResponse,
    AdminProductCreate,
    AdminProductListResponse,
    AdminProductUpdate,
    AdminUserListResponse,
    AdminUserResponse,
    MessageResponse,
    OrderStatusUpdate,
    ProductResponse,
    RoleUpdate,
    StatsResponse,
)
from storefront.services.admin_service import AdminService

router = APIRouter(prefix="/admin", tags=["admin"])


# --- Products -------------------------------------------------------------

@router.get("/products", response_model=AdminProductListResponse)
def list_products(
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    search: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
    admin_service: AdminService = Depends(get_admin_service)
):
    """List all products, including inactive ones."""
    return admin_service.list_products(db, page=page, limit=limit, search=search, category=category)


@router.post("/products", response_model=ProductResponse, status_code=201)
def create_product(
    request: AdminProductCreate,
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
    admin_service: AdminService = Depends(get_admin_service)
):
    try:
        return admin_service.create_product(db, request.model_dump())
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.put("/products/{product_id}", response_model=ProductResponse)
def update_product(
    product_id: str,
    request: AdminProductUpdate,
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
    admin_service: AdminService = Depends(get_admin_service)
):
    """Partially update a product; only fields present in the body change."""
    try:
        return admin_service.update_product(
            db, product_id, request.model_dump(exclude_unset=True, exclude_none=True)
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/products/{product_id}", response_model=MessageResponse)
def delete_product(
    product_id: str,
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
    admin_service: AdminService = Depends(get_admin_service)
):
    try:
        admin_service.delete_product(db, product_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"message": "Product deleted successfully"}


# --- Orders ---------------------------------------------------------------

@router.get("/orders", response_model=AdminOrderListResponse)
def list_orders(
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    status: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
    admin_service: AdminService = Depends(get_admin_service)
):
    """List orders with customer, items and tracking, newest first."""
    return admin_service.list_orders(db, page=page, limit=limit, status=status)


@router.put("/orders/{order_id}/status", response_model=AdminOrderResponse)
def update_order_status(
    order_id: str,
    request: OrderStatusUpdate,
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
    admin_service: AdminService = Depends(get_admin_service)
):
    """
    Move an order to a new status.

    The tracking record follows: CONFIRMED, PROCESSING, SHIPPED and
    DELIVERED carry over, any other status resets tracking to CREATED.
    """
    try:
        return admin_service.update_order_status(db, order_id, request.status)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


# --- Users ----------------------------------------------------------------

@router.get("/users", response_model=AdminUserListResponse)
def list_users(
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
    admin_service: AdminService = Depends(get_admin_service)
):
    return admin_service.list_users(db, page=page, limit=limit, search=search)


@router.put("/users/{user_id}/role", response_model=AdminUserResponse)
def update_user_role(
    user_id: str,
    request: RoleUpdate,
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
    admin_service: AdminService = Depends(get_admin_service)
):
    try:
        return admin_service.update_user_role(db, user_id, request.role)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


# --- Dashboard ------------------------------------------------------------

@router.get("/stats", response_model=StatsResponse)
def get_stats(
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
    admin_service: AdminService = Depends(get_admin_service)
):
    """Dashboard counters, revenue and the ten most recent orders."""
    return admin_service.stats(db)
