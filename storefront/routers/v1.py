"""
API-key-gated v1 surface for machine clients.

Orders placed here are client-priced: the caller's per-item price is
trusted and no shipping or tax is added.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from storefront.auth import verify_api_key
from storefront.database import get_db
from storefront.dependencies import get_catalog_service, get_client_priced_order_service
from storefront.errors import InsufficientStockError, NotFoundError, ValidationError
from storefront.schemas import (
    ProductDetailResponse,
    ProductListResponse,
    V1OrderCreate,
    V1OrderResponse,
)
from storefront.services.catalog_service import CatalogService
from storefront.services.order_service import Customer, OrderService, RequestedItem

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["v1"], dependencies=[Depends(verify_api_key)])


@router.get("/products", response_model=ProductListResponse)
def list_products(
    category: Optional[str] = Query(None),
    subcategory: Optional[str] = Query(None),
    search: Optional[str] = Query(None, description="Matches name or description"),
    min_price: Optional[int] = Query(None, alias="minPrice", ge=0),
    max_price: Optional[int] = Query(None, alias="maxPrice", ge=0),
    limit: int = Query(20, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    catalog: CatalogService = Depends(get_catalog_service)
):
    """List active products; average ratings are rounded to one decimal."""
    return catalog.list_products(
        db,
        category=category,
        subcategory=subcategory,
        search=search,
        search_category=False,
        min_price=min_price,
        max_price=max_price,
        limit=limit,
        offset=offset,
        rating_precision=True
    )


@router.get("/products/{product_id}", response_model=ProductDetailResponse)
def get_product(
    product_id: str,
    db: Session = Depends(get_db),
    catalog: CatalogService = Depends(get_catalog_service)
):
    try:
        return catalog.get_product(db, product_id, rating_precision=True, active_only=True)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/orders", response_model=V1OrderResponse, status_code=201)
def create_order(
    request: V1OrderCreate,
    db: Session = Depends(get_db),
    order_service: OrderService = Depends(get_client_priced_order_service)
):
    """
    Place an order on behalf of a user or a guest email.

    Insufficient stock is reported as 409 Conflict.
    """
    items = [RequestedItem(i.product_id, i.quantity, i.price) for i in request.items]
    try:
        order_service.check_request(items, request.shipping_address, request.payment_method)
        user = order_service.resolve_customer(
            db, request.user_id, request.customer_email, request.customer_name
        )
        order = order_service.place_order(
            db=db,
            user_id=user.id,
            items=items,
            shipping_address=request.shipping_address,
            payment_method=request.payment_method,
            customer=Customer(
                name=request.customer_name or user.name or "",
                email=request.customer_email or user.email,
                phone=request.customer_phone or user.phone or ""
            ),
            entry_point="v1"
        )
    except InsufficientStockError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {"success": True, "order": order}
