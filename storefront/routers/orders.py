"""Orders API router."""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from storefront.auth import CurrentUser, get_current_user
from storefront.database import get_db
from storefront.dependencies import get_storefront_order_service
from storefront.errors import InsufficientStockError, NotFoundError, ValidationError
from storefront.models import User
from storefront.schemas import OrderCreate, OrderResponse
from storefront.services.order_service import Customer, OrderService, RequestedItem

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", response_model=OrderResponse, status_code=201)
def create_order(
    request: OrderCreate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    order_service: OrderService = Depends(get_storefront_order_service)
):
    """
    Place an order at catalog prices - requires authentication.

    Shipping is free from a subtotal of 1000, otherwise a flat 50; tax is 18%
    of the subtotal. Stock is reserved atomically with the order insert.
    """
    account = db.query(User).filter(User.id == user.user_id).first()
    customer = Customer(
        name=request.customer_name or (account.name if account else "") or "",
        email=request.customer_email or (account.email if account else user.email) or "",
        phone=request.customer_phone or ""
    )

    try:
        return order_service.place_order(
            db=db,
            user_id=user.user_id,
            items=[RequestedItem(i.product_id, i.quantity) for i in request.items],
            shipping_address=request.shipping_address,
            payment_method=request.payment_method,
            customer=customer,
            notes=request.notes,
            entry_point="storefront"
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (ValidationError, InsufficientStockError) as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("", response_model=List[OrderResponse])
def get_my_orders(
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    order_service: OrderService = Depends(get_storefront_order_service)
):
    """Get the caller's orders, newest first - requires authentication."""
    return order_service.get_user_orders(db, user.user_id)


@router.get("/track", response_model=OrderResponse)
def track_order(
    order_number: Optional[str] = Query(None, alias="orderNumber"),
    order_id: Optional[str] = Query(None, alias="orderId"),
    db: Session = Depends(get_db),
    order_service: OrderService = Depends(get_storefront_order_service)
):
    """
    Track an order by order number, falling back to its id.

    Public: knowing the order number is enough to view the order.
    """
    try:
        return order_service.track_order(db, order_number or order_id)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
