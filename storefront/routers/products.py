"""Products API router."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from storefront.database import get_db
from storefront.dependencies import get_catalog_service
from storefront.errors import NotFoundError
from storefront.schemas import ProductDetailResponse, ProductListResponse
from storefront.services.catalog_service import CatalogService

router = APIRouter(prefix="/products", tags=["products"])


@router.get("", response_model=ProductListResponse)
def list_products(
    category: Optional[str] = Query(None, description="Category, or 'all'"),
    search: Optional[str] = Query(None, description="Matches name, description or category"),
    sort_by: Optional[str] = Query(None, alias="sortBy", description="price-asc, price-desc or name"),
    min_price: Optional[int] = Query(None, alias="minPrice", ge=0),
    max_price: Optional[int] = Query(None, alias="maxPrice", ge=0),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    catalog: CatalogService = Depends(get_catalog_service)
):
    """
    List active products.

    Each product carries its average rating and review count, computed from
    the reviews at read time.

    Examples:
    - GET /products?category=women&sortBy=price-asc
    - GET /products?search=silk&minPrice=1000
    """
    return catalog.list_products(
        db,
        category=category,
        search=search,
        min_price=min_price,
        max_price=max_price,
        sort_by=sort_by,
        limit=limit,
        offset=offset
    )


@router.get("/{product_id}", response_model=ProductDetailResponse)
def get_product(
    product_id: str,
    db: Session = Depends(get_db),
    catalog: CatalogService = Depends(get_catalog_service)
):
    """Get product details with reviews, newest first."""
    try:
        return catalog.get_product(db, product_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
