"""Dependency injection for services."""
from storefront.services.admin_service import AdminService
from storefront.services.catalog_service import CatalogService
from storefront.services.order_service import OrderService
from storefront.services.pricing import CLIENT_PRICING, STOREFRONT_PRICING
from storefront.services.review_service import ReviewService
from storefront.services.user_service import UserService


def get_catalog_service() -> CatalogService:
    return CatalogService()


def get_storefront_order_service() -> OrderService:
    """Order service for the storefront: catalog prices plus shipping and tax."""
    return OrderService(STOREFRONT_PRICING)


def get_client_priced_order_service() -> OrderService:
    """Order service for the v1 surface: caller-supplied prices, no extras."""
    return OrderService(CLIENT_PRICING)


def get_review_service() -> ReviewService:
    return ReviewService()


def get_user_service() -> UserService:
    return UserService()


def get_admin_service() -> AdminService:
    return AdminService()
