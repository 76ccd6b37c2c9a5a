"""Domain exceptions raised by services and translated to HTTP errors by routers."""


class ValidationError(ValueError):
    """Request data failed a business rule (HTTP 400)."""


class NotFoundError(LookupError):
    """A referenced entity does not exist (HTTP 404)."""


class ForbiddenError(PermissionError):
    """Caller is authenticated but may not act on the entity (HTTP 403)."""


class InsufficientStockError(ValueError):
    """Requested quantity exceeds available stock.

    The storefront reports this as 400 and the v1 surface as 409.
    """

    def __init__(self, product_id: str, product_name: str, available: int):
        self.product_id = product_id
        self.product_name = product_name
        self.available = available
        super().__init__(
            f"Insufficient stock for {product_name}. Available: {available}"
        )
