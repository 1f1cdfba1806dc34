"""Domain exceptions for the shop backend.

Each exception carries the HTTP status it maps to; ``main.py`` turns them
into ``{"message": ...}`` responses.
"""

from typing import Optional


class ShopError(Exception):
    """Base exception for all business-rule failures."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_payload(self) -> dict:
        return {"message": self.message}


class NotFound(ShopError):
    status_code = 404


class ValidationFailed(ShopError):
    status_code = 400


class InsufficientStock(ShopError):
    """Raised when a product, package or package component is short."""

    status_code = 400

    def __init__(self, item_name: str, available: int, package_name: Optional[str] = None):
        self.item_name = item_name
        self.available = available
        self.package_name = package_name
        if package_name:
            msg = (
                f"Not enough stock for included product: {item_name} "
                f"(in package {package_name}). Available: {available}"
            )
        else:
            msg = f"Not enough stock for {item_name}. Available: {available}"
        super().__init__(msg)

    def to_payload(self) -> dict:
        return {"message": self.message, "available": self.available}


class CouponError(ShopError):
    """Base for every coupon rejection."""

    status_code = 400


class CouponNotFound(NotFound, CouponError):
    status_code = 404

    def __init__(self, code: str):
        self.code = code
        super().__init__("Coupon not found")


class CouponInactive(CouponError):
    def __init__(self, code: str):
        self.code = code
        super().__init__("Coupon is not active")


class CouponUsageExceeded(CouponError):
    def __init__(self, code: str):
        self.code = code
        super().__init__("Coupon usage limit reached")


class CouponNotApplicable(CouponError):
    def __init__(self, code: str):
        self.code = code
        super().__init__("Coupon not applicable to items in cart")


class IllegalTransition(ShopError):
    status_code = 400


class Unauthorized(ShopError):
    status_code = 401


class Forbidden(ShopError):
    status_code = 403
