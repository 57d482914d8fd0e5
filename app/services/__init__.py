"""
                        Services Module

Business logic, one service per domain. Each service is built per
request around the caller's database session.

Services:
    - auth: Registration, login and tokens
    - catalog: Food items and their images
    - cart: Per-user cart mapping
    - orders: Checkout and the payment/fulfillment lifecycle
    - payment: Checkout gateway (Mock in development, Stripe otherwise)
"""

from app.services.auth import AuthService
from app.services.cart import CartService
from app.services.catalog import CatalogService
from app.services.orders import OrderService

__all__ = ["AuthService", "CartService", "CatalogService", "OrderService"]
