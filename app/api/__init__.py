from fastapi import APIRouter

from app.api.routers import cart, food, orders, users

api_router = APIRouter()
api_router.include_router(users.router)
api_router.include_router(food.router)
api_router.include_router(cart.router)
api_router.include_router(orders.router)

__all__ = ["api_router"]
