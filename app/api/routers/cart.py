from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.database import get_db
from app.models import User
from app.schemas import AckResponse, CartItemRequest, CartResponse, ErrorResponse
from app.services.cart import CartService

router = APIRouter(
    prefix="/cart",
    tags=["cart"],
    responses={401: {"model": ErrorResponse}},
)


@router.post("/add", response_model=AckResponse, responses={404: {"model": ErrorResponse}})
async def add_to_cart(
    payload: CartItemRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await CartService(db).add_item(user.id, payload.item_id)
    return AckResponse(message="Added To Cart")


@router.post("/remove", response_model=AckResponse)
async def remove_from_cart(
    payload: CartItemRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await CartService(db).remove_item(user.id, payload.item_id)
    return AckResponse(message="Removed From Cart")


@router.post("/get", response_model=CartResponse)
async def get_cart(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    cart = await CartService(db).get_cart(user.id)
    return CartResponse(cart_data=cart)
