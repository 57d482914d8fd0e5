import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, require_admin
from app.core.exceptions import InputValidationError
from app.database import get_db
from app.models import PaymentStatus, User
from app.schemas import (
    AckResponse,
    ErrorResponse,
    OrderListResponse,
    OrderResponse,
    OrderStatusRequest,
    PlaceOrderRequest,
    PlaceOrderResponse,
    VerifyPaymentRequest,
)
from app.services.orders import OrderService
from app.services.payment import BasePaymentService, get_payment_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/order", tags=["orders"])


@router.post(
    "/place",
    response_model=PlaceOrderResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
)
async def place_order(
    payload: PlaceOrderRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    payment_service: BasePaymentService = Depends(get_payment_service),
):
    """
    Create an order from the caller's cart and return the checkout URL.
    The cart is cleared only once payment is confirmed.
    """
    svc = OrderService(db, payment_service)
    order, session_url = await svc.place_order(user.id, payload.address.model_dump())
    return PlaceOrderResponse(order_id=order.id, session_url=session_url)


@router.post(
    "/verify",
    response_model=AckResponse,
    responses={404: {"model": ErrorResponse}},
)
async def verify_order(
    payload: VerifyPaymentRequest,
    db: AsyncSession = Depends(get_db),
):
    """Payment outcome reported by the storefront after checkout redirects back."""
    order = await OrderService(db).confirm_payment(payload.order_id, payload.success)
    paid = order.payment_status == PaymentStatus.PAID
    return AckResponse(success=paid, message="Paid" if paid else "Not Paid")


@router.post(
    "/webhook",
    responses={400: {"model": ErrorResponse}},
)
async def payment_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    payment_service: BasePaymentService = Depends(get_payment_service),
    stripe_signature: Optional[str] = Header(None, alias="stripe-signature"),
) -> dict:
    """Signed checkout events pushed by the payment gateway."""
    body = await request.body()

    event = await payment_service.verify_webhook(body, stripe_signature)
    if event is None:
        raise InputValidationError("Invalid webhook payload or signature")

    logger.info(f"Payment webhook received: {event.get('type', 'unknown')}")
    await OrderService(db, payment_service).apply_gateway_event(event)
    return {"received": True}


@router.post(
    "/userorders",
    response_model=OrderListResponse,
    responses={401: {"model": ErrorResponse}},
)
async def user_orders(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    orders = await OrderService(db).list_orders_for_user(user.id)
    return OrderListResponse(data=[OrderResponse.model_validate(o) for o in orders])


@router.get(
    "/list",
    response_model=OrderListResponse,
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)
async def list_orders(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    orders = await OrderService(db).list_all_orders()
    return OrderListResponse(data=[OrderResponse.model_validate(o) for o in orders])


@router.post(
    "/status",
    response_model=AckResponse,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_status(
    payload: OrderStatusRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await OrderService(db).update_fulfillment_status(payload.order_id, payload.status)
    return AckResponse(message="Status Updated")
