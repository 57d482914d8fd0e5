"""
Order Lifecycle Service

Turns a user's cart into an order, hands payment off to the gateway,
and records the outcome.

Payment:      created -> pending_payment -> paid | failed
Fulfillment:  free-text label, overwritten by administrators

The cart is cleared only when payment is confirmed, so an abandoned
checkout leaves the cart intact for a retry.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, get_settings
from app.core.exceptions import EmptyCartError, InputValidationError, NotFoundError, UpstreamFailureError
from app.models import FoodItem, Order, PaymentStatus
from app.services.cart import CartService
from app.services.payment import BasePaymentService, CheckoutLineItem

logger = logging.getLogger(__name__)

MAX_STATUS_LENGTH = 50

DELIVERY_LINE_NAME = "Delivery Charges"

# Gateway webhook event -> payment succeeded?
GATEWAY_EVENT_OUTCOMES = {
    "checkout.session.completed": True,
    "checkout.session.async_payment_succeeded": True,
    "checkout.session.expired": False,
    "checkout.session.async_payment_failed": False,
}


class OrderService:
    """
    Use cases for the order domain.

    The service owns no connection of its own: the session and the
    payment gateway are handed in by the caller.
    """

    def __init__(
        self,
        db: AsyncSession,
        payment_service: Optional[BasePaymentService] = None,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.payment_service = payment_service
        self.settings = settings or get_settings()
        self.carts = CartService(db)

    # =========================================================================
    # QUERIES
    # =========================================================================

    async def get_order(self, order_id: int) -> Order:
        order = await self.db.get(Order, order_id)
        if not order:
            raise NotFoundError(f"Order #{order_id} not found")
        return order

    async def list_orders_for_user(self, user_id: int) -> list[Order]:
        result = await self.db.execute(
            select(Order).where(Order.user_id == user_id).order_by(Order.id)
        )
        return list(result.scalars().all())

    async def list_all_orders(self) -> list[Order]:
        result = await self.db.execute(select(Order).order_by(Order.id))
        return list(result.scalars().all())

    # =========================================================================
    # COMMANDS
    # =========================================================================

    async def _snapshot_cart(self, user_id: int) -> list[dict[str, Any]]:
        """Price every cart entry at the current catalog price."""
        cart = await self.carts.get_cart(user_id)

        snapshot = []
        for key, quantity in cart.items():
            if quantity <= 0:
                continue
            try:
                food = await self.db.get(FoodItem, int(key))
            except ValueError:
                food = None
            if food is None:
                logger.warning(f"Dropping unknown item {key} from cart of user #{user_id}")
                continue
            snapshot.append({
                "item_id": food.id,
                "name": food.name,
                "price": food.price,
                "quantity": quantity,
            })
        return snapshot

    def _checkout_urls(self, order_id: int) -> tuple[str, str]:
        base = self.settings.frontend_url.rstrip("/")
        return (
            f"{base}/verify?success=true&orderId={order_id}",
            f"{base}/verify?success=false&orderId={order_id}",
        )

    async def place_order(self, user_id: int, address: dict[str, Any]) -> tuple[Order, str]:
        """
        Create an order from the user's cart and open a checkout session.

        Returns:
            (order, session_url) - the client pays at session_url

        Raises:
            EmptyCartError: Nothing orderable in the cart; no order is created
            UpstreamFailureError: Gateway rejected the session; the order
                stays in pending_payment
        """
        if self.payment_service is None:
            raise RuntimeError("OrderService.place_order requires a payment service")

        items = await self._snapshot_cart(user_id)
        if not items:
            raise EmptyCartError()

        subtotal = round(sum(i["price"] * i["quantity"] for i in items), 2)
        delivery_fee = round(self.settings.delivery_fee, 2)

        order = Order(
            user_id=user_id,
            items=items,
            address=address,
            subtotal=subtotal,
            delivery_fee=delivery_fee,
            amount=round(subtotal + delivery_fee, 2),
            payment_status=PaymentStatus.PENDING_PAYMENT,
            status=self.settings.default_fulfillment_status,
        )
        self.db.add(order)
        await self.db.commit()
        await self.db.refresh(order)

        logger.info(f"Order #{order.id} created for user #{user_id} - {order.amount:.2f}")

        line_items = [
            CheckoutLineItem(name=i["name"], unit_price=i["price"], quantity=i["quantity"])
            for i in items
        ]
        if delivery_fee > 0:
            line_items.append(CheckoutLineItem(name=DELIVERY_LINE_NAME, unit_price=delivery_fee))

        success_url, cancel_url = self._checkout_urls(order.id)
        result = await self.payment_service.create_checkout_session(
            order_id=order.id,
            line_items=line_items,
            success_url=success_url,
            cancel_url=cancel_url,
            currency=self.settings.stripe_currency,
        )

        if not result.success or not result.session_url:
            logger.error(
                f"Order #{order.id}: checkout session failed "
                f"({result.error_code}: {result.error_message})"
            )
            raise UpstreamFailureError(result.error_message or None)

        order.payment_session_id = result.session_id
        await self.db.commit()

        logger.info(f"Order #{order.id}: checkout session {result.session_id} opened")
        return order, result.session_url

    async def confirm_payment(self, order_id: int, success: bool) -> Order:
        """
        Record the payment outcome reported by the gateway callback.

        success=True marks the order paid and clears the owner's cart in
        the same transaction; success=False marks it failed and leaves the
        cart alone. A paid order is terminal: a later failure report leaves
        it untouched. Other repeat calls are applied again.
        """
        order = await self.get_order(order_id)

        if not success and order.payment_status == PaymentStatus.PAID:
            logger.warning(f"Order #{order.id} already paid, ignoring failure report")
            return order

        if success:
            order.payment_status = PaymentStatus.PAID
            await self.carts.clear_cart(order.user_id, commit=False)
        else:
            order.payment_status = PaymentStatus.FAILED

        await self.db.commit()
        await self.db.refresh(order)

        logger.info(f"Order #{order.id} payment {order.payment_status.value}")
        return order

    async def update_fulfillment_status(self, order_id: int, status: str) -> Order:
        """Overwrite the fulfillment label. No ordering between labels is enforced."""
        status = (status or "").strip()
        if not status or len(status) > MAX_STATUS_LENGTH:
            raise InputValidationError(f"Status must be 1-{MAX_STATUS_LENGTH} characters")

        order = await self.get_order(order_id)
        previous = order.status
        order.status = status
        await self.db.commit()
        await self.db.refresh(order)

        logger.info(f"Order #{order.id} status: {previous!r} -> {status!r}")
        return order

    async def apply_gateway_event(self, event: dict[str, Any]) -> Optional[Order]:
        """
        Apply a verified gateway webhook event.

        Returns the updated order, or None when the event is not a
        checkout outcome or carries no order id.
        """
        event_type = event.get("type")
        if event_type not in GATEWAY_EVENT_OUTCOMES:
            logger.debug(f"Ignoring gateway event {event_type}")
            return None

        session = (event.get("data") or {}).get("object") or {}
        metadata = session.get("metadata") or {}
        raw_order_id = metadata.get("order_id") or session.get("client_reference_id")

        try:
            order_id = int(raw_order_id)
        except (TypeError, ValueError):
            logger.warning(f"Gateway event {event_type} without a usable order id")
            return None

        success = GATEWAY_EVENT_OUTCOMES[event_type]
        if event_type == "checkout.session.completed" and session.get("payment_status") == "unpaid":
            # Delayed payment methods report completion before the money arrives
            logger.info(f"Order #{order_id}: checkout completed, payment still processing")
            return None

        return await self.confirm_payment(order_id, success)

    async def expire_stale_orders(self, older_than: timedelta) -> int:
        """
        Fail orders that have sat in pending_payment longer than ``older_than``.

        Carts are untouched. A later successful confirmation still
        marks the order paid.
        """
        cutoff = datetime.now(timezone.utc) - older_than

        result = await self.db.execute(
            update(Order)
            .where(
                Order.payment_status == PaymentStatus.PENDING_PAYMENT,
                Order.created_at < cutoff,
            )
            .values(payment_status=PaymentStatus.FAILED, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()

        expired = result.rowcount or 0
        if expired:
            logger.info(f"Expired {expired} unpaid orders older than {cutoff.isoformat()}")
        return expired
