"""
Order lifecycle: checkout, payment confirmation, webhooks, fulfillment
status and the stale-order sweep.
"""

import json
from datetime import datetime, timedelta, timezone

import pytest

from app.models import FoodItem, Order, PaymentStatus, User
from app.services.orders import OrderService


async def place(client, headers, address):
    return await client.post("/order/place", headers=headers, json={"address": address})


async def user_orders(client, headers) -> list[dict]:
    response = await client.post("/order/userorders", headers=headers)
    assert response.status_code == 200
    return response.json()["data"]


async def cart_of(client, headers) -> dict:
    return (await client.post("/cart/get", headers=headers)).json()["cart_data"]


@pytest.fixture
async def stocked_cart(user_headers, add_food, add_to_cart):
    """Two salads and one roll in the customer's cart."""
    salad = await add_food("Greek Salad", price="12")
    rolls = await add_food("Chicken Rolls", price="20", category="Rolls")
    await add_to_cart(user_headers, salad["id"], times=2)
    await add_to_cart(user_headers, rolls["id"])
    return {"salad": salad, "rolls": rolls}


# ============================================================================
# Checkout
# ============================================================================

class TestPlaceOrder:

    async def test_place_order(self, client, user_headers, stocked_cart, address, payment_service):
        response = await place(client, user_headers, address)
        assert response.status_code == 200

        body = response.json()
        assert body["success"] is True
        order_id = body["order_id"]
        assert body["session_url"] == f"http://localhost:5173/verify?success=true&orderId={order_id}"
        assert len(payment_service.sessions) == 1

        [order] = await user_orders(client, user_headers)
        assert order["id"] == order_id
        assert order["payment_status"] == "pending_payment"
        assert order["status"] == "Food Processing"
        assert order["subtotal"] == 44.0
        assert order["delivery_fee"] == 2.0
        assert order["amount"] == 46.0
        assert order["address"]["first_name"] == "Jane"
        assert {(i["name"], i["price"], i["quantity"]) for i in order["items"]} == {
            ("Greek Salad", 12.0, 2),
            ("Chicken Rolls", 20.0, 1),
        }

    async def test_gateway_receives_delivery_line(self, client, user_headers, stocked_cart, address, payment_service):
        await place(client, user_headers, address)

        [session] = payment_service.sessions.values()
        assert session["amount"] == 46.0
        assert session["metadata"]["order_id"] == "1"

    async def test_cart_kept_until_paid(self, client, user_headers, stocked_cart, address):
        before = await cart_of(client, user_headers)
        await place(client, user_headers, address)
        assert await cart_of(client, user_headers) == before

    async def test_client_items_are_ignored(self, client, user_headers, stocked_cart, address):
        response = await client.post(
            "/order/place",
            headers=user_headers,
            json={
                "address": address,
                "items": [{"_id": stocked_cart["salad"]["id"], "price": 0.01, "quantity": 100}],
            },
        )
        assert response.status_code == 200

        [order] = await user_orders(client, user_headers)
        assert order["subtotal"] == 44.0

    async def test_empty_cart(self, client, user_headers, address):
        response = await place(client, user_headers, address)
        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "error": "empty_cart",
            "message": "Cart is empty",
        }
        assert await user_orders(client, user_headers) == []

    async def test_removed_food_is_dropped(self, client, admin_headers, user_headers, stocked_cart, address):
        await client.post("/food/remove", headers=admin_headers, json={"id": stocked_cart["rolls"]["id"]})

        response = await place(client, user_headers, address)
        assert response.status_code == 200

        [order] = await user_orders(client, user_headers)
        assert [i["name"] for i in order["items"]] == ["Greek Salad"]
        assert order["amount"] == 26.0

    async def test_snapshot_survives_catalog_changes(self, client, admin_headers, user_headers, stocked_cart, address):
        await place(client, user_headers, address)
        await client.post("/food/remove", headers=admin_headers, json={"id": stocked_cart["salad"]["id"]})

        [order] = await user_orders(client, user_headers)
        assert {i["name"] for i in order["items"]} == {"Greek Salad", "Chicken Rolls"}
        assert order["amount"] == 46.0

    async def test_snapshot_ignores_price_changes(self, client, db_session, user_headers, stocked_cart, address):
        await place(client, user_headers, address)

        food = await db_session.get(FoodItem, stocked_cart["salad"]["id"])
        food.price = 99.0
        await db_session.commit()

        [order] = await user_orders(client, user_headers)
        assert order["subtotal"] == 44.0
        assert order["amount"] == 46.0

    async def test_gateway_failure(self, client, user_headers, stocked_cart, address, payment_service):
        payment_service.failure_rate = 1.0

        response = await place(client, user_headers, address)
        assert response.status_code == 502
        assert response.json()["error"] == "upstream_failure"

        [order] = await user_orders(client, user_headers)
        assert order["payment_status"] == "pending_payment"
        assert await cart_of(client, user_headers) != {}

    async def test_invalid_address(self, client, user_headers, stocked_cart, address):
        del address["street"]
        response = await place(client, user_headers, address)
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    async def test_requires_token(self, client, address):
        response = await client.post("/order/place", json={"address": address})
        assert response.status_code == 401


# ============================================================================
# Payment confirmation
# ============================================================================

class TestVerifyPayment:

    async def test_success_marks_paid_and_clears_cart(self, client, user_headers, stocked_cart, address):
        order_id = (await place(client, user_headers, address)).json()["order_id"]

        response = await client.post("/order/verify", json={"orderId": order_id, "success": "true"})
        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Paid"}

        [order] = await user_orders(client, user_headers)
        assert order["payment_status"] == "paid"
        assert await cart_of(client, user_headers) == {}

    async def test_failure_marks_failed_and_keeps_cart(self, client, user_headers, stocked_cart, address):
        order_id = (await place(client, user_headers, address)).json()["order_id"]
        cart = await cart_of(client, user_headers)

        response = await client.post("/order/verify", json={"orderId": order_id, "success": False})
        assert response.status_code == 200
        assert response.json() == {"success": False, "message": "Not Paid"}

        [order] = await user_orders(client, user_headers)
        assert order["payment_status"] == "failed"
        assert await cart_of(client, user_headers) == cart

    async def test_later_success_wins(self, client, user_headers, stocked_cart, address):
        order_id = (await place(client, user_headers, address)).json()["order_id"]

        await client.post("/order/verify", json={"orderId": order_id, "success": False})
        await client.post("/order/verify", json={"orderId": order_id, "success": True})

        [order] = await user_orders(client, user_headers)
        assert order["payment_status"] == "paid"

    async def test_failure_after_paid_is_ignored(self, client, user_headers, stocked_cart, address):
        order_id = (await place(client, user_headers, address)).json()["order_id"]

        await client.post("/order/verify", json={"orderId": order_id, "success": True})
        response = await client.post("/order/verify", json={"orderId": order_id, "success": False})
        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Paid"}

        [order] = await user_orders(client, user_headers)
        assert order["payment_status"] == "paid"

    async def test_unknown_order(self, client):
        response = await client.post("/order/verify", json={"orderId": 999, "success": True})
        assert response.status_code == 404


# ============================================================================
# Gateway webhook
# ============================================================================

def checkout_event(event_type: str, order_id: int, payment_status: str = "paid") -> bytes:
    return json.dumps({
        "id": "evt_test",
        "type": event_type,
        "data": {
            "object": {
                "id": "cs_test",
                "client_reference_id": str(order_id),
                "metadata": {"order_id": str(order_id)},
                "payment_status": payment_status,
            }
        },
    }).encode()


class TestWebhook:

    async def test_completed_marks_paid(self, client, user_headers, stocked_cart, address):
        order_id = (await place(client, user_headers, address)).json()["order_id"]

        response = await client.post(
            "/order/webhook",
            content=checkout_event("checkout.session.completed", order_id),
            headers={"stripe-signature": "t=0,v1=mock"},
        )
        assert response.status_code == 200
        assert response.json() == {"received": True}

        [order] = await user_orders(client, user_headers)
        assert order["payment_status"] == "paid"
        assert await cart_of(client, user_headers) == {}

    async def test_expired_marks_failed(self, client, user_headers, stocked_cart, address):
        order_id = (await place(client, user_headers, address)).json()["order_id"]

        await client.post("/order/webhook", content=checkout_event("checkout.session.expired", order_id))

        [order] = await user_orders(client, user_headers)
        assert order["payment_status"] == "failed"

    async def test_expired_after_paid_stays_paid(self, client, user_headers, stocked_cart, address):
        order_id = (await place(client, user_headers, address)).json()["order_id"]

        await client.post("/order/webhook", content=checkout_event("checkout.session.completed", order_id))
        await client.post("/order/webhook", content=checkout_event("checkout.session.expired", order_id))

        [order] = await user_orders(client, user_headers)
        assert order["payment_status"] == "paid"

    async def test_unpaid_completion_waits(self, client, user_headers, stocked_cart, address):
        order_id = (await place(client, user_headers, address)).json()["order_id"]

        await client.post(
            "/order/webhook",
            content=checkout_event("checkout.session.completed", order_id, payment_status="unpaid"),
        )

        [order] = await user_orders(client, user_headers)
        assert order["payment_status"] == "pending_payment"

    async def test_unrelated_event_acknowledged(self, client):
        response = await client.post(
            "/order/webhook",
            content=json.dumps({"type": "customer.created", "data": {"object": {}}}).encode(),
        )
        assert response.status_code == 200

    async def test_invalid_payload(self, client):
        response = await client.post("/order/webhook", content=b"not json")
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"


# ============================================================================
# Listing and fulfillment (admin)
# ============================================================================

class TestAdminOrders:

    async def test_list_all_orders(self, client, admin_headers, user_headers, register, add_food, add_to_cart, address):
        food = await add_food()
        other = {"Authorization": f"Bearer {await register('other@example.com')}"}
        for headers in (user_headers, other):
            await add_to_cart(headers, food["id"])
            await place(client, headers, address)

        response = await client.get("/order/list", headers=admin_headers)
        assert response.status_code == 200
        assert len(response.json()["data"]) == 2

        assert len(await user_orders(client, user_headers)) == 1

    async def test_list_requires_admin(self, client, user_headers):
        response = await client.get("/order/list", headers=user_headers)
        assert response.status_code == 403

    async def test_update_status(self, client, admin_headers, user_headers, stocked_cart, address):
        order_id = (await place(client, user_headers, address)).json()["order_id"]

        response = await client.post(
            "/order/status", headers=admin_headers, json={"orderId": order_id, "status": "Out for delivery"}
        )
        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Status Updated"}

        [order] = await user_orders(client, user_headers)
        assert order["status"] == "Out for delivery"
        assert order["payment_status"] == "pending_payment"

    async def test_status_is_free_text(self, client, admin_headers, user_headers, stocked_cart, address):
        order_id = (await place(client, user_headers, address)).json()["order_id"]

        for status in ("Delivered", "Food Processing"):
            response = await client.post(
                "/order/status", headers=admin_headers, json={"orderId": order_id, "status": status}
            )
            assert response.status_code == 200

        [order] = await user_orders(client, user_headers)
        assert order["status"] == "Food Processing"

    async def test_status_too_long(self, client, admin_headers, user_headers, stocked_cart, address):
        order_id = (await place(client, user_headers, address)).json()["order_id"]
        response = await client.post(
            "/order/status", headers=admin_headers, json={"orderId": order_id, "status": "x" * 51}
        )
        assert response.status_code == 400

    async def test_status_unknown_order(self, client, admin_headers):
        response = await client.post(
            "/order/status", headers=admin_headers, json={"orderId": 999, "status": "Delivered"}
        )
        assert response.status_code == 404

    async def test_status_requires_admin(self, client, user_headers, stocked_cart, address):
        order_id = (await place(client, user_headers, address)).json()["order_id"]
        response = await client.post(
            "/order/status", headers=user_headers, json={"orderId": order_id, "status": "Delivered"}
        )
        assert response.status_code == 403


# ============================================================================
# Service level
# ============================================================================

class TestOrderService:

    @pytest.fixture
    async def customer(self, db_session):
        user = User(email="svc@example.com", password_hash="x", cart_data={})
        db_session.add(user)
        await db_session.commit()
        return user

    def make_order(self, user: User, age: timedelta, status: PaymentStatus) -> Order:
        return Order(
            user_id=user.id,
            items=[{"item_id": 1, "name": "Greek Salad", "price": 12.0, "quantity": 1}],
            address={"city": "New York"},
            subtotal=12.0,
            delivery_fee=2.0,
            amount=14.0,
            payment_status=status,
            created_at=datetime.now(timezone.utc) - age,
        )

    async def test_expire_stale_orders(self, db_session, customer):
        stale = self.make_order(customer, timedelta(hours=3), PaymentStatus.PENDING_PAYMENT)
        fresh = self.make_order(customer, timedelta(minutes=5), PaymentStatus.PENDING_PAYMENT)
        paid = self.make_order(customer, timedelta(hours=3), PaymentStatus.PAID)
        db_session.add_all([stale, fresh, paid])
        await db_session.commit()

        expired = await OrderService(db_session).expire_stale_orders(timedelta(hours=1))
        assert expired == 1

        for order in (stale, fresh, paid):
            await db_session.refresh(order)
        assert stale.payment_status == PaymentStatus.FAILED
        assert fresh.payment_status == PaymentStatus.PENDING_PAYMENT
        assert paid.payment_status == PaymentStatus.PAID

    async def test_expired_order_can_still_be_paid(self, db_session, customer):
        stale = self.make_order(customer, timedelta(hours=3), PaymentStatus.PENDING_PAYMENT)
        db_session.add(stale)
        await db_session.commit()

        svc = OrderService(db_session)
        await svc.expire_stale_orders(timedelta(hours=1))
        order = await svc.confirm_payment(stale.id, True)
        assert order.payment_status == PaymentStatus.PAID

    async def test_gateway_event_without_order_id(self, db_session):
        event = {"type": "checkout.session.completed", "data": {"object": {"metadata": {}}}}
        assert await OrderService(db_session).apply_gateway_event(event) is None

    async def test_place_order_requires_gateway(self, db_session, customer):
        with pytest.raises(RuntimeError):
            await OrderService(db_session).place_order(customer.id, {})
