"""
Checkout Simulation Script

Drives concurrent customers through the full storefront flow against a
running server: register, fill the cart, place the order, and report the
payment outcome the way the checkout redirect would.

The server must run with ENV_MODE=development (mock payment gateway) and
the admin e-mail listed in ADMIN_EMAILS.

Run from project root: python scripts/simulate.py --customers 20
"""

import asyncio
import sys
import random
import time
import argparse
import uuid
from datetime import datetime
from typing import Any

import httpx

if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

API_BASE_URL = "http://localhost:4000"
TOTAL_CUSTOMERS = 20

# PNG signature; the server checks the content type only
PLACEHOLDER_IMAGE = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32

MENU_ITEMS = [
    {"name": "Greek Salad", "price": 12, "category": "Salad"},
    {"name": "Chicken Rolls", "price": 20, "category": "Rolls"},
    {"name": "Ripple Ice Cream", "price": 14, "category": "Deserts"},
    {"name": "Chicken Sandwich", "price": 12, "category": "Sandwich"},
    {"name": "Lasagna Rolls", "price": 14, "category": "Pasta"},
    {"name": "Butter Noodles", "price": 14, "category": "Noodles"},
]

FIRST_NAMES = ["John", "Jane", "Mike", "Sarah", "Tom", "Emma", "David", "Lisa"]
STREETS = ["Main St", "Broadway", "5th Avenue", "Park Ave", "Madison Ave"]


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def generate_address() -> dict[str, str]:
    first = random.choice(FIRST_NAMES)
    return {
        "firstName": first,
        "lastName": "Tester",
        "email": f"{first.lower()}@example.com",
        "street": f"{random.randint(1, 999)} {random.choice(STREETS)}",
        "city": "New York",
        "state": "NY",
        "zipcode": "10001",
        "country": "USA",
        "phone": f"555-{random.randint(100, 999)}-{random.randint(1000, 9999)}",
    }


async def login_or_register(client: httpx.AsyncClient, email: str, password: str) -> str:
    response = await client.post(f"{API_BASE_URL}/login", json={"email": email, "password": password})
    if response.status_code == 200:
        return response.json()["token"]

    response = await client.post(
        f"{API_BASE_URL}/register",
        json={"name": email.split("@")[0], "email": email, "password": password},
    )
    response.raise_for_status()
    return response.json()["token"]


async def seed_catalog(client: httpx.AsyncClient, admin_token: str) -> list[int]:
    """Return catalog ids, adding the sample menu when the catalog is empty."""
    response = await client.get(f"{API_BASE_URL}/food/list")
    response.raise_for_status()
    foods = response.json()["data"]
    if foods:
        return [f["id"] for f in foods]

    ids = []
    for item in MENU_ITEMS:
        response = await client.post(
            f"{API_BASE_URL}/food/add",
            headers=auth_headers(admin_token),
            data={
                "name": item["name"],
                "description": f"House {item['name'].lower()}",
                "price": str(item["price"]),
                "category": item["category"],
            },
            files={"image": (f"{item['name'].lower().replace(' ', '_')}.png", PLACEHOLDER_IMAGE, "image/png")},
        )
        response.raise_for_status()
        ids.append(response.json()["data"]["id"])
    print(f"   Seeded {len(ids)} food items")
    return ids


async def run_customer(
    client: httpx.AsyncClient,
    customer_num: int,
    food_ids: list[int],
) -> dict[str, Any]:
    """One customer: register, fill cart, check out, confirm payment."""
    start_time = time.time()
    email = f"sim-{uuid.uuid4().hex[:10]}@example.com"

    try:
        token = await login_or_register(client, email, "simulated-password")
        headers = auth_headers(token)

        for food_id in random.sample(food_ids, k=min(len(food_ids), random.randint(1, 3))):
            for _ in range(random.randint(1, 3)):
                response = await client.post(
                    f"{API_BASE_URL}/cart/add", headers=headers, json={"itemId": food_id}
                )
                response.raise_for_status()

        response = await client.post(
            f"{API_BASE_URL}/order/place", headers=headers, json={"address": generate_address()}
        )
        if response.status_code != 200:
            return {
                "customer_num": customer_num,
                "success": False,
                "error": response.json().get("message", response.text[:100]),
                "time": round(time.time() - start_time, 3),
            }
        order_id = response.json()["order_id"]

        # Abandon roughly one checkout in five
        paid = random.random() > 0.2
        response = await client.post(
            f"{API_BASE_URL}/order/verify", json={"orderId": order_id, "success": paid}
        )
        response.raise_for_status()

        response = await client.post(f"{API_BASE_URL}/order/userorders", headers=headers)
        response.raise_for_status()
        order = next(o for o in response.json()["data"] if o["id"] == order_id)

        elapsed = round(time.time() - start_time, 3)
        print(f"   Customer #{customer_num}: order #{order_id} {order['payment_status']} ({elapsed}s)")
        return {
            "customer_num": customer_num,
            "success": True,
            "paid": order["payment_status"] == "paid",
            "amount": order["amount"],
            "time": elapsed,
        }

    except httpx.HTTPError as e:
        elapsed = round(time.time() - start_time, 3)
        print(f"   Customer #{customer_num}: error after {elapsed}s - {e}")
        return {
            "customer_num": customer_num,
            "success": False,
            "error": str(e)[:100],
            "time": elapsed,
        }


async def run_simulation(
    num_customers: int,
    admin_email: str,
    admin_password: str,
) -> dict[str, Any]:
    print("=" * 70)
    print("CHECKOUT SIMULATION")
    print("=" * 70)
    print(f"Customers: {num_customers}")
    print(f"Target: {API_BASE_URL}")
    print(f"Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    async with httpx.AsyncClient(timeout=30) as client:
        response = await client.get(f"{API_BASE_URL}/health")
        print(f"\nHealth: {response.json().get('status')}")

        admin_token = await login_or_register(client, admin_email, admin_password)
        food_ids = await seed_catalog(client, admin_token)

        start_time = time.time()
        tasks = [run_customer(client, i + 1, food_ids) for i in range(num_customers)]
        results = await asyncio.gather(*tasks)
        total_time = round(time.time() - start_time, 2)

        response = await client.get(f"{API_BASE_URL}/order/list", headers=auth_headers(admin_token))
        all_orders = response.json().get("data", []) if response.status_code == 200 else []

    completed = [r for r in results if r["success"]]
    failed = [r for r in results if not r["success"]]
    paid = [r for r in completed if r["paid"]]

    print("\n" + "=" * 70)
    print("SIMULATION RESULTS")
    print("=" * 70)
    print(f"Completed checkouts: {len(completed)}/{num_customers}")
    print(f"Paid orders: {len(paid)}")
    print(f"Errors: {len(failed)}")
    print(f"Total Time: {total_time}s")
    print(f"Orders on record: {len(all_orders)}")

    if completed:
        avg_time = round(sum(r["time"] for r in completed) / len(completed), 3)
        revenue = sum(r["amount"] for r in paid)
        print(f"\nAverage customer flow: {avg_time}s")
        print(f"Revenue: ${revenue:.2f}")

    if failed:
        print("\nFailures (first 5):")
        for f in failed[:5]:
            print(f"   Customer #{f['customer_num']}: {f.get('error', 'Unknown error')}")

    print("=" * 70)
    return {
        "total": num_customers,
        "completed": len(completed),
        "paid": len(paid),
        "failed": len(failed),
        "total_time": total_time,
    }


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Checkout Simulation Script")
    parser.add_argument("--base-url", default=API_BASE_URL, help="API base URL")
    parser.add_argument("--customers", type=int, default=TOTAL_CUSTOMERS, help="Number of customers")
    parser.add_argument("--admin-email", default="admin@example.com", help="E-mail listed in ADMIN_EMAILS")
    parser.add_argument("--admin-password", default="admin-password", help="Admin password")
    args = parser.parse_args()

    API_BASE_URL = args.base_url.rstrip("/")

    summary = asyncio.run(run_simulation(args.customers, args.admin_email, args.admin_password))
    sys.exit(0 if summary["failed"] == 0 else 1)
