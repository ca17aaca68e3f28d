"""
Checkout Flow Simulation Script

Drives the complete order lifecycle against a running development server
(ENV_MODE=development, so identity, payment and image storage are mocks):

    owner provisions account -> creates restaurant
    customers provision accounts -> checkout -> mock Stripe webhook -> paid
    owner moves paid orders to inProgress

Run from project root: python scripts/simulate.py --orders 20
"""

import argparse
import asyncio
import json
import os
import random
import sys
import time
from datetime import datetime
from typing import Any, Optional

import httpx

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:7000")
WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET")
TOTAL_ORDERS = 20
OWNER_SUBJECT = "auth0|sim-owner"

# Sample data
FIRST_NAMES = ["Juan", "Maria", "Jose", "Ana", "Paolo", "Bea", "Carlo", "Liza", "Miguel", "Rina"]
STREETS = ["Rizal Ave", "Mabini St", "Taft Ave", "Ayala Ave", "Roxas Blvd", "Katipunan Ave"]
MENU_ITEMS = [
    ("Chicken Adobo", 180),
    ("Pork Sinigang", 220),
    ("Kare-Kare", 320),
    ("Lumpiang Shanghai", 150),
    ("Halo-Halo", 95),
    ("Calamansi Juice", 60),
]
DELIVERY_PRICE = 50


def auth(subject: str) -> dict[str, str]:
    """Development mode accepts the subject itself as the bearer token."""
    return {"Authorization": f"Bearer {subject}"}


def restaurant_form() -> dict[str, str]:
    data = {
        "restaurantName": "Simulation Kitchen",
        "city": "Manila",
        "country": "Philippines",
        "deliveryPrice": str(DELIVERY_PRICE),
        "estimatedDeliveryTime": "35",
        "cuisines[0]": "Filipino",
        "cuisines[1]": "Desserts",
    }
    for index, (name, price) in enumerate(MENU_ITEMS):
        data[f"menuItems[{index}][name]"] = name
        data[f"menuItems[{index}][price]"] = str(price)
    return data


def generate_random_customer(customer_num: int) -> dict[str, str]:
    """Generate random delivery details."""
    name = random.choice(FIRST_NAMES)
    return {
        "email": f"{name.lower()}{customer_num}@example.com",
        "name": f"{name} {customer_num}",
        "addressLine1": f"{random.randint(1, 999)} {random.choice(STREETS)}",
        "city": "Manila",
        "country": "Philippines",
    }


def generate_random_cart(menu_items: list[dict]) -> list[dict]:
    """Pick 1-3 distinct menu items with random quantities."""
    picks = random.sample(menu_items, k=random.randint(1, min(3, len(menu_items))))
    return [
        {"menuItemId": item["_id"], "name": item["name"], "quantity": random.randint(1, 3)}
        for item in picks
    ]


def cart_total(cart: list[dict], menu_items: list[dict]) -> int:
    """Amount Stripe would charge, in minor units (delivery included)."""
    prices = {item["_id"]: item["price"] for item in menu_items}
    subtotal = sum(prices[row["menuItemId"]] * row["quantity"] for row in cart)
    return int(round((subtotal + DELIVERY_PRICE) * 100))


# =============================================================================
# RESTAURANT SETUP
# =============================================================================

async def ensure_restaurant(client: httpx.AsyncClient) -> dict[str, Any]:
    """Provision the owner and create (or reuse) their restaurant."""
    await client.post(
        f"{API_BASE_URL}/api/my/user",
        json={"auth0Id": OWNER_SUBJECT, "email": "owner@example.com"},
        headers=auth(OWNER_SUBJECT),
    )

    response = await client.post(
        f"{API_BASE_URL}/api/my/restaurant",
        data=restaurant_form(),
        files={"imageFile": ("kitchen.png", b"\x89PNG\r\n\x1a\n" + b"\x00" * 128, "image/png")},
        headers=auth(OWNER_SUBJECT),
    )
    if response.status_code == 409:
        response = await client.get(f"{API_BASE_URL}/api/my/restaurant", headers=auth(OWNER_SUBJECT))

    response.raise_for_status()
    return response.json()


# =============================================================================
# ORDER FLOW
# =============================================================================

async def send_webhook(client: httpx.AsyncClient, order_id: str, amount_total: int) -> httpx.Response:
    event = {
        "id": f"evt_sim_{random.randint(100000, 999999)}",
        "type": "checkout.session.completed",
        "data": {"object": {"metadata": {"orderId": order_id}, "amount_total": amount_total}},
    }
    headers = {"Content-Type": "application/json"}
    if WEBHOOK_SECRET:
        headers["stripe-signature"] = WEBHOOK_SECRET
    return await client.post(
        f"{API_BASE_URL}/api/order/checkout/webhook",
        content=json.dumps(event),
        headers=headers,
    )


async def run_order(
    client: httpx.AsyncClient,
    restaurant: dict[str, Any],
    order_num: int,
) -> dict[str, Any]:
    """One customer: provision, checkout, pay."""
    subject = f"auth0|sim-customer-{order_num}"
    delivery = generate_random_customer(order_num)
    cart = generate_random_cart(restaurant["menuItems"])
    start_time = time.time()
    order_id: Optional[str] = None

    try:
        await client.post(
            f"{API_BASE_URL}/api/my/user",
            json={"auth0Id": subject, "email": delivery["email"]},
            headers=auth(subject),
        )

        response = await client.post(
            f"{API_BASE_URL}/api/order/checkout/create-checkout-session",
            json={
                "cartItems": cart,
                "deliveryDetails": delivery,
                "restaurantId": restaurant["_id"],
            },
            headers=auth(subject),
            timeout=30.0,
        )
        if response.status_code != 200:
            raise RuntimeError(f"checkout {response.status_code}: {response.text[:100]}")

        orders = (await client.get(f"{API_BASE_URL}/api/order", headers=auth(subject))).json()
        order_id = orders[0]["_id"]

        amount_total = cart_total(cart, restaurant["menuItems"])
        response = await send_webhook(client, order_id, amount_total)
        if response.status_code != 200:
            raise RuntimeError(f"webhook {response.status_code}: {response.text[:100]}")

        return {
            "order_num": order_num,
            "success": True,
            "order_id": order_id,
            "total": amount_total,
            "time": round(time.time() - start_time, 3),
        }
    except (httpx.HTTPError, RuntimeError, KeyError, IndexError) as e:
        return {
            "order_num": order_num,
            "success": False,
            "order_id": order_id,
            "error": str(e)[:100],
            "time": round(time.time() - start_time, 3),
        }


async def advance_orders(client: httpx.AsyncClient, order_ids: list[str]) -> int:
    """Owner moves every paid order to inProgress."""
    moved = 0
    for order_id in order_ids:
        response = await client.patch(
            f"{API_BASE_URL}/api/my/restaurant/order/{order_id}/status",
            json={"status": "inProgress"},
            headers=auth(OWNER_SUBJECT),
        )
        if response.status_code == 200:
            moved += 1
    return moved


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(num_orders: int = TOTAL_ORDERS) -> dict[str, Any]:
    print("=" * 70)
    print("CHECKOUT FLOW SIMULATION")
    print("=" * 70)
    print(f"Total Orders: {num_orders}")
    print(f"Target: {API_BASE_URL}")
    print(f"Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    start_time = time.time()

    async with httpx.AsyncClient() as client:
        health = await client.get(f"{API_BASE_URL}/health")
        print(f"\nHealth: {health.json().get('status')}")

        restaurant = await ensure_restaurant(client)
        print(f"Restaurant: {restaurant['restaurantName']} ({restaurant['_id']})")

        print("\nFiring checkouts...\n")
        results = await asyncio.gather(
            *(run_order(client, restaurant, i + 1) for i in range(num_orders))
        )

        successful = [r for r in results if r["success"]]
        failed = [r for r in results if not r["success"]]
        moved = await advance_orders(client, [r["order_id"] for r in successful])

    total_time = round(time.time() - start_time, 2)

    print("\n" + "=" * 70)
    print("SIMULATION RESULTS")
    print("=" * 70)
    print(f"\nPaid Orders: {len(successful)}/{num_orders}")
    print(f"Failed Orders: {len(failed)}/{num_orders}")
    print(f"Moved to inProgress: {moved}")
    print(f"Total Time: {total_time}s")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        revenue = sum(r["total"] for r in successful) / 100
        print(f"\nAverage Flow Time: {avg_time}s")
        print(f"Total Revenue: PHP {revenue:.2f}")

    if failed:
        print("\nFailed Order Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Order #{f['order_num']}: {f.get('error', 'Unknown error')}")

    print("=" * 70)

    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "total_time": total_time,
        "results": results,
    }


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Checkout Flow Simulation Script")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    args = parser.parse_args()

    summary = asyncio.run(run_simulation(args.orders))
    sys.exit(0 if summary["failed"] == 0 else 1)
