"""
Order Flow Simulation Script

Fires concurrent pay-at-door storefront orders at one restaurant while a
kitchen tablet polls, acknowledges and works through them.
Run from project root: python scripts/simulate.py --slug marios-pizza-12 \
    --device-uuid <uuid> --device-key <key> --dish 7
"""

import argparse
import asyncio
import random
import time
from datetime import datetime
from typing import Any, Optional

import httpx

API_BASE_URL = "http://localhost:8001"
TOTAL_ORDERS = 20

FIRST_NAMES = ["John", "Jane", "Mike", "Sarah", "Tom", "Emma", "David", "Lisa", "Chris", "Amy"]
STREETS = ["Bank St", "Elgin St", "Rideau St", "Somerset St", "Preston St", "Wellington St"]
PAYMENT_TYPES = ["cash", "interac", "credit_at_door", "debit_at_door"]

# Kitchen progression driven by the tablet
NEXT_STATUS = {
    "pending": "confirmed",
    "confirmed": "preparing",
    "preparing": "ready",
    "ready": "completed",
}


def generate_cash_order(slug: str, dish_ids: list[int]) -> dict[str, Any]:
    name = random.choice(FIRST_NAMES)
    return {
        "payment_type": random.choice(PAYMENT_TYPES),
        "restaurant_slug": slug,
        "order_type": random.choice(["delivery", "pickup"]),
        "guest_email": f"{name.lower()}{random.randint(1, 999)}@example.com",
        "cart_items": [
            {"dish_id": random.choice(dish_ids), "quantity": random.randint(1, 3), "size": "default"}
            for _ in range(random.randint(1, 3))
        ],
        "delivery_address": {
            "name": name,
            "phone": f"613-{random.randint(100, 999)}-{random.randint(1000, 9999)}",
            "street_address": f"{random.randint(1, 999)} {random.choice(STREETS)}",
            "city": "Ottawa",
            "province": "ON",
            "postal_code": "K1P 1J1",
        },
    }


async def send_cash_order(client: httpx.AsyncClient, order_num: int, slug: str, dish_ids: list[int]) -> dict:
    start_time = time.time()
    try:
        response = await client.post(
            f"{API_BASE_URL}/api/customer/orders/cash",
            json=generate_cash_order(slug, dish_ids),
            timeout=30.0,
        )
        elapsed = round(time.time() - start_time, 3)
        if response.status_code == 200:
            data = response.json()
            return {"order_num": order_num, "success": True, "order_id": data["order_id"], "total": data["total"], "time": elapsed}
        return {"order_num": order_num, "success": False, "error": response.text[:100], "time": elapsed}
    except httpx.HTTPError as e:
        return {"order_num": order_num, "success": False, "error": str(e)[:100], "time": round(time.time() - start_time, 3)}


# =============================================================================
# TABLET
# =============================================================================

async def tablet_login(client: httpx.AsyncClient, device_uuid: str, device_key: str) -> Optional[str]:
    response = await client.post(
        f"{API_BASE_URL}/api/tablet/auth/login",
        json={"device_uuid": device_uuid, "device_key": device_key},
    )
    if response.status_code != 200:
        print(f"   Tablet login failed: {response.text}")
        return None
    data = response.json()
    print(f"   Tablet '{data['device']['name']}' logged in for {data['device']['restaurant_name']}")
    return data["session_token"]


async def run_tablet(client: httpx.AsyncClient, token: str, rounds: int, interval: float) -> dict[str, int]:
    """Poll and advance every open order one step per round."""
    headers = {"Authorization": f"Bearer {token}"}
    counts = {"acknowledged": 0, "transitions": 0, "rejected": 0}

    for _ in range(rounds):
        await client.post(
            f"{API_BASE_URL}/api/tablet/heartbeat",
            json={"battery_level": random.randint(20, 100), "printer_status": "online", "app_version": "sim-1.0"},
            headers=headers,
        )
        response = await client.get(
            f"{API_BASE_URL}/api/tablet/orders",
            params={"status": ",".join(NEXT_STATUS), "limit": 100},
            headers=headers,
        )
        if response.status_code != 200:
            print(f"   Poll failed: {response.text}")
            break

        for order in response.json()["orders"]:
            if order.get("acknowledged_at") is None:
                await client.post(f"{API_BASE_URL}/api/tablet/orders/{order['id']}", headers=headers)
                counts["acknowledged"] += 1
            result = await client.patch(
                f"{API_BASE_URL}/api/tablet/orders/{order['id']}/status",
                json={"status": NEXT_STATUS[order["status"]], "estimated_ready_minutes": 20},
                headers=headers,
            )
            counts["transitions" if result.status_code == 200 else "rejected"] += 1

        await asyncio.sleep(interval)
    return counts


async def run_simulation(args) -> None:
    print("=" * 70)
    print("ORDER FLOW SIMULATION")
    print("=" * 70)
    print(f"Orders: {args.orders}")
    print(f"Target: {API_BASE_URL}")
    print(f"Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    async with httpx.AsyncClient() as client:
        token = None
        if args.device_uuid and args.device_key:
            token = await tablet_login(client, args.device_uuid, args.device_key)

        start_time = time.time()
        results = await asyncio.gather(*[
            send_cash_order(client, i + 1, args.slug, args.dish) for i in range(args.orders)
        ])
        total_time = round(time.time() - start_time, 2)

        successful = [r for r in results if r["success"]]
        failed = [r for r in results if not r["success"]]

        print(f"\nSuccessful Orders: {len(successful)}/{args.orders}")
        print(f"Failed Orders: {len(failed)}/{args.orders}")
        print(f"Total Time: {total_time}s")
        if successful:
            times = [r["time"] for r in successful]
            print(f"Average Response: {round(sum(times) / len(times), 3)}s")
            print(f"Total Value: ${sum(r['total'] for r in successful):.2f}")
        for f in failed[:5]:
            print(f"   Order #{f['order_num']}: {f['error']}")

        if token:
            print("\nTablet working through the queue...")
            counts = await run_tablet(client, token, rounds=len(NEXT_STATUS) + 1, interval=args.interval)
            print(f"   Acknowledged: {counts['acknowledged']}")
            print(f"   Status changes: {counts['transitions']} (rejected {counts['rejected']})")

    print("=" * 70)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Order flow simulation")
    parser.add_argument("--slug", required=True, help="Restaurant slug, e.g. marios-pizza-12")
    parser.add_argument("--dish", type=int, action="append", required=True, help="Dish id with a default price (repeatable)")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS)
    parser.add_argument("--device-uuid")
    parser.add_argument("--device-key")
    parser.add_argument("--interval", type=float, default=1.0, help="Seconds between tablet polls")
    asyncio.run(run_simulation(parser.parse_args()))
