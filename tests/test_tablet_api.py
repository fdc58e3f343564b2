"""Kitchen tablet login, polling, acknowledgement, receipts and status changes."""

from menuca.models import Order
from menuca.services.rate_limit import get_rate_limiter

from conftest import DEVICE_KEY


async def test_login(client, device):
    response = await client.post("/api/tablet/auth/login", json={"device_uuid": device.uuid, "device_key": DEVICE_KEY})
    assert response.status_code == 200
    data = response.json()
    assert data["session_token"]
    assert data["device"]["restaurant_name"] == "Mario's Pizza"
    assert data["config"]["poll_interval_ms"] == 5000


async def test_login_failures(client, db, device):
    response = await client.post("/api/tablet/auth/login", json={"device_uuid": device.uuid, "device_key": "wrong"})
    assert response.status_code == 401
    assert response.json()["error"] == "Invalid credentials"

    response = await client.post("/api/tablet/auth/login", json={"device_uuid": "unknown", "device_key": DEVICE_KEY})
    assert response.status_code == 401

    device.device_key_hash = None
    await db.commit()
    response = await client.post("/api/tablet/auth/login", json={"device_uuid": device.uuid, "device_key": DEVICE_KEY})
    assert response.status_code == 403
    assert response.json()["error"] == "Device not properly configured. Please contact support."

    device.is_active = False
    await db.commit()
    response = await client.post("/api/tablet/auth/login", json={"device_uuid": device.uuid, "device_key": DEVICE_KEY})
    assert response.json()["error"] == "Device has been deactivated"


async def test_refresh_rotates_token(client, device_headers):
    token = device_headers["Authorization"].split()[1]
    response = await client.post("/api/tablet/auth/refresh", json={"session_token": token})
    assert response.status_code == 200
    new_token = response.json()["session_token"]
    assert new_token != token

    response = await client.post("/api/tablet/auth/refresh", json={"session_token": token})
    assert response.status_code == 401
    assert response.json()["error"] == "Invalid or expired session. Please login again."

    response = await client.get("/api/tablet/orders", headers={"Authorization": f"Bearer {new_token}"})
    assert response.status_code == 200


async def test_session_required(client):
    response = await client.get("/api/tablet/orders")
    assert response.status_code == 401
    assert response.json()["error"] == "Missing or invalid Authorization header"

    response = await client.get("/api/tablet/orders", headers={"Authorization": "Bearer stale"})
    assert response.json()["error"] == "Invalid or expired session token"


async def test_unassigned_device_is_forbidden(client, db, device, device_headers):
    device.restaurant_id = None
    await db.commit()
    response = await client.get("/api/tablet/orders", headers=device_headers)
    assert response.status_code == 403
    assert response.json()["error"] == "Device not assigned to a restaurant"


async def test_rate_limit(client, device_headers):
    get_rate_limiter().limit = 1
    assert (await client.get("/api/tablet/orders", headers=device_headers)).status_code == 200
    response = await client.get("/api/tablet/orders", headers=device_headers)
    assert response.status_code == 429
    assert response.headers["Retry-After"] == "60"


async def test_heartbeat(client, db, device, device_headers):
    response = await client.post("/api/tablet/heartbeat", headers=device_headers, json={
        "battery_level": 64, "printer_status": "paper_low", "app_version": "3.2.1",
    })
    assert response.status_code == 200
    assert response.json()["config_update"] is None

    await db.refresh(device)
    assert device.battery_level == 64
    assert device.printer_status == "paper_low"

    response = await client.post("/api/tablet/heartbeat", headers=device_headers, json={"battery_level": 50})
    assert response.status_code == 400


async def test_list_orders_only_for_own_restaurant(client, db, device_headers, order, other_restaurant):
    db.add(Order(restaurant_id=other_restaurant.id, guest_name="Elsewhere", total=9.0))
    await db.commit()

    data = (await client.get("/api/tablet/orders", headers=device_headers)).json()
    assert [o["id"] for o in data["orders"]] == [order.id]
    assert data["total_count"] == 1
    assert data["orders"][0]["customer"]["email"] == "ja***@menu.ca"

    data = (await client.get("/api/tablet/orders", params={"status": "ready,completed"}, headers=device_headers)).json()
    assert data["orders"] == []


async def test_order_detail(client, db, device_headers, order, other_restaurant):
    data = (await client.get(f"/api/tablet/orders/{order.id}", headers=device_headers)).json()
    assert data["order"]["delivery_address"]["street"] == "100 Bank St"
    assert data["status_history"] == []

    foreign = Order(restaurant_id=other_restaurant.id, total=9.0)
    db.add(foreign)
    await db.commit()
    response = await client.get(f"/api/tablet/orders/{foreign.id}", headers=device_headers)
    assert response.status_code == 404
    assert response.json()["error"] == "Order not found"


async def test_acknowledge_is_idempotent(client, device_headers, order):
    first = (await client.post(f"/api/tablet/orders/{order.id}", headers=device_headers)).json()
    assert first["success"] is True
    assert "message" not in first

    second = (await client.post(f"/api/tablet/orders/{order.id}", headers=device_headers)).json()
    assert second["message"] == "Order was already acknowledged"
    assert second["acknowledged_at"] == first["acknowledged_at"]


async def test_receipts(client, device_headers, order):
    response = await client.get(f"/api/tablet/orders/{order.id}/receipt", headers=device_headers)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert "MARIO'S PIZZA" in response.text
    assert "DELIVER TO:" in response.text

    response = await client.get(
        f"/api/tablet/orders/{order.id}/receipt", params={"format": "escpos"}, headers=device_headers,
    )
    assert response.text.startswith("\x1b\x40")

    response = await client.get(
        f"/api/tablet/orders/{order.id}/receipt", params={"format": "pdf"}, headers=device_headers,
    )
    assert response.status_code == 400


async def test_status_change_queues_customer_email(client, device, device_headers, order, queued):
    response = await client.patch(f"/api/tablet/orders/{order.id}/status", headers=device_headers, json={
        "status": "preparing", "estimated_ready_minutes": 25,
    })
    assert response.status_code == 200
    data = response.json()
    assert data["order"]["previous_status"] == "pending"
    assert data["order"]["current_status"] == "preparing"
    assert data["order"]["estimated_ready_time"] is not None
    assert data["status_history"][0]["notes"] == f"Status changed to preparing by device {device.id}"

    assert queued == [(
        "menuca.tasks.send_order_status_email",
        ("jane.doe@menu.ca", order.id, "preparing", "Mario's Pizza"),
        {},
    )]


async def test_invalid_transition_lists_allowed(client, device_headers, order, queued):
    response = await client.patch(f"/api/tablet/orders/{order.id}/status", headers=device_headers, json={"status": "delivered"})
    assert response.status_code == 400
    assert response.json() == {
        "error": "Cannot transition from 'pending' to 'delivered'",
        "allowed_transitions": ["confirmed", "preparing", "cancelled"],
    }
    assert queued == []
