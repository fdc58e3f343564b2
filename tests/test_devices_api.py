"""Admin device registration and management."""

from conftest import DEVICE_KEY


async def test_register_device_then_login(client, manager_headers, restaurant):
    response = await client.post("/api/tablet/auth/register", headers=manager_headers, json={
        "device_name": "Front Counter", "restaurant_id": restaurant.id,
    })
    assert response.status_code == 201
    data = response.json()
    assert data["qr_code_data"].startswith(f"menuca://device/setup?uuid={data['device_uuid']}&key=")

    login = await client.post("/api/tablet/auth/login", json={
        "device_uuid": data["device_uuid"], "device_key": data["device_key"],
    })
    assert login.status_code == 200
    assert login.json()["config"]["auto_print"] is True


async def test_register_for_unassigned_restaurant_is_forbidden(client, manager_headers, other_restaurant):
    response = await client.post("/api/tablet/auth/register", headers=manager_headers, json={
        "device_name": "Rogue", "restaurant_id": other_restaurant.id,
    })
    assert response.status_code == 403


async def test_staff_cannot_register(client, staff_headers, restaurant):
    response = await client.post("/api/tablet/auth/register", headers=staff_headers, json={
        "device_name": "Nope", "restaurant_id": restaurant.id,
    })
    assert response.status_code == 403


async def test_list_and_get_devices(client, staff_headers, device):
    devices = (await client.get("/api/admin/devices", headers=staff_headers)).json()
    assert [d["uuid"] for d in devices] == [device.uuid]
    assert devices[0]["is_online"] is False
    assert "device_key_hash" not in devices[0]

    data = (await client.get(f"/api/admin/devices/{device.id}", headers=staff_headers)).json()
    assert data["restaurant_name"] == "Mario's Pizza"
    assert (await client.get("/api/admin/devices/9999", headers=staff_headers)).status_code == 404


async def test_update_device(client, manager_headers, device, device_headers):
    url = f"/api/admin/devices/{device.id}"
    response = await client.patch(url, headers=manager_headers, json={})
    assert response.status_code == 400
    assert response.json()["error"] == "No valid fields to update"

    data = (await client.patch(url, headers=manager_headers, json={"device_name": "Kitchen 2"})).json()
    assert data["device_name"] == "Kitchen 2"

    data = (await client.patch(url, headers=manager_headers, json={"is_active": False})).json()
    assert data["is_active"] is False
    assert (await client.get("/api/tablet/orders", headers=device_headers)).status_code == 401


async def test_regenerate_key_revokes_sessions(client, manager_headers, device, device_headers):
    data = (await client.post(f"/api/admin/devices/{device.id}/regenerate-key", headers=manager_headers)).json()
    assert data["device_key"] != DEVICE_KEY

    assert (await client.get("/api/tablet/orders", headers=device_headers)).status_code == 401
    old = await client.post("/api/tablet/auth/login", json={"device_uuid": device.uuid, "device_key": DEVICE_KEY})
    assert old.status_code == 401
    new = await client.post("/api/tablet/auth/login", json={"device_uuid": device.uuid, "device_key": data["device_key"]})
    assert new.status_code == 200


async def test_delete_device_needs_delete_permission(client, manager_headers, super_headers, device):
    url = f"/api/admin/devices/{device.id}"
    assert (await client.delete(url, headers=manager_headers)).status_code == 403
    assert (await client.delete(url, headers=super_headers)).json() == {"success": True}
    assert (await client.get(url, headers=super_headers)).status_code == 404
