"""Onboarding wizard, franchise chains, domain monitoring and image uploads."""

from sqlalchemy import select

from menuca.models import Course, OnboardingStep, RestaurantContact, RestaurantLocation

from conftest import OTTAWA_SQUARE


async def _completed_steps(db, restaurant_id):
    result = await db.execute(select(OnboardingStep).where(
        OnboardingStep.restaurant_id == restaurant_id, OnboardingStep.is_completed.is_(True),
    ))
    return {step.step_name for step in result.scalars().all()}


# =============================================================================
# ONBOARDING
# =============================================================================

async def test_create_restaurant_invokes_edge_function(client, functions, super_headers, manager_headers):
    functions.set_response("create-restaurant-onboarding", {"restaurant_id": 42})
    response = await client.post("/api/onboarding/create-restaurant", headers=super_headers, json={"name": "Taco Hut"})
    assert response.json() == {"restaurant_id": 42}
    name, payload = functions.calls[0]
    assert name == "create-restaurant-onboarding"
    assert payload["timezone"] == "America/Toronto"

    response = await client.post("/api/onboarding/create-restaurant", headers=manager_headers, json={"name": "Nope"})
    assert response.status_code == 403


async def test_edge_function_failure_keeps_status(client, functions, manager_headers, restaurant):
    functions.set_response("apply-schedule-template", error="Unknown template", status_code=422)
    response = await client.post("/api/onboarding/apply-schedule-template", headers=manager_headers, json={
        "restaurant_id": restaurant.id, "template": "nope",
    })
    assert response.status_code == 422
    assert response.json() == {"error": "Unknown template"}


async def test_apply_schedule_template_marks_step(client, db, functions, manager_headers, restaurant):
    response = await client.post("/api/onboarding/apply-schedule-template", headers=manager_headers, json={
        "restaurant_id": restaurant.id, "template": "24/7",
    })
    assert response.status_code == 200
    assert functions.calls[0][1]["service_type"] == "both"
    assert await _completed_steps(db, restaurant.id) == {"schedule"}


async def test_copy_franchise_menu_needs_both_restaurants(client, functions, manager_headers, restaurant, other_restaurant):
    response = await client.post("/api/onboarding/copy-franchise-menu", headers=manager_headers, json={
        "source_restaurant_id": other_restaurant.id, "target_restaurant_id": restaurant.id,
    })
    assert response.status_code == 403
    assert functions.calls == []


async def test_add_location_upserts_primary(client, db, manager_headers, restaurant):
    body = {"restaurant_id": restaurant.id, "street_address": "1 Main St", "city": "Ottawa", "province": "ON", "postal_code": "K1A 0A1"}
    first = (await client.post("/api/onboarding/add-location", headers=manager_headers, json=body)).json()
    assert first["message"] == "Location saved successfully"

    second = (await client.post("/api/onboarding/add-location", headers=manager_headers, json={**body, "street_address": "2 Main St"})).json()
    assert second["location"]["id"] == first["location"]["id"]

    locations = (await db.execute(select(RestaurantLocation))).scalars().all()
    assert [loc.street_address for loc in locations] == ["2 Main St"]
    assert await _completed_steps(db, restaurant.id) == {"location"}


async def test_add_contact(client, db, manager_headers, restaurant):
    response = await client.post("/api/onboarding/add-contact", headers=manager_headers, json={
        "restaurant_id": restaurant.id, "first_name": "Mario", "last_name": "Rossi",
        "email": "mario@menu.ca", "phone": "613-555-0100",
    })
    assert response.json()["contact"]["title"] == "Owner"
    contact = (await db.execute(select(RestaurantContact))).scalar_one()
    assert contact.receives_orders is True
    assert await _completed_steps(db, restaurant.id) == {"contact"}


async def test_create_delivery_zone_from_radius_and_geometry(client, db, manager_headers, restaurant):
    circle = (await client.post("/api/onboarding/create-delivery-zone", headers=manager_headers, json={
        "restaurant_id": restaurant.id, "center_latitude": 45.42, "center_longitude": -75.69, "radius_meters": 3000,
    })).json()["zone"]
    assert circle["display_name"] == "Zone 1"
    assert circle["geometry"]["type"] == "Polygon"
    assert circle["delivery_fee"] == 2.99

    square = (await client.post("/api/onboarding/create-delivery-zone", headers=manager_headers, json={
        "restaurant_id": restaurant.id, "zone_name": "Downtown", "geometry": OTTAWA_SQUARE,
    })).json()["zone"]
    assert square["area_number"] == 2
    assert square["geometry"] == OTTAWA_SQUARE
    assert await _completed_steps(db, restaurant.id) == {"delivery"}


async def test_create_delivery_zone_needs_a_shape(client, manager_headers, restaurant):
    response = await client.post("/api/onboarding/create-delivery-zone", headers=manager_headers, json={
        "restaurant_id": restaurant.id,
    })
    assert response.status_code == 400
    assert response.json()["error"] == "Validation failed"

    response = await client.post("/api/onboarding/create-delivery-zone", headers=manager_headers, json={
        "restaurant_id": restaurant.id, "geometry": {"type": "Point", "coordinates": [0, 0]},
    })
    assert response.status_code == 400


async def test_add_menu_item_creates_course_once(client, db, manager_headers, restaurant):
    for name in ("Margherita", "Pepperoni"):
        response = await client.post("/api/onboarding/add-menu-item", headers=manager_headers, json={
            "restaurant_id": restaurant.id, "name": name, "price": 14.0,
        })
        assert response.json()["dish"]["price"] == 14.0

    courses = (await db.execute(select(Course))).scalars().all()
    assert [c.name for c in courses] == ["Main Menu"]
    assert await _completed_steps(db, restaurant.id) == {"menu"}


async def test_incomplete_restaurants_are_scoped(client, procedures, manager_headers, restaurant, other_restaurant):
    procedures.set_view("v_incomplete_onboarding_restaurants", [
        {"restaurant_id": restaurant.id, "days_in_onboarding": 3, "completion_percentage": 50},
        {"restaurant_id": other_restaurant.id, "days_in_onboarding": 9, "completion_percentage": 25},
    ])
    rows = (await client.get("/api/onboarding/incomplete", headers=manager_headers)).json()
    assert [r["restaurant_id"] for r in rows] == [restaurant.id]


async def test_onboarding_stats_and_summary(client, procedures, super_headers):
    procedures.set_view("v_onboarding_progress_stats", [
        {"step_name": "menu", "step_order": 5}, {"step_name": "basic_info", "step_order": 1},
    ])
    procedures.set_response("get_onboarding_summary", [{"total_restaurants": 7}])

    stats = (await client.get("/api/onboarding/stats", headers=super_headers)).json()
    assert [s["step_name"] for s in stats] == ["basic_info", "menu"]
    summary = (await client.get("/api/onboarding/summary", headers=super_headers)).json()
    assert summary == [{"total_restaurants": 7}]


# =============================================================================
# FRANCHISE
# =============================================================================

async def test_franchise_requires_permission(client, manager_headers):
    assert (await client.get("/api/franchise/chains", headers=manager_headers)).status_code == 403


async def test_franchise_chains_sorted(client, procedures, super_headers):
    procedures.set_view("v_franchise_chains", [
        {"brand": "Small", "location_count": 2}, {"brand": "Big", "location_count": 12},
    ])
    chains = (await client.get("/api/franchise/chains", headers=super_headers)).json()
    assert [c["brand"] for c in chains] == ["Big", "Small"]


async def test_franchise_writes_carry_the_actor(client, functions, identity, super_headers):
    actor = identity.users[identity.tokens["token-root@menu.ca"]].id

    await client.post("/api/franchise/create-parent", headers=super_headers, json={
        "name": "Pizza Co", "franchise_brand_name": "Pizza Co",
    })
    await client.post("/api/franchise/link-children", headers=super_headers, json={
        "parent_restaurant_id": 1, "child_restaurant_ids": [2, 3],
    })
    await client.post("/api/franchise/bulk-feature", headers=super_headers, json={
        "parent_restaurant_id": 1, "feature_key": "delivery", "is_enabled": False,
    })

    assert [name for name, _ in functions.calls] == [
        "create-franchise-parent", "convert-restaurant-to-franchise", "bulk-update-franchise-feature",
    ]
    assert functions.calls[0][1]["created_by"] == actor
    assert functions.calls[1][1] == {"parent_restaurant_id": 1, "updated_by": actor, "child_restaurant_ids": [2, 3]}


async def test_link_children_needs_a_target(client, super_headers):
    response = await client.post("/api/franchise/link-children", headers=super_headers, json={"parent_restaurant_id": 1})
    assert response.status_code == 400


async def test_franchise_detail_and_analytics(client, procedures, super_headers):
    procedures.set_response("get_franchise_summary", [{"brand": "Pizza Co"}])
    procedures.set_response("get_franchise_children", [{"id": 2}])
    procedures.set_response("get_franchise_analytics", [{"orders": 10}])
    procedures.set_response("get_franchise_menu_coverage", {"coverage": 0.8})

    data = (await client.get("/api/franchise/1", headers=super_headers)).json()
    assert data == {"summary": {"brand": "Pizza Co"}, "children": [{"id": 2}]}

    data = (await client.get("/api/franchise/1/analytics", params={"period_days": 7}, headers=super_headers)).json()
    assert data == {"analytics": {"orders": 10}, "comparison": [], "menuCoverage": {"coverage": 0.8}}
    assert ("compare_franchise_locations", {"p_parent_id": 1, "p_period_days": 7}) in procedures.calls


# =============================================================================
# DOMAINS
# =============================================================================

async def test_domain_summary_and_attention(client, procedures, staff_headers, restaurant, other_restaurant):
    procedures.set_view("v_domain_verification_summary", [{"total_domains": 4}])
    procedures.set_view("v_domains_needing_attention", [
        {"restaurant_id": other_restaurant.id, "priority_score": 9},
        {"restaurant_id": restaurant.id, "priority_score": 5},
    ])

    assert (await client.get("/api/domains/summary", headers=staff_headers)).json() == {"total_domains": 4}
    rows = (await client.get("/api/domains/needing-attention", headers=staff_headers)).json()
    assert [r["restaurant_id"] for r in rows] == [restaurant.id]


async def test_domain_status(client, procedures, staff_headers):
    assert (await client.get("/api/domains/5/status", headers=staff_headers)).status_code == 404

    procedures.set_response("get_domain_verification_status", [{"domain": "marios.ca", "ssl_verified": True}])
    data = (await client.get("/api/domains/5/status", headers=staff_headers)).json()
    assert data == {"domain": "marios.ca", "ssl_verified": True}


# =============================================================================
# STORAGE
# =============================================================================

async def test_upload_image(client, storage, manager_headers, restaurant):
    response = await client.post(
        "/api/storage/upload",
        headers=manager_headers,
        data={"bucket": "restaurant-logos", "path": f"{restaurant.id}/logo.png"},
        files={"file": ("logo.png", b"\x89PNG fake", "image/png")},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["path"] == f"{restaurant.id}/logo.png"
    assert data["url"].endswith(f"/storage/v1/object/public/restaurant-logos/{restaurant.id}/logo.png")
    assert storage.objects[("restaurant-logos", f"{restaurant.id}/logo.png")][1] == "image/png"


async def test_upload_rejections(client, manager_headers, restaurant, other_restaurant):
    png = {"file": ("logo.png", b"x", "image/png")}

    response = await client.post("/api/storage/upload", headers=manager_headers, data={"bucket": "restaurant-logos"}, files=png)
    assert response.json()["error"] == "Missing required fields: file, bucket, or path"

    response = await client.post("/api/storage/upload", headers=manager_headers, files=png, data={
        "bucket": "secrets", "path": f"{restaurant.id}/x.png",
    })
    assert response.status_code == 403

    response = await client.post("/api/storage/upload", headers=manager_headers, data={
        "bucket": "restaurant-logos", "path": f"{restaurant.id}/x.pdf",
    }, files={"file": ("x.pdf", b"%PDF", "application/pdf")})
    assert response.json()["error"] == "File type 'application/pdf' is not allowed. Allowed types: images only"

    response = await client.post("/api/storage/upload", headers=manager_headers, files=png, data={
        "bucket": "restaurant-logos", "path": "logos/x.png",
    })
    assert response.json()["error"] == "Invalid path format. Path must start with restaurant ID"

    response = await client.post("/api/storage/upload", headers=manager_headers, files=png, data={
        "bucket": "restaurant-logos", "path": f"{other_restaurant.id}/x.png",
    })
    assert response.status_code == 403
