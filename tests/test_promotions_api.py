"""Deals, coupons and storefront promo code validation."""

from datetime import date, timedelta

import pytest

from menuca.models import Order, PromotionalCoupon, PromotionalDeal
from menuca.utils import utcnow


@pytest.fixture
async def deal(db, restaurant):
    deal = PromotionalDeal(
        restaurant_id=restaurant.id,
        name="Pizza Tuesday",
        promo_code="TUESDAY",
        discount_type="percentage",
        discount_value=15,
        minimum_purchase=25.0,
        service_types=["delivery", "pickup"],
    )
    db.add(deal)
    await db.commit()
    await db.refresh(deal)
    return deal


async def add_coupon(db, restaurant, **fields) -> PromotionalCoupon:
    values = {"code": "SAVE10", "name": "Save ten", "discount_type": "fixed", "discount_amount": 10.0}
    values.update(fields)
    coupon = PromotionalCoupon(restaurant_id=restaurant.id, **values)
    db.add(coupon)
    await db.commit()
    await db.refresh(coupon)
    return coupon


# =============================================================================
# DEALS
# =============================================================================

async def test_create_deal_uppercases_code(client, manager_headers, restaurant):
    response = await client.post("/api/admin/promotions/deals/create", headers=manager_headers, json={
        "restaurant_id": restaurant.id,
        "name": "Lunch",
        "promo_code": " lunch5 ",
        "discount_type": "fixed_amount",
        "discount_value": 5,
        "service_types": ["pickup", "pickup"],
        "time_restrictions": {"start": "11:00", "end": "14:00"},
    })
    assert response.status_code == 201
    deal = response.json()["deal"]
    assert deal["promo_code"] == "LUNCH5"
    assert deal["service_types"] == ["pickup"]
    assert deal["time_restrictions"] == {"start": "11:00", "end": "14:00"}


async def test_create_deal_validation(client, manager_headers, restaurant):
    base = {"restaurant_id": restaurant.id, "name": "Bad", "discount_type": "percentage"}
    response = await client.post("/api/admin/promotions/deals/create", headers=manager_headers, json={
        **base, "discount_value": 120,
    })
    assert response.status_code == 400

    response = await client.post("/api/admin/promotions/deals/create", headers=manager_headers, json={
        **base, "discount_value": 10, "start_date": "2025-06-10", "end_date": "2025-06-01",
    })
    assert response.status_code == 400

    response = await client.post("/api/admin/promotions/deals/create", headers=manager_headers, json={
        **base, "discount_value": 10, "applicable_days": [7],
    })
    assert response.status_code == 400


async def test_deal_update_toggle_delete(client, super_headers, deal):
    url = f"/api/admin/promotions/deals/{deal.id}"

    response = await client.patch(url, headers=super_headers, json={"discount_value": 150})
    assert response.status_code == 400

    response = await client.patch(url, headers=super_headers, json={"end_date": "2000-01-01", "start_date": "2000-01-02"})
    assert response.status_code == 400

    data = (await client.patch(url, headers=super_headers, json={"discount_value": 20})).json()
    assert data["deal"]["discount_value"] == 20

    data = (await client.patch(f"{url}/toggle", headers=super_headers, json={"is_enabled": False})).json()
    assert data["deal"]["is_enabled"] is False

    assert (await client.delete(url, headers=super_headers)).json() == {"success": True}
    assert (await client.get(url, headers=super_headers)).status_code == 404


async def test_manager_cannot_delete_deals(client, manager_headers, deal):
    response = await client.delete(f"/api/admin/promotions/deals/{deal.id}", headers=manager_headers)
    assert response.status_code == 403


async def test_list_deals_is_scoped(client, db, manager_headers, deal, other_restaurant):
    db.add(PromotionalDeal(restaurant_id=other_restaurant.id, name="Elsewhere", discount_type="fixed_amount", discount_value=2))
    await db.commit()

    data = (await client.get("/api/admin/promotions/deals", headers=manager_headers)).json()
    assert [d["name"] for d in data["deals"]] == ["Pizza Tuesday"]

    response = await client.get("/api/admin/promotions/deals", params={"restaurant_id": other_restaurant.id}, headers=manager_headers)
    assert response.status_code == 403


async def test_deal_stats(client, manager_headers, procedures, deal):
    procedures.set_response("get_deal_performance", [{"redemptions": 4, "revenue": 120.0}])
    data = (await client.get(f"/api/admin/promotions/deals/{deal.id}/stats", headers=manager_headers)).json()
    assert data == {"stats": {"redemptions": 4, "revenue": 120.0}}


async def test_promotion_stats_are_scoped(client, manager_headers, procedures, restaurant):
    procedures.set_response("get_promotion_stats", {"active_deals": 1})
    data = (await client.get("/api/admin/promotions/stats", headers=manager_headers)).json()
    assert data == {"active_deals": 1}
    assert procedures.calls[-1] == ("get_promotion_stats", {"p_restaurant_ids": [restaurant.id]})


# =============================================================================
# COUPONS
# =============================================================================

async def test_coupon_crud(client, manager_headers, restaurant):
    response = await client.post("/api/coupons", headers=manager_headers, json={
        "restaurant_id": restaurant.id, "code": "welcome5", "discount_type": "fixed", "discount_amount": 5,
    })
    assert response.status_code == 201
    coupon = response.json()
    assert coupon["code"] == "WELCOME5"

    response = await client.post("/api/coupons", headers=manager_headers, json={
        "restaurant_id": restaurant.id, "code": "WELCOME5", "discount_type": "fixed", "discount_amount": 5,
    })
    assert response.status_code == 409
    assert response.json()["error"] == "Coupon code WELCOME5 already exists for this restaurant"

    response = await client.patch(f"/api/coupons/{coupon['id']}", headers=manager_headers, json={
        "discount_type": "percentage", "discount_amount": 150,
    })
    assert response.status_code == 400
    assert response.json()["error"] == "Percentage discount cannot exceed 100"

    response = await client.patch(f"/api/coupons/{coupon['id']}", headers=manager_headers, json={"max_redemptions": 100})
    assert response.json()["max_redemptions"] == 100

    coupons = (await client.get("/api/coupons", headers=manager_headers)).json()
    assert [c["code"] for c in coupons] == ["WELCOME5"]


async def test_coupon_delete_needs_permission(client, db, manager_headers, super_headers, restaurant):
    coupon = await add_coupon(db, restaurant)
    assert (await client.delete(f"/api/coupons/{coupon.id}", headers=manager_headers)).status_code == 403
    assert (await client.delete(f"/api/coupons/{coupon.id}", headers=super_headers)).json() == {"success": True}
    assert (await client.get("/api/coupons", headers=super_headers)).json() == []


# =============================================================================
# VALIDATION
# =============================================================================

async def test_validate_coupon(client, db, restaurant, slug):
    await add_coupon(db, restaurant)
    response = await client.post("/api/promotions/validate", json={
        "code": "save10", "restaurant_slug": slug, "subtotal": 30,
    })
    assert response.status_code == 200
    assert response.json() == {
        "valid": True,
        "code": "SAVE10",
        "discount_type": "currency",
        "discount_value": 10.0,
        "description": "$10 off your order",
        "promo_id": response.json()["promo_id"],
        "promo_type": "coupon",
        "name": "Save ten",
    }


async def test_validate_deal_fallback(client, restaurant, slug, deal):
    data = (await client.post("/api/promotions/validate", json={
        "code": "tuesday", "restaurant_slug": slug, "subtotal": 40,
    })).json()
    assert data["promo_type"] == "deal"
    assert data["discount_type"] == "percent"
    assert data["description"] == "15% off your order"


async def test_validate_minimum_purchase(client, restaurant, slug, deal):
    response = await client.post("/api/promotions/validate", json={
        "code": "TUESDAY", "restaurant_slug": slug, "subtotal": 20,
    })
    assert response.status_code == 400
    assert response.json()["error"] == "Add $5.00 more to use this code (min. $25)"


async def test_validate_expired_and_exhausted_coupons(client, db, restaurant, slug):
    await add_coupon(db, restaurant, code="OLD", valid_until_at=utcnow() - timedelta(days=1))
    await add_coupon(db, restaurant, code="USED", max_redemptions=5, redemption_count=5)

    response = await client.post("/api/promotions/validate", json={"code": "OLD", "restaurant_slug": slug})
    assert response.json()["error"] == "This promo code has expired"
    response = await client.post("/api/promotions/validate", json={"code": "USED", "restaurant_slug": slug})
    assert response.json()["error"] == "This promo code has reached its usage limit"


async def test_validate_order_type_and_first_order(client, db, restaurant, slug, customer):
    await add_coupon(db, restaurant, code="PICKUP", availability_types=["takeout"])
    await add_coupon(db, restaurant, code="FIRST", first_order_only=True)

    response = await client.post("/api/promotions/validate", json={
        "code": "PICKUP", "restaurant_slug": slug, "order_type": "delivery",
    })
    assert response.json()["error"] == "This code is not valid for delivery orders"
    response = await client.post("/api/promotions/validate", json={
        "code": "PICKUP", "restaurant_slug": slug, "order_type": "pickup",
    })
    assert response.status_code == 200

    db.add(Order(restaurant_id=restaurant.id, user_id=customer.id, payment_status="paid", total=20.0))
    await db.commit()
    response = await client.post("/api/promotions/validate", json={
        "code": "FIRST", "restaurant_slug": slug, "user_id": customer.id,
    })
    assert response.json()["error"] == "This code is only valid for first-time customers"


async def test_validate_expired_deal(client, db, restaurant, slug, deal):
    deal.end_date = date.today() - timedelta(days=1)
    await db.commit()
    response = await client.post("/api/promotions/validate", json={"code": "TUESDAY", "restaurant_slug": slug, "subtotal": 50})
    assert response.json()["error"] == "This promo code has expired"


async def test_validate_unknown_code_and_restaurant(client, restaurant, slug):
    response = await client.post("/api/promotions/validate", json={"code": "NOPE", "restaurant_slug": slug})
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid promo code"

    response = await client.post("/api/promotions/validate", json={"code": "NOPE", "restaurant_slug": "marios-pizza"})
    assert response.json()["error"] == "Invalid restaurant identifier"

    response = await client.post("/api/promotions/validate", json={"code": "NOPE", "restaurant_slug": "ghost-404"})
    assert response.status_code == 404
    assert response.json()["error"] == "Restaurant not found"
