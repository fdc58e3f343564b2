"""Menu builder endpoints and public customization checks."""


async def test_menu_edit_permission_required(client, staff_headers, restaurant):
    response = await client.get("/api/menu/courses", params={"restaurant_id": restaurant.id}, headers=staff_headers)
    assert response.status_code == 403
    assert response.json()["error"] == "Forbidden - requires menu:edit permission"


async def test_courses_get_next_position(client, manager_headers, restaurant):
    first = (await client.post("/api/menu/courses", headers=manager_headers, json={
        "restaurant_id": restaurant.id, "name": "Pizzas",
    })).json()
    second = (await client.post("/api/menu/courses", headers=manager_headers, json={
        "restaurant_id": restaurant.id, "name": "Drinks",
    })).json()
    assert (first["display_order"], second["display_order"]) == (0, 1)

    response = await client.post("/api/menu/courses/reorder", headers=manager_headers, json={
        "restaurant_id": restaurant.id, "course_ids": [second["id"], first["id"]],
    })
    assert response.json() == {"success": True}

    courses = (await client.get("/api/menu/courses", params={"restaurant_id": restaurant.id}, headers=manager_headers)).json()
    assert [c["name"] for c in courses["courses"]] == ["Drinks", "Pizzas"]


async def test_manager_cannot_touch_other_menus(client, manager_headers, other_restaurant):
    response = await client.post("/api/menu/courses", headers=manager_headers, json={
        "restaurant_id": other_restaurant.id, "name": "Rolls",
    })
    assert response.status_code == 403


async def test_dish_lifecycle(client, manager_headers, restaurant):
    course = (await client.post("/api/menu/courses", headers=manager_headers, json={
        "restaurant_id": restaurant.id, "name": "Pizzas",
    })).json()

    response = await client.post("/api/menu/dishes", headers=manager_headers, json={
        "restaurant_id": restaurant.id,
        "course_id": course["id"],
        "name": "Pepperoni",
        "prices": [{"price": 13.0}, {"size_variant": "large", "price": 17.0, "display_order": 1}],
    })
    assert response.status_code == 201
    dish = response.json()
    assert [(p["size_variant"], p["price"]) for p in dish["prices"]] == [("default", 13.0), ("large", 17.0)]

    response = await client.patch(f"/api/menu/dishes/{dish['id']}", headers=manager_headers, json={"description": "Spicy"})
    assert response.json()["description"] == "Spicy"

    response = await client.patch(f"/api/menu/dishes/{dish['id']}/inventory", headers=manager_headers, json={
        "is_available": False,
    })
    assert response.json()["is_available"] is False

    assert (await client.delete(f"/api/menu/dishes/{dish['id']}", headers=manager_headers)).json() == {"success": True}
    assert (await client.get(f"/api/menu/dishes/{dish['id']}", headers=manager_headers)).status_code == 404


async def test_dish_course_must_match_restaurant(client, super_headers, restaurant, other_restaurant):
    course = (await client.post("/api/menu/courses", headers=super_headers, json={
        "restaurant_id": other_restaurant.id, "name": "Rolls",
    })).json()
    response = await client.post("/api/menu/dishes", headers=super_headers, json={
        "restaurant_id": restaurant.id, "course_id": course["id"], "name": "Mismatch",
    })
    assert response.status_code == 400
    assert response.json()["error"] == "Course belongs to a different restaurant"


async def test_replace_prices(client, manager_headers, dish):
    url = f"/api/menu/dishes/{dish.id}/prices"
    response = await client.put(url, headers=manager_headers, json={"prices": [{"price": 11.0}, {"size_variant": "small", "price": 9.0}]})
    assert response.status_code == 200
    assert sorted(p["size_variant"] for p in response.json()["prices"]) == ["default", "small"]

    response = await client.put(url, headers=manager_headers, json={"prices": [{"price": 1.0}, {"price": 2.0}]})
    assert response.status_code == 400


async def test_dish_sizes_must_be_unique(client, manager_headers, restaurant):
    response = await client.post("/api/menu/dishes", headers=manager_headers, json={
        "restaurant_id": restaurant.id, "name": "Calzone", "prices": [{"price": 10.0}, {"price": 12.0}],
    })
    assert response.status_code == 400
    [detail] = response.json()["details"]
    assert detail["field"] == "prices"
    assert "Each size_variant may appear only once" in detail["message"]

    dishes = (await client.get("/api/menu/dishes", params={"restaurant_id": restaurant.id}, headers=manager_headers)).json()
    assert dishes == {"dishes": []}


async def _course_positions(client, headers, restaurant_id):
    data = (await client.get("/api/menu/courses", params={"restaurant_id": restaurant_id}, headers=headers)).json()
    return {c["name"]: c["display_order"] for c in data["courses"]}


async def test_course_reorder_stops_at_unknown_id(client, manager_headers, restaurant, other_restaurant):
    ids = {}
    for name in ("Pizzas", "Pastas", "Drinks"):
        course = (await client.post("/api/menu/courses", headers=manager_headers, json={
            "restaurant_id": restaurant.id, "name": name,
        })).json()
        ids[name] = course["id"]

    response = await client.post("/api/menu/courses/reorder", headers=manager_headers, json={
        "restaurant_id": restaurant.id, "course_ids": [ids["Drinks"], 9999, ids["Pizzas"]],
    })
    assert response.status_code == 404
    assert response.json()["error"] == "Course 9999 not found"
    # rows before the unknown id keep their new position
    assert await _course_positions(client, manager_headers, restaurant.id) == {"Pizzas": 0, "Pastas": 1, "Drinks": 0}

    response = await client.post("/api/menu/courses/reorder", headers=manager_headers, json={
        "restaurant_id": other_restaurant.id, "course_ids": [ids["Pizzas"]],
    })
    assert response.status_code == 403


async def test_dish_reorder(client, manager_headers, restaurant):
    course = (await client.post("/api/menu/courses", headers=manager_headers, json={
        "restaurant_id": restaurant.id, "name": "Pizzas",
    })).json()
    other_course = (await client.post("/api/menu/courses", headers=manager_headers, json={
        "restaurant_id": restaurant.id, "name": "Drinks",
    })).json()
    ids = {}
    for name in ("Margherita", "Hawaiian", "Veggie"):
        dish = (await client.post("/api/menu/dishes", headers=manager_headers, json={
            "restaurant_id": restaurant.id, "course_id": course["id"], "name": name, "prices": [{"price": 12.0}],
        })).json()
        ids[name] = dish["id"]
    cola = (await client.post("/api/menu/dishes", headers=manager_headers, json={
        "restaurant_id": restaurant.id, "course_id": other_course["id"], "name": "Cola",
    })).json()

    async def positions():
        data = (await client.get("/api/menu/dishes", headers=manager_headers, params={
            "restaurant_id": restaurant.id, "course_id": course["id"],
        })).json()
        return {d["name"]: d["display_order"] for d in data["dishes"]}

    assert await positions() == {"Margherita": 0, "Hawaiian": 1, "Veggie": 2}

    response = await client.post("/api/menu/dishes/reorder", headers=manager_headers, json={
        "course_id": course["id"], "dish_ids": [ids["Veggie"], ids["Margherita"], ids["Hawaiian"]],
    })
    assert response.json() == {"success": True}
    assert await positions() == {"Veggie": 0, "Margherita": 1, "Hawaiian": 2}

    # a dish from another course counts as unknown
    response = await client.post("/api/menu/dishes/reorder", headers=manager_headers, json={
        "course_id": course["id"], "dish_ids": [ids["Hawaiian"], cola["id"], ids["Veggie"]],
    })
    assert response.status_code == 404
    assert response.json()["error"] == f"Dish {cola['id']} not found"
    assert await positions() == {"Veggie": 0, "Margherita": 1, "Hawaiian": 0}


async def test_get_dish_includes_modifier_groups(client, manager_headers, dish):
    data = (await client.get(f"/api/menu/dishes/{dish.id}", headers=manager_headers)).json()
    [group] = data["modifier_groups"]
    assert group["name"] == "Toppings"
    assert [m["name"] for m in group["modifiers"]] == ["Olives", "Mushrooms"]


async def test_modifier_groups_and_modifiers(client, manager_headers, dish, toppings):
    response = await client.post(f"/api/menu/dishes/{dish.id}/modifier-groups", headers=manager_headers, json={
        "name": "Crust", "is_required": True, "min_selections": 1, "max_selections": 1,
    })
    assert response.status_code == 201
    crust = response.json()
    assert crust["display_order"] == 1

    response = await client.post(f"/api/menu/dishes/{dish.id}/modifier-groups", headers=manager_headers, json={
        "name": "Bad", "min_selections": 3, "max_selections": 1,
    })
    assert response.status_code == 400

    response = await client.patch(f"/api/menu/modifier-groups/{crust['id']}", headers=manager_headers, json={"min_selections": 2})
    assert response.status_code == 400
    assert response.json()["error"] == "max_selections must be at least min_selections"

    modifier = (await client.post(f"/api/menu/modifier-groups/{crust['id']}/modifiers", headers=manager_headers, json={
        "name": "Thin", "price": 0.0,
    })).json()
    response = await client.patch(f"/api/menu/modifiers/{modifier['id']}", headers=manager_headers, json={"price": 0.5})
    assert response.json()["price"] == 0.5

    response = await client.post(f"/api/menu/dishes/{dish.id}/modifier-groups/reorder", headers=manager_headers, json={
        "ids": [crust["id"], toppings.id],
    })
    assert response.json() == {"success": True}
    groups = (await client.get(f"/api/menu/dishes/{dish.id}/modifier-groups", headers=manager_headers)).json()
    assert [g["name"] for g in groups["modifier_groups"]] == ["Crust", "Toppings"]

    assert (await client.delete(f"/api/menu/modifier-groups/{crust['id']}", headers=manager_headers)).json() == {"success": True}
    assert (await client.patch(f"/api/menu/modifiers/{modifier['id']}", headers=manager_headers, json={"price": 1})).status_code == 404


async def test_reorder_modifiers(client, manager_headers, toppings):
    olives, mushrooms = toppings.modifiers
    url = f"/api/menu/modifier-groups/{toppings.id}/modifiers"
    await client.post(f"{url}/reorder", headers=manager_headers, json={"ids": [mushrooms.id, olives.id]})
    data = (await client.get(url, headers=manager_headers)).json()
    assert [m["name"] for m in data["modifiers"]] == ["Mushrooms", "Olives"]


async def test_menu_builder(client, manager_headers, restaurant, dish):
    course = (await client.post("/api/menu/courses", headers=manager_headers, json={
        "restaurant_id": restaurant.id, "name": "Pizzas",
    })).json()
    await client.post("/api/menu/dishes", headers=manager_headers, json={
        "restaurant_id": restaurant.id, "course_id": course["id"], "name": "Calzone", "prices": [{"price": 14.0}],
    })

    data = (await client.get("/api/menu/builder", params={"restaurant_id": restaurant.id}, headers=manager_headers)).json()
    [pizzas] = data["courses"]
    assert [d["name"] for d in pizzas["dishes"]] == ["Calzone"]
    [margherita] = data["uncategorized_dishes"]
    assert margherita["id"] == dish.id
    assert margherita["modifier_groups"][0]["name"] == "Toppings"


# =============================================================================
# PUBLIC
# =============================================================================

async def test_validate_customization(client, dish, toppings):
    olives, mushrooms = toppings.modifiers
    response = await client.post("/api/menu/validate-customization", json={
        "dish_id": dish.id,
        "size": "large",
        "quantity": 2,
        "selected_modifiers": [
            {"group_id": toppings.id, "modifier_id": olives.id},
            {"group_id": toppings.id, "modifier_id": mushrooms.id},
        ],
    })
    assert response.status_code == 200
    data = response.json()
    assert data["is_valid"] is True
    assert data["total_modifier_price"] == 3.5
    assert data["total_price"] == 39.0


async def test_validate_customization_reports_rule_errors(client, dish, toppings):
    olives, _ = toppings.modifiers
    selected = [{"group_id": toppings.id, "modifier_id": olives.id}] * 3
    data = (await client.post("/api/menu/validate-customization", json={
        "dish_id": dish.id, "selected_modifiers": selected,
    })).json()
    assert data["is_valid"] is False
    assert data["errors"][0]["type"] == "max_selections"
    assert data["size"] == "default"
    assert data["total_price"] == 17.0


async def test_validate_customization_rejects_unknown_choices(client, dish, toppings):
    response = await client.post("/api/menu/validate-customization", json={
        "dish_id": dish.id, "selected_modifiers": [{"group_id": toppings.id, "modifier_id": 9999}],
    })
    assert response.status_code == 400

    response = await client.post("/api/menu/validate-customization", json={"dish_id": dish.id, "size": "huge"})
    assert response.status_code == 400
    assert response.json()["error"] == f"Invalid size 'huge' for dish {dish.id}"

    response = await client.post("/api/menu/validate-customization", json={"dish_id": 9999})
    assert response.status_code == 404


async def test_calculate_price_uses_procedure(client, procedures, dish):
    procedures.set_response("calculate_dish_price", lambda params: {"total_price": 14.0, "dish_id": params["p_dish_id"]})
    response = await client.post("/api/menu/calculate-price", json={
        "dish_id": dish.id, "size_code": "large", "modifiers": [{"modifier_id": 1}],
    })
    assert response.json() == {"total_price": 14.0, "dish_id": dish.id}
    name, params = procedures.calls[-1]
    assert params["p_modifiers"] == [{"modifier_id": 1, "quantity": 1}]
