import asyncio

import pytest
from decimal import Decimal


async def add(client, user, draft_id, sizes):
    return await client.post(
        "/api/cart/add",
        json={"draftId": draft_id, "sizeQuantities": sizes},
        headers=user["headers"],
    )


async def test_cart_requires_token(client):
    response = await client.get("/api/cart/items")
    assert response.status_code == 401
    assert response.json()["error"] == "Missing token"


async def test_cart_rejects_unknown_token(client):
    response = await client.get("/api/cart/items", headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401
    assert response.json()["error"] == "Invalid or expired token"


async def test_repeat_add_merges_into_one_line(client, user):
    first = await add(client, user, "blank-red", {"M": 2, "L": 1})
    assert first.status_code == 200
    assert first.json()["action"] == "added"
    assert first.json()["quantity"] == 3

    second = await add(client, user, "blank-red", {"M": 2, "L": 1})
    body = second.json()
    assert body["action"] == "updated"
    assert body["quantity"] == 6
    assert body["itemId"] == first.json()["itemId"]

    items = (await client.get("/api/cart/items", headers=user["headers"])).json()
    assert len(items) == 1
    assert items[0]["type"] == "blank-tshirt-red"
    assert items[0]["sizes"] == {"M": 4, "L": 2}


async def test_merge_quantity_is_sum_of_all_adds(client, user):
    calls = [{"S": 1}, {"M": 3}, {"S": 2, "XL": 1}, {"M": 0, "L": 4}]
    for sizes in calls:
        response = await add(client, user, "console-poster-a2", sizes)
        assert response.status_code == 200

    items = (await client.get("/api/cart/items", headers=user["headers"])).json()
    assert len(items) == 1
    assert items[0]["quantity"] == sum(sum(sizes.values()) for sizes in calls)
    assert items[0]["sizes"] == {"S": 3, "M": 3, "XL": 1, "L": 4}


async def test_total_price_tracks_unit_price_after_every_mutation(client, user):
    unit = Decimal("29.99")

    async def check():
        for item in (await client.get("/api/cart/items", headers=user["headers"])).json():
            assert Decimal(str(item["total_price"])) == (unit * item["quantity"]).quantize(Decimal("0.01"))
            assert item["quantity"] == sum(item["sizes"].values())

    item_id = (await add(client, user, "blank-black", {"M": 1})).json()["itemId"]
    await check()
    await add(client, user, "blank-black", {"L": 2})
    await check()
    await client.patch(f"/api/cart/items/{item_id}", json={"newSizes": {"S": 5}}, headers=user["headers"])
    await check()
    await add(client, user, "console-mug", {"ONE": 2})
    await check()

    total = (await client.get("/api/cart/total", headers=user["headers"])).json()["total"]
    assert total == pytest.approx(float(unit * 7))


async def test_add_with_zero_quantity_is_rejected(client, user):
    response = await add(client, user, "blank-red", {"M": 0})
    assert response.status_code == 400
    assert response.json()["error"] == "Select at least one size and quantity"


async def test_add_with_negative_quantity_is_rejected(client, user):
    response = await add(client, user, "blank-red", {"M": -1})
    assert response.status_code == 400


async def test_add_missing_draft_id_names_the_field(client, user):
    response = await client.post("/api/cart/add", json={"sizeQuantities": {"M": 1}}, headers=user["headers"])
    assert response.status_code == 400
    assert response.json()["error"] == "Missing required field: draftId"


async def test_add_custom_design_copies_draft_details(client, user):
    draft = (await client.post(
        "/api/drafts",
        json={"type": "tshirt", "title": "Night sky", "front_preview_image": "https://cdn.example/front.png"},
        headers=user["headers"],
    )).json()["draft"]

    response = await add(client, user, draft["id"], {"M": 1})
    assert response.status_code == 200

    items = (await client.get("/api/cart/items", headers=user["headers"])).json()
    assert items[0]["type"] == f"draft-{draft['id']}"
    assert items[0]["draft_id"] == draft["id"]
    assert items[0]["item_data"]["title"] == "Night sky"
    assert items[0]["item_data"]["frontPreviewImage"] == "https://cdn.example/front.png"


async def test_add_someone_elses_draft_is_not_found(client, user, other_user):
    draft = (await client.post(
        "/api/drafts",
        json={"type": "svg", "title": "Mine"},
        headers=other_user["headers"],
    )).json()["draft"]

    response = await add(client, user, draft["id"], {"M": 1})
    assert response.status_code == 404
    assert response.json()["error"] == "Draft not found"


async def test_count_sums_quantities(client, user):
    await add(client, user, "blank-red", {"M": 2})
    await add(client, user, "blank-blue", {"L": 3})
    response = await client.get("/api/cart/count", headers=user["headers"])
    assert response.json() == {"count": 5}


async def test_empty_size_update_removes_item(client, user):
    item_id = (await add(client, user, "blank-red", {"M": 2, "L": 1})).json()["itemId"]

    response = await client.patch(f"/api/cart/items/{item_id}", json={"newSizes": {}}, headers=user["headers"])
    assert response.status_code == 200
    assert response.json() == {"success": True, "action": "removed", "itemId": item_id}

    items = (await client.get("/api/cart/items", headers=user["headers"])).json()
    assert item_id not in [item["id"] for item in items]


async def test_empty_size_update_is_idempotent(client, user):
    item_id = (await add(client, user, "blank-red", {"M": 1})).json()["itemId"]
    for _ in range(2):
        response = await client.patch(
            f"/api/cart/items/{item_id}", json={"newSizes": {"M": 0}}, headers=user["headers"]
        )
        assert response.status_code == 200
        assert response.json()["action"] == "removed"


async def test_size_update_replaces_map(client, user):
    item_id = (await add(client, user, "blank-red", {"M": 2, "L": 1})).json()["itemId"]

    response = await client.patch(
        f"/api/cart/items/{item_id}", json={"newSizes": {"XL": 4, "M": 0}}, headers=user["headers"]
    )
    body = response.json()
    assert body["action"] == "updated"
    assert body["totalQuantity"] == 4
    assert body["data"]["sizes"] == {"XL": 4}
    assert body["totalPrice"] == pytest.approx(119.96)


async def test_size_update_of_missing_item_is_not_found(client, user):
    response = await client.patch("/api/cart/items/missing", json={"newSizes": {"M": 1}}, headers=user["headers"])
    assert response.status_code == 404


async def test_remove_item(client, user):
    item_id = (await add(client, user, "blank-red", {"M": 1})).json()["itemId"]

    response = await client.delete(f"/api/cart/items/{item_id}", headers=user["headers"])
    assert response.json()["itemId"] == item_id

    again = await client.delete(f"/api/cart/items/{item_id}", headers=user["headers"])
    assert again.status_code == 404
    assert again.json()["error"] == "Cart item not found"


async def test_cart_is_scoped_to_user(client, user, other_user):
    item_id = (await add(client, user, "blank-red", {"M": 1})).json()["itemId"]

    assert (await client.get("/api/cart/items", headers=other_user["headers"])).json() == []
    response = await client.delete(f"/api/cart/items/{item_id}", headers=other_user["headers"])
    assert response.status_code == 404

    # the same item key for another user is a separate line
    other = await add(client, other_user, "blank-red", {"M": 1})
    assert other.json()["action"] == "added"


async def test_clear_cart(client, user):
    await add(client, user, "blank-red", {"M": 1})
    await add(client, user, "blank-blue", {"M": 1})

    response = await client.delete("/api/cart/clear", headers=user["headers"])
    assert response.json()["success"] is True
    assert (await client.get("/api/cart/count", headers=user["headers"])).json() == {"count": 0}


async def test_concurrent_adds_merge_into_one_line(client, user):
    responses = await asyncio.gather(*[add(client, user, "blank-red", {"M": 2, "L": 1}) for _ in range(4)])
    assert all(response.status_code == 200 for response in responses)

    items = (await client.get("/api/cart/items", headers=user["headers"])).json()
    assert len(items) == 1
    assert items[0]["quantity"] == 12
    assert items[0]["sizes"] == {"M": 8, "L": 4}
    assert Decimal(str(items[0]["total_price"])) == Decimal("359.88")


async def test_quantity_per_size_is_capped(client, user):
    response = await add(client, user, "blank-red", {"M": 1000})
    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


async def test_merge_past_the_cap_is_rejected(client, user):
    assert (await add(client, user, "blank-red", {"M": 999})).status_code == 200

    response = await add(client, user, "blank-red", {"M": 1})
    assert response.status_code == 400
    assert response.json()["error"] == "Quantity for size M cannot exceed 999"

    items = (await client.get("/api/cart/items", headers=user["headers"])).json()
    assert items[0]["sizes"] == {"M": 999}


async def test_too_many_size_labels_is_rejected(client, user):
    sizes = {f"S{i}": 1 for i in range(21)}
    response = await add(client, user, "blank-red", sizes)
    assert response.status_code == 400


async def test_size_update_is_capped(client, user):
    item_id = (await add(client, user, "blank-red", {"M": 1})).json()["itemId"]
    response = await client.patch(
        f"/api/cart/items/{item_id}", json={"newSizes": {"M": 5000}}, headers=user["headers"]
    )
    assert response.status_code == 400
