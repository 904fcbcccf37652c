import pytest
from fastapi.testclient import TestClient

from catalog_pricing.api.main import app
from catalog_pricing.api.state import engine_state


@pytest.fixture
def client(store):
    engine_state.reset(store, {"status": "success"})
    return TestClient(app)


LAVENDER = {"group_id": "grp-oil", "addon_ids": ["oil-lavender"]}


def booking_body(**overrides):
    body = {
        "item_id": "item-massage",
        "customer_name": "Ada Lovelace",
        "customer_email": "ada@example.com",
        "booking_date": "2026-01-12",
        "start_time": "09:00",
        "end_time": "10:00",
        "addons": [LAVENDER],
    }
    body.update(overrides)
    return body


def test_root_and_status(client):
    assert client.get("/").json()["status"] == "online"

    status = client.get("/system/status").json()
    assert status["catalog_status"] == "success"
    assert status["stats"]["items"] == 1


def test_quote_endpoint(client):
    response = client.post("/items/item-massage/quote", json={"quantity": 2, "addons": [LAVENDER]})

    assert response.status_code == 200
    data = response.json()
    assert float(data["final_price"]) == 231.0
    assert float(data["tax_amount"]) == 11.0
    assert data["tax"]["source"] == "category"
    assert "Final Price" in data["trace_text"]


def test_quote_errors_map_to_status_codes(client):
    missing = client.post("/items/item-ghost/quote", json={"addons": []})
    assert missing.status_code == 404
    assert missing.json()["detail"]["error"] == "NotFound"

    no_oil = client.post("/items/item-massage/quote", json={"addons": []})
    assert no_oil.status_code == 400
    assert no_oil.json()["detail"]["error"] == "SelectionViolation"

    bad_quantity = client.post("/items/item-massage/quote", json={"quantity": 0, "addons": [LAVENDER]})
    assert bad_quantity.status_code == 422


def test_tax_lookups(client):
    assert client.get("/items/item-massage/tax").json()["source_id"] == "cat-spa"
    assert client.get("/subcategories/sub-massages/tax").json()["source"] == "category"
    assert client.get("/categories/cat-spa/tax").json()["source"] == "self"
    assert client.get("/categories/cat-none/tax").status_code == 404


def test_category_crud(client):
    created = client.post("/categories", json={"name": "Cafe", "tax": {"applicable": True, "percentage": 12}})
    assert created.status_code == 200
    category_id = created.json()["id"]
    assert category_id == "cat-cafe"

    updated = client.put(f"/categories/{category_id}", json={"description": "Drinks"})
    assert updated.json()["description"] == "Drinks"

    assert client.post("/categories", json={"name": "Cafe"}).status_code == 400

    assert client.delete(f"/categories/{category_id}").json()["success"]
    assert client.get(f"/categories/{category_id}").json()["is_active"] is False
    assert client.post(f"/categories/{category_id}/restore").json()["is_active"] is True
    assert client.delete(f"/categories/{category_id}?hard=true").status_code == 200
    assert client.get(f"/categories/{category_id}").status_code == 404


def test_item_create_and_invalid_config(client):
    body = {
        "name": "Facial",
        "category_id": "cat-spa",
        "pricing": {"pricing_type": "TIERED", "tiers": [{"min_quantity": 1, "max_quantity": 5, "price": 50}]},
    }
    created = client.post("/items", json=body)
    assert created.status_code == 200
    assert created.json()["pricing"]["pricing_type"] == "TIERED"

    bad = client.post("/items", json={**body, "name": "Broken", "pricing": {"pricing_type": "STATIC"}})
    assert bad.status_code == 400
    assert bad.json()["detail"]["errors"] == ["Static pricing requires a valid base_price"]


def test_item_pricing_update(client):
    response = client.put("/items/item-massage", json={
        "pricing": {"pricing_type": "DISCOUNTED", "base_price": 100, "discount": {"discount_type": "PERCENTAGE", "value": 10}},
    })

    assert response.status_code == 200
    assert response.json()["pricing"]["pricing_type"] == "DISCOUNTED"

    quote = client.post("/items/item-massage/quote", json={"addons": [LAVENDER]}).json()
    assert float(quote["final_price"]) == 115.5


def test_null_updates_rejected(client):
    renamed = client.put("/categories/cat-spa", json={"name": None})
    assert renamed.status_code == 400
    assert client.get("/categories").status_code == 200

    booking = client.post("/bookings", json=booking_body()).json()
    cleared = client.put(f"/bookings/{booking['id']}", json={"quantity": None})
    assert cleared.status_code == 400
    assert cleared.json()["detail"]["errors"] == ["quantity is required"]


def test_item_detail_includes_effective_tax(client):
    data = client.get("/items/item-massage").json()

    assert data["category_id"] == "cat-spa"
    assert data["effective_tax"]["source"] == "category"


def test_catalog_search(client):
    everything = client.get("/catalog").json()
    assert list(everything) == ["item-massage"]

    assert client.get("/catalog", params={"search": "massage"}).json()["item-massage"]["Name"] == "Massage"
    assert client.get("/catalog", params={"search": "zzz"}).json() == {}


def test_addon_group_endpoints(client):
    group = client.post("/addon-groups/grp-extras/addons", json={"name": "Scalp", "price": 8}).json()
    addon_id = group["addons"][-1]["id"]

    edited = client.put(f"/addon-groups/grp-extras/addons/{addon_id}", json={"price": 9}).json()
    assert float(edited["addons"][-1]["price"]) == 9.0

    assert client.delete("/addon-groups/grp-oil?hard=true").status_code == 400


def test_booking_flow(client):
    created = client.post("/bookings", json=booking_body())
    assert created.status_code == 200
    booking = created.json()
    assert booking["status"] == "CONFIRMED"
    assert float(booking["price_breakdown"]["final_price"]) == 126.0

    clash = client.post("/bookings", json=booking_body(start_time="09:30", end_time="10:30"))
    assert clash.status_code == 409
    assert clash.json()["detail"]["conflicts"][0]["id"] == booking["id"]

    conflicts = client.post("/bookings/conflicts", json={
        "item_id": "item-massage", "booking_date": "2026-01-12", "start_time": "09:30", "end_time": "10:30",
    }).json()
    assert conflicts["has_conflicts"] is True

    slots = client.get("/bookings/items/item-massage/slots", params={"date": "2026-01-12"}).json()
    assert slots["day_of_week"] == 1
    assert slots["slots"][0]["current_bookings"] == 1

    moved = client.put(f"/bookings/{booking['id']}", json={"start_time": "11:00", "end_time": "12:00"})
    assert moved.json()["start_time"] == "11:00"

    cancelled = client.post(f"/bookings/{booking['id']}/cancel", json={"reason": "Changed plans"})
    assert cancelled.json()["status"] == "CANCELLED"
    assert client.post(f"/bookings/{booking['id']}/complete").status_code == 400


def test_booking_outside_hours(client):
    response = client.post("/bookings", json=booking_body(booking_date="2026-01-11"))

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "AvailabilityViolation"
