from sqlalchemy import update

from storefront.extensions import db
from storefront.model import CartItem, Order, Variant
from storefront.services import order_service

from conftest import customer

ADDRESS = {"line1": "1 Main St", "city": "Pune", "pincode": "411001"}


def _stock(app, variant_id):
    with app.app_context():
        return db.session.get(Variant, variant_id).stock_quantity


def test_checkout_from_cart_end_to_end(app, client, make_product):
    p = make_product(name="Test Shirt", mrp=500, selling_price=400)
    vid = p["variants"][0]["id"]
    client.post("/api/v1/cart", json={"variant_id": vid, "quantity": 3}, headers=customer())

    r = client.post("/api/v1/orders", json={"from_cart": True, "shipping_address": ADDRESS}, headers=customer())
    assert r.status_code == 201, r.get_json()
    order = r.get_json()["data"]
    assert order["total_amount"] == 1200.0
    assert order["final_amount"] == 1200.0
    assert order["status"] == "pending"
    assert order["payment_method"] == "cod"
    assert order["code"].startswith("ORD-")
    assert order["items"][0]["product_name"] == "Test Shirt"
    assert order["items"][0]["variant_details"]["sku"] == "TEST-SHIRT-M"

    assert client.get("/api/v1/cart", headers=customer()).get_json()["data"]["items"] == []
    assert _stock(app, vid) == 7


def test_total_uses_override_and_merges_repeated_lines(client, make_product):
    p = make_product(name="Mixed", variants=[
        {"sku_code": "MIX-A", "stock_quantity": 5},
        {"sku_code": "MIX-B", "stock_quantity": 5, "price_override": 250},
    ])
    a, b = (v["id"] for v in p["variants"])
    r = client.post("/api/v1/orders", headers=customer(), json={
        "shipping_address": ADDRESS,
        "items": [
            {"variant_id": a, "quantity": 1},
            {"variant_id": b, "quantity": 2},
            {"variant_id": a, "quantity": 1},
        ],
    })
    assert r.status_code == 201
    order = r.get_json()["data"]
    assert order["total_amount"] == 400 * 2 + 250 * 2
    assert sorted((i["variant_id"], i["quantity"]) for i in order["items"]) == sorted([(a, 2), (b, 2)])


def test_order_snapshot_survives_price_change(client, admin_headers, make_product):
    p = make_product(name="Frozen")
    vid = p["variants"][0]["id"]
    order = client.post("/api/v1/orders", headers=customer(), json={
        "shipping_address": ADDRESS, "items": [{"variant_id": vid, "quantity": 1}],
    }).get_json()["data"]

    client.patch(f"/api/v1/products/{p['id']}", json={"selling_price": 10, "name": "Thawed"}, headers=admin_headers)
    client.delete(f"/api/v1/products/{p['id']}", headers=admin_headers)

    again = client.get(f"/api/v1/orders/{order['id']}", headers=customer()).get_json()["data"]
    assert again["items"][0]["price"] == 400.0
    assert again["items"][0]["product_name"] == "Frozen"
    assert again["total_amount"] == 400.0


def test_insufficient_stock_fails_whole_order(app, client, make_product):
    plenty = make_product(name="Plenty")["variants"][0]["id"]
    scarce = make_product(name="Scarce", variants=[{"sku_code": "SC-1", "stock_quantity": 1}])["variants"][0]["id"]

    r = client.post("/api/v1/orders", headers=customer(), json={
        "shipping_address": ADDRESS,
        "items": [{"variant_id": plenty, "quantity": 2}, {"variant_id": scarce, "quantity": 2}],
    })
    assert r.status_code == 400
    assert "Insufficient stock" in r.get_json()["message"]
    assert _stock(app, plenty) == 10
    assert _stock(app, scarce) == 1
    with app.app_context():
        assert Order.query.count() == 0


def test_stock_taken_after_pricing_rolls_back(app, client, make_product, monkeypatch):
    vid = make_product()["variants"][0]["id"]
    client.post("/api/v1/cart", json={"variant_id": vid, "quantity": 3}, headers=customer())
    priced_lines = order_service._priced_lines

    def sold_out_meanwhile(lines):
        priced = priced_lines(lines)
        # a competing checkout drains the variant between the check and the decrement
        db.session.execute(update(Variant).where(Variant.id == vid).values(stock_quantity=1))
        return priced

    monkeypatch.setattr(order_service, "_priced_lines", sold_out_meanwhile)
    r = client.post("/api/v1/orders", json={"from_cart": True, "shipping_address": ADDRESS}, headers=customer())
    assert r.status_code == 400
    assert r.get_json()["message"] == "Insufficient stock"

    assert _stock(app, vid) == 10
    with app.app_context():
        assert Order.query.count() == 0
        assert CartItem.query.count() == 1


def test_order_validation(client, make_product):
    vid = make_product()["variants"][0]["id"]
    r = client.post("/api/v1/orders", json={"from_cart": True, "shipping_address": ADDRESS}, headers=customer())
    assert r.status_code == 400
    assert r.get_json()["message"] == "Cart is empty"

    r = client.post("/api/v1/orders", json={"items": [], "shipping_address": ADDRESS}, headers=customer())
    assert r.status_code == 400

    r = client.post("/api/v1/orders", json={"items": [{"variant_id": vid, "quantity": 1}]}, headers=customer())
    assert r.get_json()["message"] == "Shipping address is required"

    r = client.post("/api/v1/orders", headers=customer(), json={
        "shipping_address": ADDRESS, "items": [{"variant_id": vid}, {"variant_id": 4242}],
    })
    assert r.status_code == 400
    assert r.get_json()["message"] == "One or more products not found"


def test_orders_are_private(client, make_product):
    vid = make_product()["variants"][0]["id"]
    order = client.post("/api/v1/orders", headers=customer("alice"), json={
        "shipping_address": ADDRESS, "items": [{"variant_id": vid, "quantity": 1}],
    }).get_json()["data"]

    assert client.get(f"/api/v1/orders/{order['id']}", headers=customer("bob")).status_code == 403
    assert client.get("/api/v1/orders/999", headers=customer("alice")).status_code == 404
    assert [o["id"] for o in client.get("/api/v1/orders", headers=customer("alice")).get_json()["data"]] == [order["id"]]
    assert client.get("/api/v1/orders", headers=customer("bob")).get_json()["data"] == []


def test_admin_order_views_and_status_updates(client, admin_headers, make_product):
    vid = make_product()["variants"][0]["id"]
    order = client.post("/api/v1/orders", headers=customer(), json={
        "shipping_address": ADDRESS, "items": [{"variant_id": vid, "quantity": 1}],
    }).get_json()["data"]

    listing = client.get("/api/v1/orders/admin", headers=admin_headers).get_json()["data"]
    assert listing["pagination"]["total"] == 1
    assert listing["orders"][0]["user"]["email"] == "alice@example.com"

    detail = client.get(f"/api/v1/orders/admin/{order['id']}", headers=admin_headers).get_json()["data"]
    assert detail["user"]["email"] == "alice@example.com"

    r = client.patch(f"/api/v1/orders/{order['id']}/status", json={"status": "teleported"}, headers=admin_headers)
    assert r.status_code == 400
    r = client.patch(f"/api/v1/orders/{order['id']}/status", json={"status": "shipped"}, headers=admin_headers)
    assert r.status_code == 200
    assert r.get_json()["data"]["status"] == "shipped"
    assert client.patch("/api/v1/orders/999/status", json={"status": "shipped"},
                        headers=admin_headers).status_code == 404

    filtered = client.get("/api/v1/orders/admin", query_string={"status": "pending"}, headers=admin_headers)
    assert filtered.get_json()["data"]["orders"] == []

    assert client.get("/api/v1/orders/admin", headers=customer()).status_code == 401
