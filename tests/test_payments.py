import json

from storefront.extensions import db
from storefront.model import Order, User, Variant

from conftest import customer, sign

ADDRESS = {"line1": "9 Hill Rd", "city": "Goa"}


def _checkout(client, vid, qty=2, uid="alice"):
    return client.post("/api/v1/payments/create-order", headers=customer(uid), json={
        "shipping_address": ADDRESS, "items": [{"variant_id": vid, "quantity": qty}],
    })


def test_create_payment_order_reserves_stock_and_calls_gateway(app, client, gateway, make_product):
    vid = make_product()["variants"][0]["id"]
    r = _checkout(client, vid)
    assert r.status_code == 200, r.get_json()
    data = r.get_json()["data"]

    assert data["order"]["id"] == "order_gw_1"
    assert data["key_id"] == "rzp_test_key"
    assert data["user_details"]["email"] == "alice@example.com"

    sent = gateway.created[0]
    assert sent["amount"] == 80000
    assert sent["currency"] == "INR"
    assert sent["receipt"] == f"order_{data['db_order_id']}"
    assert sent["notes"]["db_order_id"] == data["db_order_id"]

    with app.app_context():
        order = db.session.get(Order, data["db_order_id"])
        assert order.payment_method == "online"
        assert order.payment_status == "pending"
        assert order.gateway_order_id == "order_gw_1"
        assert db.session.get(Variant, vid).stock_quantity == 8


def test_gateway_failure_rolls_everything_back(app, client, gateway, make_product):
    vid = make_product()["variants"][0]["id"]
    gateway.fail_with = "Authentication failed"

    r = _checkout(client, vid)
    assert r.status_code == 500
    assert r.get_json()["message"] == "Failed to create payment order: Authentication failed"
    with app.app_context():
        assert Order.query.count() == 0
        assert db.session.get(Variant, vid).stock_quantity == 10


def test_missing_gateway_configuration(make_app):
    app = make_app(payment_gateway=None, RAZORPAY_KEY_ID=None, RAZORPAY_KEY_SECRET=None)
    client = app.test_client()
    r = client.post("/api/v1/payments/create-order", headers=customer(), json={
        "shipping_address": ADDRESS, "items": [{"variant_id": 1, "quantity": 1}],
    })
    assert r.status_code == 500
    assert r.get_json()["message"] == "Payment gateway configuration missing"


def test_verify_marks_order_placed(app, client, make_product):
    vid = make_product()["variants"][0]["id"]
    data = _checkout(client, vid).get_json()["data"]
    gw_id = data["order"]["id"]

    r = client.post("/api/v1/payments/verify", headers=customer(), json={
        "razorpay_order_id": gw_id,
        "razorpay_payment_id": "pay_123",
        "razorpay_signature": sign("rzp_test_secret", f"{gw_id}|pay_123"),
    })
    assert r.status_code == 200, r.get_json()
    body = r.get_json()["data"]
    assert body["order"]["status"] == "placed"
    assert body["order"]["payment_status"] == "success"
    assert body["order"]["transaction_id"] == "pay_123"
    assert body["payment_mode"] == "online"


def test_verify_falls_back_to_gateway_notes(app, client, gateway, make_product):
    vid = make_product()["variants"][0]["id"]
    data = _checkout(client, vid).get_json()["data"]
    with app.app_context():
        db.session.get(Order, data["db_order_id"]).gateway_order_id = None
        db.session.commit()

    gw_id = data["order"]["id"]
    r = client.post("/api/v1/payments/verify", headers=customer(), json={
        "razorpay_order_id": gw_id,
        "razorpay_payment_id": "pay_9",
        "razorpay_signature": sign("rzp_test_secret", f"{gw_id}|pay_9"),
    })
    assert r.status_code == 200
    assert r.get_json()["data"]["order"]["id"] == data["db_order_id"]


def test_verify_rejects_bad_signature(app, client, make_product):
    vid = make_product()["variants"][0]["id"]
    data = _checkout(client, vid).get_json()["data"]
    gw_id = data["order"]["id"]

    r = client.post("/api/v1/payments/verify", headers=customer(), json={
        "razorpay_order_id": gw_id,
        "razorpay_payment_id": "pay_123",
        "razorpay_signature": sign("some-other-secret", f"{gw_id}|pay_123"),
        "db_order_id": data["db_order_id"],
    })
    assert r.status_code == 400
    body = r.get_json()
    assert body["success"] is False
    assert body["message"] == "Invalid signature"

    with app.app_context():
        order = db.session.get(Order, data["db_order_id"])
        assert order.status == "pending"
        assert db.session.get(Variant, vid).stock_quantity == 8


def test_verify_requires_all_fields(client):
    r = client.post("/api/v1/payments/verify", headers=customer(), json={"razorpay_order_id": "x"})
    assert r.status_code == 400


def test_verify_cannot_link_unknown_order(client):
    sig = sign("rzp_test_secret", "order_missing|pay_1")
    r = client.post("/api/v1/payments/verify", headers=customer(), json={
        "razorpay_order_id": "order_missing", "razorpay_payment_id": "pay_1", "razorpay_signature": sig,
    })
    assert r.status_code == 400
    assert r.get_json()["message"] == "Cannot link payment to order"


def _webhook(client, event, secret="whsec_test"):
    raw = json.dumps(event).encode()
    return client.post("/api/v1/payments/webhook", data=raw, content_type="application/json",
                       headers={"X-Razorpay-Signature": sign(secret, raw)})


def test_webhook_capture_and_failure(app, client, make_product):
    vid = make_product()["variants"][0]["id"]
    first = _checkout(client, vid, qty=1).get_json()["data"]
    second = _checkout(client, vid, qty=1).get_json()["data"]

    r = _webhook(client, {"event": "payment.captured", "payload": {"payment": {"entity": {
        "id": "pay_A", "order_id": first["order"]["id"]}}}})
    assert r.status_code == 200
    assert r.get_json()["data"] == {"received": True}

    _webhook(client, {"event": "payment.failed", "payload": {"payment": {"entity": {
        "id": "pay_B", "order_id": second["order"]["id"]}}}})

    with app.app_context():
        paid = db.session.get(Order, first["db_order_id"])
        failed = db.session.get(Order, second["db_order_id"])
        assert (paid.status, paid.payment_status, paid.transaction_id) == ("placed", "success", "pay_A")
        assert (failed.status, failed.payment_status) == ("pending", "failed")


def test_webhook_signature_is_checked(client):
    r = _webhook(client, {"event": "payment.captured"}, secret="wrong")
    assert r.status_code == 400
    r = _webhook(client, {"event": "order.paid"})
    assert r.status_code == 200


def test_webhook_refused_without_secret(make_app, gateway):
    app = make_app(payment_gateway=gateway, RAZORPAY_WEBHOOK_SECRET=None)
    client = app.test_client()
    with app.app_context():
        buyer = User(email="alice@example.com", firebase_uid="alice")
        db.session.add(buyer)
        db.session.flush()
        db.session.add(Order(code="ORD-1", user_id=buyer.id, status="pending",
                             payment_status="pending", payment_method="online", shipping_address=ADDRESS,
                             total_amount=100, discount_amount=0, final_amount=100,
                             gateway_order_id="order_gw_1"))
        db.session.commit()

    raw = json.dumps({"event": "payment.captured", "payload": {"payment": {"entity": {
        "id": "pay_forged", "order_id": "order_gw_1"}}}}).encode()
    r = client.post("/api/v1/payments/webhook", data=raw, content_type="application/json")
    assert r.status_code == 500
    assert r.get_json()["message"] == "Webhook secret not configured"

    with app.app_context():
        order = Order.query.filter_by(gateway_order_id="order_gw_1").one()
        assert (order.status, order.payment_status, order.transaction_id) == ("pending", "pending", None)


def test_verify_rejects_signature_of_another_order(app, client, make_product):
    vid = make_product()["variants"][0]["id"]
    paid = _checkout(client, vid, qty=1).get_json()["data"]
    unpaid = _checkout(client, vid, qty=1).get_json()["data"]
    gw_id = paid["order"]["id"]

    r = client.post("/api/v1/payments/verify", headers=customer(), json={
        "razorpay_order_id": gw_id,
        "razorpay_payment_id": "pay_1",
        "razorpay_signature": sign("rzp_test_secret", f"{gw_id}|pay_1"),
        "db_order_id": unpaid["db_order_id"],
    })
    assert r.status_code == 400
    assert r.get_json()["message"] == "Cannot link payment to order"

    with app.app_context():
        order = db.session.get(Order, unpaid["db_order_id"])
        assert (order.status, order.payment_status, order.transaction_id) == ("pending", "pending", None)
        assert db.session.get(Order, paid["db_order_id"]).payment_status == "pending"


def test_verify_with_matching_db_order_id(app, client, make_product):
    vid = make_product()["variants"][0]["id"]
    data = _checkout(client, vid).get_json()["data"]
    gw_id = data["order"]["id"]

    r = client.post("/api/v1/payments/verify", headers=customer(), json={
        "razorpay_order_id": gw_id,
        "razorpay_payment_id": "pay_7",
        "razorpay_signature": sign("rzp_test_secret", f"{gw_id}|pay_7"),
        "db_order_id": data["db_order_id"],
    })
    assert r.status_code == 200
    assert r.get_json()["data"]["order"]["payment_status"] == "success"
