import hashlib
import hmac

import pytest

from storefront import create_app
from storefront.config import TestConfig
from storefront.extensions import db
from storefront.model import Role, User
from storefront.services.identity import IdentityError
from storefront.services.payment_gateway import PaymentGatewayError, RazorpayGateway

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "admin-pass-123"


def sign(secret, message):
    if isinstance(message, str):
        message = message.encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


class FakeVerifier:
    """Accepts tokens shaped like "user-<uid>"."""

    def verify(self, token):
        if not token.startswith("user-"):
            raise IdentityError("token rejected")
        uid = token[len("user-"):]
        return {
            "uid": uid,
            "email": f"{uid}@example.com",
            "name": uid.title(),
            "picture": None,
            "phone_number": "+910000000000",
        }


class FakeGateway:
    def __init__(self):
        # signature checks run through the real SDK; only network calls are faked
        self.sdk = RazorpayGateway("rzp_test_key", "rzp_test_secret")
        self.created = []
        self.orders = {}
        self.fail_with = None

    def create_order(self, amount, currency, receipt, notes):
        if self.fail_with:
            raise PaymentGatewayError(self.fail_with)
        order = {
            "id": f"order_gw_{len(self.created) + 1}",
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "notes": notes,
            "status": "created",
        }
        self.created.append(order)
        self.orders[order["id"]] = order
        return order

    def fetch_order(self, gateway_order_id):
        try:
            return self.orders[gateway_order_id]
        except KeyError:
            raise PaymentGatewayError(f"order {gateway_order_id} not found")

    def verify_payment_signature(self, gateway_order_id, payment_id, signature):
        return self.sdk.verify_payment_signature(gateway_order_id, payment_id, signature)

    def verify_webhook_signature(self, raw_body, signature, secret):
        return self.sdk.verify_webhook_signature(raw_body, signature, secret)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def make_app(tmp_path):
    created = []

    def _make(payment_gateway=None, **overrides):
        attrs = {"SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / f'test{len(created)}.db'}"}
        attrs.update(overrides)
        cfg = type("Cfg", (TestConfig,), attrs)
        app = create_app(cfg, identity_verifier=FakeVerifier(), payment_gateway=payment_gateway)
        created.append(app)
        return app

    yield _make

    for app in created:
        with app.app_context():
            db.session.remove()
            db.drop_all()


@pytest.fixture
def app(make_app, gateway):
    return make_app(payment_gateway=gateway)


@pytest.fixture
def client(app):
    return app.test_client()


def customer(uid="alice"):
    return {"Authorization": f"Bearer user-{uid}"}


@pytest.fixture
def admin_headers(app, client):
    with app.app_context():
        u = User(email=ADMIN_EMAIL, name="Admin", role=Role.ADMIN)
        u.set_password(ADMIN_PASSWORD)
        db.session.add(u)
        db.session.commit()
    r = client.post("/api/v1/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert r.status_code == 200, r.get_json()
    return {"Authorization": f"Bearer {r.get_json()['data']['token']}"}


@pytest.fixture
def make_product(client, admin_headers):
    def _make(name="Test Shirt", mrp=500, selling_price=400, variants=None, **extra):
        if variants is None:
            variants = [{"sku_code": f"{name.upper().replace(' ', '-')}-M", "size": "M",
                         "color": "Blue", "stock_quantity": 10}]
        payload = {"name": name, "mrp": mrp, "selling_price": selling_price, "variants": variants}
        payload.update(extra)
        r = client.post("/api/v1/products", json=payload, headers=admin_headers)
        assert r.status_code == 201, r.get_json()
        return r.get_json()["data"]
    return _make
