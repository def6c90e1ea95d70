from decimal import Decimal

import pytest

from storefront.services.payment_gateway import RazorpayGateway
from storefront.utils.money import round_money, to_minor_units
from storefront.utils.parse import parse_iso8601, slugify

from conftest import sign


@pytest.mark.parametrize("name,slug", [
    ("Supima T-Shirt", "supima-t-shirt"),
    ("Premium Cotton Shirt", "premium-cotton-shirt"),
    ("  --Hello,   World!!  ", "hello-world"),
    ("ÜBER cool", "ber-cool"),
    ("!!!", ""),
])
def test_slugify(name, slug):
    assert slugify(name) == slug


def test_money_rounding_and_minor_units():
    assert round_money(Decimal("10.005")) == Decimal("10.01")
    assert to_minor_units(Decimal("1200")) == 120000
    assert to_minor_units("19.99") == 1999


def test_gateway_signature_checks():
    gw = RazorpayGateway("rzp_test_key", "secret")
    digest = sign("secret", "order_1|pay_1")
    assert len(digest) == 64
    assert gw.verify_payment_signature("order_1", "pay_1", digest)
    tampered = digest[:-1] + ("1" if digest[-1] == "0" else "0")
    assert not gw.verify_payment_signature("order_1", "pay_1", tampered)
    assert not gw.verify_payment_signature("order_2", "pay_1", digest)
    assert not gw.verify_payment_signature("order_1", "pay_1", None)

    body = b'{"event": "payment.captured"}'
    assert gw.verify_webhook_signature(body, sign("whsec", body), "whsec")
    assert not gw.verify_webhook_signature(body, sign("other", body), "whsec")
    assert not gw.verify_webhook_signature(body, sign("whsec", body), None)


def test_parse_iso8601_normalizes_to_naive_utc():
    dt = parse_iso8601("2025-01-02T05:30:00+05:30")
    assert dt.isoformat() == "2025-01-02T00:00:00"
    assert parse_iso8601("2025-01-02T00:00:00Z").tzinfo is None
    assert parse_iso8601("not a date") is None
