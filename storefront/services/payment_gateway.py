# storefront/services/payment_gateway.py
"""Thin wrapper over the Razorpay SDK; the rest of the app sees plain dicts."""
import razorpay
import requests
from razorpay.errors import BadRequestError, GatewayError, ServerError, SignatureVerificationError
from flask import current_app


class PaymentGatewayError(Exception):
    pass


_SDK_ERRORS = (BadRequestError, GatewayError, ServerError, requests.RequestException)


class RazorpayGateway:
    def __init__(self, key_id: str, key_secret: str):
        self.key_id = key_id
        self.client = razorpay.Client(auth=(key_id, key_secret))

    def create_order(self, amount: int, currency: str, receipt: str, notes: dict) -> dict:
        try:
            return self.client.order.create(data={
                "amount": amount,
                "currency": currency,
                "receipt": receipt,
                "notes": notes,
            })
        except _SDK_ERRORS as e:
            raise PaymentGatewayError(str(e)) from e

    def fetch_order(self, gateway_order_id: str) -> dict:
        try:
            return self.client.order.fetch(gateway_order_id)
        except _SDK_ERRORS as e:
            raise PaymentGatewayError(str(e)) from e

    def verify_payment_signature(self, gateway_order_id: str, payment_id: str, signature: str) -> bool:
        """HMAC-SHA256 of "<order>|<payment>" keyed with the API secret."""
        if not signature:
            return False
        try:
            return self.client.utility.verify_payment_signature({
                "razorpay_order_id": gateway_order_id,
                "razorpay_payment_id": payment_id,
                "razorpay_signature": signature,
            })
        except SignatureVerificationError:
            return False

    def verify_webhook_signature(self, raw_body: bytes, signature: str, secret: str) -> bool:
        if not signature or not secret:
            return False
        try:
            body = raw_body.decode("utf-8")
        except UnicodeDecodeError:
            return False
        try:
            return self.client.utility.verify_webhook_signature(body, signature, secret)
        except SignatureVerificationError:
            return False


def build_payment_gateway(config):
    key_id = config.get("RAZORPAY_KEY_ID")
    key_secret = config.get("RAZORPAY_KEY_SECRET")
    if not (key_id and key_secret):
        return None
    return RazorpayGateway(key_id, key_secret)


def get_payment_gateway():
    return current_app.extensions.get("payment_gateway")
