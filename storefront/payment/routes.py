# storefront/payment/routes.py
from flask import request

from . import bp
from ..services import order_service
from ..utils.api import err, ok
from ..utils.decorators import current_customer, identity_required
from ..model import PaymentMethod


@bp.post("/create-order")
@identity_required
def create_payment_order():
    data = request.get_json(silent=True) or {}
    result = order_service.create_payment_order(
        current_customer(),
        items=data.get("items"),
        shipping_address=data.get("shipping_address"),
    )
    return ok("Payment order created", result)


@bp.post("/verify")
@identity_required
def verify_payment():
    data = request.get_json(silent=True) or {}
    payment_id = data.get("razorpay_payment_id")
    order = order_service.verify_payment(
        current_customer(),
        data.get("razorpay_order_id"),
        payment_id,
        data.get("razorpay_signature"),
        db_order_id=data.get("db_order_id"),
    )
    if order is None:
        return err("Invalid signature", 400)
    return ok("Payment verified successfully", {
        "order": order.as_api(),
        "transaction_id": payment_id,
        "payment_mode": PaymentMethod.ONLINE,
    })


@bp.post("/webhook")
def webhook():
    result = order_service.handle_webhook(
        request.get_data(cache=True),
        request.headers.get("X-Razorpay-Signature"),
    )
    return ok("Webhook received", result)
