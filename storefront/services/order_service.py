# storefront/services/order_service.py
"""Checkout: turning cart rows or explicit lines into orders, and the online payment flow."""
import json
import secrets

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..model import CartItem, Order, OrderItem, OrderStatus, PaymentMethod, PaymentStatus, Variant
from ..utils.errors import BadRequest, Forbidden, InternalError, NotFound, conflict_from_integrity
from ..utils.money import D, round_money, to_minor_units
from ..utils.parse import parse_int, parse_opt_int, utcnow
from .catalog_service import commit_or_raise
from .payment_gateway import PaymentGatewayError, get_payment_gateway


def new_order_code():
    return f"ORD-{utcnow():%Y%m%d}-{secrets.token_hex(4).upper()}"


# ---------- line resolution ----------

def _merge_lines(raw_items):
    """[(variant_id, quantity)] with repeated variants folded into one line."""
    merged = {}
    for raw in raw_items:
        if not isinstance(raw, dict):
            raise BadRequest("Each item needs a variant_id and quantity")
        vid = parse_opt_int(raw.get("variant_id"))
        if vid is None:
            raise BadRequest("Each item needs a variant_id and quantity")
        qty = parse_opt_int(raw.get("quantity", 1))
        if qty is None or qty < 1:
            raise BadRequest("Quantity must be at least 1")
        merged[vid] = merged.get(vid, 0) + qty
    return list(merged.items())


def _resolve_lines(user, items, from_cart):
    if from_cart:
        rows = CartItem.query.filter_by(user_id=user.id).all()
        if not rows:
            raise BadRequest("Cart is empty")
        return _merge_lines([{"variant_id": r.variant_id, "quantity": r.quantity} for r in rows])
    if not items or not isinstance(items, list):
        raise BadRequest("Order must contain at least one item")
    return _merge_lines(items)


def _priced_lines(lines):
    """Validate every line against the catalog and freeze its price."""
    ids = [vid for vid, _ in lines]
    variants = {v.id: v for v in Variant.query.filter(Variant.id.in_(ids)).all()}
    if len(variants) != len(ids):
        raise BadRequest("One or more products not found")

    priced = []
    total = D(0)
    for vid, qty in lines:
        variant = variants[vid]
        product = variant.product
        label = f"{product.name} ({variant.sku_code})"
        if not variant.is_available:
            raise BadRequest(f"Product {label} is not active")
        if qty > variant.stock_quantity:
            raise BadRequest(f"Insufficient stock for {label}")
        price = round_money(variant.unit_price())
        line_total = round_money(price * qty)
        total += line_total
        priced.append((variant, qty, price, line_total))
    return priced, round_money(total)


def _stage_order(user, priced, total, shipping_address, payment_method) -> Order:
    """Add order, snapshot items and stock reservation to the session without committing."""
    order = Order(
        code=new_order_code(),
        user_id=user.id,
        status=OrderStatus.PENDING,
        payment_status=PaymentStatus.PENDING,
        payment_method=payment_method,
        shipping_address=shipping_address,
        total_amount=total,
        discount_amount=D(0),
        final_amount=total,
    )
    for variant, qty, price, line_total in priced:
        order.items.append(OrderItem(
            variant_id=variant.id,
            product_id=variant.product_id,
            product_name=variant.product.name,
            variant_details={"color": variant.color, "size": variant.size, "sku": variant.sku_code},
            price=price,
            quantity=qty,
            line_total=line_total,
        ))
    db.session.add(order)
    db.session.flush()

    for variant, qty, _, _ in priced:
        # conditional decrement: never lets stock go below zero
        result = db.session.execute(
            update(Variant)
            .where(Variant.id == variant.id, Variant.stock_quantity >= qty)
            .values(stock_quantity=Variant.stock_quantity - qty)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.session.rollback()
            raise BadRequest("Insufficient stock")
    return order


def _prepare(user, items, shipping_address, from_cart=False):
    if not shipping_address:
        raise BadRequest("Shipping address is required")
    lines = _resolve_lines(user, items, from_cart)
    return _priced_lines(lines)


def _rollback_on_db_error(action, e):
    db.session.rollback()
    if isinstance(e, IntegrityError):
        raise conflict_from_integrity(e)
    current_app.logger.error("failed to %s: %s", action, e)
    raise InternalError(f"Failed to {action}: {e}")


# ---------- orders ----------

def create_order(user, items=None, shipping_address=None, from_cart=False, payment_method=None) -> Order:
    payment_method = (payment_method or PaymentMethod.COD).lower()
    if payment_method not in PaymentMethod.ALL:
        raise BadRequest(f"payment_method must be one of: {', '.join(PaymentMethod.ALL)}")
    priced, total = _prepare(user, items, shipping_address, from_cart)

    try:
        order = _stage_order(user, priced, total, shipping_address, payment_method)
        if from_cart:
            CartItem.query.filter_by(user_id=user.id).delete(synchronize_session=False)
        db.session.commit()
    except SQLAlchemyError as e:
        _rollback_on_db_error("create order", e)

    current_app.logger.info(
        "order created id=%s code=%s user=%s total=%s", order.id, order.code, user.id, order.total_amount,
    )
    return order


def list_orders(user):
    return (Order.query
            .filter_by(user_id=user.id)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .all())


def _find_order(order_id) -> Order:
    order = db.session.get(Order, order_id)
    if not order:
        raise NotFound("Order not found")
    return order


def get_order(user, order_id) -> Order:
    order = _find_order(order_id)
    if order.user_id != user.id:
        raise Forbidden("Not authorized to view this order")
    return order


def list_all_orders(filters: dict) -> dict:
    cfg = current_app.config
    page = max(parse_int(filters.get("page"), 1), 1)
    limit = min(max(parse_int(filters.get("limit"), cfg["DEFAULT_PAGE_SIZE"]), 1), cfg["MAX_PAGE_SIZE"])

    query = Order.query
    status = (filters.get("status") or "").strip()
    if status:
        query = query.filter(Order.status == status)
    pagination = (query.order_by(Order.created_at.desc(), Order.id.desc())
                  .paginate(page=page, per_page=limit, error_out=False))
    return {
        "orders": [o.as_api(with_user=True) for o in pagination.items],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": pagination.total,
            "total_pages": pagination.pages,
        },
    }


def get_admin_order(order_id) -> Order:
    return _find_order(order_id)


def update_order_status(order_id, status) -> Order:
    status = (status or "").strip().lower()
    if status not in OrderStatus.ALL:
        raise BadRequest("Invalid order status")
    order = _find_order(order_id)
    order.status = status
    commit_or_raise("update order")
    current_app.logger.info("order %s status -> %s", order.id, status)
    return order


# ---------- online payments ----------

def create_payment_order(user, items, shipping_address) -> dict:
    if not items:
        raise BadRequest("Order must contain at least one item")
    if not shipping_address:
        raise BadRequest("Shipping address is required")
    gateway = get_payment_gateway()
    if gateway is None:
        raise InternalError("Payment gateway configuration missing")

    priced, total = _prepare(user, items, shipping_address)
    try:
        order = _stage_order(user, priced, total, shipping_address, PaymentMethod.ONLINE)
    except SQLAlchemyError as e:
        _rollback_on_db_error("create order", e)

    try:
        gateway_order = gateway.create_order(
            amount=to_minor_units(total),
            currency=current_app.config["PAYMENT_CURRENCY"],
            receipt=f"order_{order.id}",
            notes={"db_order_id": order.id, "user_id": user.id},
        )
    except PaymentGatewayError as e:
        # nothing was committed: order, items and stock reservation vanish together
        db.session.rollback()
        current_app.logger.error("gateway order creation failed for user=%s: %s", user.id, e)
        raise InternalError(f"Failed to create payment order: {e}")

    order.gateway_order_id = gateway_order.get("id")
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        _rollback_on_db_error("create order", e)

    current_app.logger.info("payment order created id=%s gateway_order=%s", order.id, order.gateway_order_id)
    return {
        "order": gateway_order,
        "db_order_id": order.id,
        "key_id": current_app.config.get("RAZORPAY_KEY_ID"),
        "user_details": {"name": user.name, "email": user.email, "phone": user.phone_number},
    }


def _notes_order_id(gateway_order_id):
    gateway = get_payment_gateway()
    if gateway is None:
        return None
    try:
        notes = gateway.fetch_order(gateway_order_id).get("notes") or {}
    except PaymentGatewayError as e:
        current_app.logger.warning("could not fetch gateway order %s: %s", gateway_order_id, e)
        return None
    return parse_opt_int(notes.get("db_order_id"))


def _order_for_payment(gateway_order_id, db_order_id):
    """The local order a gateway order belongs to, or None.

    A stored gateway_order_id must match; orders without one are linked only
    through the notes the gateway order was created with.
    """
    if db_order_id not in (None, ""):
        order_id = parse_opt_int(db_order_id)
        if order_id is None:
            raise BadRequest("db_order_id must be an integer")
        order = _find_order(order_id)
        if order.gateway_order_id == gateway_order_id:
            return order
        if order.gateway_order_id is None and _notes_order_id(gateway_order_id) == order.id:
            return order
        raise BadRequest("Cannot link payment to order")

    order = Order.query.filter_by(gateway_order_id=gateway_order_id).first()
    if order:
        return order

    order_id = _notes_order_id(gateway_order_id)
    if order_id is None:
        return None
    order = db.session.get(Order, order_id)
    if order is not None and order.gateway_order_id not in (None, gateway_order_id):
        return None
    return order


def _mark_paid(order, payment_id):
    order.status = OrderStatus.PLACED
    order.payment_status = PaymentStatus.SUCCESS
    order.transaction_id = payment_id


def verify_payment(user, gateway_order_id, payment_id, signature, db_order_id=None):
    """Order on a valid signature, None when the signature does not match."""
    if not gateway_order_id or not payment_id or not signature:
        raise BadRequest("Payment verification details missing")
    gateway = get_payment_gateway()
    if gateway is None:
        raise InternalError("Payment gateway configuration missing")

    if not gateway.verify_payment_signature(gateway_order_id, payment_id, signature):
        current_app.logger.warning("payment signature mismatch gateway_order=%s", gateway_order_id)
        return None

    order = _order_for_payment(gateway_order_id, db_order_id)
    if order is None:
        raise BadRequest("Cannot link payment to order")
    if user is not None and order.user_id != user.id:
        raise Forbidden("Not authorized to pay for this order")

    _mark_paid(order, payment_id)
    commit_or_raise("update order status")
    current_app.logger.info("payment verified order=%s payment=%s", order.id, payment_id)
    return order


def handle_webhook(raw_body: bytes, signature) -> dict:
    secret = current_app.config.get("RAZORPAY_WEBHOOK_SECRET")
    gateway = get_payment_gateway()
    if not secret:
        # unsigned events are never applied
        current_app.logger.error("webhook rejected: RAZORPAY_WEBHOOK_SECRET is not set")
        raise InternalError("Webhook secret not configured")
    if gateway is None:
        raise InternalError("Payment gateway configuration missing")
    if not gateway.verify_webhook_signature(raw_body or b"", signature, secret):
        raise BadRequest("Invalid webhook signature")
    try:
        event = json.loads(raw_body or b"{}")
    except ValueError:
        raise BadRequest("Invalid webhook payload")
    if not isinstance(event, dict):
        raise BadRequest("Invalid webhook payload")

    name = event.get("event")
    payment = ((event.get("payload") or {}).get("payment") or {}).get("entity") or {}
    gateway_order_id = payment.get("order_id")
    current_app.logger.info("webhook received event=%s gateway_order=%s", name, gateway_order_id)

    if name not in ("payment.captured", "payment.failed") or not gateway_order_id:
        return {"received": True}

    order = Order.query.filter_by(gateway_order_id=gateway_order_id).first()
    if order is None:
        current_app.logger.warning("webhook for unknown gateway order %s", gateway_order_id)
        return {"received": True}

    if name == "payment.captured":
        _mark_paid(order, payment.get("id"))
    else:
        order.payment_status = PaymentStatus.FAILED
    commit_or_raise("apply payment webhook")
    return {"received": True}
