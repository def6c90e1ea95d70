# storefront/services/coupon_service.py
from flask import current_app

from ..extensions import db
from ..model import Coupon, CouponType
from ..utils.errors import BadRequest, Conflict, NotFound
from ..utils.money import D, Money, as_float, parse_money, round_money
from ..utils.parse import parse_bool, parse_iso8601, parse_opt_int, utcnow
from .catalog_service import commit_or_raise


def _normalize_code(code):
    return (code or "").strip()


def compute_discount(coupon: Coupon, cart_total) -> Money:
    """Percentage (optionally capped) or fixed; never more than the cart total."""
    cart_total = D(cart_total)
    if coupon.type == CouponType.PERCENTAGE:
        discount = cart_total * D(coupon.value) / D(100)
        if coupon.max_discount is not None:
            discount = min(discount, D(coupon.max_discount))
    else:
        discount = D(coupon.value)
    return round_money(max(D(0), min(discount, cart_total)))


def validate_coupon(code, cart_total) -> dict:
    code = _normalize_code(code)
    total = parse_money(cart_total)
    if not code:
        raise BadRequest("Coupon code is required")
    if total is None or total < 0:
        raise BadRequest("cart_total must be a non-negative number")

    coupon = Coupon.query.filter_by(code=code, is_active=True).first()
    if not coupon:
        raise NotFound("Invalid or expired coupon")

    now = utcnow()
    if coupon.start_date and now < coupon.start_date:
        raise BadRequest("Coupon is not yet active")
    if coupon.end_date and now > coupon.end_date:
        raise BadRequest("Coupon has expired")
    if coupon.usage_limit is not None and coupon.times_used >= coupon.usage_limit:
        raise BadRequest("Coupon usage limit reached")
    if total < D(coupon.min_cart_value or 0):
        raise BadRequest(f"Minimum cart value of {as_float(coupon.min_cart_value)} required")

    discount = compute_discount(coupon, total)
    return {"coupon_id": coupon.id, "code": coupon.code, "discount_amount": as_float(discount)}


# ---------- admin ----------

def _coupon_fields(data: dict, partial=False) -> dict:
    fields = {}

    if not partial or "type" in data:
        ctype = (data.get("type") or "").strip().lower()
        if ctype not in CouponType.ALL:
            raise BadRequest(f"type must be one of: {', '.join(CouponType.ALL)}")
        fields["type"] = ctype

    if not partial or "value" in data:
        value = parse_money(data.get("value"))
        if value is None or value <= 0:
            raise BadRequest("value must be a number greater than 0")
        fields["value"] = value

    for key in ("min_cart_value", "max_discount"):
        if key in data:
            raw = data.get(key)
            if raw in (None, ""):
                fields[key] = 0 if key == "min_cart_value" else None
                continue
            amount = parse_money(raw)
            if amount is None or amount < 0:
                raise BadRequest(f"{key} must be a non-negative number")
            fields[key] = amount

    for key in ("start_date", "end_date"):
        if key in data:
            raw = data.get(key)
            if raw in (None, ""):
                if key == "start_date":
                    raise BadRequest("start_date cannot be empty")
                fields[key] = None
                continue
            dt = parse_iso8601(raw)
            if dt is None:
                raise BadRequest(f"Invalid datetime format for {key}")
            fields[key] = dt

    if "usage_limit" in data:
        limit = parse_opt_int(data.get("usage_limit"))
        if limit is not None and limit < 0:
            raise BadRequest("usage_limit must be a non-negative integer")
        fields["usage_limit"] = limit

    if "is_active" in data:
        fields["is_active"] = parse_bool(data.get("is_active"), True)
    return fields


def create_coupon(data: dict) -> Coupon:
    code = _normalize_code(data.get("code"))
    if not code or data.get("type") in (None, "") or data.get("value") in (None, ""):
        raise BadRequest("Missing required fields: code, type, value")
    if Coupon.query.filter_by(code=code).first():
        raise Conflict("Coupon code already exists")

    coupon = Coupon(code=code, **_coupon_fields(data))
    db.session.add(coupon)
    commit_or_raise("create coupon")
    current_app.logger.info("coupon created code=%s", coupon.code)
    return coupon


def list_coupons():
    return Coupon.query.order_by(Coupon.created_at.desc(), Coupon.id.desc()).all()


def get_coupon(coupon_id) -> Coupon:
    coupon = db.session.get(Coupon, coupon_id)
    if not coupon:
        raise NotFound("Coupon not found")
    return coupon


def update_coupon(coupon_id, data: dict) -> Coupon:
    coupon = get_coupon(coupon_id)
    fields = _coupon_fields(data, partial=True)
    if "code" in data:
        code = _normalize_code(data.get("code"))
        if not code:
            raise BadRequest("code cannot be empty")
        fields["code"] = code
    if not fields:
        raise BadRequest("No fields to update")
    for key, value in fields.items():
        setattr(coupon, key, value)
    commit_or_raise("update coupon")
    return coupon


def delete_coupon(coupon_id):
    coupon = get_coupon(coupon_id)
    db.session.delete(coupon)
    commit_or_raise("delete coupon")
