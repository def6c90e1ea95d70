# storefront/coupon/routes.py
from flask import request

from . import bp
from ..services import coupon_service
from ..utils.api import ok
from ..utils.decorators import admin_required


@bp.post("/validate")
def validate():
    data = request.get_json(silent=True) or {}
    cart_total = data.get("cart_total", data.get("cartTotal"))
    result = coupon_service.validate_coupon(data.get("code"), cart_total)
    return ok("Coupon applied", result)


@bp.get("")
@admin_required
def list_coupons():
    return ok("Coupons fetched", [c.as_api() for c in coupon_service.list_coupons()])


@bp.post("")
@admin_required
def create_coupon():
    coupon = coupon_service.create_coupon(request.get_json(silent=True) or {})
    return ok("Coupon created successfully", coupon.as_api(), status=201)


@bp.get("/<int:coupon_id>")
@admin_required
def get_coupon(coupon_id):
    return ok("Coupon fetched", coupon_service.get_coupon(coupon_id).as_api())


@bp.patch("/<int:coupon_id>")
@admin_required
def update_coupon(coupon_id):
    coupon = coupon_service.update_coupon(coupon_id, request.get_json(silent=True) or {})
    return ok("Coupon updated successfully", coupon.as_api())


@bp.delete("/<int:coupon_id>")
@admin_required
def delete_coupon(coupon_id):
    coupon_service.delete_coupon(coupon_id)
    return ok("Coupon deleted successfully")
