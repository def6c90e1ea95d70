# storefront/order/routes.py
from flask import request

from . import bp
from ..services import order_service
from ..utils.api import ok
from ..utils.decorators import admin_required, current_customer, identity_required
from ..utils.parse import parse_bool


@bp.post("")
@identity_required
def create_order():
    data = request.get_json(silent=True) or {}
    order = order_service.create_order(
        current_customer(),
        items=data.get("items"),
        shipping_address=data.get("shipping_address"),
        from_cart=parse_bool(data.get("from_cart")),
        payment_method=data.get("payment_method"),
    )
    return ok("Order placed successfully", order.as_api(), status=201)


@bp.get("")
@identity_required
def my_orders():
    orders = order_service.list_orders(current_customer())
    return ok("Orders fetched", [o.as_api() for o in orders])


# admin paths are declared before /<id> so "admin" never reaches the id rule
@bp.get("/admin")
@admin_required
def all_orders():
    return ok("Orders fetched", order_service.list_all_orders(request.args))


@bp.get("/admin/<int:order_id>")
@admin_required
def admin_order(order_id):
    order = order_service.get_admin_order(order_id)
    return ok("Order fetched", order.as_api(with_user=True))


@bp.get("/<int:order_id>")
@identity_required
def my_order(order_id):
    order = order_service.get_order(current_customer(), order_id)
    return ok("Order fetched", order.as_api())


@bp.patch("/<int:order_id>/status")
@admin_required
def update_status(order_id):
    data = request.get_json(silent=True) or {}
    order = order_service.update_order_status(order_id, data.get("status"))
    return ok("Order status updated", order.as_api())
